import asyncio
import threading
from datetime import datetime, timedelta, timezone

import pytest

from petsitters_api.app.core.errors import ConflictError, InvalidTransitionError
from petsitters_api.app.schemas.request import RequestStatus
from petsitters_api.app.services.pet_service import PetService
from petsitters_api.app.services.request_service import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    RequestService,
    validate_transition,
)

API = "/api/v1"


def _iso(delta: timedelta) -> str:
    return (datetime.now(timezone.utc) + delta).isoformat()


def _set_status(client, user, request_id, target):
    return client.patch(
        f"{API}/requests/{request_id}/status", json={"status": target}, headers=user["headers"]
    )


def _status_of(client, user, request_id):
    return client.get(f"{API}/requests/{request_id}", headers=user["headers"]).json()["status"]


@pytest.mark.parametrize("current", list(RequestStatus))
@pytest.mark.parametrize("target", list(RequestStatus))
def test_transition_table(current, target):
    expected = {
        (RequestStatus.PENDING, RequestStatus.ACCEPTED),
        (RequestStatus.PENDING, RequestStatus.CANCELLED),
        (RequestStatus.ACCEPTED, RequestStatus.IN_PROGRESS),
        (RequestStatus.ACCEPTED, RequestStatus.CANCELLED),
        (RequestStatus.IN_PROGRESS, RequestStatus.COMPLETED),
        (RequestStatus.IN_PROGRESS, RequestStatus.CANCELLED),
    }
    if (current, target) in expected:
        validate_transition(current, target)
    else:
        with pytest.raises(InvalidTransitionError) as exc_info:
            validate_transition(current, target)
        assert current.value in str(exc_info.value)
        assert target.value in str(exc_info.value)


def test_terminal_states_have_no_exits():
    assert TERMINAL_STATUSES == {RequestStatus.COMPLETED, RequestStatus.CANCELLED}
    assert set(ALLOWED_TRANSITIONS) == set(RequestStatus)
    for status in RequestStatus:
        if status in TERMINAL_STATUSES:
            assert ALLOWED_TRANSITIONS[status] == set()
        else:
            assert ALLOWED_TRANSITIONS[status]


@pytest.mark.parametrize("terminal", sorted(TERMINAL_STATUSES, key=lambda s: s.value))
def test_terminal_request_rejects_every_status_change(
    client, register_user, create_pet, create_request, completed_request, terminal
):
    if terminal is RequestStatus.COMPLETED:
        done = completed_request()
        owner, sitter, request = done["owner"], done["petsitter"], done["request"]
    else:
        owner = register_user("client")
        sitter = register_user("petsitter")
        request = create_request(owner, create_pet(owner)["id"])
        assert client.delete(f"{API}/requests/{request['id']}", headers=owner["headers"]).status_code == 204

    for target in RequestStatus:
        for actor in (owner, sitter):
            response = client.patch(
                f"{API}/requests/{request['id']}/status",
                json={"status": target.value},
                headers=actor["headers"],
            )
            assert response.status_code in (400, 403), (target, response.text)
    assert client.get(f"{API}/requests/{request['id']}").json()["status"] == terminal.value


def test_create_request_starts_pending(client, register_user, create_pet, create_request):
    owner = register_user("client")
    pet = create_pet(owner)
    request = create_request(owner, pet["id"], description="Morning walk")
    assert request["status"] == "pending"
    assert request["client_id"] == owner["id"]
    assert request["petsitter_id"] is None
    assert request["completed_at"] is None


def test_create_request_for_foreign_missing_or_removed_pet(client, register_user, create_pet):
    owner = register_user("client")
    stranger = register_user("client")
    pet = create_pet(owner)
    body = {
        "pet_id": pet["id"],
        "service_type": "care",
        "start_date": _iso(timedelta(days=1)),
        "end_date": _iso(timedelta(days=2)),
        "address": "Somewhere",
        "price": 1000,
    }
    assert client.post(f"{API}/requests", json=body, headers=stranger["headers"]).status_code == 403
    assert (
        client.post(f"{API}/requests", json={**body, "pet_id": 999}, headers=owner["headers"]).status_code
        == 404
    )

    client.delete(f"{API}/pets/{pet['id']}", headers=owner["headers"])
    removed = client.post(f"{API}/requests", json=body, headers=owner["headers"])
    assert removed.status_code == 400


def test_create_request_defers_ownership_to_pet_service(client, register_user, create_pet, monkeypatch):
    owner = register_user("client")
    pet = create_pet(owner)
    calls = []

    async def deny(pet_id, user_id):
        calls.append((pet_id, user_id))
        return False

    monkeypatch.setattr(PetService, "check_ownership", deny)
    response = client.post(
        f"{API}/requests",
        json={
            "pet_id": pet["id"],
            "service_type": "walking",
            "start_date": _iso(timedelta(days=1)),
            "end_date": _iso(timedelta(days=2)),
            "address": "Somewhere",
            "price": 300,
        },
        headers=owner["headers"],
    )
    assert response.status_code == 403
    assert calls == [(pet["id"], owner["id"])]


def test_create_request_rejects_bad_time_window(client, register_user, create_pet):
    owner = register_user("client")
    pet = create_pet(owner)
    body = {"pet_id": pet["id"], "service_type": "walking", "address": "A", "price": 300}

    same = _iso(timedelta(days=1))
    equal = client.post(
        f"{API}/requests", json={**body, "start_date": same, "end_date": same}, headers=owner["headers"]
    )
    assert equal.status_code == 400
    backwards = client.post(
        f"{API}/requests",
        json={**body, "start_date": _iso(timedelta(days=2)), "end_date": _iso(timedelta(days=1))},
        headers=owner["headers"],
    )
    assert backwards.status_code == 400
    past = client.post(
        f"{API}/requests",
        json={**body, "start_date": _iso(timedelta(days=-1)), "end_date": _iso(timedelta(days=1))},
        headers=owner["headers"],
    )
    assert past.status_code == 400
    assert "past" in past.json()["detail"]

    assert client.get(f"{API}/requests/my", headers=owner["headers"]).json() == []


def test_petsitter_cannot_create_request(client, register_user, create_pet):
    owner = register_user("client")
    sitter = register_user("petsitter")
    pet = create_pet(owner)
    response = client.post(
        f"{API}/requests",
        json={
            "pet_id": pet["id"],
            "service_type": "walking",
            "start_date": _iso(timedelta(days=1)),
            "end_date": _iso(timedelta(days=1, hours=1)),
            "address": "A",
            "price": 1,
        },
        headers=sitter["headers"],
    )
    assert response.status_code == 403


def test_full_lifecycle_and_history(client, register_user, create_pet, create_request):
    owner = register_user("client")
    sitter = register_user("petsitter")
    pet = create_pet(owner)
    request = create_request(owner, pet["id"])

    pending = client.get(f"{API}/requests/pending", headers=sitter["headers"]).json()
    assert [r["id"] for r in pending] == [request["id"]]

    accepted = client.post(f"{API}/requests/{request['id']}/accept", headers=sitter["headers"])
    assert accepted.status_code == 200
    assert accepted.json()["status"] == "accepted"
    assert accepted.json()["petsitter_id"] == sitter["id"]
    assert client.get(f"{API}/requests/pending", headers=sitter["headers"]).json() == []

    started = _set_status(client, sitter, request["id"], "in_progress")
    assert started.status_code == 200
    assert started.json()["completed_at"] is None

    finished = _set_status(client, sitter, request["id"], "completed")
    assert finished.status_code == 200
    assert finished.json()["status"] == "completed"
    assert finished.json()["completed_at"] is not None

    history = client.get(f"{API}/requests/{request['id']}/history", headers=owner["headers"])
    assert history.status_code == 200
    steps = [(h["from_status"], h["to_status"]) for h in history.json()]
    assert steps == [
        (None, "pending"),
        ("pending", "accepted"),
        ("accepted", "in_progress"),
        ("in_progress", "completed"),
    ]

    outsider = register_user("petsitter")
    denied = client.get(f"{API}/requests/{request['id']}/history", headers=outsider["headers"])
    assert denied.status_code == 403


def test_second_accept_conflicts(client, register_user, create_pet, create_request):
    owner = register_user("client")
    first = register_user("petsitter")
    second = register_user("petsitter")
    request = create_request(owner, create_pet(owner)["id"])

    assert client.post(f"{API}/requests/{request['id']}/accept", headers=first["headers"]).status_code == 200
    again = client.post(f"{API}/requests/{request['id']}/accept", headers=second["headers"])
    assert again.status_code == 409
    current = client.get(f"{API}/requests/{request['id']}", headers=owner["headers"]).json()
    assert current["petsitter_id"] == first["id"]


def test_accept_cancelled_request_is_invalid_transition(client, register_user, create_pet, create_request):
    owner = register_user("client")
    sitter = register_user("petsitter")
    request = create_request(owner, create_pet(owner)["id"])
    assert client.delete(f"{API}/requests/{request['id']}", headers=owner["headers"]).status_code == 204

    response = client.post(f"{API}/requests/{request['id']}/accept", headers=sitter["headers"])
    assert response.status_code == 400
    assert "cancelled" in response.json()["detail"]


def test_client_cannot_accept(client, register_user, create_pet, create_request):
    owner = register_user("client")
    request = create_request(owner, create_pet(owner)["id"])
    response = client.post(f"{API}/requests/{request['id']}/accept", headers=owner["headers"])
    assert response.status_code == 403


def test_accept_missing_request_is_404(client, register_user):
    sitter = register_user("petsitter")
    assert client.post(f"{API}/requests/12345/accept", headers=sitter["headers"]).status_code == 404


def test_actor_rules_on_status_update(client, register_user, create_pet, create_request):
    owner = register_user("client")
    sitter = register_user("petsitter")
    outsider = register_user("petsitter")
    request = create_request(owner, create_pet(owner)["id"])
    rid = request["id"]

    # Acceptance only goes through the accept operation.
    assert _set_status(client, owner, rid, "accepted").status_code == 403

    client.post(f"{API}/requests/{rid}/accept", headers=sitter["headers"])

    assert _set_status(client, outsider, rid, "in_progress").status_code == 403
    assert _set_status(client, owner, rid, "in_progress").status_code == 403
    assert _set_status(client, sitter, rid, "cancelled").status_code == 403
    assert _status_of(client, owner, rid) == "accepted"

    skipped = _set_status(client, sitter, rid, "completed")
    assert skipped.status_code == 400
    assert "accepted" in skipped.json()["detail"]
    assert "completed" in skipped.json()["detail"]
    assert _status_of(client, owner, rid) == "accepted"


def test_notes_only_update_keeps_status(client, register_user, create_pet, create_request):
    owner = register_user("client")
    sitter = register_user("petsitter")
    request = create_request(owner, create_pet(owner)["id"])
    client.post(f"{API}/requests/{request['id']}/accept", headers=sitter["headers"])

    response = client.patch(
        f"{API}/requests/{request['id']}/status",
        json={"notes": "Keys are with the concierge"},
        headers=sitter["headers"],
    )
    assert response.status_code == 200
    assert response.json()["notes"] == "Keys are with the concierge"
    assert response.json()["status"] == "accepted"

    empty = client.patch(f"{API}/requests/{request['id']}/status", json={}, headers=sitter["headers"])
    assert empty.status_code == 400


def test_cancel_rules(client, register_user, create_pet, create_request, completed_request):
    owner = register_user("client")
    sitter = register_user("petsitter")
    request = create_request(owner, create_pet(owner)["id"])
    client.post(f"{API}/requests/{request['id']}/accept", headers=sitter["headers"])

    assert client.delete(f"{API}/requests/{request['id']}", headers=sitter["headers"]).status_code == 403
    assert client.delete(f"{API}/requests/{request['id']}", headers=owner["headers"]).status_code == 204
    cancelled = client.get(f"{API}/requests/{request['id']}", headers=owner["headers"]).json()
    assert cancelled["status"] == "cancelled"
    # The petsitter stays on record after cancellation.
    assert cancelled["petsitter_id"] == sitter["id"]

    twice = client.delete(f"{API}/requests/{request['id']}", headers=owner["headers"])
    assert twice.status_code == 400

    done = completed_request()
    rid = done["request"]["id"]
    response = client.delete(f"{API}/requests/{rid}", headers=done["owner"]["headers"])
    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot cancel a completed request"
    assert _status_of(client, done["owner"], rid) == "completed"


def test_listings_and_statistics(client, register_user, create_pet, create_request):
    owner = register_user("client")
    sitter = register_user("petsitter")
    pet = create_pet(owner)
    first = create_request(owner, pet["id"])
    second = create_request(owner, pet["id"], service_type="grooming")
    third = create_request(owner, pet["id"], service_type="overnight")
    client.post(f"{API}/requests/{second['id']}/accept", headers=sitter["headers"])
    client.delete(f"{API}/requests/{third['id']}", headers=owner["headers"])

    mine = client.get(f"{API}/requests/my", headers=owner["headers"]).json()
    assert [r["id"] for r in mine] == [third["id"], second["id"], first["id"]]
    assigned = client.get(f"{API}/requests/my", headers=sitter["headers"]).json()
    assert [r["id"] for r in assigned] == [second["id"]]

    only_pending = client.get(f"{API}/requests", params={"status": "pending"}, headers=owner["headers"])
    assert [r["id"] for r in only_pending.json()] == [first["id"]]

    stats = client.get(f"{API}/requests/statistics", headers=owner["headers"]).json()
    assert stats["total"] == 3
    assert stats["by_status"] == {
        "pending": 1,
        "accepted": 1,
        "in_progress": 0,
        "completed": 0,
        "cancelled": 1,
    }
    sitter_stats = client.get(f"{API}/requests/statistics", headers=sitter["headers"]).json()
    assert sitter_stats["total"] == 1
    assert sitter_stats["by_status"]["accepted"] == 1


def test_concurrent_accepts_have_single_winner(client, register_user, create_pet, create_request):
    owner = register_user("client")
    sitters = [register_user("petsitter") for _ in range(5)]
    request = create_request(owner, create_pet(owner)["id"])

    barrier = threading.Barrier(len(sitters))
    outcomes = []
    lock = threading.Lock()

    def attempt(petsitter_id):
        barrier.wait()
        try:
            asyncio.run(RequestService.accept_request(request["id"], petsitter_id))
            result = ("ok", petsitter_id)
        except ConflictError:
            result = ("conflict", petsitter_id)
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=attempt, args=(s["id"],)) for s in sitters]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    winners = [pid for kind, pid in outcomes if kind == "ok"]
    assert len(outcomes) == len(sitters)
    assert len(winners) == 1
    stored = asyncio.run(RequestService.get_request(request["id"]))
    assert stored.petsitter_id == winners[0]
    assert stored.status == RequestStatus.ACCEPTED
