"""
Business logic for service requests.

A request moves through a small state machine::

    pending ──► accepted ──► in_progress ──► completed
       │            │              │
       └────────────┴──────────────┴──────► cancelled

``completed`` and ``cancelled`` are terminal.  Besides the transition
table, actor rules apply: only the owning client creates and cancels a
request, only a petsitter accepts it (first acceptance wins), and only
the assigned petsitter moves it to ``in_progress`` or ``completed``.

Writes that depend on the stored status are conditional ``UPDATE``
statements (compare-and-set on ``status``) so concurrent callers cannot
both succeed from the same state.  Every status change is appended to
``request_status_history``.
"""

import logging
import sqlite3
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set

from petsitters_api.app.core.db import get_connection, utcnow_iso
from petsitters_api.app.core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from petsitters_api.app.schemas.request import (
    RequestCreate,
    RequestRead,
    RequestStatistics,
    RequestStatus,
    RequestStatusUpdate,
    StatusHistoryRead,
)
from petsitters_api.app.schemas.user import UserRole
from petsitters_api.app.services.pet_service import PetService

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = frozenset({RequestStatus.COMPLETED, RequestStatus.CANCELLED})

ALLOWED_TRANSITIONS: Dict[RequestStatus, Set[RequestStatus]] = {
    RequestStatus.PENDING: {RequestStatus.ACCEPTED, RequestStatus.CANCELLED},
    RequestStatus.ACCEPTED: {RequestStatus.IN_PROGRESS, RequestStatus.CANCELLED},
    RequestStatus.IN_PROGRESS: {RequestStatus.COMPLETED, RequestStatus.CANCELLED},
}
# Terminal states have no exits.
ALLOWED_TRANSITIONS.update({status: set() for status in TERMINAL_STATUSES})

# Targets of the generic status update that only the assigned petsitter may set.
PETSITTER_ONLY_STATUSES = {RequestStatus.IN_PROGRESS, RequestStatus.COMPLETED}

REQUEST_COLUMNS = (
    "id, client_id, pet_id, petsitter_id, service_type, start_date, end_date, "
    "description, address, price, status, notes, completed_at, created_at, updated_at"
)


def validate_transition(current: RequestStatus, target: RequestStatus) -> None:
    """Raise ``InvalidTransitionError`` unless ``current → target`` is in the table."""
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransitionError(current.value, target.value)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _row_to_request(row: sqlite3.Row) -> RequestRead:
    return RequestRead(**dict(row))


def _record_history(
    cursor: sqlite3.Cursor,
    request_id: int,
    actor_id: int,
    from_status: Optional[RequestStatus],
    to_status: RequestStatus,
    timestamp: str,
) -> None:
    cursor.execute(
        """
        INSERT INTO request_status_history (request_id, actor_id, from_status, to_status, created_at)
        VALUES (?, ?, ?, ?, ?)
        """,
        (
            request_id,
            actor_id,
            from_status.value if from_status else None,
            to_status.value,
            timestamp,
        ),
    )


class RequestService:
    """Service for the request lifecycle."""

    @classmethod
    async def create_request(cls, client_id: int, data: RequestCreate) -> RequestRead:
        """Create a ``pending`` request for one of the caller's pets.

        Fails with ``NotFoundError`` for an unknown pet, ``ForbiddenError``
        if the pet belongs to someone else and ``ValidationError`` for a
        removed pet or an invalid time window.  Nothing is written until
        every check has passed.
        """
        if not await PetService.check_ownership(data.pet_id, client_id):
            raise ForbiddenError("You can only create requests for your own pets")
        pet = await PetService.get_pet(data.pet_id)
        if not pet.is_active:
            raise ValidationError(f"Pet {data.pet_id} has been removed")

        start_date = _as_utc(data.start_date)
        end_date = _as_utc(data.end_date)
        if end_date <= start_date:
            raise ValidationError("End date must be later than start date")
        if start_date < datetime.now(timezone.utc):
            raise ValidationError("Start date cannot be in the past")

        now = utcnow_iso()
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO requests (client_id, pet_id, service_type, start_date, end_date,
                                      description, address, price, status, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    client_id,
                    data.pet_id,
                    data.service_type.value,
                    start_date.isoformat(),
                    end_date.isoformat(),
                    data.description,
                    data.address,
                    data.price,
                    RequestStatus.PENDING.value,
                    now,
                    now,
                ),
            )
            request_id = cursor.lastrowid
            _record_history(cursor, request_id, client_id, None, RequestStatus.PENDING, now)
            conn.commit()
            row = cursor.execute(
                f"SELECT {REQUEST_COLUMNS} FROM requests WHERE id = ?", (request_id,)
            ).fetchone()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
        logger.info("Client %s created request %s for pet %s", client_id, request_id, data.pet_id)
        return _row_to_request(row)

    @classmethod
    async def _list(cls, where: str = "", params: tuple = ()) -> List[RequestRead]:
        query = f"SELECT {REQUEST_COLUMNS} FROM requests"
        if where:
            query += f" WHERE {where}"
        query += " ORDER BY created_at DESC, id DESC"
        conn = get_connection()
        try:
            rows = conn.execute(query, params).fetchall()
        finally:
            conn.close()
        return [_row_to_request(row) for row in rows]

    @classmethod
    async def list_requests(cls, status: Optional[RequestStatus] = None) -> List[RequestRead]:
        """List all requests, optionally filtered by status."""
        if status is None:
            return await cls._list()
        return await cls._list("status = ?", (status.value,))

    @classmethod
    async def list_pending(cls) -> List[RequestRead]:
        """Discovery feed for petsitters."""
        return await cls._list("status = ?", (RequestStatus.PENDING.value,))

    @classmethod
    async def list_by_client(cls, client_id: int) -> List[RequestRead]:
        return await cls._list("client_id = ?", (client_id,))

    @classmethod
    async def list_by_petsitter(cls, petsitter_id: int) -> List[RequestRead]:
        return await cls._list("petsitter_id = ?", (petsitter_id,))

    @classmethod
    async def list_mine(cls, current_user: Dict[str, Any]) -> List[RequestRead]:
        """Clients get the requests they created, petsitters those assigned to them."""
        if current_user.get("role") == UserRole.CLIENT.value:
            return await cls.list_by_client(current_user["user_id"])
        return await cls.list_by_petsitter(current_user["user_id"])

    @classmethod
    async def get_request(cls, request_id: int) -> RequestRead:
        conn = get_connection()
        try:
            row = conn.execute(
                f"SELECT {REQUEST_COLUMNS} FROM requests WHERE id = ?", (request_id,)
            ).fetchone()
        finally:
            conn.close()
        if not row:
            raise NotFoundError(f"Request {request_id} not found")
        return _row_to_request(row)

    @classmethod
    async def accept_request(cls, request_id: int, petsitter_id: int) -> RequestRead:
        """Assign the request to ``petsitter_id`` and move it to ``accepted``.

        A single conditional ``UPDATE`` performs the check and the write,
        so of several petsitters racing for the same request exactly one
        wins.  The losers get ``ConflictError``; accepting a request that
        is no longer pending for another reason gives
        ``InvalidTransitionError``.
        """
        now = utcnow_iso()
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                UPDATE requests
                SET petsitter_id = ?, status = ?, updated_at = ?
                WHERE id = ? AND status = ? AND petsitter_id IS NULL
                """,
                (
                    petsitter_id,
                    RequestStatus.ACCEPTED.value,
                    now,
                    request_id,
                    RequestStatus.PENDING.value,
                ),
            )
            if cursor.rowcount == 0:
                conn.rollback()
                row = cursor.execute(
                    "SELECT status, petsitter_id FROM requests WHERE id = ?", (request_id,)
                ).fetchone()
                if not row:
                    raise NotFoundError(f"Request {request_id} not found")
                if row["petsitter_id"] is not None:
                    raise ConflictError("This request has already been accepted by another petsitter")
                raise InvalidTransitionError(row["status"], RequestStatus.ACCEPTED.value)
            _record_history(
                cursor, request_id, petsitter_id, RequestStatus.PENDING, RequestStatus.ACCEPTED, now
            )
            conn.commit()
            row = cursor.execute(
                f"SELECT {REQUEST_COLUMNS} FROM requests WHERE id = ?", (request_id,)
            ).fetchone()
        finally:
            conn.close()
        logger.info("Petsitter %s accepted request %s", petsitter_id, request_id)
        return _row_to_request(row)

    @classmethod
    async def update_status(
        cls,
        request_id: int,
        current_user: Dict[str, Any],
        data: RequestStatusUpdate,
    ) -> RequestRead:
        """Change the status and/or notes of a request.

        Allowed to the request's client and its assigned petsitter.
        ``in_progress`` and ``completed`` are reserved for the petsitter,
        ``cancelled`` for the client; ``accepted`` is only reachable via
        ``accept_request``.  Entering ``completed`` stamps
        ``completed_at``.
        """
        user_id = current_user["user_id"]
        request = await cls.get_request(request_id)
        is_client = request.client_id == user_id
        is_petsitter = request.petsitter_id is not None and request.petsitter_id == user_id
        if not (is_client or is_petsitter):
            raise ForbiddenError("You can only update your own requests")
        if data.status is None and data.notes is None:
            raise ValidationError("Nothing to update: provide a status or notes")

        target = data.status
        if target is not None:
            validate_transition(request.status, target)
            if target == RequestStatus.ACCEPTED:
                raise ForbiddenError("Requests can only be accepted by a petsitter via the accept operation")
            if target in PETSITTER_ONLY_STATUSES and not is_petsitter:
                raise ForbiddenError(
                    "Only the assigned petsitter can set the status to 'in_progress' or 'completed'"
                )
            if target == RequestStatus.CANCELLED and not is_client:
                raise ForbiddenError("Only the client can cancel the request")

        now = utcnow_iso()
        assignments = ["updated_at = ?"]
        values: list = [now]
        if target is not None:
            assignments.append("status = ?")
            values.append(target.value)
            if target == RequestStatus.COMPLETED:
                assignments.append("completed_at = ?")
                values.append(now)
        if data.notes is not None:
            assignments.append("notes = ?")
            values.append(data.notes)
        query = f"UPDATE requests SET {', '.join(assignments)} WHERE id = ?"
        values.append(request_id)
        if target is not None:
            query += " AND status = ?"
            values.append(request.status.value)

        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(query, tuple(values))
            if cursor.rowcount == 0 and target is not None:
                # The status changed between our read and this write.
                conn.rollback()
                fresh = cursor.execute(
                    "SELECT status FROM requests WHERE id = ?", (request_id,)
                ).fetchone()
                raise InvalidTransitionError(fresh["status"], target.value)
            if target is not None:
                _record_history(cursor, request_id, user_id, request.status, target, now)
            conn.commit()
            row = cursor.execute(
                f"SELECT {REQUEST_COLUMNS} FROM requests WHERE id = ?", (request_id,)
            ).fetchone()
        finally:
            conn.close()
        if target is not None:
            logger.info(
                "User %s moved request %s from %s to %s",
                user_id,
                request_id,
                request.status.value,
                target.value,
            )
        return _row_to_request(row)

    @classmethod
    async def cancel_request(cls, request_id: int, user_id: int) -> None:
        """Cancel a request on behalf of its client.

        A completed request cannot be cancelled (``ValidationError``);
        cancelling twice is an invalid transition.  The assigned
        petsitter, if any, stays on record.
        """
        request = await cls.get_request(request_id)
        if request.client_id != user_id:
            raise ForbiddenError("Only the client can cancel the request")
        if request.status == RequestStatus.COMPLETED:
            raise ValidationError("Cannot cancel a completed request")
        validate_transition(request.status, RequestStatus.CANCELLED)

        now = utcnow_iso()
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE requests SET status = ?, updated_at = ? WHERE id = ? AND status = ?",
                (RequestStatus.CANCELLED.value, now, request_id, request.status.value),
            )
            if cursor.rowcount == 0:
                conn.rollback()
                fresh = cursor.execute(
                    "SELECT status FROM requests WHERE id = ?", (request_id,)
                ).fetchone()
                if fresh["status"] == RequestStatus.COMPLETED.value:
                    raise ValidationError("Cannot cancel a completed request")
                raise InvalidTransitionError(fresh["status"], RequestStatus.CANCELLED.value)
            _record_history(cursor, request_id, user_id, request.status, RequestStatus.CANCELLED, now)
            conn.commit()
        finally:
            conn.close()
        logger.info("Client %s cancelled request %s", user_id, request_id)

    @classmethod
    async def get_statistics(cls, user_id: int, role: str) -> RequestStatistics:
        """Count the caller's requests, in total and per status."""
        column = "client_id" if role == UserRole.CLIENT.value else "petsitter_id"
        conn = get_connection()
        try:
            rows = conn.execute(
                f"SELECT status, COUNT(*) AS count FROM requests WHERE {column} = ? GROUP BY status",
                (user_id,),
            ).fetchall()
        finally:
            conn.close()
        by_status = {status: 0 for status in RequestStatus}
        for row in rows:
            by_status[RequestStatus(row["status"])] = row["count"]
        return RequestStatistics(total=sum(by_status.values()), by_status=by_status)

    @classmethod
    async def get_history(cls, request_id: int, user_id: int) -> List[StatusHistoryRead]:
        """Status changes of a request, oldest first.

        Only the request's client and assigned petsitter may read it.
        """
        request = await cls.get_request(request_id)
        if user_id not in (request.client_id, request.petsitter_id):
            raise ForbiddenError("You can only view the history of your own requests")
        conn = get_connection()
        try:
            rows = conn.execute(
                """
                SELECT id, request_id, actor_id, from_status, to_status, created_at
                FROM request_status_history WHERE request_id = ?
                ORDER BY id ASC
                """,
                (request_id,),
            ).fetchall()
        finally:
            conn.close()
        return [StatusHistoryRead(**dict(row)) for row in rows]
