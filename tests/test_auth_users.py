API = "/api/v1"


def test_health_ok(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_register_returns_token_and_user(client):
    response = client.post(
        f"{API}/auth/register",
        json={
            "name": "Anna Petrova",
            "email": "Anna@Example.com",
            "password": "secret123",
            "phone": "+79001112233",
            "role": "client",
        },
    )
    assert response.status_code == 201
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["access_token"]
    assert body["user"]["email"] == "anna@example.com"
    assert body["user"]["role"] == "client"
    assert "password" not in body["user"]


def test_register_duplicate_email_conflicts(client, register_user):
    register_user("client", email="dup@example.com")
    response = client.post(
        f"{API}/auth/register",
        json={
            "name": "Other",
            "email": "DUP@example.com",
            "password": "secret123",
            "phone": "+7900",
            "role": "petsitter",
        },
    )
    assert response.status_code == 409


def test_register_rejects_malformed_input(client):
    response = client.post(
        f"{API}/auth/register",
        json={"name": "A", "email": "not-an-email", "password": "123", "phone": "1", "role": "admin"},
    )
    assert response.status_code == 400
    assert isinstance(response.json()["detail"], str)


def test_login_success_and_failures(client, register_user):
    register_user("petsitter", email="sitter@example.com", password="goodpass")

    ok = client.post(f"{API}/auth/login", json={"email": "sitter@example.com", "password": "goodpass"})
    assert ok.status_code == 200
    assert ok.json()["user"]["role"] == "petsitter"

    wrong = client.post(f"{API}/auth/login", json={"email": "sitter@example.com", "password": "badpass"})
    assert wrong.status_code == 401
    assert wrong.json()["detail"] == "Invalid email or password"

    unknown = client.post(f"{API}/auth/login", json={"email": "nobody@example.com", "password": "goodpass"})
    assert unknown.status_code == 401
    assert unknown.json()["detail"] == "Invalid email or password"


def test_protected_routes_require_token(client):
    assert client.get(f"{API}/users/profile").status_code == 401
    bad = client.get(f"{API}/users/profile", headers={"Authorization": "Bearer not.a.token"})
    assert bad.status_code == 401


def test_profile_read_and_update(client, register_user):
    user = register_user("petsitter")
    profile = client.get(f"{API}/users/profile", headers=user["headers"])
    assert profile.status_code == 200
    assert profile.json()["rating"] == 0
    assert profile.json()["reviews_count"] == 0

    updated = client.patch(
        f"{API}/users/profile",
        json={"bio": "Loves cats", "phone": "+79998887766"},
        headers=user["headers"],
    )
    assert updated.status_code == 200
    assert updated.json()["bio"] == "Loves cats"
    assert updated.json()["phone"] == "+79998887766"
    assert updated.json()["name"] == profile.json()["name"]


def test_deactivated_account_cannot_log_in_or_use_token(client, register_user):
    user = register_user("client", email="gone@example.com")
    response = client.delete(f"{API}/users/profile", headers=user["headers"])
    assert response.status_code == 204

    assert client.get(f"{API}/users/profile", headers=user["headers"]).status_code == 401
    login = client.post(f"{API}/auth/login", json={"email": "gone@example.com", "password": "password123"})
    assert login.status_code == 401
    assert login.json()["detail"] == "Account is deactivated"


def test_list_users_filters_by_role_and_skips_inactive(client, register_user):
    viewer = register_user("client")
    sitter = register_user("petsitter")
    leaving = register_user("petsitter")
    client.delete(f"{API}/users/profile", headers=leaving["headers"])

    response = client.get(f"{API}/users", params={"role": "petsitter"}, headers=viewer["headers"])
    assert response.status_code == 200
    ids = [user["id"] for user in response.json()]
    assert ids == [sitter["id"]]


def test_get_user_by_id(client, register_user):
    viewer = register_user("client")
    sitter = register_user("petsitter")
    found = client.get(f"{API}/users/{sitter['id']}", headers=viewer["headers"])
    assert found.status_code == 200
    assert found.json()["role"] == "petsitter"
    assert client.get(f"{API}/users/9999", headers=viewer["headers"]).status_code == 404


def test_list_petsitters_orders_by_rating(client, register_user, completed_request):
    low = register_user("petsitter")
    high = register_user("petsitter")
    register_user("petsitter")
    for sitter, rating in ((low, 2), (high, 5)):
        done = completed_request(petsitter=sitter)
        response = client.post(
            f"{API}/reviews",
            json={"request_id": done["request"]["id"], "rating": rating},
            headers=done["owner"]["headers"],
        )
        assert response.status_code == 201

    listing = client.get(f"{API}/users/petsitters", headers=low["headers"]).json()
    assert [user["id"] for user in listing[:2]] == [high["id"], low["id"]]
    assert len(listing) == 3

    filtered = client.get(f"{API}/users/petsitters", params={"min_rating": 3}, headers=low["headers"])
    assert [user["id"] for user in filtered.json()] == [high["id"]]
