from petsitters_api.app.core.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)

API = "/api/v1"


def test_token_round_trip_carries_claims():
    token = create_access_token({"sub": "7", "role": "client"})
    payload = decode_access_token(token)
    assert payload["sub"] == "7"
    assert payload["role"] == "client"
    assert "exp" in payload


def test_tampered_and_expired_tokens_are_rejected():
    token = create_access_token({"sub": "7"})
    header, payload, signature = token.split(".")
    forged = create_access_token({"sub": "8"}).split(".")[1]
    assert decode_access_token(f"{header}.{forged}.{signature}") is None
    assert decode_access_token("garbage") is None
    assert decode_access_token(create_access_token({"sub": "7"}, expires_delta=-10)) is None


def test_password_hashing():
    stored = hash_password("s3cret!")
    assert "$" in stored
    assert stored != hash_password("s3cret!")
    assert verify_password("s3cret!", stored)
    assert not verify_password("wrong", stored)
    assert not verify_password("s3cret!", "not-a-hash")


def test_token_for_deleted_user_is_rejected(client):
    token = create_access_token({"sub": "999"})
    response = client.get(f"{API}/users/profile", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
