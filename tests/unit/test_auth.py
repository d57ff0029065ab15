import pytest
from jose import jwt

from artmarket.auth import Identity, authenticate, create_token, identity_from_claims
from artmarket.core import Unauthenticated

SECRET = "test-secret"


def test_authenticate_bearer_token():
    token = create_token("u1", SECRET, role="admin")
    identity = authenticate(f"Bearer {token}", SECRET)
    assert identity == Identity("u1", "admin")
    assert identity.is_admin


def test_sub_claim_and_default_role():
    assert identity_from_claims({"sub": "u2"}) == Identity("u2", "user")
    assert identity_from_claims({"userId": "u3", "role": "root"}).role == "user"
    with pytest.raises(Unauthenticated):
        identity_from_claims({"role": "admin"})


@pytest.mark.parametrize("header", [None, "", "Token abc", "Bearer ", "Bearer not-a-jwt"])
def test_bad_headers(header):
    with pytest.raises(Unauthenticated):
        authenticate(header, SECRET)


def test_wrong_secret():
    token = create_token("u1", "other-secret")
    with pytest.raises(Unauthenticated):
        authenticate(f"Bearer {token}", SECRET)


def test_expired_token_within_leeway():
    token = create_token("u1", SECRET, expires_in=-60)
    with pytest.raises(Unauthenticated):
        authenticate(f"Bearer {token}", SECRET)
    assert authenticate(f"Bearer {token}", SECRET, leeway=3600).user_id == "u1"


def test_token_without_subject():
    token = jwt.encode({"role": "admin"}, SECRET, algorithm="HS256")
    with pytest.raises(Unauthenticated):
        authenticate(f"Bearer {token}", SECRET)
