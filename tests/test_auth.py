"""Tests for password hashing, JWT tokens and the auth service."""

from datetime import timedelta

import jwt
import pytest

from autocontent.auth.passwords import hash_password, verify_password
from autocontent.auth.tokens import ACCESS, REFRESH, create_access_token, create_refresh_token, decode_token
from autocontent.errors import AuthenticationError, BusinessError
from autocontent.schemas.auth_schemas import RegisterRequest
from autocontent.utils import utcnow


def test_password_hash_roundtrip_and_salt():
    first = hash_password("s3cret!")
    second = hash_password("s3cret!")
    assert first != second
    assert verify_password("s3cret!", first)
    assert not verify_password("wrong", first)
    assert not verify_password("s3cret!", "not-base64!!")


def test_tokens_carry_subject_type_and_role(settings):
    access = decode_token(settings, create_access_token(settings, "alice", "USER"))
    refresh = decode_token(settings, create_refresh_token(settings, "alice"))
    assert (access.sub, access.type, access.role) == ("alice", ACCESS, "USER")
    assert (refresh.sub, refresh.type, refresh.role) == ("alice", REFRESH, None)
    assert access.exp - access.iat == settings.ac_access_token_ttl_seconds


def test_decode_rejects_expired_and_tampered_tokens(settings):
    now = utcnow()
    expired = jwt.encode(
        {"sub": "alice", "type": "access", "iat": int((now - timedelta(hours=2)).timestamp()),
         "exp": int((now - timedelta(hours=1)).timestamp())},
        settings.ac_jwt_secret,
        algorithm=settings.ac_jwt_algorithm,
    )
    with pytest.raises(AuthenticationError, match="Token has expired"):
        decode_token(settings, expired)
    with pytest.raises(AuthenticationError, match="Invalid token"):
        decode_token(settings, create_access_token(settings, "alice", "USER") + "x")


def test_login_success_resets_failures(auth_service, user, user_store):
    response = auth_service.login("alice", "alice123")
    assert response.token_type == "Bearer"
    assert response.user.username == "alice"
    stored = user_store.get(user.user_id)
    assert stored.last_login_at is not None
    assert stored.failed_login_attempts == 0


def test_login_unknown_user_and_wrong_password_share_message(auth_service, user):
    with pytest.raises(AuthenticationError, match="Invalid username or password"):
        auth_service.login("nobody", "x")
    with pytest.raises(AuthenticationError, match="Invalid username or password"):
        auth_service.login("alice", "wrong")


def test_repeated_failures_lock_the_account(auth_service, user, user_store, settings):
    for _ in range(settings.ac_max_failed_logins):
        with pytest.raises(AuthenticationError):
            auth_service.login("alice", "wrong")
    locked = user_store.get(user.user_id)
    assert locked.account_locked_until is not None
    with pytest.raises(AuthenticationError, match="Account is locked"):
        auth_service.login("alice", "alice123")


def test_register_then_activate_then_login(auth_service):
    request = RegisterRequest(username="carol", email="carol@example.com", password="carol123")
    user, token = auth_service.register(request)
    assert not user.is_active

    with pytest.raises(AuthenticationError, match="not active"):
        auth_service.login("carol", "carol123")

    activated = auth_service.activate(token)
    assert activated.is_active and activated.email_verified
    assert auth_service.login("carol", "carol123").user.email_verified

    with pytest.raises(BusinessError, match="Invalid or expired activation token"):
        auth_service.activate(token)


def test_register_rejects_duplicates(auth_service, user):
    with pytest.raises(BusinessError, match="Username already exists"):
        auth_service.register(RegisterRequest(username="alice", email="new@example.com", password="secret1"))
    with pytest.raises(BusinessError, match="Email already exists"):
        auth_service.register(RegisterRequest(username="alice2", email="ALICE@example.com", password="secret1"))


def test_create_user_rejects_duplicate_username_and_email(auth_service, user, user_store):
    with pytest.raises(BusinessError, match="Username already exists"):
        auth_service.create_user("alice", "other@example.com", "secret1")
    with pytest.raises(BusinessError, match="Email already exists"):
        auth_service.create_user("alice2", "Alice@Example.com", "secret1")
    assert user_store.get_by_username("alice2") is None


def test_refresh_requires_refresh_token(auth_service, user):
    tokens = auth_service.login("alice", "alice123")
    refreshed = auth_service.refresh(tokens.refresh_token)
    assert refreshed.user.username == "alice"

    with pytest.raises(AuthenticationError, match="Invalid token type"):
        auth_service.refresh(tokens.access_token)
    with pytest.raises(AuthenticationError, match="Invalid refresh token"):
        auth_service.refresh("garbage")


def test_access_token_resolves_user(auth_service, user):
    tokens = auth_service.login("alice", "alice123")
    assert auth_service.user_from_access_token(tokens.access_token).user_id == user.user_id
    with pytest.raises(AuthenticationError, match="Invalid token type"):
        auth_service.user_from_access_token(tokens.refresh_token)
