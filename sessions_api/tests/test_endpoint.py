"""
Credential session endpoint tests, without HTTP.

A deterministic hasher stands in for bcrypt so the orchestration can be
checked call by call.
"""

from unittest.mock import Mock

import pytest

from sessions_api.auth import CredentialSessionEndpoint, JwtSessionManager
from sessions_api.errors import AuthenticationError, ValidationError
from sessions_api.store import InMemoryRecordStore


class DeterministicHasher:
    def hash(self, plaintext: str) -> str:
        return f"hashed:{plaintext}"

    def verify(self, plaintext: str, hashed: str) -> bool:
        return hashed == f"hashed:{plaintext}"


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def passwords():
    return Mock(wraps=DeterministicHasher())


@pytest.fixture
def endpoint(store, passwords):
    return CredentialSessionEndpoint(
        store=store,
        passwords=passwords,
        sessions=JwtSessionManager("test", ["id", "username"]),
    )


@pytest.fixture
def user_id(store):
    return store.insert("User", {"username": "abc", "password": "hashed:123987"})


def test_login_returns_token_and_projection(endpoint, user_id):
    result = endpoint.login({"username": "abc", "password": "123987"})

    assert result.user == {"id": user_id, "username": "abc"}
    assert endpoint.whoami(result.token) == result.user


def test_unknown_username_still_verifies_a_password(endpoint, passwords, user_id):
    passwords.verify.reset_mock()

    with pytest.raises(AuthenticationError) as exc_info:
        endpoint.login({"username": "nobody", "password": "123987"})

    passwords.verify.assert_called_once()
    assert exc_info.value.message == "Invalid username or password"


def test_wrong_password(endpoint, user_id):
    with pytest.raises(AuthenticationError) as exc_info:
        endpoint.login({"username": "abc", "password": "456"})

    assert exc_info.value.message == "Invalid username or password"


def test_record_without_password_hash_cannot_log_in(endpoint, store):
    store.insert("User", {"username": "nohash"})

    with pytest.raises(AuthenticationError):
        endpoint.login({"username": "nohash", "password": "anything"})


@pytest.mark.parametrize("payload", [None, "abc", {}, {"username": "abc"}, {"password": "x"}])
def test_invalid_payload(endpoint, payload):
    with pytest.raises(ValidationError):
        endpoint.login(payload)


def test_validation_error_names_missing_fields(endpoint):
    with pytest.raises(ValidationError) as exc_info:
        endpoint.login({})

    assert exc_info.value.context["fields"] == ["password", "username"]


def test_whoami_and_logout_require_session(endpoint):
    with pytest.raises(AuthenticationError):
        endpoint.whoami(None)
    with pytest.raises(AuthenticationError):
        endpoint.logout("garbage")


def test_logout_revokes_token(endpoint, user_id):
    token = endpoint.login({"username": "abc", "password": "123987"}).token

    endpoint.logout(token)

    with pytest.raises(AuthenticationError):
        endpoint.whoami(token)
    with pytest.raises(AuthenticationError):
        endpoint.logout(token)


def test_table_selects_record_type(store, passwords):
    store.insert("Member", {"username": "m", "password": "hashed:pw"})
    endpoint = CredentialSessionEndpoint(
        store=store,
        passwords=passwords,
        sessions=JwtSessionManager("test", ["username"]),
        table="Member",
    )

    assert endpoint.login({"username": "m", "password": "pw"}).user == {"username": "m"}
