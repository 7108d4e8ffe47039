"""
Session Token Tests
===================

Issue, parse and clear signed session tokens.
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from sessions_api.auth.session import JwtSessionManager, project
from sessions_api.config import SessionOptions
from sessions_api.errors import ConfigurationError

USER = {"id": "u-1", "username": "abc", "password": "$2b$04$hash", "email": "abc@example.com"}


@pytest.fixture
def sessions():
    return JwtSessionManager("test", ["id", "username"])


class TestProject:

    def test_keeps_whitelist_in_order(self):
        assert list(project(USER, ["username", "id"])) == ["username", "id"]

    def test_skips_missing_fields(self):
        assert project({"id": "1"}, ["id", "username"]) == {"id": "1"}

    def test_never_includes_password(self):
        assert "password" not in project(USER, ["id", "password"])


class TestIssueAndParse:

    def test_parse_returns_projection(self, sessions):
        assert sessions.parse(sessions.issue(USER)) == {"id": "u-1", "username": "abc"}

    def test_payload_is_restricted_to_whitelist(self, sessions):
        claims = jwt.decode(sessions.issue(USER), "test", algorithms=["HS256"])

        assert set(claims) == {"id", "username", "iat", "exp", "jti"}

    def test_tokens_are_unique(self, sessions):
        assert sessions.issue(USER) != sessions.issue(USER)

    @pytest.mark.parametrize("token", [None, "", "garbage", "a.b.c"])
    def test_missing_or_malformed_token_is_invalid(self, sessions, token):
        assert sessions.parse(token) is None

    def test_wrong_secret_is_invalid(self, sessions):
        other = JwtSessionManager("other", ["id", "username"])

        assert sessions.parse(other.issue(USER)) is None

    def test_expired_token_is_invalid(self, sessions):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {
                "id": "u-1",
                "iat": now - timedelta(hours=2),
                "exp": now - timedelta(hours=1),
                "jti": "old",
            },
            "test",
            algorithm="HS256",
        )

        assert sessions.parse(token) is None

    def test_token_without_jti_is_invalid(self, sessions):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"id": "u-1", "iat": now, "exp": now + timedelta(hours=1)},
            "test",
            algorithm="HS256",
        )

        assert sessions.parse(token) is None

    def test_algorithm_none_is_rejected(self, sessions):
        token = jwt.encode({"id": "u-1"}, None, algorithm="none")

        assert sessions.parse(token) is None

    def test_from_options(self):
        options = SessionOptions(secret="s", expose=["username"], duration=60, algorithm="HS512")
        sessions = JwtSessionManager.from_options(options)

        token = sessions.issue(USER)
        assert jwt.get_unverified_header(token)["alg"] == "HS512"
        assert sessions.parse(token) == {"username": "abc"}

    def test_empty_secret_is_rejected(self):
        with pytest.raises(ConfigurationError):
            JwtSessionManager("", ["id"])


class TestClear:

    def test_cleared_token_no_longer_parses(self, sessions):
        token = sessions.issue(USER)

        sessions.clear(token)

        assert sessions.parse(token) is None

    def test_clear_leaves_other_tokens_alone(self, sessions):
        first, second = sessions.issue(USER), sessions.issue(USER)

        sessions.clear(first)

        assert sessions.parse(second) == {"id": "u-1", "username": "abc"}

    def test_clearing_invalid_token_is_a_no_op(self, sessions):
        sessions.clear("garbage")
        sessions.clear(None)

    def test_expired_revocations_are_pruned(self, sessions):
        sessions._revoked["stale"] = 0.0
        sessions.clear(sessions.issue(USER))

        assert "stale" not in sessions._revoked
        assert len(sessions._revoked) == 1
