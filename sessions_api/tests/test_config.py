"""
Configuration Tests
"""

import pytest
from pydantic import ValidationError

from sessions_api.config import SessionsApiConfig, Settings, validate_configuration

SECRET = "test-session-secret-1234567890123456"


@pytest.fixture
def settings():
    return Settings(SESSION_SECRET=SECRET, BCRYPT_ROUNDS=4)


class TestSessionsApiConfig:

    def test_defaults(self):
        config = SessionsApiConfig(session={"secret": "test"})

        assert config.table == "User"
        assert config.cookie_name == "userSession"
        assert config.session.expose == ["id", "username"]
        assert config.session.duration == 86400
        assert config.database.url is None
        assert config.base_path == ""

    def test_session_options_are_read_not_discarded(self):
        config = SessionsApiConfig(session={"secret": "s", "expose": ["id", "username", "role"]})

        assert config.session.secret == "s"
        assert config.session.expose == ["id", "username", "role"]

    @pytest.mark.parametrize("table", [None, "", "  "])
    def test_blank_table_falls_back_to_default(self, table):
        assert SessionsApiConfig(session={"secret": "s"}, table=table).table == "User"

    def test_cookie_name_follows_table(self):
        assert SessionsApiConfig(session={"secret": "s"}, table="Member").cookie_name == "memberSession"

    def test_explicit_cookie_name_wins(self):
        config = SessionsApiConfig(session={"secret": "s", "cookie_name": "sid"})

        assert config.cookie_name == "sid"

    def test_secret_is_required(self):
        with pytest.raises(ValidationError):
            SessionsApiConfig(session={"expose": ["id"]})

    def test_empty_secret_is_rejected(self):
        with pytest.raises(ValidationError):
            SessionsApiConfig(session={"secret": ""})

    def test_expose_must_not_include_password(self):
        with pytest.raises(ValidationError, match="password"):
            SessionsApiConfig(session={"secret": "s", "expose": ["id", "password"]})

    def test_expose_must_not_be_empty(self):
        with pytest.raises(ValidationError):
            SessionsApiConfig(session={"secret": "s", "expose": [" "]})

    def test_expose_is_deduplicated_in_order(self):
        config = SessionsApiConfig(session={"secret": "s", "expose": ["username", "id", "username"]})

        assert config.session.expose == ["username", "id"]

    def test_unsupported_algorithm_is_rejected(self):
        with pytest.raises(ValidationError):
            SessionsApiConfig(session={"secret": "s", "algorithm": "RS256"})

    @pytest.mark.parametrize("raw,expected", [("", ""), ("/", ""), ("sessions", "/sessions"), ("/api/sessions/", "/api/sessions")])
    def test_base_path_is_normalized(self, raw, expected):
        assert SessionsApiConfig(session={"secret": "s"}, base_path=raw).base_path == expected


class TestSettings:

    def test_to_config(self, settings):
        config = settings.to_config()

        assert config.session.secret == SECRET
        assert config.session.expose == ["id", "username"]
        assert config.password.rounds == 4
        assert config.table == "User"

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("SESSION_SECRET", SECRET)
        monkeypatch.setenv("SESSION_EXPOSE", "id, username ,email")
        monkeypatch.setenv("DATABASE_URL", "sqlite://")
        monkeypatch.setenv("TABLE", "Member")

        config = Settings().to_config()

        assert config.session.expose == ["id", "username", "email"]
        assert config.database.url == "sqlite://"
        assert config.cookie_name == "memberSession"

    def test_short_secret_is_rejected(self):
        with pytest.raises(ValidationError):
            Settings(SESSION_SECRET="short")

    def test_log_level_is_normalized(self):
        assert Settings(SESSION_SECRET=SECRET, LOG_LEVEL="debug").LOG_LEVEL == "DEBUG"


class TestValidateConfiguration:

    def test_valid_with_warnings(self, settings):
        report = validate_configuration(settings)

        assert report["valid"] is True
        assert report["cookie_name"] == "userSession"
        assert any("DATABASE_URL" in warning for warning in report["warnings"])
        assert any("BCRYPT_ROUNDS" in warning for warning in report["warnings"])

    def test_invalid_expose_is_an_error(self):
        settings = Settings(SESSION_SECRET=SECRET, SESSION_EXPOSE="id,password")

        report = validate_configuration(settings)

        assert report["valid"] is False
        assert report["cookie_name"] is None
