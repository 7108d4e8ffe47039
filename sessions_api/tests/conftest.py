"""
Shared fixtures for the sessions API tests.

bcrypt runs with the minimum cost factor so the suite stays fast.
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from sessions_api.auth import BcryptPasswordHasher, create_sessions_api
from sessions_api.config import SessionsApiConfig

TEST_PASSWORD = "123987"


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def config():
    """Session secret 'test', exposing id and username"""
    return SessionsApiConfig(
        session={"secret": "test", "expose": ["id", "username"]},
        password={"rounds": 4},
    )


@pytest.fixture
def hasher():
    return BcryptPasswordHasher(rounds=4)


@pytest.fixture
def sessions_api(config):
    return create_sessions_api(config)


@pytest.fixture
def app(sessions_api):
    """Create test FastAPI application with the sessions route at /"""
    app = FastAPI()
    sessions_api.mount(app)
    return app


@pytest.fixture
def client(app):
    """Test client; keeps cookies between requests like a browser agent"""
    return TestClient(app)


@pytest.fixture
def user(sessions_api):
    """Insert user 'abc' directly through the collaborators, then remove it"""
    hashed = sessions_api.passwords.hash(TEST_PASSWORD)
    user_id = sessions_api.store.insert(
        sessions_api.config.table,
        {"username": "abc", "password": hashed, "email": "abc@example.com"},
    )
    yield {"id": user_id, "username": "abc"}
    sessions_api.store.delete(sessions_api.config.table, user_id)
