import base64
import json
from typing import Generator

import pytest
from eth_account import Account
from eth_account.messages import encode_defunct
from eth_utils import to_hex
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from ethshot.core.challenge_store import MemoryChallengeStore
from ethshot.core.config import Settings, get_settings
from ethshot.core.dependencies import get_challenge_store, get_profile_gateway
from ethshot.db.session import create_session_factory
from ethshot.services.profile_gateway import ProfileGateway, SqlRpcTransport
from main import app

TEST_JWT_SECRET = "test-jwt-secret-with-at-least-32-bytes!!"
TEST_PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
OTHER_PRIVATE_KEY = "0x8da4ef21b864d2cc526dbdb2a120bd2874c36c9d0a1fb7f8c63d7f7a8b41de8f"
TEST_WALLET = "0x1234567890123456789012345678901234567890"


def make_unsigned_token(payload: dict, signature: str = "mock-signature") -> str:
    """header.payload.signature with standard base64 segments and a fake signature"""
    header = base64.b64encode(json.dumps({"alg": "HS256", "typ": "JWT"}).encode()).decode()
    body = base64.b64encode(json.dumps(payload).encode()).decode()
    return f"{header}.{body}.{signature}"


def sign_message(private_key: str, message: str) -> str:
    signed = Account.sign_message(encode_defunct(text=message), private_key=private_key)
    return to_hex(signed.signature)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        SUPABASE_JWT_SECRET=TEST_JWT_SECRET,
        JWT_PRIVATE_KEY_PEM=None,
        JWT_PUBLIC_KEY_PEM=None,
        DATABASE_URL="sqlite:///:memory:",
        PROFILE_STORE_BACKEND="sql",
        REDIS_HOST=None,
        STORE_TIMEOUT_SECONDS=5,
    )


@pytest.fixture
def session_factory():
    """In-memory SQLite database shared by every worker thread of the transport"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture
def profile_gateway(session_factory) -> Generator[ProfileGateway, None, None]:
    gateway = ProfileGateway(SqlRpcTransport(session_factory, max_workers=1), timeout=5)
    yield gateway
    gateway.close()


@pytest.fixture
def challenge_store() -> MemoryChallengeStore:
    return MemoryChallengeStore(ttl_seconds=300)


@pytest.fixture
def wallet_account():
    return Account.from_key(TEST_PRIVATE_KEY)


@pytest.fixture
def client(test_settings, challenge_store, profile_gateway) -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI application"""
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_challenge_store] = lambda: challenge_store
    app.dependency_overrides[get_profile_gateway] = lambda: profile_gateway
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
