# tests/conftest.py
from __future__ import annotations

import base64
import json
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from nacl.signing import SigningKey
from sqlalchemy.engine import Engine

from seedkey_backend.core.security import Ed25519SignatureVerifier, canonical_challenge_bytes
from seedkey_backend.core.settings import AuthConfig, Settings
from seedkey_backend.db.session import (
    build_engine,
    build_session_factory,
    create_tables,
    drop_tables,
)
from seedkey_backend.db.time import now_ms
from seedkey_backend.main import create_app
from seedkey_backend.services import AuthService, RequestAuthenticator, TokenIssuer
from seedkey_backend.storage import SeedKeyStores, create_memory_stores, create_sql_stores
from seedkey_backend.storage.records import ChallengePayload

TEST_DB_URL = "sqlite://"
TEST_SECRET = "test-secret-key-for-seedkey"
TEST_DOMAINS = ("example.com", "app.example.com")


def _encode_b64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode().rstrip("=")


class FakeClock:
    """Controllable epoch-millisecond clock shared by stores and services."""

    def __init__(self, start: int | None = None) -> None:
        self.now = now_ms() if start is None else start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@dataclass
class Identity:
    """A client key pair, signing the way a SeedKey client does."""

    signing_key: SigningKey

    @property
    def public_key(self) -> str:
        return _encode_b64(self.signing_key.verify_key.encode())

    @property
    def public_key_hex(self) -> str:
        return self.signing_key.verify_key.encode().hex()

    def sign(self, challenge: ChallengePayload) -> str:
        signed = self.signing_key.sign(canonical_challenge_bytes(challenge))
        return _encode_b64(signed.signature)

    def sign_wire(self, challenge: dict[str, Any]) -> str:
        """Sign a challenge as received in a JSON response body."""
        message = json.dumps(challenge, sort_keys=True, separators=(",", ":")).encode("utf-8")
        return _encode_b64(self.signing_key.sign(message).signature)


def make_identity() -> Identity:
    return Identity(SigningKey.generate())


@pytest.fixture()
def identity() -> Identity:
    return make_identity()


@pytest.fixture()
def other_identity() -> Identity:
    return make_identity()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def auth_config() -> AuthConfig:
    return AuthConfig.build(TEST_SECRET, TEST_DOMAINS)


@pytest.fixture()
def engine() -> Iterator[Engine]:
    engine = build_engine(TEST_DB_URL)
    create_tables(engine)
    try:
        yield engine
    finally:
        drop_tables(engine)
        engine.dispose()


@pytest.fixture()
def memory_stores(clock: FakeClock) -> SeedKeyStores:
    return create_memory_stores(clock)


@pytest.fixture()
def sql_stores(engine: Engine, clock: FakeClock) -> SeedKeyStores:
    return create_sql_stores(build_session_factory(engine), clock)


@pytest.fixture(params=["memory", "sql"])
def stores(request: pytest.FixtureRequest) -> SeedKeyStores:
    """Run store-level tests against both implementations."""
    stores: SeedKeyStores = request.getfixturevalue(f"{request.param}_stores")
    return stores


@pytest.fixture()
def token_issuer(auth_config: AuthConfig) -> TokenIssuer:
    return TokenIssuer(auth_config)


@pytest.fixture()
def auth_service(
    auth_config: AuthConfig,
    stores: SeedKeyStores,
    token_issuer: TokenIssuer,
    clock: FakeClock,
) -> AuthService:
    return AuthService(
        auth_config, stores, token_issuer, Ed25519SignatureVerifier(), clock=clock
    )


@pytest.fixture()
def authenticator(token_issuer: TokenIssuer, stores: SeedKeyStores) -> RequestAuthenticator:
    return RequestAuthenticator(token_issuer, stores.sessions)


@pytest.fixture()
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        JWT_SECRET=TEST_SECRET,
        ALLOWED_DOMAINS=",".join(TEST_DOMAINS),
        DATABASE_URL=TEST_DB_URL,
        CLEANUP_INTERVAL_SECONDS=3600,
    )


@pytest.fixture()
def app(test_settings: Settings, memory_stores: SeedKeyStores) -> FastAPI:
    return create_app(test_settings, stores=memory_stores)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def api_login(client: TestClient) -> Callable[..., dict[str, Any]]:
    """Run the challenge + register (or verify) round trip over HTTP."""

    def _login(identity: Identity, action: str = "registration") -> dict[str, Any]:
        endpoint = "register" if action == "registration" else "verify"
        challenge_resp = client.post(
            "/api/v1/seedkey/challenge",
            json={"action": action, "publicKey": identity.public_key},
        )
        assert challenge_resp.status_code == 200, challenge_resp.text
        issued = challenge_resp.json()
        resp = client.post(
            f"/api/v1/seedkey/{endpoint}",
            json={
                "challengeId": issued["challengeId"],
                "challenge": issued["challenge"],
                "signature": identity.sign_wire(issued["challenge"]),
                "publicKey": identity.public_key,
            },
        )
        assert resp.status_code in (200, 201), resp.text
        body: dict[str, Any] = resp.json()
        return body

    return _login
