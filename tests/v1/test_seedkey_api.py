# tests/v1/test_seedkey_api.py
from __future__ import annotations

from collections.abc import Callable
from typing import Any

from fastapi.testclient import TestClient

from seedkey_backend.core.settings import Settings
from seedkey_backend.main import create_app
from tests.conftest import Identity

API = "/api/v1/seedkey"


def _auth_header(body: dict[str, Any]) -> dict[str, str]:
    return {"Authorization": f"Bearer {body['token']['accessToken']}"}


def test_challenge_response_shape(client: TestClient) -> None:
    resp = client.post(f"{API}/challenge", json={"action": "registration"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["challengeId"].startswith("chl_")
    challenge = body["challenge"]
    assert set(challenge) == {"nonce", "timestamp", "domain", "action", "expiresAt"}
    assert challenge["domain"] == "example.com"
    assert challenge["expiresAt"] - challenge["timestamp"] == 5 * 60 * 1000


def test_challenge_bound_to_key_includes_it(client: TestClient, identity: Identity) -> None:
    resp = client.post(
        f"{API}/challenge",
        json={"action": "registration", "publicKey": identity.public_key},
    )
    assert resp.json()["challenge"]["publicKey"] == identity.public_key


def test_challenge_errors_use_envelope(client: TestClient) -> None:
    resp = client.post(f"{API}/challenge", json={"action": "login", "domain": "evil.com"})

    assert resp.status_code == 400
    assert resp.json() == {"error": "DOMAIN_NOT_ALLOWED", "message": "Domain 'evil.com' is not allowed"}


def test_body_validation_errors_are_400(client: TestClient) -> None:
    resp = client.post(f"{API}/register", json={"challengeId": "chl_x"})

    assert resp.status_code == 400
    assert resp.json()["error"] == "VALIDATION_ERROR"


def test_register_then_fetch_user(
    client: TestClient, identity: Identity, api_login: Callable[..., dict[str, Any]]
) -> None:
    body = api_login(identity)

    assert body["success"] is True
    assert body["action"] == "register"
    assert body["user"]["publicKey"] == identity.public_key
    assert body["token"]["expiresIn"] == 3600

    resp = client.get(f"{API}/user", headers=_auth_header(body))
    assert resp.status_code == 200
    assert resp.json()["user"]["id"] == body["user"]["id"]


def test_register_returns_201_and_stores_device_name(
    client: TestClient, identity: Identity
) -> None:
    issued = client.post(f"{API}/challenge", json={"action": "registration"}).json()

    resp = client.post(
        f"{API}/register",
        json={
            "challengeId": issued["challengeId"],
            "challenge": issued["challenge"],
            "signature": identity.sign_wire(issued["challenge"]),
            "publicKey": identity.public_key,
            "metadata": {"deviceName": "Work laptop"},
        },
    )

    assert resp.status_code == 201
    assert resp.json()["user"]["deviceName"] == "Work laptop"


def test_replayed_registration_conflicts(client: TestClient, identity: Identity) -> None:
    issued = client.post(f"{API}/challenge", json={"action": "registration"}).json()
    payload = {
        "challengeId": issued["challengeId"],
        "challenge": issued["challenge"],
        "signature": identity.sign_wire(issued["challenge"]),
        "publicKey": identity.public_key,
    }

    assert client.post(f"{API}/register", json=payload).status_code == 201
    replay = client.post(f"{API}/register", json=payload)

    assert replay.status_code == 409
    assert replay.json()["error"] == "CHALLENGE_USED"


def test_bad_signature_is_401(
    client: TestClient, identity: Identity, other_identity: Identity
) -> None:
    issued = client.post(f"{API}/challenge", json={"action": "registration"}).json()
    resp = client.post(
        f"{API}/register",
        json={
            "challengeId": issued["challengeId"],
            "challenge": issued["challenge"],
            "signature": other_identity.sign_wire(issued["challenge"]),
            "publicKey": identity.public_key,
        },
    )

    assert resp.status_code == 401
    assert resp.json()["error"] == "INVALID_SIGNATURE"


def test_login_for_unknown_key_is_404(client: TestClient, identity: Identity) -> None:
    resp = client.post(
        f"{API}/challenge", json={"action": "login", "publicKey": identity.public_key}
    )
    assert resp.status_code == 404
    assert resp.json()["error"] == "USER_NOT_FOUND"


def test_login_after_registration(
    identity: Identity, api_login: Callable[..., dict[str, Any]]
) -> None:
    registered = api_login(identity)
    logged_in = api_login(identity, action="login")

    assert logged_in["action"] == "login"
    assert logged_in["user"]["id"] == registered["user"]["id"]
    assert logged_in["token"]["accessToken"] != registered["token"]["accessToken"]


def test_logout_revokes_access_and_refresh(
    client: TestClient, identity: Identity, api_login: Callable[..., dict[str, Any]]
) -> None:
    body = api_login(identity)

    resp = client.post(f"{API}/logout", headers=_auth_header(body))
    assert resp.status_code == 200
    assert resp.json()["success"] is True

    assert client.get(f"{API}/user", headers=_auth_header(body)).status_code == 401
    refresh = client.post(
        f"{API}/refresh", json={"refreshToken": body["token"]["refreshToken"]}
    )
    assert refresh.status_code == 401
    assert refresh.json()["error"] == "INVALID_TOKEN"


def test_logout_all_reports_count(
    client: TestClient, identity: Identity, api_login: Callable[..., dict[str, Any]]
) -> None:
    first = api_login(identity)
    second = api_login(identity, action="login")

    resp = client.post(f"{API}/logout/all", headers=_auth_header(second))

    assert resp.status_code == 200
    assert resp.json()["invalidated"] == 2
    assert client.get(f"{API}/user", headers=_auth_header(first)).status_code == 401


def test_refresh_issues_new_pair(
    client: TestClient, identity: Identity, api_login: Callable[..., dict[str, Any]]
) -> None:
    body = api_login(identity)

    resp = client.post(f"{API}/refresh", json={"refreshToken": body["token"]["refreshToken"]})

    assert resp.status_code == 200
    pair = resp.json()
    assert set(pair) == {"accessToken", "refreshToken", "expiresIn"}
    user = client.get(f"{API}/user", headers={"Authorization": f"Bearer {pair['accessToken']}"})
    assert user.status_code == 200


def test_refresh_token_cannot_authorize_requests(
    client: TestClient, identity: Identity, api_login: Callable[..., dict[str, Any]]
) -> None:
    body = api_login(identity)
    headers = {"Authorization": f"Bearer {body['token']['refreshToken']}"}

    assert client.get(f"{API}/user", headers=headers).status_code == 401


def test_protected_routes_require_bearer(client: TestClient) -> None:
    for method, path in (("get", "/user"), ("post", "/logout"), ("post", "/logout/all")):
        resp = getattr(client, method)(f"{API}{path}")
        assert resp.status_code == 401
        assert resp.json()["error"] == "UNAUTHORIZED"


def test_full_flow_against_sql_stores(identity: Identity, test_settings: Settings) -> None:
    sql_settings = test_settings.model_copy(update={"auto_create_tables": True})
    app = create_app(sql_settings)

    with TestClient(app, base_url="http://test") as client:
        issued = client.post(f"{API}/challenge", json={"action": "registration"}).json()
        registered = client.post(
            f"{API}/register",
            json={
                "challengeId": issued["challengeId"],
                "challenge": issued["challenge"],
                "signature": identity.sign_wire(issued["challenge"]),
                "publicKey": identity.public_key,
            },
        )
        assert registered.status_code == 201

        me = client.get(f"{API}/user", headers=_auth_header(registered.json()))
        assert me.status_code == 200
        assert me.json()["user"]["publicKey"] == identity.public_key
