import json

import pytest
import responses

from folio_backend.authentik import AuthentikClient, AuthentikError, LogoutResult

BASE = "https://auth.example.com"
TOKEN_URL = f"{BASE}/application/o/token/"
USERINFO_URL = f"{BASE}/application/o/userinfo/"
REVOKE_URL = f"{BASE}/application/o/revoke/"


def _userinfo(user_id=42):
    return {"id": user_id, "username": "alice", "email": "alice@example.com", "name": "Alice"}


def test_login_returns_user_and_tokens():
    client = AuthentikClient(BASE, api_key="placeholder")
    password = "password"
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, TOKEN_URL, json={
            "access_token": "token", "refresh_token": "secret",
            "token_type": "Bearer", "expires_in": 300,
        })
        rsps.add(responses.GET, USERINFO_URL, json=_userinfo())
        result = client.login("alice", password=password)

        token_call = rsps.calls[0].request
        assert json.loads(token_call.body) == {"username": "alice", "password": password}
        assert token_call.headers["Authorization"] == "Bearer placeholder"
        assert token_call.headers["Content-Type"] == "application/json"
        assert rsps.calls[1].request.headers["Authorization"] == "Bearer token"

    assert result.user_id == "42"
    assert result.email == "alice@example.com"
    assert result.username == "alice"
    assert result.name == "Alice"
    assert result.email_verified is True
    assert result.access_token == "token"
    assert result.refresh_token == "secret"
    assert result.expires_in == 300


def test_login_without_api_key_sends_no_authorization():
    client = AuthentikClient(BASE)
    password = "password"
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, TOKEN_URL, json={"access_token": "token"})
        rsps.add(responses.GET, USERINFO_URL, json=_userinfo())
        result = client.login("alice", password=password)
        assert "Authorization" not in rsps.calls[0].request.headers
    assert result.refresh_token == ""
    assert result.expires_in == 0


def test_login_rejected_status():
    client = AuthentikClient(BASE)
    password = "password"
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, TOKEN_URL, status=401, body="bad credentials")
        with pytest.raises(AuthentikError, match="login failed with status 401: bad credentials"):
            client.login("alice", password=password)


def test_login_undecodable_body():
    client = AuthentikClient(BASE)
    password = "password"
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, TOKEN_URL, body="not json")
        with pytest.raises(AuthentikError, match="failed to decode login response"):
            client.login("alice", password=password)


def test_login_userinfo_failure():
    client = AuthentikClient(BASE)
    password = "password"
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, TOKEN_URL, json={"access_token": "token"})
        rsps.add(responses.GET, USERINFO_URL, status=403, body="denied")
        with pytest.raises(AuthentikError, match="failed to get user info"):
            client.login("alice", password=password)


def test_login_connection_error():
    client = AuthentikClient(BASE)
    password = "password"
    with responses.RequestsMock():
        with pytest.raises(AuthentikError, match="failed to make login request: request failed"):
            client.login("alice", password=password)


@pytest.mark.parametrize("status", [200, 204])
def test_logout_success(status):
    client = AuthentikClient(BASE)
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, REVOKE_URL, status=status)
        result = client.logout("token")
        assert json.loads(rsps.calls[0].request.body) == {"refresh_token": "token"}
    assert result == LogoutResult(success=True, message="User logged out successfully")


def test_logout_failure():
    client = AuthentikClient(BASE)
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, REVOKE_URL, status=500, body="boom")
        with pytest.raises(AuthentikError, match="logout failed with status 500: boom"):
            client.logout("token")


def test_validate_token_returns_user_id():
    client = AuthentikClient(BASE)
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, USERINFO_URL, json=_userinfo(7))
        assert client.validate_token("token") == "7"
        assert rsps.calls[0].request.headers["Authorization"] == "Bearer token"


def test_validate_token_rejected():
    client = AuthentikClient(BASE)
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, USERINFO_URL, status=401, body="expired")
        with pytest.raises(AuthentikError, match="token validation failed"):
            client.validate_token("token")


def test_validate_token_wrong_id_type():
    client = AuthentikClient(BASE)
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, USERINFO_URL, json={"id": "abc"})
        with pytest.raises(AuthentikError, match="failed to decode userinfo response"):
            client.validate_token("token")