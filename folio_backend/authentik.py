"""Client for the Authentik identity provider's OAuth endpoints."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

import requests


class AuthentikError(Exception):
    """Raised when a call to the identity provider fails."""


@dataclass(frozen=True)
class UserInfo:
    """User details returned by the userinfo endpoint."""

    id: int = 0
    username: str = ""
    email: str = ""
    name: str = ""


@dataclass(frozen=True)
class LoginResult:
    """A logged-in user together with the tokens issued for the session."""

    user_id: str
    email: str
    name: str
    username: str
    email_verified: bool
    access_token: str
    refresh_token: str
    expires_in: int


@dataclass(frozen=True)
class LogoutResult:
    success: bool
    message: str


_TOKEN_FIELDS = {
    "access_token": str,
    "refresh_token": str,
    "token_type": str,
    "expires_in": int,
}

_USERINFO_FIELDS = {
    "id": int,
    "username": str,
    "email": str,
    "name": str,
}


def _decode_object(response: requests.Response, schema: dict[str, type]) -> dict[str, Any]:
    """Decode a JSON object body; absent or null fields take their zero value."""
    try:
        data = response.json()
    except ValueError as exc:
        raise ValueError(str(exc) or "unexpected end of JSON input") from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"cannot decode JSON {type(data).__name__} into an object")
    decoded: dict[str, Any] = {}
    for key, kind in schema.items():
        value = data.get(key)
        if value is None:
            decoded[key] = kind()
            continue
        if kind is int:
            valid = isinstance(value, int) and not isinstance(value, bool)
        else:
            valid = isinstance(value, kind)
        if not valid:
            raise ValueError(f"cannot decode {value!r} into field {key!r} of type {kind.__name__}")
        decoded[key] = value
    return decoded


class AuthentikClient:
    """Authenticates users and validates tokens against an Authentik server."""

    def __init__(self, base_url: str, api_key: str | None = None,
                 session: requests.Session | None = None) -> None:
        self.base_url = base_url
        self.api_key = api_key or ""
        self.session = session if session is not None else requests.Session()

    def _post(self, endpoint: str, payload: dict[str, Any]) -> requests.Response:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        body = json.dumps(payload).encode("utf-8")
        try:
            return self.session.post(endpoint, data=body, headers=headers)
        except requests.RequestException as exc:
            raise AuthentikError(f"request failed: {exc}") from exc

    def _get_user_info(self, access_token: str) -> UserInfo:
        endpoint = f"{self.base_url}/application/o/userinfo/"
        try:
            response = self.session.get(endpoint, headers={"Authorization": f"Bearer {access_token}"})
        except requests.RequestException as exc:
            raise AuthentikError(f"userinfo request failed: {exc}") from exc
        with response:
            if response.status_code != 200:
                raise AuthentikError(
                    f"userinfo request failed with status {response.status_code}: {response.text}"
                )
            try:
                fields = _decode_object(response, _USERINFO_FIELDS)
            except ValueError as exc:
                raise AuthentikError(f"failed to decode userinfo response: {exc}") from exc
        return UserInfo(**fields)

    def login(self, username: str, password: str) -> LoginResult:
        """Exchange credentials for tokens and fetch the user's details."""
        endpoint = f"{self.base_url}/application/o/token/"
        try:
            response = self._post(endpoint, {"username": username, "password": password})
        except AuthentikError as exc:
            raise AuthentikError(f"failed to make login request: {exc}") from exc
        with response:
            if response.status_code != 200:
                raise AuthentikError(
                    f"login failed with status {response.status_code}: {response.text}"
                )
            try:
                tokens = _decode_object(response, _TOKEN_FIELDS)
            except ValueError as exc:
                raise AuthentikError(f"failed to decode login response: {exc}") from exc

        try:
            info = self._get_user_info(tokens["access_token"])
        except AuthentikError as exc:
            raise AuthentikError(f"failed to get user info: {exc}") from exc

        return LoginResult(
            user_id=str(info.id),
            email=info.email,
            name=info.name,
            username=info.username,
            email_verified=True,
            access_token=tokens["access_token"],
            refresh_token=tokens["refresh_token"],
            expires_in=tokens["expires_in"],
        )

    def logout(self, refresh_token: str) -> LogoutResult:
        """Revoke a refresh token."""
        endpoint = f"{self.base_url}/application/o/revoke/"
        try:
            response = self._post(endpoint, {"refresh_token": refresh_token})
        except AuthentikError as exc:
            raise AuthentikError(f"failed to make logout request: {exc}") from exc
        with response:
            if response.status_code not in (200, 204):
                raise AuthentikError(
                    f"logout failed with status {response.status_code}: {response.text}"
                )
        return LogoutResult(success=True, message="User logged out successfully")

    def validate_token(self, access_token: str) -> str:
        """Return the ID of the user an access token belongs to."""
        try:
            info = self._get_user_info(access_token)
        except AuthentikError as exc:
            raise AuthentikError(f"token validation failed: {exc}") from exc
        return str(info.id)