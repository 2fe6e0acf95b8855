"""Resolving request credentials to the invoice owner's identity."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol

import requests

from .config import AUTH_API_KEY, AUTH_TIMEOUT_MS, AUTH_URL
from .errors import AuthorizationError
from .ledger import Identity

logger = logging.getLogger(__name__)


class IdentityProvider(Protocol):
    def authenticate(self, authorization: Optional[str]) -> Identity:
        ...


def bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise AuthorizationError("Missing Authorization header.")
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthorizationError("Authorization header must be a Bearer token.")
    return token.strip()


def identity_from_user(user: Dict[str, Any]) -> Identity:
    user_id = user.get("id")
    if not user_id:
        raise AuthorizationError("Identity provider returned no user id.")

    email = str(user.get("email") or "")
    metadata = user.get("user_metadata") or {}
    display_name = ""
    if isinstance(metadata, dict):
        display_name = str(metadata.get("full_name") or metadata.get("name") or "").strip()
    if not display_name:
        display_name = email.split("@", 1)[0]

    return Identity(user_id=str(user_id), display_name=display_name, email=email)


class RemoteIdentityProvider:
    """Looks the bearer token up on the hosted auth service (``/auth/v1/user``)."""

    USER_PATH = "/auth/v1/user"

    def __init__(
        self,
        base_url: str = AUTH_URL,
        api_key: str = AUTH_API_KEY,
        timeout_ms: int = AUTH_TIMEOUT_MS,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not base_url:
            raise ValueError("Identity provider URL is not configured (INVOICE_AUTH_URL).")
        self.user_url = base_url.rstrip("/") + self.USER_PATH
        self.api_key = api_key
        self.timeout = timeout_ms / 1000.0
        self.session = session or requests.Session()

    def _headers(self, token: str) -> Dict[str, str]:
        headers = {"Authorization": f"Bearer {token}", "Accept": "application/json"}
        if self.api_key:
            headers["apikey"] = self.api_key
        return headers

    def authenticate(self, authorization: Optional[str]) -> Identity:
        token = bearer_token(authorization)
        try:
            response = self.session.get(self.user_url, headers=self._headers(token), timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning("Identity provider request failed: %s", exc)
            raise AuthorizationError("Identity provider is unreachable.") from exc

        if response.status_code != 200:
            logger.info("Identity provider rejected credential (status %s)", response.status_code)
            raise AuthorizationError("Invalid or expired credential.")

        try:
            user = response.json()
        except ValueError as exc:
            raise AuthorizationError("Identity provider returned malformed JSON.") from exc
        if not isinstance(user, dict):
            raise AuthorizationError("Identity provider returned malformed JSON.")
        return identity_from_user(user)
