"""Persisted auth state: tokens, organisation id and the signed-in user."""

from __future__ import annotations

import time
from typing import Any, Optional

from jose import JWTError, jwt

from hrms.client.store import (
    AUTH_TOKEN_KEY,
    ORGANISATION_ID_KEY,
    REFRESH_TOKEN_KEY,
    USER_KEY,
    LocalStore,
)


def _organisation_id_from(data: dict[str, Any]) -> Optional[str]:
    """Pick the organisation id out of the known login response shapes."""
    admin = data.get("admin") or {}
    organisations = admin.get("organisations") or data.get("organisations") or []
    candidates = [
        organisations[0] if organisations else None,
        admin.get("organisation"),
        (data.get("employee") or {}).get("organisation"),
        data.get("organisation"),
    ]
    for candidate in candidates:
        if isinstance(candidate, dict) and candidate.get("id"):
            return str(candidate["id"])
    employee = data.get("employee") or {}
    if employee.get("organisation_id"):
        return str(employee["organisation_id"])
    return None


class AuthToken:
    def __init__(self, store: LocalStore) -> None:
        self.store = store

    # ── Tokens ──────────────────────────────────────────────────────

    @property
    def token(self) -> Optional[str]:
        return self.store.get(AUTH_TOKEN_KEY)

    @property
    def refresh_token(self) -> Optional[str]:
        return self.store.get(REFRESH_TOKEN_KEY)

    def set_tokens(self, access_token: str, refresh_token: Optional[str] = None) -> None:
        self.store.set(AUTH_TOKEN_KEY, access_token)
        if refresh_token:
            self.store.set(REFRESH_TOKEN_KEY, refresh_token)

    # ── Organisation / user ─────────────────────────────────────────

    @property
    def organisation_id(self) -> Optional[str]:
        return self.store.get(ORGANISATION_ID_KEY)

    @organisation_id.setter
    def organisation_id(self, value: Optional[str]) -> None:
        if value is None:
            self.store.remove(ORGANISATION_ID_KEY)
        else:
            self.store.set(ORGANISATION_ID_KEY, str(value))

    @property
    def user(self) -> Optional[dict[str, Any]]:
        return self.store.get(USER_KEY)

    def clear(self) -> None:
        self.store.remove(AUTH_TOKEN_KEY, REFRESH_TOKEN_KEY, ORGANISATION_ID_KEY, USER_KEY)

    # ── JWT payload ─────────────────────────────────────────────────

    def payload(self) -> Optional[dict[str, Any]]:
        """Decode the access token's claims without verifying the signature."""
        if not self.token:
            return None
        try:
            return jwt.get_unverified_claims(self.token)
        except JWTError:
            return None

    def is_authenticated(self) -> bool:
        claims = self.payload()
        if claims is None:
            return False
        exp = claims.get("exp")
        return exp is None or float(exp) > time.time()

    def user_info(self) -> Optional[dict[str, Any]]:
        claims = self.payload()
        if claims is None:
            return None
        return claims.get("user") or claims

    # ── Login responses ─────────────────────────────────────────────

    def process_login_response(self, response: dict[str, Any]) -> Optional[str]:
        """Store tokens, organisation id and user from a login envelope.

        Accepts the envelope or its bare ``data``. Returns the organisation id.
        """
        data = response.get("data") if isinstance(response.get("data"), dict) else response
        if data.get("access_token"):
            self.set_tokens(data["access_token"], data.get("refresh_token"))
        organisation_id = _organisation_id_from(data)
        if organisation_id:
            self.organisation_id = organisation_id
        user = data.get("admin") or data.get("employee")
        if user:
            self.store.set(USER_KEY, user)
        return organisation_id
