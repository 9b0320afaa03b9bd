"""Keycloak identity-provider adapter for SimpleIPAM.

Talks to the realm's OpenID Connect token endpoint with the resource-owner
password grant for the initial login, and the refresh-token grant to keep
the access token fresh.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

import requests

from simpleipam.config import AuthConfig

logger = logging.getLogger(__name__)


class IdentityError(Exception):
    """Identity provider error."""
    pass


@dataclass
class TokenSet:
    """Tokens issued by the provider.  ``expires_at`` uses the provider clock."""
    access_token: str
    refresh_token: str = ""
    expires_at: float = 0.0

    def expires_within(self, seconds: float, now: float) -> bool:
        return self.expires_at - now <= seconds


class KeycloakProvider:
    """Obtain and refresh bearer tokens from a Keycloak realm."""

    def __init__(
        self,
        auth: AuthConfig,
        verify_ssl: bool = True,
        timeout: int = 15,
        clock: Callable[[], float] = time.time,
    ):
        self.auth = auth
        self.clock = clock
        self._timeout = timeout
        self._session = requests.Session()
        self._session.verify = verify_ssl

    @property
    def realm_url(self) -> str:
        return f"{self.auth.url.rstrip('/')}/realms/{self.auth.realm}"

    @property
    def token_url(self) -> str:
        return f"{self.realm_url}/protocol/openid-connect/token"

    @property
    def logout_url(self) -> str:
        return f"{self.realm_url}/protocol/openid-connect/logout"

    def login(self, username: str, password: str) -> TokenSet:
        """Exchange user credentials for a token set."""
        return self._token_request({
            "grant_type": "password",
            "client_id": self.auth.client_id,
            "username": username,
            "password": password,
        })

    def refresh(self, refresh_token: str) -> TokenSet:
        """Exchange a refresh token for a new token set."""
        if not refresh_token:
            raise IdentityError("No refresh token available")
        return self._token_request({
            "grant_type": "refresh_token",
            "client_id": self.auth.client_id,
            "refresh_token": refresh_token,
        })

    def logout(self, refresh_token: str) -> None:
        """End the provider-side session.  Failures are only logged."""
        if not refresh_token:
            return
        try:
            resp = self._session.post(
                self.logout_url,
                data={"client_id": self.auth.client_id, "refresh_token": refresh_token},
                timeout=self._timeout,
            )
            resp.raise_for_status()
        except requests.RequestException as e:
            logger.warning("Keycloak logout failed: %s", e)

    def _token_request(self, form: dict[str, str]) -> TokenSet:
        requested_at = self.clock()
        try:
            resp = self._session.post(self.token_url, data=form, timeout=self._timeout)
        except requests.RequestException as e:
            raise IdentityError(f"Failed to reach identity provider: {e}")

        if resp.status_code != 200:
            raise IdentityError(_describe_error(resp))

        try:
            body = resp.json()
        except ValueError:
            raise IdentityError("Identity provider returned a non-JSON response")

        access_token = body.get("access_token")
        if not access_token:
            raise IdentityError("Identity provider did not return an access token")

        return TokenSet(
            access_token=access_token,
            refresh_token=body.get("refresh_token", ""),
            expires_at=requested_at + float(body.get("expires_in", 0)),
        )


def _describe_error(resp: requests.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        message = body.get("error_description") or body.get("error")
        if message:
            return f"Authentication failed: {message}"
    return f"Authentication failed: HTTP {resp.status_code}"
