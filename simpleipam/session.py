"""Authenticated session management for SimpleIPAM.

The :class:`SessionManager` is consulted immediately before every backend
request.  It either hands back a bearer token that is not about to
expire, or refuses, in which case the request must not be sent.

States::

    UNINITIALIZED -> AUTHENTICATING -> READY
                            |            |
                            +--> FAILED <+

Without an identity provider the manager goes straight to ``READY`` and
requests are sent anonymously.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future
from enum import Enum
from typing import Callable, Optional, Protocol

from simpleipam.config import Config
from simpleipam.identity import IdentityError, KeycloakProvider, TokenSet

logger = logging.getLogger(__name__)

# Refresh once the access token is this close to expiry (seconds).
MIN_TOKEN_VALIDITY = 30


class SessionExpiredError(Exception):
    """No usable token; the request was not sent."""
    pass


class SessionState(Enum):
    UNINITIALIZED = "uninitialized"
    AUTHENTICATING = "authenticating"
    READY = "ready"
    FAILED = "failed"


class IdentityProvider(Protocol):
    def login(self, username: str, password: str) -> TokenSet: ...

    def refresh(self, refresh_token: str) -> TokenSet: ...

    def logout(self, refresh_token: str) -> None: ...


class SessionManager:
    """Owns the login handshake, token refresh and request authorization."""

    def __init__(
        self,
        provider: Optional[IdentityProvider] = None,
        clock: Callable[[], float] = time.time,
        watch_expiry: bool = True,
    ):
        self.provider = provider
        self.clock = clock
        self._watch_expiry = watch_expiry
        self._lock = threading.Lock()
        self._tokens: Optional[TokenSet] = None
        self._refresh_future: Optional[Future] = None
        self._epoch = 0
        self._expiry_timer: Optional[threading.Timer] = None
        self.error = ""
        self._state = SessionState.UNINITIALIZED
        if provider is None:
            self._state = SessionState.READY

    @classmethod
    def from_config(cls, config: Config, watch_expiry: bool = True) -> "SessionManager":
        """Build a manager, anonymous unless an identity provider is configured."""
        provider = None
        if config.auth.enabled:
            provider = KeycloakProvider(
                config.auth,
                verify_ssl=config.api.verify_ssl,
                timeout=config.api.timeout,
            )
        return cls(provider, watch_expiry=watch_expiry)

    @property
    def enabled(self) -> bool:
        return self.provider is not None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def ready(self) -> bool:
        return self._state is SessionState.READY

    # ------------------------------------------------------------------
    # Login / logout
    # ------------------------------------------------------------------

    def login(self, username: str, password: str) -> bool:
        """Run the one-time login handshake.

        Returns True once the session is ready.  Any failure, including a
        handshake that yields no tokens, leaves the session ``FAILED``.
        """
        if self.provider is None:
            return True

        with self._lock:
            if self._state is not SessionState.UNINITIALIZED:
                raise RuntimeError(f"Cannot log in from state {self._state.value}")
            self._state = SessionState.AUTHENTICATING
            self._epoch += 1
            epoch = self._epoch

        try:
            tokens = self.provider.login(username, password)
        except IdentityError as e:
            logger.warning("Login failed: %s", e)
            self._fail(str(e), epoch)
            return False

        if not tokens or not tokens.access_token:
            self._fail("Not authenticated", epoch)
            return False

        with self._lock:
            if epoch != self._epoch:
                return False
            self._tokens = tokens
            self._state = SessionState.READY
            self.error = ""
        logger.info("Session ready for %s", username)
        self._arm_expiry_watch(tokens, epoch)
        return True

    def reset(self) -> None:
        """Drop the current session (logout); a new login may follow."""
        if self.provider is None:
            return
        with self._lock:
            tokens = self._tokens
            self._tokens = None
            self._epoch += 1
            self._refresh_future = None
            self._state = SessionState.UNINITIALIZED
            self.error = ""
            self._cancel_expiry_watch()
        if tokens is not None:
            self.provider.logout(tokens.refresh_token)
        logger.info("Session reset")

    # ------------------------------------------------------------------
    # Token freshness
    # ------------------------------------------------------------------

    def ensure_fresh_token(self) -> Optional[str]:
        """Return a token valid for at least :data:`MIN_TOKEN_VALIDITY`.

        Returns None when there is no usable token: anonymous mode, a
        session that is not ready, or a refresh that failed.
        """
        if self.provider is None:
            return None
        with self._lock:
            if self._state is not SessionState.READY or self._tokens is None:
                return None
            tokens = self._tokens
            if not tokens.expires_within(MIN_TOKEN_VALIDITY, self.clock()):
                return tokens.access_token
        return self._refresh()

    def on_token_expired(self) -> None:
        """Passive expiry callback; shares the refresh with request checks."""
        if self._state is SessionState.READY:
            logger.info("Access token expired; refreshing")
            self._refresh()

    def authorization_headers(self) -> dict[str, str]:
        """Headers for the next request.

        Raises :class:`SessionExpiredError` when authentication is on and
        no usable token can be produced.
        """
        if self.provider is None:
            return {}
        token = self.ensure_fresh_token()
        if token is None:
            raise SessionExpiredError(self.error or "Session expired; please log in again")
        return {"Authorization": f"Bearer {token}"}

    def _refresh(self) -> Optional[str]:
        with self._lock:
            if self._state is not SessionState.READY or self._tokens is None:
                return None
            future = self._refresh_future
            owner = future is None
            if owner:
                future = self._refresh_future = Future()
            refresh_token = self._tokens.refresh_token
            epoch = self._epoch

        if not owner:
            return future.result()

        try:
            tokens = self.provider.refresh(refresh_token)
        except IdentityError as e:
            logger.warning("Token refresh failed: %s", e)
            self._release_refresh(future)
            self._fail(f"Session expired: {e}", epoch)
            future.set_result(None)
            return None
        except Exception as e:
            self._release_refresh(future)
            future.set_exception(e)
            raise

        with self._lock:
            if self._refresh_future is future:
                self._refresh_future = None
            if epoch != self._epoch or self._state is not SessionState.READY:
                # The session was reset (and possibly logged in again)
                # while this refresh was outstanding.
                logger.info("Discarding refreshed tokens of an ended session")
                future.set_result(None)
                return None
            self._tokens = tokens
        self._arm_expiry_watch(tokens, epoch)
        future.set_result(tokens.access_token)
        return tokens.access_token

    def _release_refresh(self, future: Future) -> None:
        with self._lock:
            if self._refresh_future is future:
                self._refresh_future = None

    def _fail(self, reason: str, epoch: Optional[int] = None) -> None:
        with self._lock:
            if epoch is not None and epoch != self._epoch:
                return
            if self._state is SessionState.FAILED:
                return
            self._state = SessionState.FAILED
            self._tokens = None
            self.error = reason
            self._cancel_expiry_watch()
        logger.warning("Session failed: %s", reason)

    # ------------------------------------------------------------------
    # Expiry watch
    # ------------------------------------------------------------------

    def _arm_expiry_watch(self, tokens: TokenSet, epoch: int) -> None:
        if not self._watch_expiry:
            return
        delay = max(tokens.expires_at - self.clock(), 0.0)
        timer = threading.Timer(delay, self.on_token_expired)
        timer.daemon = True
        with self._lock:
            if epoch != self._epoch:
                return
            self._cancel_expiry_watch()
            self._expiry_timer = timer
        timer.start()

    def _cancel_expiry_watch(self) -> None:
        # Caller holds the lock.
        if self._expiry_timer is not None:
            self._expiry_timer.cancel()
            self._expiry_timer = None
