"""Application registration and session management.

Registration happens once: the exporter asks for an application token and
someone confirms it on the appliance front panel. After that, every session
is opened with a challenge/response login where the password is
HMAC-SHA1(app_token, challenge). The application token itself never leaves
the host.

Sessions have no client-side expiry. A session is considered valid until
the appliance rejects it with a 403, at which point the refresh loop
invalidates it and a new login happens on the next request.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import threading
import time
from typing import Any

from ...const import (
    APP_ID,
    AUTHORIZE_PATH,
    DEFAULT_POLLING_INTERVAL,
    LOGIN_PATH,
    LOGOUT_PATH,
    MIN_POLLING_INTERVAL,
    SESSION_PATH,
    TOKEN_REVOKED_CODE,
)
from ..credentials import CredentialStore
from ..exceptions import (
    ApplianceError,
    AuthenticationRejected,
    AuthorizationDenied,
    AuthorizationTimeout,
    CertificateError,
    NotRegisteredError,
    ParseError,
    RegistrationCancelled,
    RegistrationError,
    TransportError,
)
from ..transport import ApplianceTransport
from .types import (
    AuthorizationStatus,
    AuthState,
    Challenge,
    Permissions,
    RegistrationRequest,
    RegistrationResult,
    SessionDiagnostic,
    SessionInfo,
)

_LOGGER = logging.getLogger(__name__)


def compute_password(app_token: str, challenge: str) -> str:
    """Login password: lowercase hex HMAC-SHA1 keyed by the application token."""
    return hmac.new(app_token.encode("utf-8"), challenge.encode("utf-8"), hashlib.sha1).hexdigest()


class Authenticator:
    """Owns the application token and the current session.

    Thread-safe: any number of threads may call ``ensure_session`` at once.
    Only one login runs at a time and callers that queued behind it receive
    its outcome (session or error) instead of logging in again.
    """

    def __init__(
        self,
        transport: ApplianceTransport,
        store: CredentialStore,
        app_id: str = APP_ID,
        clock=time.time,
    ):
        self._transport = transport
        self._store = store
        self._app_id = app_id
        self._clock = clock

        self._lock = threading.Lock()
        self._login_lock = threading.Lock()
        self._session: SessionInfo | None = None
        self._login_generation = 0
        self._last_login_error: Exception | None = None
        self._state = AuthState.REGISTERED if store.exists() else AuthState.UNREGISTERED

    @property
    def state(self) -> AuthState:
        with self._lock:
            return self._state

    def _set_state(self, state: AuthState) -> None:
        with self._lock:
            self._state = state

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, request: RegistrationRequest) -> RegistrationResult:
        """Request an application token and persist it immediately.

        The token is unusable until someone confirms it on the appliance;
        follow up with ``await_authorization``.

        Raises:
            RegistrationError: Transport failure or malformed response.
            CertificateError: The appliance certificate was rejected.
        """
        self._set_state(AuthState.REGISTERING)
        try:
            result = self._transport.post(AUTHORIZE_PATH, request.to_payload())
            if not isinstance(result, dict):
                raise ParseError("Registration response has no result", raw_value=repr(result))
            app_token = result.get("app_token")
            track_id = result.get("track_id")
            if not isinstance(app_token, str) or not app_token:
                raise ParseError("Registration response has no app_token", field="app_token")
            if isinstance(track_id, bool) or not isinstance(track_id, int):
                raise ParseError("Registration response has no track_id", field="track_id", raw_value=repr(track_id))
        except CertificateError:
            self._set_state(AuthState.UNREGISTERED)
            raise
        except ApplianceError as err:
            self._set_state(AuthState.UNREGISTERED)
            raise RegistrationError(f"Registration failed: {err}") from err

        self._store.store(app_token)
        self._set_state(AuthState.AWAITING_AUTHORIZATION)
        _LOGGER.info("Registration requested (track_id=%s); confirm it on the appliance front panel", track_id)
        return RegistrationResult(app_token=app_token, track_id=track_id)

    def authorization_status(self, track_id: int) -> AuthorizationStatus:
        """Query the status of a pending registration once."""
        result = self._transport.get(f"{AUTHORIZE_PATH}{track_id}")
        if not isinstance(result, dict):
            raise ParseError("Authorization status response has no result", raw_value=repr(result))
        return AuthorizationStatus.parse(result.get("status"))

    def await_authorization(
        self,
        track_id: int,
        interval: float = DEFAULT_POLLING_INTERVAL,
        cancel: threading.Event | None = None,
    ) -> None:
        """Poll until the registration is granted, denied or times out.

        Blocks for as long as nobody answers on the appliance. Setting
        ``cancel`` (or a KeyboardInterrupt) stops the wait and discards the
        stored token so no half-registered state is left behind.

        Args:
            track_id: Identifier returned by ``register``.
            interval: Seconds between polls, at least one second.
            cancel: Event that aborts the wait when set.

        Raises:
            AuthorizationDenied: Denied on the appliance, or the token became unknown.
            AuthorizationTimeout: Nobody confirmed in time.
            RegistrationCancelled: ``cancel`` was set.
        """
        interval = max(float(interval), MIN_POLLING_INTERVAL)
        cancel = cancel or threading.Event()
        try:
            while True:
                if cancel.wait(interval):
                    raise RegistrationCancelled("Registration cancelled before it was confirmed")
                try:
                    status = self.authorization_status(track_id)
                except TransportError as err:
                    _LOGGER.warning("Cannot poll authorization status, retrying: %s", err)
                    continue

                if status is AuthorizationStatus.PENDING:
                    _LOGGER.debug("Authorization %s still pending", track_id)
                    continue
                if status is AuthorizationStatus.GRANTED:
                    self._set_state(AuthState.REGISTERED)
                    _LOGGER.info("Registration granted")
                    return
                if status is AuthorizationStatus.TIMEOUT:
                    raise AuthorizationTimeout("Registration was not confirmed on the appliance in time")
                raise AuthorizationDenied(f"Registration {status.value}", status=status.value)
        except BaseException as err:
            self._discard_token(denied=isinstance(err, AuthorizationDenied))
            raise

    def _discard_token(self, denied: bool) -> None:
        self._store.delete()
        with self._lock:
            self._session = None
            self._state = AuthState.REVOKED_OR_DENIED if denied else AuthState.UNREGISTERED

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def fetch_challenge(self) -> Challenge:
        """Fetch a fresh login challenge."""
        return Challenge.from_json(self._transport.get(LOGIN_PATH))

    def open_session(self) -> SessionInfo:
        """Log in and return the new session.

        If another thread is already logging in, wait for it and return its
        outcome instead of starting a second login.

        Raises:
            NotRegisteredError: No application token stored.
            AuthenticationRejected: The appliance refused the token.
            TransportError, ApiResponseError, ParseError: Login failed.
        """
        with self._lock:
            generation = self._login_generation
        return self._open_session(generation)

    def ensure_session(self) -> str:
        """Return the current session token, logging in if there is none."""
        with self._lock:
            if self._session is not None:
                return self._session.token
            if self._state is AuthState.REVOKED_OR_DENIED:
                raise AuthenticationRejected("Application token was revoked; run the register command again")
            generation = self._login_generation
        return self._open_session(generation).token

    def _open_session(self, generation: int) -> SessionInfo:
        with self._login_lock:
            with self._lock:
                if self._login_generation != generation:
                    # A login finished while this caller waited
                    if self._session is not None:
                        return self._session
                    if self._last_login_error is not None:
                        raise self._last_login_error

            try:
                session = self._login()
            except Exception as err:
                with self._lock:
                    self._login_generation += 1
                    self._last_login_error = err
                    self._session = None
                    if isinstance(err, NotRegisteredError):
                        self._state = AuthState.UNREGISTERED
                    elif isinstance(err, AuthenticationRejected) and err.error_code == TOKEN_REVOKED_CODE:
                        self._state = AuthState.REVOKED_OR_DENIED
                    else:
                        self._state = AuthState.REGISTERED
                raise

            with self._lock:
                self._login_generation += 1
                self._last_login_error = None
                self._session = session
                self._state = AuthState.SESSION_OPEN
            _LOGGER.info("Session opened (permissions: %s)", ", ".join(session.permissions.granted()) or "none")
            return session

    def _login(self) -> SessionInfo:
        app_token = self._store.load()
        self._set_state(AuthState.LOGGING_IN)
        challenge = self.fetch_challenge()
        payload = {"app_id": self._app_id, "password": compute_password(app_token, challenge.value)}
        try:
            result = self._transport.post(SESSION_PATH, payload)
        except AuthenticationRejected as err:
            _LOGGER.error("Login rejected by the appliance: %s", err)
            raise

        if not isinstance(result, dict) or not isinstance(result.get("session_token"), str):
            raise ParseError("Login response has no session_token", field="session_token")
        return SessionInfo(
            token=result["session_token"],
            permissions=Permissions.from_json(result.get("permissions")),
            opened_at=self._clock(),
        )

    def invalidate_session(self, token: str | None = None) -> bool:
        """Forget the current session.

        When ``token`` is given, only invalidate if it is still the current
        session token. A stale rejection therefore cannot discard a session
        another thread has just opened.

        Returns:
            True if a session was discarded.
        """
        with self._lock:
            if self._session is None:
                return False
            if token is not None and token != self._session.token:
                return False
            self._session = None
            self._state = AuthState.REGISTERED
        _LOGGER.debug("Session invalidated")
        return True

    def get(self, path: str) -> Any:
        """Authenticated GET. A rejected session is invalidated before re-raising."""
        token = self.ensure_session()
        try:
            return self._transport.get(path, session_token=token)
        except AuthenticationRejected:
            self.invalidate_session(token)
            raise

    def revoke(self) -> None:
        """Close the session on the appliance and delete the stored token.

        Raises:
            NotRegisteredError: No application token stored.
        """
        if not self._store.exists():
            raise NotRegisteredError("No application token stored; nothing to revoke")
        try:
            token = self.ensure_session()
            self._transport.post(LOGOUT_PATH, session_token=token)
        except AuthenticationRejected as err:
            _LOGGER.warning("Appliance already rejects the application token: %s", err)
        self._discard_token(denied=True)
        _LOGGER.info(
            "Application token deleted; remove the application from the appliance access list to finish revoking it"
        )

    def diagnostic(self) -> SessionDiagnostic:
        """Snapshot of the authentication state. Never contacts the appliance."""
        registered = self._store.exists()
        with self._lock:
            session = self._session
            return SessionDiagnostic(
                state=self._state,
                registered=registered,
                session_token=session.token if session else None,
                permissions=session.permissions if session else None,
                opened_at=session.opened_at if session else None,
            )
