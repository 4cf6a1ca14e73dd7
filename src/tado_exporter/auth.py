"""OAuth2 token management for the tado API."""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import UTC, datetime, timedelta
from http import HTTPStatus
from typing import TYPE_CHECKING, Any

from aiohttp import ClientError, ClientTimeout

from tado_exporter.const import (
    AUTH_MODE_POLL,
    AUTH_MODE_PROMPT,
    DEFAULT_AUTH_BASE_URL,
    DEFAULT_CLIENT_ID,
    DEFAULT_TIMEOUT,
    DEVICE_AUTHORIZE_PATH,
    GRANT_TYPE_DEVICE_CODE,
    GRANT_TYPE_REFRESH_TOKEN,
    OAUTH_SCOPE,
    SLOW_DOWN_INCREMENT,
    TOKEN_PATH,
)
from tado_exporter.exceptions import (
    AuthenticationError,
    DecodeError,
    TadoConnectionError,
    TadoError,
    TadoTimeoutError,
)
from tado_exporter.models import DeviceAuthorization, Token, TokenState
from tado_exporter.parsers import parse_device_authorization, parse_token


if TYPE_CHECKING:
    from collections.abc import Callable

    from aiohttp import ClientSession

_LOGGER = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class TokenManager:
    """Obtain and refresh OAuth2 tokens for the tado API.

    The manager bootstraps a token pair through the device authorization flow
    (RFC 8628) once at startup and keeps it in memory. Callers check
    needs_refresh() before each use and call refresh(); there is no
    background timer.

    Example:
        ```python
        async with ClientSession() as session:
            manager = TokenManager(session=session)
            await manager.authenticate(on_authorization=lambda a: print(a.verification_uri_complete))

            if manager.needs_refresh():
                await manager.refresh()
            headers = manager.authorization_header()
        ```

    Attributes:
        client_id: OAuth2 client identifier.
        auth_base_url: Base URL of the authorization server (without trailing slash).
    """

    def __init__(
        self,
        *,
        session: ClientSession,
        client_id: str = DEFAULT_CLIENT_ID,
        auth_base_url: str = DEFAULT_AUTH_BASE_URL,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize the token manager.

        Args:
            session: aiohttp ClientSession used for all token requests. The
                manager does not close it.
            client_id: OAuth2 client identifier.
            auth_base_url: Base URL of the authorization server.
            clock: Callable returning the current aware UTC datetime.
        """
        self.client_id = client_id
        self.auth_base_url = auth_base_url.rstrip("/")

        self._session = session
        self._clock = clock
        self._token: Token | None = None
        self._state = TokenState.UNAUTHENTICATED

    @property
    def token(self) -> Token | None:
        """Return the current token, which may be expired."""
        return self._token

    @property
    def state(self) -> TokenState:
        """Return the lifecycle state, accounting for the passage of time."""
        if self._state is TokenState.VALID and self._token is not None and self._token.is_expired(self._clock()):
            return TokenState.EXPIRED
        return self._state

    @property
    def access_token(self) -> str | None:
        """Return the current access token, or None before authentication."""
        return self._token.access_token if self._token is not None else None

    def needs_refresh(self) -> bool:
        """Check if a token is held and is past its expiry."""
        return self._token is not None and self._token.is_expired(self._clock())

    def authorization_header(self) -> dict[str, str]:
        """Build the bearer Authorization header.

        Raises:
            AuthenticationError: If no token has been obtained yet.
        """
        if self._token is None:
            msg = "Not authenticated"
            raise AuthenticationError(msg)
        return {"Authorization": f"Bearer {self._token.access_token}"}

    def _validate_session(self) -> None:
        """Validate that the session is open.

        Raises:
            RuntimeError: If the session is closed.
        """
        if self._session.closed:
            msg = "Session is closed. Cannot make requests."
            raise RuntimeError(msg)

    async def _post_form(self, path: str, data: dict[str, str]) -> tuple[int, dict[str, Any]]:
        """POST a form to the authorization server.

        Returns:
            Tuple of (status_code, decoded JSON object). Error responses are
            returned too, since the device flow reports progress through them.

        Raises:
            TadoTimeoutError: If the request times out.
            TadoConnectionError: If a connection error occurs.
            DecodeError: If the body is not a JSON object.
        """
        self._validate_session()
        url = f"{self.auth_base_url}{path}"
        timeout = ClientTimeout(total=DEFAULT_TIMEOUT)

        _LOGGER.debug("POST %s", url)

        try:
            async with self._session.post(url, data=data, timeout=timeout) as response:
                status = response.status
                body = await response.text()
        except TimeoutError as exc:
            msg = f"Request to {url} timed out"
            raise TadoTimeoutError(msg) from exc
        except ClientError as exc:
            msg = f"Failed to connect to {url}: {exc}"
            raise TadoConnectionError(msg) from exc

        try:
            payload = json.loads(body) if body else {}
        except json.JSONDecodeError as exc:
            msg = f"Invalid JSON response from {url} (status {status}): {exc}"
            raise DecodeError(msg) from exc

        if not isinstance(payload, dict):
            msg = f"Unexpected response from {url} (status {status}): {body}"
            raise DecodeError(msg)

        return status, payload

    async def request_device_authorization(self) -> DeviceAuthorization:
        """Request a device code and verification URL.

        Raises:
            AuthenticationError: If the server rejects the request.
        """
        status, payload = await self._post_form(
            DEVICE_AUTHORIZE_PATH,
            {"client_id": self.client_id, "scope": OAUTH_SCOPE},
        )
        if status != HTTPStatus.OK:
            msg = f"Device authorization failed with status {status}: {payload.get('error', payload)}"
            raise AuthenticationError(msg)

        return parse_device_authorization(payload)

    async def authenticate(
        self,
        *,
        mode: str = AUTH_MODE_POLL,
        on_authorization: Callable[[DeviceAuthorization], None] | None = None,
    ) -> Token:
        """Run the device authorization flow and store the resulting token.

        This method performs the following:
        1. Requests a device code and verification URL
        2. Hands the verification URL to on_authorization for display
        3. Waits for the operator: either polls the token endpoint at the
           server-declared interval ("poll") or blocks until Enter is pressed
           on stdin ("prompt")
        4. Exchanges the device code for an access/refresh token pair

        Args:
            mode: AUTH_MODE_POLL or AUTH_MODE_PROMPT.
            on_authorization: Optional callback receiving the device
                authorization, used to show the verification URL.

        Returns:
            The newly obtained token.

        Raises:
            AuthenticationError: If the flow is denied, expires, or fails.
            TadoTimeoutError: If a request times out.
            TadoConnectionError: If a connection error occurs.
            DecodeError: If a response cannot be decoded.
            ValueError: If mode is unknown.
        """
        if mode not in (AUTH_MODE_POLL, AUTH_MODE_PROMPT):
            msg = f"Unknown authentication mode: {mode}"
            raise ValueError(msg)

        self._state = TokenState.AUTHENTICATING
        try:
            authorization = await self.request_device_authorization()

            _LOGGER.warning("Authorize this exporter at %s", authorization.verification_uri_complete)
            if on_authorization is not None:
                on_authorization(authorization)

            if mode == AUTH_MODE_PROMPT:
                try:
                    await asyncio.to_thread(input, "press enter to continue")
                except EOFError as exc:
                    msg = "No operator confirmation on stdin"
                    raise AuthenticationError(msg) from exc
                token = await self._exchange_device_code(authorization)
            else:
                token = await self._poll_device_code(authorization)
        except TadoError:
            self._state = TokenState.AUTH_FAILED
            raise

        self._token = token
        self._state = TokenState.VALID
        _LOGGER.info("Authentication successful, token valid until %s", token.expires_at.isoformat())
        return token

    async def _request_device_token(self, authorization: DeviceAuthorization) -> tuple[int, dict[str, Any]]:
        return await self._post_form(
            TOKEN_PATH,
            {
                "client_id": self.client_id,
                "device_code": authorization.device_code,
                "grant_type": GRANT_TYPE_DEVICE_CODE,
            },
        )

    async def _exchange_device_code(self, authorization: DeviceAuthorization) -> Token:
        """Exchange the device code once, after the operator confirmed."""
        status, payload = await self._request_device_token(authorization)
        if status != HTTPStatus.OK:
            msg = f"Device code exchange failed with status {status}: {payload.get('error', payload)}"
            raise AuthenticationError(msg)

        return parse_token(payload, self._clock())

    async def _poll_device_code(self, authorization: DeviceAuthorization) -> Token:
        """Poll the token endpoint until the user approves or the code expires."""
        deadline = self._clock() + timedelta(seconds=authorization.expires_in)
        interval = authorization.interval

        while True:
            if self._clock() + timedelta(seconds=interval) > deadline:
                msg = "Device code expired before authorization completed"
                raise AuthenticationError(msg)

            await asyncio.sleep(interval)
            status, payload = await self._request_device_token(authorization)

            if status == HTTPStatus.OK:
                return parse_token(payload, self._clock())

            error = payload.get("error")
            if error == "authorization_pending":
                _LOGGER.debug("Authorization pending, polling again in %ds", interval)
            elif error == "slow_down":
                interval += SLOW_DOWN_INCREMENT
                _LOGGER.debug("Asked to slow down, polling every %ds", interval)
            else:
                msg = f"Device authorization failed with status {status}: {error or payload}"
                raise AuthenticationError(msg)

    async def refresh(self) -> Token:
        """Refresh the access token using the stored refresh token.

        On success the entire token record is replaced. On failure the stale
        token is kept so the next caller can try again.

        Returns:
            The new token.

        Raises:
            AuthenticationError: If no token is held or the server rejects the refresh.
            TadoTimeoutError: If the request times out.
            TadoConnectionError: If a connection error occurs.
            DecodeError: If the response cannot be decoded.
        """
        if self._token is None:
            msg = "Cannot refresh before authentication"
            raise AuthenticationError(msg)

        previous = self._token
        self._state = TokenState.REFRESHING
        try:
            status, payload = await self._post_form(
                TOKEN_PATH,
                {
                    "client_id": self.client_id,
                    "grant_type": GRANT_TYPE_REFRESH_TOKEN,
                    "refresh_token": previous.refresh_token,
                },
            )
            if status != HTTPStatus.OK:
                msg = f"Token refresh failed with status {status}: {payload.get('error', payload)}"
                raise AuthenticationError(msg)

            token = parse_token(payload, self._clock(), previous_refresh_token=previous.refresh_token)
        except TadoError:
            self._state = TokenState.EXPIRED
            raise

        self._token = token
        self._state = TokenState.VALID
        _LOGGER.info("Token refreshed, valid until %s", token.expires_at.isoformat())
        return token
