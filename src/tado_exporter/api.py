"""Low-level API client for the tado data endpoints.

This module performs the bearer-authenticated GET requests against the
identity endpoint and the per-home rooms endpoint. Token refresh is the
caller's responsibility; requests always use the token currently held by the
TokenManager.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from aiohttp import ClientError, ClientTimeout

from tado_exporter.const import (
    DEFAULT_API_BASE_URL,
    DEFAULT_HOPS_BASE_URL,
    DEFAULT_TIMEOUT,
    RATE_LIMIT_HEADER,
    ROOMS_BYPASS_PARAMS,
)
from tado_exporter.exceptions import DecodeError, TadoConnectionError, TadoTimeoutError, UpstreamStatusError
from tado_exporter.models import Account, RoomsResponse
from tado_exporter.parsers import parse_account, parse_rate_limit, parse_rooms


if TYPE_CHECKING:
    from aiohttp import ClientSession
    from multidict import CIMultiDictProxy

    from tado_exporter.auth import TokenManager

_LOGGER = logging.getLogger(__name__)


def _is_success(status: int) -> bool:
    return 200 <= status < 400  # noqa: PLR2004


class TadoAPI:
    """Low-level client for the tado account and room endpoints.

    Example:
        ```python
        async with ClientSession() as session:
            manager = TokenManager(session=session)
            await manager.authenticate()
            api = TadoAPI(token_manager=manager, session=session)

            account = await api.get_me()
            for home in account.homes:
                response = await api.get_rooms(home.id)
                print(response.status, response.rate_limit.remaining, response.rooms)
        ```

    Attributes:
        api_base_url: Base URL of the account API (my.tado.com).
        hops_base_url: Base URL of the rooms API (hops.tado.com).
    """

    def __init__(
        self,
        *,
        token_manager: TokenManager,
        session: ClientSession,
        api_base_url: str = DEFAULT_API_BASE_URL,
        hops_base_url: str = DEFAULT_HOPS_BASE_URL,
    ) -> None:
        """Initialize the API client.

        Args:
            token_manager: Source of the bearer token.
            session: aiohttp ClientSession shared with the token manager.
            api_base_url: Base URL of the account API.
            hops_base_url: Base URL of the rooms API.
        """
        self.api_base_url = api_base_url.rstrip("/")
        self.hops_base_url = hops_base_url.rstrip("/")
        self._token_manager = token_manager
        self._session = session

    async def request(
        self,
        url: str,
        *,
        params: dict[str, str] | None = None,
    ) -> tuple[int, CIMultiDictProxy[str], str]:
        """Make an authenticated GET request.

        Args:
            url: Absolute URL to fetch.
            params: Optional query parameters.

        Returns:
            Tuple of (status_code, response_headers, response_body).

        Raises:
            RuntimeError: If the session is closed.
            AuthenticationError: If no token has been obtained yet.
            TadoTimeoutError: If the request times out.
            TadoConnectionError: If the connection fails.
        """
        if self._session.closed:
            msg = "Session is closed. Cannot make request."
            raise RuntimeError(msg)

        headers = self._token_manager.authorization_header()
        timeout = ClientTimeout(total=DEFAULT_TIMEOUT)

        _LOGGER.debug("GET %s", url)

        try:
            async with self._session.get(url, params=params, headers=headers, timeout=timeout) as response:
                body = await response.text()
                return response.status, response.headers, body

        except TimeoutError as exc:
            msg = f"Request to {url} timed out"
            raise TadoTimeoutError(msg) from exc

        except ClientError as exc:
            msg = f"Connection error for {url}: {exc}"
            raise TadoConnectionError(msg) from exc

    @staticmethod
    def _decode(url: str, body: str) -> Any:
        try:
            return json.loads(body)
        except json.JSONDecodeError as exc:
            msg = f"Invalid JSON response from {url}: {exc}"
            raise DecodeError(msg) from exc

    async def get_me(self) -> Account:
        """Get the profile of the authenticated account, including its homes.

        Raises:
            UpstreamStatusError: If the status is outside [200, 400).
            DecodeError: If the profile cannot be decoded.
        """
        url = f"{self.api_base_url}/me"
        status, _, body = await self.request(url)
        if not _is_success(status):
            msg = f"Unexpected status code {status} from {url}"
            raise UpstreamStatusError(msg, status=status, body=body)

        return parse_account(self._decode(url, body))

    async def get_rooms(self, home_id: int) -> RoomsResponse:
        """Get climate telemetry for every room of a home.

        The status code and rate-limit header are always returned. Rooms are
        decoded only when the status is in [200, 400).

        Args:
            home_id: Home identifier.

        Raises:
            DecodeError: If a successful response cannot be decoded.
        """
        url = f"{self.hops_base_url}/homes/{home_id}/rooms"
        status, headers, body = await self.request(url, params=ROOMS_BYPASS_PARAMS)

        response = RoomsResponse(
            home_id=home_id,
            status=status,
            rate_limit=parse_rate_limit(headers.get(RATE_LIMIT_HEADER)),
            body=body,
        )
        if response.ok:
            response.rooms = parse_rooms(self._decode(url, body))

        return response
