"""Scrape orchestration and the aiohttp web application serving /metrics."""

from __future__ import annotations

import asyncio
import logging
from http import HTTPStatus
from typing import TYPE_CHECKING

from aiohttp import web

from tado_exporter.const import METRICS_PATH
from tado_exporter.exceptions import TadoError, UpstreamStatusError
from tado_exporter.metrics import format_room_metrics, format_service_health


if TYPE_CHECKING:
    from tado_exporter.api import TadoAPI
    from tado_exporter.auth import TokenManager

_LOGGER = logging.getLogger(__name__)


class TadoExporter:
    """Long-lived service state shared by every scrape.

    Holds the token manager, the API client and the home-id cache. A single
    lock serializes scrapes so concurrent requests never race on a refresh or
    on populating the cache.

    Example:
        ```python
        exporter = TadoExporter(token_manager=manager, api=api)
        lines = await exporter.collect()
        ```
    """

    def __init__(self, *, token_manager: TokenManager, api: TadoAPI) -> None:
        """Initialize the exporter.

        Args:
            token_manager: Authenticated token manager.
            api: API client sharing the token manager.
        """
        self._token_manager = token_manager
        self._api = api
        self._home_ids: list[int] = []
        self._lock = asyncio.Lock()

    @property
    def home_ids(self) -> tuple[int, ...]:
        """Return the cached home identifiers in account order."""
        return tuple(self._home_ids)

    async def ensure_token(self) -> None:
        """Refresh the token if it expired.

        A failed refresh is logged and swallowed: the stale token stays in
        place and the following data requests fail visibly upstream.
        """
        if not self._token_manager.needs_refresh():
            return

        _LOGGER.info("Access token expired, refreshing")
        try:
            await self._token_manager.refresh()
        except TadoError as exc:
            _LOGGER.warning("Token refresh failed, continuing with the stale token: %s", exc)

    async def resolve_home_ids(self) -> tuple[int, ...]:
        """Fetch the account's home identifiers once per process.

        Repeated identifiers are skipped.

        Raises:
            UpstreamStatusError: If the identity endpoint answers outside [200, 400).
            DecodeError: If the profile cannot be decoded.
        """
        if self._home_ids:
            return self.home_ids

        account = await self._api.get_me()
        for home in account.homes:
            if home.id in self._home_ids:
                _LOGGER.debug("Skipping duplicate home %d", home.id)
                continue
            self._home_ids.append(home.id)

        _LOGGER.info("Resolved %d home(s) for %s", len(self._home_ids), account.username or account.id)
        return self.home_ids

    async def collect(self) -> list[str]:
        """Run one scrape and return the exposition lines.

        For each home, the two health lines come first, followed by four lines
        per room. The first home whose rooms request fails ends the scrape; the
        lines gathered so far are returned.

        Raises:
            DecodeError: If an upstream response cannot be decoded.
            TadoConnectionError: If the upstream API is unreachable.
            TadoTimeoutError: If an upstream request times out.
        """
        async with self._lock:
            await self.ensure_token()

            lines: list[str] = []
            try:
                home_ids = await self.resolve_home_ids()
            except UpstreamStatusError as exc:
                _LOGGER.warning("Unexpected status code %d from identity endpoint: %s", exc.status, exc.body)
                _LOGGER.error("Aborting scrape: could not resolve homes")
                return lines

            for home_id in home_ids:
                response = await self._api.get_rooms(home_id)
                lines.extend(format_service_health(home_id, response.status, response.rate_limit))

                if not response.ok:
                    _LOGGER.warning(
                        "Unexpected status code %d for rooms of home %d: %s",
                        response.status,
                        home_id,
                        response.body,
                    )
                    _LOGGER.error("Aborting scrape at home %d", home_id)
                    break

                lines.extend(format_room_metrics(home_id, response.rooms))

            return lines


EXPORTER_KEY = web.AppKey("exporter", TadoExporter)


async def handle_metrics(request: web.Request) -> web.Response:
    """Serve one scrape as text/plain.

    Upstream status failures truncate the body but keep status 200; decode and
    transport failures answer 500 with the error text.
    """
    exporter = request.app[EXPORTER_KEY]
    try:
        lines = await exporter.collect()
    except TadoError as exc:
        _LOGGER.exception("Scrape failed")
        return web.Response(status=HTTPStatus.INTERNAL_SERVER_ERROR, text=str(exc))

    return web.Response(text="".join(f"{line}\n" for line in lines), content_type="text/plain")


def create_app(exporter: TadoExporter) -> web.Application:
    """Create the web application exposing the metrics endpoint."""
    app = web.Application()
    app[EXPORTER_KEY] = exporter
    app.router.add_get(METRICS_PATH, handle_metrics)
    return app
