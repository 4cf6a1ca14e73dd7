"""Command-line entry point: authenticate, then serve /metrics."""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import TYPE_CHECKING

from aiohttp import ClientSession, web

from tado_exporter.api import TadoAPI
from tado_exporter.auth import TokenManager
from tado_exporter.config import load_config
from tado_exporter.const import METRICS_PATH
from tado_exporter.exceptions import TadoError
from tado_exporter.exporter import TadoExporter, create_app


if TYPE_CHECKING:
    from collections.abc import Sequence

    from tado_exporter.config import ExporterConfig
    from tado_exporter.models import DeviceAuthorization

_LOGGER = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _show_authorization(authorization: DeviceAuthorization) -> None:
    print(f"Now go to {authorization.verification_uri_complete}")  # noqa: T201
    if authorization.user_code:
        print(f"and confirm the code {authorization.user_code}")  # noqa: T201


async def serve(config: ExporterConfig) -> None:
    """Authenticate once, then serve scrapes until cancelled.

    Raises:
        TadoError: If the startup authentication fails.
        OSError: If the listener cannot bind its address.
    """
    async with ClientSession() as session:
        token_manager = TokenManager(session=session)
        await token_manager.authenticate(mode=config.auth_mode, on_authorization=_show_authorization)

        api = TadoAPI(token_manager=token_manager, session=session)
        runner = web.AppRunner(create_app(TadoExporter(token_manager=token_manager, api=api)))
        await runner.setup()
        try:
            site = web.TCPSite(runner, config.host, config.port)
            await site.start()
            _LOGGER.info("Listening on http://%s:%d%s", config.host, config.port, METRICS_PATH)
            await asyncio.Event().wait()
        finally:
            await runner.cleanup()


def main(argv: Sequence[str] | None = None) -> int:
    """Run the exporter.

    Returns:
        Process exit status.
    """
    try:
        config = load_config(argv)
    except ValueError as exc:
        print(f"tado-exporter: {exc}", file=sys.stderr)  # noqa: T201
        return 2

    logging.basicConfig(level=config.log_level, format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    try:
        asyncio.run(serve(config))
    except TadoError as exc:
        _LOGGER.error("Startup failed: %s", exc)  # noqa: TRY400
        return 1
    except OSError as exc:
        _LOGGER.error("Failed to start listener on %s:%d: %s", config.host, config.port, exc)  # noqa: TRY400
        return 1
    except KeyboardInterrupt:
        _LOGGER.info("Shutting down")

    return 0
