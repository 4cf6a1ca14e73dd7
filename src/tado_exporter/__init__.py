"""Prometheus exporter for tado° smart thermostats.

This package polls the tado cloud API for per-room climate readings and
serves them in the Prometheus text format on a local /metrics endpoint.

The package is organized into four layers:
1. **Auth Layer** (tado_exporter.auth): OAuth2 device flow and token refresh
2. **API Layer** (tado_exporter.api): Authenticated requests to the account and rooms endpoints
3. **Metrics Layer** (tado_exporter.metrics): Pure formatting of readings into exposition lines
4. **Exporter Layer** (tado_exporter.exporter): Per-scrape orchestration and the aiohttp app

Example:
    Running the exporter:

    ```console
    $ tado-exporter --port 8005
    Now go to https://login.tado.com/oauth2/device?user_code=ABC123
    ```

    Embedding it:

    ```python
    from aiohttp import ClientSession
    from tado_exporter import TadoAPI, TadoExporter, TokenManager

    async with ClientSession() as session:
        manager = TokenManager(session=session)
        await manager.authenticate()
        exporter = TadoExporter(token_manager=manager, api=TadoAPI(token_manager=manager, session=session))
        print("\\n".join(await exporter.collect()))
    ```
"""

from __future__ import annotations

from tado_exporter.api import TadoAPI
from tado_exporter.auth import TokenManager
from tado_exporter.config import ExporterConfig, load_config
from tado_exporter.exceptions import (
    AuthenticationError,
    DecodeError,
    TadoConnectionError,
    TadoError,
    TadoTimeoutError,
    UpstreamStatusError,
)
from tado_exporter.exporter import TadoExporter, create_app
from tado_exporter.metrics import format_room_metrics, format_service_health
from tado_exporter.models import (
    Account,
    DeviceAuthorization,
    Home,
    RateLimit,
    Room,
    RoomsResponse,
    Token,
    TokenState,
)
from tado_exporter.parsers import parse_rate_limit


__version__ = "0.1.0"

__all__ = [
    "Account",
    "AuthenticationError",
    "DecodeError",
    "DeviceAuthorization",
    "ExporterConfig",
    "Home",
    "RateLimit",
    "Room",
    "RoomsResponse",
    "TadoAPI",
    "TadoConnectionError",
    "TadoError",
    "TadoExporter",
    "TadoTimeoutError",
    "Token",
    "TokenManager",
    "TokenState",
    "UpstreamStatusError",
    "__version__",
    "create_app",
    "format_room_metrics",
    "format_service_health",
    "load_config",
    "parse_rate_limit",
]
