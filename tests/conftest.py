"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from http import HTTPStatus
from typing import TYPE_CHECKING, Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from aiohttp import ClientSession, web

from tado_exporter.api import TadoAPI
from tado_exporter.auth import TokenManager
from tado_exporter.const import AUTH_MODE_PROMPT
from tado_exporter.exporter import TadoExporter


if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from aiohttp.test_utils import TestServer


START = datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC)

SAMPLE_ROOMS = [
    {
        "id": 1,
        "name": "Living Room",
        "sensorDataPoints": {
            "insideTemperature": {"value": 21.5},
            "humidity": {"percentage": 48},
        },
        "setting": {"power": "ON", "temperature": {"value": 22.0}},
        "heatingPower": {"percentage": 35},
    },
    {
        "id": 2,
        "name": "Bedroom",
        "sensorDataPoints": {
            "insideTemperature": {"value": 18.25},
            "humidity": {"percentage": 55},
        },
        "setting": {"power": "OFF", "temperature": None},
        "heatingPower": {"percentage": 0},
    },
]


class FakeClock:
    """Controllable replacement for datetime.now(UTC)."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@dataclass
class FakeTado:
    """In-process stand-in for the tado OAuth and data endpoints.

    Every handled request is appended to ``calls`` so tests can assert order.
    """

    homes: list[dict[str, Any]] = field(default_factory=lambda: [{"id": 1, "name": "Home"}])
    rooms: dict[int, Any] = field(default_factory=lambda: {1: SAMPLE_ROOMS})
    room_status: dict[int, int] = field(default_factory=dict)
    me_status: int = HTTPStatus.OK
    refresh_status: int = HTTPStatus.OK
    ratelimit: str = '"perday";r=99,t=123'
    expires_in: int = 600
    calls: list[str] = field(default_factory=list)
    authorization_headers: list[str] = field(default_factory=list)
    issued: int = 0

    def _token(self) -> dict[str, Any]:
        self.issued += 1
        return {
            "access_token": f"access-{self.issued}",
            "refresh_token": f"refresh-{self.issued}",
            "token_type": "Bearer",
            "expires_in": self.expires_in,
        }

    async def device_authorize(self, request: web.Request) -> web.Response:
        form = await request.post()
        self.calls.append(f"device_authorize:{form['scope']}")
        return web.json_response(
            {
                "device_code": "device-code",
                "user_code": "ABC123",
                "verification_uri": "https://login.tado.com/oauth2/device",
                "verification_uri_complete": "https://login.tado.com/oauth2/device?user_code=ABC123",
                "expires_in": 300,
                "interval": 5,
            }
        )

    async def token(self, request: web.Request) -> web.Response:
        form = await request.post()
        grant_type = str(form["grant_type"])
        self.calls.append(f"token:{grant_type}")
        if grant_type == "refresh_token" and self.refresh_status != HTTPStatus.OK:
            return web.json_response({"error": "invalid_grant"}, status=self.refresh_status)
        return web.json_response(self._token())

    async def me(self, request: web.Request) -> web.Response:
        self.calls.append("me")
        self.authorization_headers.append(request.headers.get("Authorization", ""))
        if self.me_status != HTTPStatus.OK:
            return web.Response(status=self.me_status, text="identity unavailable")
        return web.json_response(
            {
                "id": "user-uuid",
                "name": "Jane",
                "email": "jane@example.com",
                "username": "jane@example.com",
                "locale": "en",
                "homes": self.homes,
            }
        )

    async def home_rooms(self, request: web.Request) -> web.Response:
        home_id = int(request.match_info["home_id"])
        self.calls.append(f"rooms:{home_id}:{request.query.get('ngsw-bypass')}")
        self.authorization_headers.append(request.headers.get("Authorization", ""))
        headers = {"ratelimit": self.ratelimit}
        status = self.room_status.get(home_id, HTTPStatus.OK)
        if status != HTTPStatus.OK:
            return web.Response(status=status, text="not found", headers=headers)
        payload = self.rooms.get(home_id, [])
        if isinstance(payload, str):
            return web.Response(text=payload, headers=headers, content_type="application/json")
        return web.json_response(payload, headers=headers)

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/oauth2/device_authorize", self.device_authorize)
        app.router.add_post("/oauth2/token", self.token)
        app.router.add_get("/api/v2/me", self.me)
        app.router.add_get("/homes/{home_id}/rooms", self.home_rooms)
        return app


@pytest.fixture
async def mock_session() -> AsyncGenerator[ClientSession]:
    """Create a mock aiohttp ClientSession.

    Yields:
        Mock ClientSession for testing.
    """
    session = AsyncMock(spec=ClientSession)
    session.closed = False

    async def mock_close() -> None:
        session.closed = True

    session.close = mock_close

    yield session

    if not session.closed:
        await session.close()


def make_response(status: int = HTTPStatus.OK, body: str = "") -> MagicMock:
    """Create a mock aiohttp ClientResponse usable as an async context manager."""
    response = MagicMock()
    response.status = status
    response.headers = {}
    response.text = AsyncMock(return_value=body)
    response.__aenter__ = AsyncMock(return_value=response)
    response.__aexit__ = AsyncMock(return_value=None)
    return response


@pytest.fixture
def clock() -> FakeClock:
    """Create a controllable clock starting at a fixed instant."""
    return FakeClock()


@pytest.fixture
def fake_tado() -> FakeTado:
    """Create the fake upstream state."""
    return FakeTado()


@pytest.fixture
async def upstream(aiohttp_server: Any, fake_tado: FakeTado) -> TestServer:
    """Start the fake upstream on a local port."""
    return await aiohttp_server(fake_tado.app())


@pytest.fixture
async def http_session() -> AsyncGenerator[ClientSession]:
    """Create a real ClientSession for talking to the fake upstream."""
    async with ClientSession() as session:
        yield session


@pytest.fixture
async def token_manager(upstream: TestServer, http_session: ClientSession, clock: FakeClock) -> TokenManager:
    """Create a TokenManager already authenticated against the fake upstream."""
    manager = TokenManager(session=http_session, auth_base_url=str(upstream.make_url("/")), clock=clock)
    with patch("builtins.input", return_value=""):
        await manager.authenticate(mode=AUTH_MODE_PROMPT)
    return manager


@pytest.fixture
def tado_api(upstream: TestServer, http_session: ClientSession, token_manager: TokenManager) -> TadoAPI:
    """Create a TadoAPI pointed at the fake upstream."""
    return TadoAPI(
        token_manager=token_manager,
        session=http_session,
        api_base_url=str(upstream.make_url("/api/v2")),
        hops_base_url=str(upstream.make_url("/")),
    )


@pytest.fixture
def exporter(token_manager: TokenManager, tado_api: TadoAPI) -> TadoExporter:
    """Create an exporter wired to the fake upstream."""
    return TadoExporter(token_manager=token_manager, api=tado_api)


@pytest.fixture
def response_factory() -> Any:
    """Return the factory for mock ClientResponse objects."""
    return make_response
