"""Data models for tado API requests and responses."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime  # noqa: TC003 - dataclass field type
from enum import Enum


__all__ = [
    "Account",
    "DeviceAuthorization",
    "Home",
    "RateLimit",
    "Room",
    "RoomsResponse",
    "Token",
    "TokenState",
]


class TokenState(Enum):
    """Token manager lifecycle states."""

    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    VALID = "valid"
    EXPIRED = "expired"
    REFRESHING = "refreshing"
    AUTH_FAILED = "auth_failed"


@dataclass(frozen=True)
class Token:
    """OAuth2 token pair held in memory.

    Attributes:
        access_token: Bearer token for API requests.
        refresh_token: Token used to obtain a new access token.
        expires_at: Instant after which the access token must be refreshed.
            Already includes the safety margin.
        token_type: Token type reported by the provider.
    """

    access_token: str
    refresh_token: str
    expires_at: datetime
    token_type: str = "Bearer"

    def is_expired(self, now: datetime) -> bool:
        """Check whether the token is past its (margin-adjusted) expiry."""
        return now >= self.expires_at


@dataclass
class DeviceAuthorization:
    """Response from the device authorization endpoint.

    Attributes:
        device_code: Code exchanged for a token once the user approved.
        user_code: Short code the user confirms in the browser.
        verification_uri: Page where the user enters the code.
        verification_uri_complete: Verification page with the code pre-filled.
        expires_in: Lifetime of the device code in seconds.
        interval: Minimum polling interval in seconds.
    """

    device_code: str
    user_code: str
    verification_uri: str
    verification_uri_complete: str
    expires_in: int
    interval: int


@dataclass
class Home:
    """A home belonging to the authenticated account."""

    id: int
    name: str


@dataclass
class Account:
    """Account profile from the identity endpoint.

    Mobile devices are not decoded.
    """

    id: str
    name: str
    email: str
    username: str
    locale: str
    homes: list[Home] = field(default_factory=list)


@dataclass
class Room:
    """Climate telemetry for a single room.

    Attributes:
        id: Room identifier within the home.
        name: Human-readable room name.
        inside_temperature: Measured temperature in degrees Celsius.
        humidity: Measured relative humidity in percent.
        setting_power: Heating setting power ("ON" or "OFF").
        set_temperature: Setpoint in degrees Celsius (0.0 when heating is off).
        heating_power: Current heating demand in percent.
    """

    id: int
    name: str
    inside_temperature: float
    humidity: int
    setting_power: str
    set_temperature: float
    heating_power: int


@dataclass
class RateLimit:
    """Quota accounting parsed from the ``ratelimit`` response header.

    Attributes:
        limit_type: Quota label, e.g. "perday".
        remaining: Remaining requests in the current window.
        refill: Refill count reported by the provider.
    """

    limit_type: str = ""
    remaining: int = 0
    refill: int = 0


@dataclass
class RoomsResponse:
    """Outcome of a rooms request for one home.

    Attributes:
        home_id: Home the rooms belong to.
        status: HTTP status code of the upstream response.
        rate_limit: Parsed rate-limit header.
        rooms: Decoded rooms, empty unless the request succeeded.
        body: Raw response body.
    """

    home_id: int
    status: int
    rate_limit: RateLimit
    rooms: list[Room] = field(default_factory=list)
    body: str = ""

    @property
    def ok(self) -> bool:
        """Check if the status is in the accepted [200, 400) range."""
        return 200 <= self.status < 400  # noqa: PLR2004
