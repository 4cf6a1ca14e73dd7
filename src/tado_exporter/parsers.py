"""Parsing utilities for tado API responses.

This module converts raw headers and decoded JSON payloads into data models.
Payload decoders raise DecodeError on structurally invalid input; the
rate-limit header parser never raises.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from tado_exporter.const import DEFAULT_POLL_INTERVAL, TOKEN_EXPIRY_MARGIN_SECONDS
from tado_exporter.exceptions import DecodeError
from tado_exporter.models import Account, DeviceAuthorization, Home, RateLimit, Room, Token


__all__ = [
    "compute_expiry",
    "parse_account",
    "parse_device_authorization",
    "parse_rate_limit",
    "parse_room",
    "parse_rooms",
    "parse_token",
]


def parse_rate_limit(header: str | None) -> RateLimit:
    """Parse a ``ratelimit`` header value.

    The header looks like ``"perday";r=0,t=123``: a quoted label followed by
    ``key=value`` fields. The service itself separates fields with ``;`` while
    older deployments used ``,``, so both are accepted.

    Args:
        header: Raw header value, or None if the header was absent.

    Returns:
        RateLimit with the unquoted label, remaining quota (key ``r``) and
        refill count (key ``t``). Absent or malformed numbers become 0.
    """
    if not header:
        return RateLimit()

    label, _, fields = header.strip().partition(";")
    rate_limit = RateLimit(limit_type=label.strip().strip('"'))

    for item in fields.replace(",", ";").split(";"):
        key, sep, value = item.partition("=")
        if not sep:
            continue
        key = key.strip()
        if key == "r":
            rate_limit.remaining = _to_int(value)
        elif key == "t":
            rate_limit.refill = _to_int(value)

    return rate_limit


def _to_int(value: str) -> int:
    try:
        return int(value.strip())
    except ValueError:
        return 0


def compute_expiry(issued_at: datetime, expires_in: int) -> datetime:
    """Return the instant a token should be treated as expired.

    Args:
        issued_at: When the token was received.
        expires_in: Declared lifetime in seconds.

    Returns:
        issued_at + expires_in - TOKEN_EXPIRY_MARGIN_SECONDS.
    """
    return issued_at + timedelta(seconds=expires_in - TOKEN_EXPIRY_MARGIN_SECONDS)


def parse_token(
    data: dict[str, Any],
    issued_at: datetime,
    previous_refresh_token: str | None = None,
) -> Token:
    """Parse a token endpoint response.

    Args:
        data: Decoded JSON body from the token endpoint.
        issued_at: When the response was received.
        previous_refresh_token: Refresh token to keep if the provider did not
            rotate it.

    Returns:
        Token with the expiry already adjusted by the safety margin.

    Raises:
        DecodeError: If the access token or lifetime is missing or invalid.
    """
    try:
        access_token = data["access_token"]
        expires_in = int(data["expires_in"])
    except (KeyError, TypeError, ValueError) as exc:
        msg = f"Invalid token response: {exc!r}"
        raise DecodeError(msg) from exc

    refresh_token = data.get("refresh_token") or previous_refresh_token
    if not isinstance(access_token, str) or not access_token or not refresh_token:
        msg = "Invalid token response: missing access or refresh token"
        raise DecodeError(msg)

    return Token(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_at=compute_expiry(issued_at, expires_in),
        token_type=data.get("token_type") or "Bearer",
    )


def parse_device_authorization(data: dict[str, Any]) -> DeviceAuthorization:
    """Parse a device authorization endpoint response.

    Raises:
        DecodeError: If a required field is missing.
    """
    try:
        verification_uri = data.get("verification_uri", "")
        return DeviceAuthorization(
            device_code=data["device_code"],
            user_code=data.get("user_code", ""),
            verification_uri=verification_uri,
            verification_uri_complete=data.get("verification_uri_complete") or verification_uri,
            expires_in=int(data["expires_in"]),
            interval=int(data.get("interval") or DEFAULT_POLL_INTERVAL),
        )
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        msg = f"Invalid device authorization response: {exc!r}"
        raise DecodeError(msg) from exc


def parse_account(data: dict[str, Any]) -> Account:
    """Parse the account profile from the identity endpoint.

    Raises:
        DecodeError: If the profile or one of its homes is malformed.
    """
    try:
        homes = [Home(id=int(home["id"]), name=home.get("name", "")) for home in data.get("homes") or []]
        return Account(
            id=str(data.get("id", "")),
            name=data.get("name", ""),
            email=data.get("email", ""),
            username=data.get("username", ""),
            locale=data.get("locale", ""),
            homes=homes,
        )
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        msg = f"Invalid account response: {exc!r}"
        raise DecodeError(msg) from exc


def parse_room(data: dict[str, Any]) -> Room:
    """Parse a single room record.

    Nested readings the API reports as null (e.g. the setpoint of a room whose
    heating is off) decode to zero.

    Raises:
        DecodeError: If the record is malformed.
    """
    try:
        sensors = data.get("sensorDataPoints") or {}
        setting = data.get("setting") or {}
        return Room(
            id=int(data["id"]),
            name=str(data.get("name") or ""),
            inside_temperature=float((sensors.get("insideTemperature") or {}).get("value") or 0.0),
            humidity=int((sensors.get("humidity") or {}).get("percentage") or 0),
            setting_power=setting.get("power") or "",
            set_temperature=float((setting.get("temperature") or {}).get("value") or 0.0),
            heating_power=int((data.get("heatingPower") or {}).get("percentage") or 0),
        )
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        msg = f"Invalid room record: {exc!r}"
        raise DecodeError(msg) from exc


def parse_rooms(data: Any) -> list[Room]:
    """Parse the rooms endpoint payload (a JSON array of room records).

    Raises:
        DecodeError: If the payload is not a list or a record is malformed.
    """
    if not isinstance(data, list):
        msg = f"Invalid rooms response: expected a list, got {type(data).__name__}"
        raise DecodeError(msg)
    return [parse_room(room) for room in data]
