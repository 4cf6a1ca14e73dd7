"""Runtime configuration from command-line flags and environment variables."""

from __future__ import annotations

import argparse
import logging
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from tado_exporter.const import AUTH_MODE_POLL, AUTH_MODES, DEFAULT_HOST, DEFAULT_PORT


if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence


ENV_PREFIX = "TADO_EXPORTER_"
MAX_PORT = 65535
SETTINGS = ("host", "port", "auth_mode", "log_level")


@dataclass
class ExporterConfig:
    """Exporter settings.

    Attributes:
        host: Address the metrics endpoint listens on.
        port: Port the metrics endpoint listens on.
        auth_mode: How to wait for device authorization ("poll" or "prompt").
        log_level: Name of the root logging level.
    """

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    auth_mode: str = AUTH_MODE_POLL
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        """Normalize and validate the settings.

        Raises:
            ValueError: If a setting is out of range or unknown.
        """
        self.auth_mode = self.auth_mode.lower()
        self.log_level = self.log_level.upper()

        errors: list[str] = []
        if not self.host:
            errors.append("host must not be empty")
        if not 1 <= self.port <= MAX_PORT:
            errors.append(f"port must be between 1 and {MAX_PORT}, got {self.port}")
        if self.auth_mode not in AUTH_MODES:
            errors.append(f"auth mode must be one of {', '.join(AUTH_MODES)}, got {self.auth_mode!r}")
        if not isinstance(logging.getLevelName(self.log_level), int):
            errors.append(f"unknown log level {self.log_level!r}")

        if errors:
            raise ValueError("; ".join(errors))

    @classmethod
    def from_values(cls, values: Mapping[str, str | int]) -> ExporterConfig:
        """Build a config from raw setting values, falling back to defaults.

        Raises:
            ValueError: If a value is invalid.
        """
        port = values.get("port", DEFAULT_PORT)
        if isinstance(port, str):
            try:
                port = int(port)
            except ValueError as exc:
                msg = f"{ENV_PREFIX}PORT must be an integer, got {port!r}"
                raise ValueError(msg) from exc

        return cls(
            host=str(values.get("host", DEFAULT_HOST)),
            port=port,
            auth_mode=str(values.get("auth_mode", AUTH_MODE_POLL)),
            log_level=str(values.get("log_level", "INFO")),
        )

    @classmethod
    def from_env(cls, environ: Mapping[str, str]) -> ExporterConfig:
        """Build a config from TADO_EXPORTER_* variables, falling back to defaults.

        Raises:
            ValueError: If a variable holds an invalid value.
        """
        return cls.from_values(read_environment(environ))


def read_environment(environ: Mapping[str, str]) -> dict[str, str]:
    """Collect the TADO_EXPORTER_* variables that are set, keyed by setting name."""
    values = {}
    for name in SETTINGS:
        value = environ.get(f"{ENV_PREFIX}{name.upper()}")
        if value:
            values[name] = value
    return values


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser. Flags left out parse as None."""
    parser = argparse.ArgumentParser(
        prog="tado-exporter",
        description="Expose tado room climate readings on a Prometheus /metrics endpoint.",
    )
    parser.add_argument("--host", help=f"listen address (default: {DEFAULT_HOST})")
    parser.add_argument("--port", type=int, help=f"listen port (default: {DEFAULT_PORT})")
    parser.add_argument(
        "--auth-mode",
        choices=AUTH_MODES,
        help=f"poll the token endpoint, or wait for Enter after authorizing (default: {AUTH_MODE_POLL})",
    )
    parser.add_argument("--log-level", help="logging level (default: INFO)")
    return parser


def load_config(
    argv: Sequence[str] | None = None,
    environ: Mapping[str, str] | None = None,
) -> ExporterConfig:
    """Load the configuration: CLI flags override environment, which overrides defaults.

    When environ is not given, variables from an optional .env file are
    loaded into the process environment first. Only the merged result is
    validated, so a flag can replace an invalid environment value.

    Raises:
        ValueError: If a setting is invalid.
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    values: dict[str, str | int] = dict(read_environment(environ))
    args = build_parser().parse_args(argv)
    values.update({name: value for name, value in vars(args).items() if value is not None})
    return ExporterConfig.from_values(values)
