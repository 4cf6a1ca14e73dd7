"""Tests for tado_exporter exceptions."""

from __future__ import annotations

import pytest

from tado_exporter.exceptions import (
    AuthenticationError,
    DecodeError,
    TadoConnectionError,
    TadoError,
    TadoTimeoutError,
    UpstreamStatusError,
)


class TestTadoError:
    """Test TadoError base exception."""

    def test_base_exception_inherits_from_exception(self) -> None:
        """Test that TadoError inherits from Exception."""
        assert issubclass(TadoError, Exception)

    def test_base_exception_message(self) -> None:
        """Test that TadoError can be created with a message."""
        assert str(TadoError("Test error message")) == "Test error message"

    @pytest.mark.parametrize(
        "error_type",
        [AuthenticationError, TadoConnectionError, TadoTimeoutError, DecodeError, UpstreamStatusError],
    )
    def test_inherits_from_base_error(self, error_type: type[TadoError]) -> None:
        """Test every specific error is a TadoError."""
        assert issubclass(error_type, TadoError)


class TestUpstreamStatusError:
    """Test UpstreamStatusError exception."""

    def test_with_status_and_body(self) -> None:
        """Test status and body are kept."""
        error = UpstreamStatusError("Unexpected status code 404", status=404, body="not found")

        assert str(error) == "Unexpected status code 404"
        assert error.status == 404
        assert error.body == "not found"

    def test_defaults(self) -> None:
        """Test default attribute values."""
        error = UpstreamStatusError()

        assert error.status == 0
        assert error.body == ""
