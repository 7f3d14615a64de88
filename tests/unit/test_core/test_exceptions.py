# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tests for the project exception types."""
from __future__ import annotations

import pytest

from mntkeeper.core.exceptions import (
    Fatal,
    HostCommandError,
    MaintenanceAbort,
    MntKeeperError,
    format_exception_for_cli,
    wrap_abort,
)


@pytest.mark.unit
class TestExceptionHierarchy:
    """Test exception class hierarchy and basic functionality."""

    def test_base_exception_creation(self):
        err = MntKeeperError(code=1, msg="Test error")

        assert err.code == 1
        assert err.msg == "Test error"
        assert err.cause is None
        assert err.context == {}

    def test_subclasses(self):
        for cls in (Fatal, HostCommandError, MaintenanceAbort):
            assert isinstance(cls(code=2, msg="x"), MntKeeperError)

    def test_exception_with_context(self):
        err = MntKeeperError(code=1, msg="Error").with_context(service="nginx", phase="stop")

        assert err.context == {"service": "nginx", "phase": "stop"}

    def test_message_is_one_line(self):
        err = Fatal(code=1, msg="line one\nline two")

        assert str(err) == "line one line two"

    def test_wrap_abort_keeps_cause_and_context(self):
        cause = OSError("boom")
        err = wrap_abort("Cannot unmount /tmp", cause, path="/tmp")

        assert isinstance(err, MaintenanceAbort)
        assert err.code == 1
        assert err.cause is cause
        assert err.context == {"path": "/tmp"}


@pytest.mark.unit
class TestExceptionExitCodes:
    """Test exception exit code validation."""

    def test_valid_exit_codes(self):
        for code in [0, 1, 2, 127, 255]:
            assert MntKeeperError(code=code, msg="Test").code == code

    def test_out_of_range_codes_are_clamped(self):
        assert MntKeeperError(code=-5, msg="x").code == 1
        assert MntKeeperError(code=1000, msg="x").code == 255
        assert MntKeeperError(code="nope", msg="x").code == 1


@pytest.mark.unit
class TestCliFormatting:
    def test_verbosity_levels(self):
        err = wrap_abort("Mount verification failed", path="/tmp")

        assert format_exception_for_cli(err) == "Mount verification failed"
        assert "path='/tmp'" in format_exception_for_cli(err, verbose=1)

    def test_foreign_exception(self):
        assert format_exception_for_cli(ValueError("bad")) == "bad"
        assert format_exception_for_cli(ValueError("bad"), verbose=2) == "ValueError: bad"

    def test_to_dict(self):
        d = HostCommandError(code=124, msg="timed out").to_dict()

        assert d["type"] == "HostCommandError"
        assert d["code"] == 124
        assert d["message"] == "timed out"
