# SPDX-License-Identifier: LGPL-3.0-or-later
# mntkeeper/core/exceptions.py
"""
Error types.

Fatal            ends the process with its code (bad args, preflight, refusal).
MaintenanceAbort ends a run after services are restored (fsck failure,
                 unmount impossible, remount and fallback both failed).
HostCommandError a host tool could not run at all (124 timeout, 127 missing).
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


def _exit_code(x: Any) -> int:
    try:
        code = int(x)
    except (TypeError, ValueError):
        return 1
    return 1 if code < 0 else min(code, 255)


def _one_line(s: str, limit: int = 600) -> str:
    s = " ".join((s or "").split())
    return s if len(s) <= limit else (s[: limit - 3] + "...")


@dataclass(eq=False)
class MntKeeperError(Exception):
    """
    Base error: an exit code, a one-line message, the underlying cause and
    free-form context (service=, path=, fstype=) for -v output and reports.
    """
    code: int = 1
    msg: str = "error"
    cause: Optional[BaseException] = None
    context: Optional[Dict[str, Any]] = None

    def __post_init__(self) -> None:
        self.code = _exit_code(self.code)
        self.msg = _one_line(self.msg) or self.__class__.__name__
        self.context = dict(self.context or {})
        super().__init__(self.msg)
        self.args = (self.msg,)

    def with_context(self, **ctx: Any) -> "MntKeeperError":
        self.context.update(ctx)
        return self

    def user_message(self, *, include_context: bool = False, include_cause: bool = False) -> str:
        parts = [self.msg]
        if include_context and self.context:
            kv = ", ".join(f"{k}={self.context[k]!r}" for k in sorted(self.context))
            parts.append(f"[{_one_line(kv)}]")
        if include_cause and self.cause is not None:
            parts.append(f"(cause: {type(self.cause).__name__}: {_one_line(str(self.cause))})")
        return " ".join(parts)

    def __str__(self) -> str:
        return self.msg

    def to_dict(self, *, include_cause: bool = False) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "type": self.__class__.__name__,
            "code": self.code,
            "message": self.msg,
            "context": dict(self.context or {}),
        }
        if include_cause and self.cause is not None:
            d["cause"] = {"type": type(self.cause).__name__, "message": _one_line(str(self.cause))}
        return d


class Fatal(MntKeeperError):
    """
    Ends the process before or outside a run; main() exits with `code`.
    """
    pass


class HostCommandError(MntKeeperError):
    """
    A host command could not be executed at all: binary missing, timeout, OS error.
    A command that ran and returned nonzero is not this error.
    """
    pass


class MaintenanceAbort(MntKeeperError):
    """
    Fatal condition inside a maintenance phase. The recovery controller catches
    it, restores services and turns it into the fatal exit code.
    """
    pass


def wrap_abort(msg: str, exc: Optional[BaseException] = None, **context: Any) -> MaintenanceAbort:
    return MaintenanceAbort(code=1, msg=msg, cause=exc, context=context or None)


def format_exception_for_cli(e: BaseException, *, verbose: int = 0) -> str:
    """
    One-liner output for CLI.

    verbose=0: just message
    verbose=1: message + compact context (if any)
    verbose>=2: message + context + cause
    """
    if isinstance(e, MntKeeperError):
        return e.user_message(
            include_context=(verbose >= 1),
            include_cause=(verbose >= 2),
        )

    if verbose >= 2:
        return f"{type(e).__name__}: {_one_line(str(e))}"
    return _one_line(str(e)) or type(e).__name__
