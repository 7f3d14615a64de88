# SPDX-License-Identifier: LGPL-3.0-or-later
# mntkeeper/core/logger.py
"""
Logging for mntkeeper.

Three sinks share one logger:
  * the console (stderr), emoji + color when attached to a terminal
  * the audit file, plain text with date, pid and source, always at DEBUG
  * NDJSON instead of either, with --json-logs

Context bound with Log.bind() (service=..., phase=...) is carried on each
record as `record.ctx` and rendered by every formatter.
"""
from __future__ import annotations

import datetime as _dt
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from termcolor import colored as _colored

TRACE = 5
if not hasattr(logging, "TRACE"):
    logging.TRACE = TRACE  # type: ignore[attr-defined]
    logging.addLevelName(TRACE, "TRACE")


def _logger_trace(self: logging.Logger, msg: str, *args, **kwargs) -> None:
    if self.isEnabledFor(TRACE):
        self._log(TRACE, msg, args, **kwargs)


if not hasattr(logging.Logger, "trace"):
    logging.Logger.trace = _logger_trace  # type: ignore[attr-defined]

# levelname -> (emoji, color)
_LEVELS: Dict[str, Tuple[str, str]] = {
    "TRACE": ("🧬", "cyan"),
    "DEBUG": ("🔍", "blue"),
    "INFO": ("✅", "green"),
    "WARNING": ("⚠️", "yellow"),
    "ERROR": ("💥", "red"),
    "CRITICAL": ("🧨", "red"),
}


def c(text: str, color: Optional[str] = None, attrs: Optional[List[str]] = None, *, enable: bool = True) -> str:
    """Colorize text if enabled."""
    if not enable or not color:
        return text
    return _colored(text, color=color, attrs=attrs or [])


def _stderr_is_tty() -> bool:
    try:
        return sys.stderr.isatty()
    except (AttributeError, ValueError):
        return False


def _stderr_takes_emoji() -> bool:
    enc = getattr(sys.stderr, "encoding", None) or "utf-8"
    try:
        "✅".encode(enc)
    except (LookupError, UnicodeEncodeError):
        return False
    return True


Ctx = Mapping[str, Any]


def _flat(v: Any, limit: int = 240) -> str:
    s = str(v).replace("\n", "\\n").replace("\r", "\\r")
    return s if len(s) <= limit else s[: limit - 1] + "…"


def _merge_ctx(base: Optional[Ctx], extra: Optional[Ctx]) -> Dict[str, Any]:
    out: Dict[str, Any] = dict(base or {})
    out.update(extra or {})
    return out


def _ctx_suffix(record: logging.LogRecord) -> str:
    ctx = getattr(record, "ctx", None)
    if not ctx:
        return ""
    return " " + " ".join(f"{k}={_flat(ctx[k])}" for k in sorted(ctx, key=str))


class ContextLoggerAdapter(logging.LoggerAdapter):
    """
    Adapter carrying a persistent context dict, e.g.

      log = Log.bind(logger, service="nginx")
      log.warning("Graceful stop timed out", extra={"ctx": {"timeout": 30}})

    Per-call `extra={"ctx": ...}` is merged over the bound context.
    """

    def __init__(self, logger: logging.Logger, ctx: Optional[Ctx] = None):
        super().__init__(logger, extra={"ctx": dict(ctx or {})})

    def process(self, msg: Any, kwargs: Dict[str, Any]) -> Tuple[Any, Dict[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        extra["ctx"] = _merge_ctx(self.extra.get("ctx"), extra.get("ctx"))
        kwargs["extra"] = extra
        return msg, kwargs

    def bind(self, **ctx: Any) -> "ContextLoggerAdapter":
        return ContextLoggerAdapter(self.logger, _merge_ctx(self.extra.get("ctx"), ctx))


class ConsoleFormatter(logging.Formatter):
    """`HH:MM:SS 🔍 DEBUG    message key=value`, colored on a terminal."""

    def __init__(self, *, color: bool = True, emoji: bool = True, detail: bool = False):
        super().__init__()
        self.color = color
        self.emoji = emoji
        # -vv and up: milliseconds, pid and module:line
        self.detail = detail

    def format(self, record: logging.LogRecord) -> str:
        emoji, color = _LEVELS.get(record.levelname, ("•", ""))
        color_ok = self.color and _stderr_is_tty()

        when = _dt.datetime.fromtimestamp(record.created)
        ts = when.strftime("%H:%M:%S.%f")[:-3] if self.detail else when.strftime("%H:%M:%S")
        lvl = c(f"{record.levelname:<8}", color, enable=color_ok)
        msg = record.getMessage()
        if record.levelno >= logging.WARNING:
            msg = c(msg, color, attrs=["bold"], enable=color_ok)
        src = f" [pid={record.process} {record.module}:{record.lineno}]" if self.detail else ""

        line = f"{ts} {emoji if self.emoji else '·'} {lvl}{src} {msg}{_ctx_suffix(record)}"
        if record.exc_info:
            tb = "\n".join("  " + ln for ln in self.formatException(record.exc_info).splitlines())
            line += "\n" + c(tb, "red", enable=color_ok)
        return line


class AuditFormatter(logging.Formatter):
    """
    Audit file lines: full local date, level, pid and source, never colored.
    An operator reading the file after a failed night run should not need
    the console output.
    """

    def format(self, record: logging.LogRecord) -> str:
        ts = _dt.datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        line = (
            f"[{ts}] {record.levelname:<8} pid={record.process} "
            f"{record.module}:{record.lineno} {record.getMessage()}{_ctx_suffix(record)}"
        )
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class JsonFormatter(logging.Formatter):
    """NDJSON, one object per record, UTC timestamps."""

    def format(self, record: logging.LogRecord) -> str:
        obj: Dict[str, Any] = {
            "ts": _dt.datetime.fromtimestamp(record.created, tz=_dt.timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "pid": record.process,
            "module": record.module,
            "lineno": record.lineno,
        }
        ctx = getattr(record, "ctx", None)
        if ctx:
            obj["ctx"] = {str(k): _flat(v) for k, v in dict(ctx).items()}
        if record.exc_info:
            obj["exc_type"] = record.exc_info[0].__name__ if record.exc_info[0] else "Exception"
            obj["traceback"] = self.formatException(record.exc_info)
        return json.dumps(obj, ensure_ascii=False, default=str)


class Log:
    @staticmethod
    def _level_from_flags(verbose: int, quiet: int) -> int:
        """
        -qq ERROR, -q WARNING, default/-v INFO, -vv DEBUG, -vvv TRACE.
        Quiet wins when both are given.
        """
        if quiet:
            return logging.ERROR if quiet >= 2 else logging.WARNING
        if verbose >= 3:
            return TRACE
        return logging.DEBUG if verbose >= 2 else logging.INFO

    @staticmethod
    def bind(logger: logging.Logger, **ctx: Any) -> ContextLoggerAdapter:
        return ContextLoggerAdapter(logger, ctx)

    @staticmethod
    def banner(logger: logging.Logger, title: str, *, char: str = "═") -> None:
        t = f" {title.strip()} "
        side = char * max(4, (72 - len(t)) // 2)
        logger.info((side + t + side)[:72])

    @staticmethod
    def step(logger: logging.Logger, msg: str, **ctx: Any) -> None:
        logger.info("➡️  %s", msg, extra={"ctx": ctx} if ctx else None)

    @staticmethod
    def ok(logger: logging.Logger, msg: str, **ctx: Any) -> None:
        logger.info("✅ %s", msg, extra={"ctx": ctx} if ctx else None)

    @staticmethod
    def warn(logger: logging.Logger, msg: str, **ctx: Any) -> None:
        logger.warning("⚠️  %s", msg, extra={"ctx": ctx} if ctx else None)

    @staticmethod
    def critical(logger: logging.Logger, msg: str, **ctx: Any) -> None:
        logger.critical("🧨 %s", msg, extra={"ctx": ctx} if ctx else None)

    @staticmethod
    def trace(logger: logging.Logger, msg: str, *args: Any, **ctx: Any) -> None:
        logger.log(TRACE, msg, *args, extra={"ctx": ctx} if ctx else None)

    @staticmethod
    def setup(
        verbose: int = 0,
        log_file: Optional[str] = None,
        *,
        quiet: int = 0,
        color: bool = True,
        logger_name: str = "mntkeeper",
        json_logs: bool = False,
    ) -> logging.Logger:
        """
        Configure and return the mntkeeper logger, replacing any handlers a
        previous call installed. With log_file the audit file receives every
        record down to DEBUG whatever the console level.
        """
        logger = logging.getLogger(logger_name)
        logger.propagate = False
        level = Log._level_from_flags(verbose, quiet)

        for h in list(logger.handlers):
            logger.removeHandler(h)
            h.close()

        console = logging.StreamHandler(stream=sys.stderr)
        console.setLevel(level)
        console.setFormatter(
            JsonFormatter()
            if json_logs
            else ConsoleFormatter(color=color, emoji=_stderr_takes_emoji(), detail=verbose >= 2)
        )
        logger.addHandler(console)

        if log_file:
            fp = Path(log_file).expanduser().resolve()
            fp.parent.mkdir(parents=True, exist_ok=True)
            fh = logging.FileHandler(fp, encoding="utf-8")
            fh.setLevel(min(level, logging.DEBUG))
            fh.setFormatter(JsonFormatter() if json_logs else AuditFormatter())
            logger.addHandler(fh)
            level = min(level, logging.DEBUG)

        logger.setLevel(level)
        logger.debug("Logger initialized (console=%s, pid=%s)", logging.getLevelName(console.level), os.getpid())
        return logger
