# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# mntkeeper/cli/args/validators.py
from __future__ import annotations

import argparse
import logging
from typing import Any, Dict, List, Optional

from ...core.exceptions import Fatal
from ...core.utils import U


def _fail(logger: Optional[logging.Logger], msg: str) -> None:
    if logger is not None:
        U.die(logger, msg, 2)
    raise Fatal(2, msg)


def _names(v: Any) -> List[str]:
    if v is None:
        return []
    if isinstance(v, str):
        return v.replace(",", " ").split()
    return [str(x).strip() for x in v if str(x).strip()]


def _validate_target(args: argparse.Namespace, logger: Optional[logging.Logger]) -> None:
    target = str(getattr(args, "target", "") or "")
    if not target.startswith("/"):
        _fail(logger, f"--target must be an absolute path, got: {target!r}")


def _validate_services(args: argparse.Namespace, logger: Optional[logging.Logger]) -> None:
    services = _names(getattr(args, "services", None))
    if not services:
        _fail(logger, "at least one service is required (--services / `services:`)")
    dupes = sorted({s for s in services if services.count(s) > 1})
    if dupes:
        _fail(logger, f"duplicate service(s): {', '.join(dupes)}")
    unknown = [s for s in _names(getattr(args, "critical_services", None)) if s not in services]
    if unknown and logger is not None:
        logger.warning("Critical service(s) not in the service list are ignored: %s", ", ".join(unknown))


def _validate_timeouts(args: argparse.Namespace, logger: Optional[logging.Logger]) -> None:
    for key in ("stop_timeout", "start_timeout", "fsck_timeout", "mount_timeout"):
        v = getattr(args, key, None)
        if v is not None and float(v) <= 0:
            _fail(logger, f"{key} must be > 0, got {v}")
    for key in ("start_settle", "holder_grace"):
        v = getattr(args, key, None)
        if v is not None and float(v) < 0:
            _fail(logger, f"{key} must be >= 0, got {v}")
    days = getattr(args, "log_retention_days", None)
    if days is not None and int(days) < 0:
        _fail(logger, f"log_retention_days must be >= 0, got {days}")


def _validate_fallback_options(args: argparse.Namespace, logger: Optional[logging.Logger]) -> None:
    opts = str(getattr(args, "fallback_options", "") or "")
    for item in opts.split(","):
        key, _, val = item.partition("=")
        if key.strip() != "size" or val.endswith("%"):
            continue
        try:
            if U.human_to_bytes(val) <= 0:
                raise ValueError("size must be positive")
        except ValueError as e:
            _fail(logger, f"invalid tmpfs size in --fallback-options {opts!r}: {e}")


def validate_args(
    args: argparse.Namespace,
    conf: Dict[str, Any],
    logger: Optional[logging.Logger] = None,
) -> None:
    """
    Check the merged CLI/YAML values. No side effects; the first problem
    raises Fatal with code 2.
    """
    _validate_target(args, logger)
    _validate_services(args, logger)
    _validate_timeouts(args, logger)
    _validate_fallback_options(args, logger)
