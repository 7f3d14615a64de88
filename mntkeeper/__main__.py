# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# mntkeeper/__main__.py
from __future__ import annotations

import argparse
import sys
import traceback
from pathlib import Path
from typing import Optional, Sequence

from .cli.args import parse_args_with_config
from .cli.confirm import confirm_run
from .config.settings import MaintenanceConfig
from .core.audit import audit_log_path
from .core.exceptions import Fatal, format_exception_for_cli
from .core.logger import Log
from .core.sanity_checker import SanityChecker
from .core.utils import U
from .maintenance.orchestrator import run_maintenance


def _print_stderr(msg: str) -> None:
    print(msg, file=sys.stderr)


def _safe_log(logger, level: str, msg: str) -> None:
    """
    Best-effort logging without assuming logger exists or has a given method.
    """
    if logger is None:
        _print_stderr(msg)
        return

    fn = getattr(logger, level, None)
    if callable(fn):
        fn(msg)
    else:
        _print_stderr(msg)


def _prepare(args: argparse.Namespace, logger):
    """
    Preflight, confirmation and the switch to the file-backed audit logger.
    Returns (config, logger, log_file).
    """
    config = MaintenanceConfig.from_args(args)

    report = SanityChecker(logger, config).run()
    if not report.ok():
        raise Fatal(report.exit_code(), "Preflight checks failed")

    confirm_run(logger, config.target, config.services, assume_yes=bool(getattr(args, "assume_yes", False)))

    log_file = Path(args.log_file) if getattr(args, "log_file", None) else audit_log_path(config.log_dir)
    try:
        U.ensure_dir(log_file.parent)
        logger = Log.setup(
            args.verbose,
            str(log_file),
            quiet=args.quiet,
            json_logs=bool(getattr(args, "json_logs", False)),
        )
    except OSError as e:
        U.die(logger, f"Cannot open audit log {log_file}: {e}", 1)
    return config, logger, log_file


def main(argv: Optional[Sequence[str]] = None) -> None:
    logger: Optional[object] = None

    # Phase 1: parse, preflight, confirm (Fatal can happen here)
    try:
        args, _conf, logger = parse_args_with_config(argv)
        config, logger, log_file = _prepare(args, logger)
    except Fatal as e:
        # Raised through U.die or the preflight report, both already logged.
        if logger is None:
            _print_stderr(f"💥 ERROR    {e}")
        raise SystemExit(getattr(e, "code", 1))
    except KeyboardInterrupt:
        _safe_log(logger, "warning", "Interrupted by user (Ctrl+C).")
        raise SystemExit(130)

    # Phase 2: run maintenance. Signals from here on are handled by the
    # recovery controller, which restores services before returning.
    try:
        rc = int(run_maintenance(logger, config, log_file=log_file))
    except Fatal as e:
        _safe_log(logger, "error", format_exception_for_cli(e, verbose=args.verbose))
        rc = getattr(e, "code", 1)
    except KeyboardInterrupt:
        _safe_log(logger, "warning", "Interrupted by user (Ctrl+C).")
        rc = 130
    except Exception as e:
        _safe_log(logger, "error", f"💥 UNHANDLED {type(e).__name__}: {e}")
        _safe_log(logger, "debug", traceback.format_exc())
        rc = 1

    raise SystemExit(rc)


if __name__ == "__main__":
    main()
