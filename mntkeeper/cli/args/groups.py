# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# mntkeeper/cli/args/groups.py
from __future__ import annotations

import argparse

from ...config.settings import (
    DEFAULT_CRITICAL_SERVICES,
    DEFAULT_FALLBACK_OPTIONS,
    DEFAULT_LOG_DIR,
    DEFAULT_LOG_RETENTION_DAYS,
    DEFAULT_MEMORY_FSTYPES,
    DEFAULT_SERVICES,
    DEFAULT_TARGET,
)


def _add_global_config_logging(p: argparse.ArgumentParser) -> None:
    # ------------------------------------------------------------------
    # Global config/logging (two-phase parse relies on these)
    # ------------------------------------------------------------------
    from ... import __version__

    p.add_argument(
        "--config",
        action="append",
        default=[],
        help="YAML/JSON config file (repeatable; later overrides earlier).",
    )
    p.add_argument("--dump-config", action="store_true", help="Print merged normalized config and exit.")
    p.add_argument("--dump-args", action="store_true", help="Print final parsed args and exit.")
    p.add_argument("--version", action="version", version=__version__)
    p.add_argument("-v", "--verbose", action="count", default=0, help="Verbosity: -v, -vv, -vvv")
    p.add_argument("-q", "--quiet", action="count", default=0, help="Less output: -q, -qq")
    p.add_argument("--json-logs", dest="json_logs", action="store_true", help="Emit logs as JSON lines.")
    p.add_argument(
        "--log-file",
        dest="log_file",
        default=None,
        help="Audit log file (default: <log-dir>/mntkeeper_YYYYmmdd_HHMMSS.log).",
    )
    p.add_argument("--log-dir", dest="log_dir", default=DEFAULT_LOG_DIR, help="Directory for audit logs and run reports.")
    p.add_argument(
        "--log-retention-days",
        dest="log_retention_days",
        type=int,
        default=DEFAULT_LOG_RETENTION_DAYS,
        help="Delete audit records older than this many days (0 keeps everything).",
    )
    p.add_argument(
        "--no-report",
        dest="report",
        action="store_false",
        default=True,
        help="Do not write the JSON run report next to the audit log.",
    )


def _add_target(p: argparse.ArgumentParser) -> None:
    # ------------------------------------------------------------------
    # What to maintain
    # ------------------------------------------------------------------
    p.add_argument("--target", dest="target", default=DEFAULT_TARGET, help="Mount point to check and remount.")
    p.add_argument(
        "-y",
        "--yes",
        dest="assume_yes",
        action="store_true",
        help="Do not ask for confirmation before stopping services.",
    )


def _add_services(p: argparse.ArgumentParser) -> None:
    # ------------------------------------------------------------------
    # Services (order matters: stopped last-to-first, started first-to-last)
    # ------------------------------------------------------------------
    p.add_argument(
        "--services",
        dest="services",
        nargs="+",
        metavar="UNIT",
        default=list(DEFAULT_SERVICES),
        help="Services that may use the target, in dependency order.",
    )
    p.add_argument(
        "--critical-services",
        dest="critical_services",
        nargs="+",
        metavar="UNIT",
        default=list(DEFAULT_CRITICAL_SERVICES),
        help="Services whose failure to restart fails the run.",
    )


def _add_timeouts(p: argparse.ArgumentParser) -> None:
    # ------------------------------------------------------------------
    # Timing knobs (seconds)
    # ------------------------------------------------------------------
    p.add_argument("--stop-timeout", dest="stop_timeout", type=float, default=30.0, help="Bound on each service stop.")
    p.add_argument("--start-timeout", dest="start_timeout", type=float, default=45.0, help="Bound on each service start.")
    p.add_argument(
        "--start-settle",
        dest="start_settle",
        type=float,
        default=2.0,
        help="Pause after a start before checking the unit is running.",
    )
    p.add_argument(
        "--holder-grace",
        dest="holder_grace",
        type=float,
        default=5.0,
        help="Pause after SIGTERM to processes holding the mount.",
    )
    p.add_argument("--fsck-timeout", dest="fsck_timeout", type=float, default=1800.0, help="Bound on the filesystem check.")
    p.add_argument("--mount-timeout", dest="mount_timeout", type=float, default=60.0, help="Bound on each mount/umount.")


def _add_mount_knobs(p: argparse.ArgumentParser) -> None:
    # ------------------------------------------------------------------
    # Mount classification and fallback
    # ------------------------------------------------------------------
    p.add_argument(
        "--memory-fstypes",
        dest="memory_fstypes",
        nargs="+",
        metavar="FSTYPE",
        default=list(DEFAULT_MEMORY_FSTYPES),
        help="Filesystem types treated as memory-backed (never checked).",
    )
    p.add_argument(
        "--fallback-options",
        dest="fallback_options",
        default=DEFAULT_FALLBACK_OPTIONS,
        help="tmpfs options used when the original filesystem cannot be remounted.",
    )
