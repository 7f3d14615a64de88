# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# mntkeeper/cli/args/parser.py
from __future__ import annotations

import argparse
import sys
from typing import Any, Dict, Optional, Sequence, Tuple

from ...config.config_loader import Config
from ...core.logger import Log, c
from ...core.utils import U
from .builder import HelpFormatter, _build_epilog
from .groups import (
    _add_global_config_logging,
    _add_mount_knobs,
    _add_services,
    _add_target,
    _add_timeouts,
)
from .validators import validate_args


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="mntkeeper",
        description=c("mntkeeper: check and remount a shared mount point without losing services", "green", ["bold"]),
        formatter_class=HelpFormatter,
        epilog=_build_epilog(),
    )

    _add_global_config_logging(p)
    _add_target(p)
    _add_services(p)
    _add_timeouts(p)
    _add_mount_knobs(p)

    return p


def _build_preparser() -> argparse.ArgumentParser:
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--config", action="append", default=[])
    pre.add_argument("-v", "--verbose", action="count", default=0)
    pre.add_argument("-q", "--quiet", action="count", default=0)
    pre.add_argument("--json-logs", dest="json_logs", action="store_true")
    pre.add_argument("--dump-config", action="store_true")
    pre.add_argument("--dump-args", action="store_true")
    return pre


def _load_merged_config(logger: Any, cfgs: Sequence[str]) -> Dict[str, Any]:
    """Expand and merge --config paths in command-line order; later files win."""
    if not cfgs:
        return {}
    expanded = Config.expand_configs(logger, list(cfgs))
    return Config.load_many(logger, expanded)


def parse_args_with_config(
    argv: Optional[Sequence[str]] = None,
    logger: Any = None,
) -> Tuple[argparse.Namespace, Dict[str, Any], Any]:
    """
    Parse the command line on top of the merged --config files.

    A pre-pass picks out --config and the logging flags, the config files
    become parser defaults, and the full parse lets explicit flags win.
    --dump-config stops before the full parse, --dump-args after validation.

    The logger created here is console only. __main__ replaces it with the
    audit-file logger once preflight and confirmation have passed.
    """
    argv = list(sys.argv[1:] if argv is None else argv)
    early, _ = _build_preparser().parse_known_args(argv)

    if logger is None:
        logger = Log.setup(early.verbose, None, quiet=early.quiet, json_logs=early.json_logs)

    conf = _load_merged_config(logger, early.config)
    if early.dump_config:
        print(U.json_dump(conf))
        raise SystemExit(0)

    parser = build_parser()
    Config.apply_as_defaults(logger, parser, conf)
    args = parser.parse_args(argv)
    validate_args(args, conf, logger)

    if early.dump_args:
        print(U.json_dump(vars(args)))
        raise SystemExit(0)
    return args, conf, logger
