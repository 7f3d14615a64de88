# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# mntkeeper/cli/args/__init__.py
"""
Argument parsing for the mntkeeper CLI: a two-phase parse where YAML config
files provide defaults and command-line flags override them.
"""
from __future__ import annotations

from .builder import HelpFormatter, _build_epilog
from .groups import (
    _add_global_config_logging,
    _add_mount_knobs,
    _add_services,
    _add_target,
    _add_timeouts,
)
from .parser import _build_preparser, _load_merged_config, build_parser, parse_args_with_config
from .validators import validate_args

__all__ = [
    # Builder
    "HelpFormatter",
    "_build_epilog",
    # Groups
    "_add_global_config_logging",
    "_add_mount_knobs",
    "_add_services",
    "_add_target",
    "_add_timeouts",
    # Parser
    "_build_preparser",
    "_load_merged_config",
    "build_parser",
    "parse_args_with_config",
    # Validators
    "validate_args",
]
