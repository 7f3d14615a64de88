# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# mntkeeper/core/sanity_checker.py
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import Dict, List

from ..config.settings import MaintenanceConfig
from .utils import U


class PreflightCode(IntEnum):
    OK = 0
    BAD_ARGS = 2
    PERMISSION = 10
    TOOLS_MISSING = 11


class ErrorKind:
    TOOLS = "tools"
    PERMISSION = "permission"
    BAD_ARGS = "bad_args"


REQUIRED_TOOLS = ("systemctl", "findmnt", "mount", "umount", "mountpoint", "fsck")
# Holder discovery needs at least one of these.
HOLDER_TOOLS = ("fuser", "lsof")


@dataclass
class SanityIssue:
    kind: str
    message: str

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}"


@dataclass
class SanityReport:
    missing_required: List[str] = field(default_factory=list)
    missing_optional: List[str] = field(default_factory=list)
    errors: List[SanityIssue] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    notes: Dict[str, str] = field(default_factory=dict)

    def ok(self) -> bool:
        return not self.missing_required and not self.errors

    def add_error(self, kind: str, msg: str) -> None:
        self.errors.append(SanityIssue(kind=kind, message=msg))

    def exit_code(self) -> int:
        """
        Deterministic mapping of failures to exit codes.
        Preference: BAD_ARGS, then PERMISSION, then TOOLS.
        """
        if self.ok():
            return int(PreflightCode.OK)
        kinds = {e.kind for e in self.errors}
        if ErrorKind.BAD_ARGS in kinds:
            return int(PreflightCode.BAD_ARGS)
        if ErrorKind.PERMISSION in kinds:
            return int(PreflightCode.PERMISSION)
        return int(PreflightCode.TOOLS_MISSING)


class SanityChecker:
    """
    Preflight for a maintenance run:
      - running as root
      - required host tools present, at least one holder-discovery tool
      - target path is an absolute existing directory
    """

    def __init__(self, logger: logging.Logger, config: MaintenanceConfig):
        self.logger = logger
        self.config = config
        self.report = SanityReport()

    def check_root(self) -> None:
        if os.geteuid() != 0:
            self.report.add_error(ErrorKind.PERMISSION, "Root privileges required")

    def check_tools(self) -> None:
        missing = [t for t in REQUIRED_TOOLS if U.which(t) is None]
        self.report.missing_required.extend(missing)
        if missing:
            self.report.add_error(ErrorKind.TOOLS, f"Missing required tools: {', '.join(missing)}")

        missing_holder = [t for t in HOLDER_TOOLS if U.which(t) is None]
        self.report.missing_optional.extend(missing_holder)
        if len(missing_holder) == len(HOLDER_TOOLS):
            self.report.add_error(ErrorKind.TOOLS, f"Need one of: {', '.join(HOLDER_TOOLS)}")
        elif missing_holder:
            self.report.warnings.append(f"Missing optional tools: {', '.join(missing_holder)}")

    def check_target(self) -> None:
        p = Path(self.config.target)
        if not p.is_absolute():
            self.report.add_error(ErrorKind.BAD_ARGS, f"Target must be an absolute path: {p}")
        elif not p.is_dir():
            self.report.add_error(ErrorKind.BAD_ARGS, f"Target is not a directory: {p}")

    def run(self) -> SanityReport:
        self.check_target()
        self.check_root()
        self.check_tools()

        for w in self.report.warnings:
            self.logger.warning("⚠️  %s", w)
        for e in self.report.errors:
            self.logger.error("💥 Preflight: %s", e)
        if self.report.ok():
            self.logger.debug("Preflight passed")
        return self.report
