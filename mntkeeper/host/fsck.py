# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# mntkeeper/host/fsck.py
from __future__ import annotations

import logging
from typing import List, Optional

from ..core.exceptions import HostCommandError
from ..core.utils import U


class FsckRunner:
    """
    Runs a filesystem check/repair command and hands back its exit status.

    The command line is built by the caller (it is filesystem-family specific).
    Returns None when the tool could not run to completion (missing, timeout).
    """

    def __init__(self, logger: logging.Logger, *, timeout: float = 1800.0):
        self.logger = logger
        self.timeout = timeout

    def available(self, tool: str) -> bool:
        return U.which(tool) is not None

    def check_and_repair(self, argv: List[str]) -> Optional[int]:
        try:
            cp = U.run_host(self.logger, argv, timeout=self.timeout)
        except HostCommandError as e:
            self.logger.error("Filesystem check did not complete: %s", e)
            return None
        for line in (cp.stdout or "").splitlines():
            if line.strip():
                self.logger.info("  %s", line.rstrip())
        for line in (cp.stderr or "").splitlines():
            if line.strip():
                self.logger.warning("  %s", line.rstrip())
        return cp.returncode
