# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# mntkeeper/host/processes.py
from __future__ import annotations

import logging
import os
import re
import signal
from typing import List, Set

from ..core.exceptions import HostCommandError
from ..core.utils import U

_PID_RE = re.compile(r"\d+")


def _pids_from(text: str) -> Set[int]:
    return {int(m) for m in _PID_RE.findall(text or "")}


class HolderFinder:
    """
    Finds and signals processes holding files open under a mount point.

    Holders come from `fuser -m` (whole filesystem) merged with `lsof -t +D`
    (directory walk). Either tool may be missing; the other still counts.
    """

    def __init__(self, logger: logging.Logger, *, timeout: float = 60.0):
        self.logger = logger
        self.timeout = timeout

    def _collect(self, cmd: List[str]) -> Set[int]:
        try:
            cp = U.run_host(self.logger, cmd, timeout=self.timeout)
        except HostCommandError as e:
            self.logger.warning("Holder scan %s unavailable: %s", cmd[0], e)
            return set()
        # Both tools exit 1 when nothing holds the path.
        if cp.returncode not in (0, 1):
            self.logger.warning("Holder scan %s failed (rc=%s)", cmd[0], cp.returncode)
            return set()
        # fuser writes pids on stdout and access letters on stderr.
        return _pids_from(cp.stdout)

    def list_holders(self, path: str) -> List[int]:
        pids = self._collect(["fuser", "-m", path]) | self._collect(["lsof", "-t", "+D", path])
        pids.discard(os.getpid())
        return sorted(pids)

    @staticmethod
    def exists(pid: int) -> bool:
        try:
            os.kill(pid, 0)
        except ProcessLookupError:
            return False
        except PermissionError:
            return True
        return True

    def signal(self, pid: int, sig: int = signal.SIGTERM) -> bool:
        """
        Send `sig` to `pid`. Returns False if the process was already gone.
        """
        if not self.exists(pid):
            return False
        try:
            os.kill(pid, sig)
        except ProcessLookupError:
            return False
        return True
