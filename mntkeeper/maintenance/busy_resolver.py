# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# mntkeeper/maintenance/busy_resolver.py
from __future__ import annotations

import logging
import signal
import time
from typing import Any, Callable, List

from ..core.exceptions import HostCommandError, wrap_abort
from ..core.logger import Log


class BusyResolver:
    """
    Gets a mount point released.

    A plain unmount first. If that fails the path is busy: terminate the
    holders, wait out the grace interval, unmount again, then force. If even
    the forced unmount fails the run cannot check a device still in use and
    aborts.
    """

    def __init__(
        self,
        logger: logging.Logger,
        mounter: Any,
        holders: Any,
        *,
        grace: float = 5.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.logger = logger
        self.mounter = mounter
        self.holders = holders
        self.grace = float(grace)
        self.sleep = sleep

    def _list_holders(self, path: str) -> List[int]:
        try:
            pids = list(self.holders.list_holders(path))
        except (HostCommandError, OSError) as e:
            Log.warn(self.logger, f"Cannot enumerate processes using {path}", error=str(e))
            return []
        if pids:
            self.logger.info("🔎 Processes holding %s: %s", path, " ".join(str(p) for p in pids))
        else:
            self.logger.info("🔎 No holder processes found for %s", path)
        return pids

    def terminate_holders(self, path: str) -> List[int]:
        """
        SIGTERM every holder still alive at the moment it is signalled.
        Returns the pids actually signalled.
        """
        signalled: List[int] = []
        for pid in self._list_holders(path):
            try:
                sent = self.holders.signal(pid, signal.SIGTERM)
            except OSError as e:
                Log.warn(self.logger, f"Cannot signal holder {pid}", error=str(e))
                continue
            if sent:
                signalled.append(pid)
                Log.trace(self.logger, "SIGTERM -> %s", pid)
            else:
                self.logger.debug("Holder %s already exited", pid)
        return signalled

    def release(self, path: str) -> None:
        Log.step(self.logger, f"Unmounting {path}")
        if self.mounter.unmount(path):
            Log.ok(self.logger, f"{path} unmounted")
            return

        Log.warn(self.logger, f"Normal unmount of {path} failed; resolving busy mount")
        signalled = self.terminate_holders(path)
        self.logger.info("⏳ Waiting %ss for %d terminated process(es) to exit", self.grace, len(signalled))
        self.sleep(self.grace)

        if self.mounter.unmount(path):
            Log.ok(self.logger, f"{path} unmounted after terminating holders")
            return

        Log.warn(self.logger, f"Final attempt: forced unmount of {path}")
        if self.mounter.unmount(path, force=True):
            Log.ok(self.logger, f"{path} force-unmounted")
            return

        raise wrap_abort(f"Cannot unmount {path}. Reboot might be required.", path=path)
