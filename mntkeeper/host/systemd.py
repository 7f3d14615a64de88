# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# mntkeeper/host/systemd.py
from __future__ import annotations

import logging

from ..core.exceptions import HostCommandError
from ..core.utils import U


class SystemdServiceManager:
    """
    Service control through systemctl.

    Query methods raise HostCommandError when systemctl itself cannot be run.
    Mutations return True/False and never raise for a nonzero exit status.
    A graceful stop/start that runs past its timeout is reported as False.
    The systemctl client is killed at the timeout; the systemd job it queued
    keeps running inside the service manager.
    """

    QUERY_TIMEOUT_S = 10.0

    def __init__(self, logger: logging.Logger, *, systemctl: str = "systemctl"):
        self.logger = logger
        self.systemctl = systemctl

    def _query(self, *argv: str) -> bool:
        cp = U.run_host(self.logger, [self.systemctl, *argv], timeout=self.QUERY_TIMEOUT_S)
        return cp.returncode == 0

    def _apply(self, *argv: str, timeout: float) -> bool:
        try:
            cp = U.run_host(self.logger, [self.systemctl, *argv], timeout=timeout)
        except HostCommandError as e:
            self.logger.warning("systemctl %s: %s", " ".join(argv), e)
            return False
        if cp.returncode != 0:
            err = (cp.stderr or cp.stdout or "").strip()
            self.logger.debug("systemctl %s -> rc=%s %s", " ".join(argv), cp.returncode, err)
        return cp.returncode == 0

    # queries

    def is_enabled(self, name: str) -> bool:
        # rc 0 covers enabled, enabled-runtime, static, indirect, generated, alias.
        return self._query("is-enabled", "--quiet", name)

    def is_active(self, name: str) -> bool:
        return self._query("is-active", "--quiet", name)

    # mutations

    def stop(self, name: str, timeout: float) -> bool:
        return self._apply("stop", name, timeout=timeout)

    def force_stop(self, name: str) -> bool:
        return self._apply("kill", "--signal=SIGKILL", name, timeout=self.QUERY_TIMEOUT_S)

    def start(self, name: str, timeout: float) -> bool:
        return self._apply("start", name, timeout=timeout)

    def clear_failed(self, name: str) -> bool:
        return self._apply("reset-failed", name, timeout=self.QUERY_TIMEOUT_S)
