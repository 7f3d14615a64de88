# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# mntkeeper/maintenance/service_control.py
"""
Stopping and restoring services recorded active in the run snapshot.

Stop and start deliberately differ: stops get a shorter budget and escalate to
SIGKILL, starts get a longer budget and one retry after reset-failed.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Iterable, List, Optional

from ..core.exceptions import HostCommandError
from ..core.logger import Log
from .model import FailureTally, RunSnapshot, ServiceResult

CancelFn = Callable[[], bool]


class ServiceController:
    def __init__(
        self,
        logger: logging.Logger,
        services: Any,
        *,
        critical: Iterable[str] = (),
        stop_timeout: float = 30.0,
        start_timeout: float = 45.0,
        start_settle: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.logger = logger
        self.services = services
        self.critical = frozenset(critical)
        self.stop_timeout = float(stop_timeout)
        self.start_timeout = float(start_timeout)
        self.start_settle = float(start_settle)
        self.sleep = sleep

    # -----------------------
    # stop
    # -----------------------

    def stop_one(self, name: str) -> bool:
        log = Log.bind(self.logger, service=name)
        log.info("🛑 Stopping %s (timeout=%ss)", name, self.stop_timeout)
        if self.services.stop(name, self.stop_timeout):
            return True

        log.warning("⚠️  Graceful stop of %s failed or timed out; sending SIGKILL", name)
        if self.services.force_stop(name):
            return True

        # Still owed a restart: the snapshot keeps it active.
        log.warning("⚠️  Could not stop %s; continuing", name)
        return False

    def stop_all(self, snapshot: RunSnapshot, *, cancel: Optional[CancelFn] = None) -> List[str]:
        """
        Stop active services last-configured first. Returns the services
        whose stop was attempted. Stops early when `cancel()` turns true.
        """
        attempted: List[str] = []
        for name in reversed(snapshot.active()):
            if cancel is not None and cancel():
                Log.warn(self.logger, "Interrupted while stopping services", remaining=name)
                break
            attempted.append(name)
            self.stop_one(name)
        return attempted

    # -----------------------
    # start
    # -----------------------

    def _live_active(self, name: str) -> bool:
        try:
            return bool(self.services.is_active(name))
        except HostCommandError as e:
            self.logger.error("Cannot verify %s: %s", name, e)
            return False

    def start_one(self, name: str) -> ServiceResult:
        result = ServiceResult(name=name, critical=name in self.critical)
        log = Log.bind(self.logger, service=name)

        log.info("▶️  Starting %s (timeout=%ss)", name, self.start_timeout)
        result.start_attempts = 1
        started = self.services.start(name, self.start_timeout)

        if not started:
            log.warning("⚠️  Start of %s failed; clearing failed state and retrying", name)
            if not self.services.clear_failed(name):
                log.warning("⚠️  reset-failed for %s did not succeed", name)
            result.start_attempts = 2
            started = self.services.start(name, self.start_timeout)
            if not started:
                log.error("💥 Failed to start %s", name)
                result.error = "start failed"

        self.sleep(self.start_settle)

        result.running = self._live_active(name)
        if result.running:
            log.info("✅ %s is running", name)
        else:
            result.error = result.error or "not active after start"
            log.warning("⚠️  %s failed to reach active state", name)
        return result

    def restore_all(self, snapshot: RunSnapshot, tally: FailureTally) -> List[ServiceResult]:
        """
        Start active services in configured order. Never cut short: every
        service the snapshot marked active gets its start attempt.
        """
        results: List[ServiceResult] = []
        for name in snapshot.active():
            res = self.start_one(name)
            results.append(res)
            if not res.running and res.critical:
                tally.record(name)
                Log.critical(self.logger, f"Critical service {name} is not running", service=name)
        return results

    def verify_critical(self, results: List[ServiceResult], tally: FailureTally) -> List[str]:
        """
        Re-check critical services the restorer saw running. Any that has died
        since is counted; ones already counted are not counted again.
        """
        died: List[str] = []
        for res in results:
            if not res.critical or not res.running:
                continue
            if not self._live_active(res.name):
                res.running = False
                res.error = "stopped after restore"
                if tally.record(res.name):
                    died.append(res.name)
                    Log.critical(self.logger, f"{res.name} is not running!", service=res.name)
        return died
