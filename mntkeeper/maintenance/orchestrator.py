# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# mntkeeper/maintenance/orchestrator.py
from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, Optional

from ..config.settings import MaintenanceConfig
from ..core.audit import RunReport, prune_old_records
from ..core.exceptions import wrap_abort
from ..core.logger import Log
from ..core.logging_utils import log_step
from ..core.utils import U
from ..host import Host
from .busy_resolver import BusyResolver
from .fs_checker import FilesystemChecker
from .inspector import MountInspector
from .model import CheckStatus, MountClass, MountOutcome
from .recovery import ExitCode, InterruptFlag, RecoveryController, RunState
from .remounter import Remounter
from .service_control import ServiceController
from .snapshot import capture_snapshot
from .summary import print_summary


class MaintenanceRun:
    """
    One maintenance pass over a shared mount point:

        snapshot -> inspect -> stop -> release -> check -> remount -> restore

    Everything from `stop` on runs under the recovery controller, so services
    are restored on every exit path.
    """

    def __init__(
        self,
        logger: logging.Logger,
        config: MaintenanceConfig,
        host: Host,
        *,
        interrupt: Optional[InterruptFlag] = None,
        sleep: Callable[[float], None] = time.sleep,
        log_file: Optional[Path] = None,
    ):
        self.logger = logger
        self.config = config
        self.host = host
        self.interrupt = interrupt or InterruptFlag(logger)
        self.log_file = log_file

        self.services = ServiceController(
            logger,
            host.services,
            critical=config.critical_services,
            stop_timeout=config.stop_timeout,
            start_timeout=config.start_timeout,
            start_settle=config.start_settle,
            sleep=sleep,
        )
        self.inspector = MountInspector(logger, host.mount_table, config.memory_fstypes)
        self.resolver = BusyResolver(logger, host.mounter, host.holders, grace=config.holder_grace, sleep=sleep)
        self.checker = FilesystemChecker(logger, host.fsck)
        self.remounter = Remounter(logger, host.mounter, fallback_options=config.fallback_options)

        self.controller = RecoveryController(logger, self.services, self.interrupt)
        self.report = RunReport.start(config.target, log_file=log_file)

    def _phases(self) -> None:
        ctl = self.controller
        target = self.config.target

        ctl.enter(RunState.SNAPSHOTTING)
        with log_step(self.logger, "Recording service states"):
            snapshot = capture_snapshot(self.logger, self.host.services, self.config.services)
        ctl.set_snapshot(snapshot)
        self.report.snapshot = snapshot.to_dict()

        desc = self.inspector.inspect(target)
        klass = self.inspector.classify(desc)
        self.report.mount = desc.to_dict()
        self.report.classification = klass.value

        if klass is MountClass.STANDALONE_NOT_MOUNTED:
            self.logger.info("ℹ️  %s is not a separate mount point. Skipping fsck.", target)
            return
        if klass is MountClass.MEMORY_BACKED:
            self.logger.info("ℹ️  %s detected on %s. Skipping fsck.", desc.fstype, target)
            return

        if self.checker.plan(desc) is None:
            raise wrap_abort(
                f"No filesystem checker for {desc.fstype} on {desc.device}; not touching {target}",
                fstype=desc.fstype,
            )

        ctl.checkpoint()
        ctl.enter(RunState.STOPPING)
        with log_step(self.logger, "Stopping services"):
            self.services.stop_all(snapshot, cancel=self.interrupt.is_set)
        ctl.checkpoint()

        ctl.enter(RunState.REPAIRING)
        self.resolver.release(target)

        # The mount is down from here on. An interrupt skips the check but
        # the path is mounted again before it is honoured.
        if self.interrupt.is_set():
            Log.warn(self.logger, f"Interrupted with {target} unmounted; skipping fsck and remounting")
            self._remount(desc)
            ctl.checkpoint()

        outcome = self.checker.check(desc)
        self.report.check_outcome = str(outcome)
        if not outcome.proceed:
            raise wrap_abort(
                f"Filesystem check failed with code {outcome.code}; not remounting",
                device=desc.device,
            )
        if outcome.status is CheckStatus.REBOOT_RECOMMENDED:
            ctl.reboot_advised = True

        self._remount(desc)
        ctl.checkpoint()

    def _remount(self, desc) -> None:
        mounted = self.remounter.remount(desc)
        self.report.mount_outcome = mounted.value
        if mounted is MountOutcome.DEGRADED:
            self.controller.degraded = True

    def _finish_report(self) -> None:
        ctl = self.controller
        code = ctl.exit_code()
        self.report.status = ctl.outcome_label()
        self.report.exit_code = int(code)
        self.report.ended_ts = self.report.ended_ts or U.utc_iso()
        self.report.services = [r.to_dict() for r in ctl.results]
        self.report.failed_critical = list(ctl.tally.failed)
        if ctl.fatal is not None:
            self.report.error = str(ctl.fatal)
        elif ctl.interrupted or self.interrupt.is_set():
            self.report.error = f"interrupted by {self.interrupt.signal_name or 'signal'}"

        if not self.config.report or self.log_file is None:
            return
        path = self.log_file.with_suffix(".json")
        try:
            self.report.write(path)
            self.logger.debug("Run report written: %s", path)
        except OSError as e:
            self.logger.warning("Could not write run report %s: %s", path, e)

    def run(self) -> int:
        Log.banner(self.logger, f"Starting {self.config.target} maintenance")
        self.logger.info("Process ID: %s", self.report.pid)
        if self.log_file:
            self.logger.info("Log file: %s", self.log_file)

        with self.controller.supervise():
            self._phases()

        prune_old_records(self.logger, self.config.log_dir, ttl_days=self.config.log_retention_days)
        self._finish_report()
        print_summary(self.logger, self.controller, log_file=self.log_file)
        return int(self.controller.exit_code())


def run_maintenance(
    logger: logging.Logger,
    config: MaintenanceConfig,
    *,
    host: Optional[Host] = None,
    log_file: Optional[Path] = None,
) -> ExitCode:
    """
    Run maintenance against the local host with SIGINT/SIGTERM routed to the
    recovery controller.
    """
    host = host or Host.local(logger, fsck_timeout=config.fsck_timeout, mount_timeout=config.mount_timeout)
    interrupt = InterruptFlag(logger)
    with interrupt.installed():
        rc = MaintenanceRun(logger, config, host, interrupt=interrupt, log_file=log_file).run()
    return ExitCode(rc)
