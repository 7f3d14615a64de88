# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# mntkeeper/maintenance/recovery.py
"""
Recovery controller: the guarantee that every service stopped by a run is
started again before the process exits, whatever path the run takes.

States:

    idle -> snapshotting -> stopping -> repairing -> restoring -> done

Interrupts and fatal errors jump straight to `restoring`. Restoration is
single-entry: a second abort while restoring or after `done` changes nothing.
"""
from __future__ import annotations

import logging
import signal
from contextlib import contextmanager
from enum import Enum, IntEnum
from typing import Dict, Generator, Iterable, List, Optional, Set

from ..core.exceptions import MaintenanceAbort
from ..core.logger import Log
from .model import FailureTally, RunSnapshot, ServiceResult
from .service_control import ServiceController


class RunState(str, Enum):
    IDLE = "idle"
    SNAPSHOTTING = "snapshotting"
    STOPPING = "stopping"
    REPAIRING = "repairing"
    RESTORING = "restoring"
    DONE = "done"


_TRANSITIONS: Dict[RunState, Set[RunState]] = {
    RunState.IDLE: {RunState.SNAPSHOTTING, RunState.RESTORING},
    RunState.SNAPSHOTTING: {RunState.STOPPING, RunState.RESTORING},
    RunState.STOPPING: {RunState.REPAIRING, RunState.RESTORING},
    RunState.REPAIRING: {RunState.RESTORING},
    RunState.RESTORING: {RunState.DONE},
    RunState.DONE: set(),
}


class ExitCode(IntEnum):
    OK = 0
    FATAL = 1
    SERVICES_FAILED = 3
    DEGRADED = 4
    REBOOT_ADVISED = 5
    INTERRUPTED = 130


class RunInterrupted(Exception):
    """Raised at a checkpoint once an interrupt signal has been received."""


class InterruptFlag:
    """
    Cancellation flag set from SIGINT/SIGTERM handlers. Nothing is preempted:
    the run looks at the flag at its checkpoints.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger
        self.signum: Optional[int] = None

    def is_set(self) -> bool:
        return self.signum is not None

    def set(self, signum: int = signal.SIGINT) -> None:
        first = self.signum is None
        if first:
            self.signum = signum
        if self.logger is not None:
            name = signal.Signals(signum).name
            if first:
                self.logger.warning("🛑 Received %s; services will be restored before exit", name)
            else:
                self.logger.warning("🛑 Received %s again; restoration is still in progress", name)

    @property
    def signal_name(self) -> Optional[str]:
        return signal.Signals(self.signum).name if self.signum is not None else None

    def _handler(self, signum: int, frame) -> None:
        self.set(signum)

    @contextmanager
    def installed(
        self, signals: Iterable[int] = (signal.SIGINT, signal.SIGTERM)
    ) -> Generator["InterruptFlag", None, None]:
        previous = {}
        for s in signals:
            previous[s] = signal.signal(s, self._handler)
        try:
            yield self
        finally:
            for s, h in previous.items():
                signal.signal(s, h)


class RecoveryController:
    def __init__(
        self,
        logger: logging.Logger,
        services: ServiceController,
        interrupt: Optional[InterruptFlag] = None,
    ):
        self.logger = logger
        self.services = services
        self.interrupt = interrupt or InterruptFlag(logger)

        self.state = RunState.IDLE
        self.snapshot: RunSnapshot = RunSnapshot.empty()
        self.tally = FailureTally()
        self.results: List[ServiceResult] = []

        self.fatal: Optional[BaseException] = None
        self.interrupted = False
        self.degraded = False
        self.reboot_advised = False

        self._snapshot_taken = False
        self._restore_entered = False

    # -----------------------
    # state machine
    # -----------------------

    def enter(self, state: RunState) -> None:
        if state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"invalid run state transition {self.state.value} -> {state.value}")
        Log.trace(self.logger, "Run state %s -> %s", self.state.value, state.value)
        self.state = state

    def set_snapshot(self, snapshot: RunSnapshot) -> None:
        if self._snapshot_taken:
            raise RuntimeError("run snapshot already captured")
        self.snapshot = snapshot
        self._snapshot_taken = True

    def checkpoint(self) -> None:
        if self.interrupt.is_set():
            raise RunInterrupted(self.interrupt.signal_name or "interrupt")

    # -----------------------
    # abort handling
    # -----------------------

    @contextmanager
    def supervise(self) -> Generator["RecoveryController", None, None]:
        """
        Wrap the run phases. Whatever happens inside, restoration runs once
        on the way out.
        """
        try:
            yield self
        except RunInterrupted as e:
            self.interrupted = True
            Log.warn(self.logger, f"Run interrupted ({e}) in state {self.state.value}; restoring services")
        except KeyboardInterrupt:
            self.interrupted = True
            Log.warn(self.logger, f"Run interrupted in state {self.state.value}; restoring services")
        except MaintenanceAbort as e:
            self.fatal = e
            Log.critical(self.logger, f"{e.user_message(include_context=True)}; restoring services", state=self.state.value)
        except Exception as e:
            self.fatal = e
            self.logger.critical(
                "🧨 Unexpected %s in state %s: %s; restoring services",
                type(e).__name__, self.state.value, e, exc_info=True,
            )
        finally:
            self.restore()

    def restore(self) -> List[ServiceResult]:
        if self._restore_entered:
            Log.trace(self.logger, "Restoration already ran; ignoring re-entry")
            return self.results
        self._restore_entered = True

        self.enter(RunState.RESTORING)
        Log.step(self.logger, "Restarting services", count=len(self.snapshot.active()))
        try:
            self.results = self.services.restore_all(self.snapshot, self.tally)
            self.logger.info("🔍 Verifying critical services")
            self.services.verify_critical(self.results, self.tally)
        finally:
            self.enter(RunState.DONE)
        return self.results

    # -----------------------
    # outcome
    # -----------------------

    def exit_code(self) -> ExitCode:
        if self.interrupted or self.interrupt.is_set():
            return ExitCode.INTERRUPTED
        if self.fatal is not None:
            return ExitCode.FATAL
        if self.tally.count:
            return ExitCode.SERVICES_FAILED
        if self.degraded:
            return ExitCode.DEGRADED
        if self.reboot_advised:
            return ExitCode.REBOOT_ADVISED
        return ExitCode.OK

    def outcome_label(self) -> str:
        return _OUTCOME_LABELS.get(self.exit_code(), "failure")


_OUTCOME_LABELS: Dict[ExitCode, str] = {
    ExitCode.OK: "success",
    ExitCode.DEGRADED: "degraded",
    ExitCode.REBOOT_ADVISED: "success (reboot recommended)",
    ExitCode.INTERRUPTED: "interrupted",
}
