# SPDX-License-Identifier: LGPL-3.0-or-later
# mntkeeper/maintenance/__init__.py
"""
Maintenance run phases and the pipeline that drives them.
"""
from .orchestrator import MaintenanceRun, run_maintenance
from .recovery import ExitCode, InterruptFlag, RecoveryController, RunState

__all__ = [
    "ExitCode",
    "InterruptFlag",
    "MaintenanceRun",
    "RecoveryController",
    "RunState",
    "run_maintenance",
]
