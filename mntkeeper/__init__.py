# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# mntkeeper/__init__.py
"""
mntkeeper - maintenance for shared mount points such as /tmp

Stops the services that use a mount point, checks and repairs the filesystem
behind it, remounts it (falling back to tmpfs if it will not come back) and
restores every service it stopped, including after Ctrl+C or a fatal error.

Usage as a library:

    from mntkeeper import MaintenanceConfig, run_maintenance
    from mntkeeper.core.logger import Log

    logger = Log.setup(verbose=1)
    rc = run_maintenance(logger, MaintenanceConfig(target="/tmp"))
"""

__version__ = "0.1.0"

from .config.settings import MaintenanceConfig
from .maintenance import ExitCode, MaintenanceRun, run_maintenance

__all__ = ["__version__", "ExitCode", "MaintenanceConfig", "MaintenanceRun", "run_maintenance"]
