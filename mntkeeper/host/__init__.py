# SPDX-License-Identifier: LGPL-3.0-or-later
# mntkeeper/host/__init__.py
"""
Thin adapters over OS facilities (systemctl, findmnt, mount, fuser/lsof, fsck).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from .fsck import FsckRunner
from .mounts import Mounter, MountTable
from .processes import HolderFinder
from .systemd import SystemdServiceManager


@dataclass
class Host:
    services: Any
    mount_table: Any
    mounter: Any
    holders: Any
    fsck: Any

    @classmethod
    def local(cls, logger: logging.Logger, *, fsck_timeout: float, mount_timeout: float) -> "Host":
        return cls(
            services=SystemdServiceManager(logger),
            mount_table=MountTable(logger),
            mounter=Mounter(logger, timeout=mount_timeout),
            holders=HolderFinder(logger),
            fsck=FsckRunner(logger, timeout=fsck_timeout),
        )


__all__ = ["Host", "FsckRunner", "Mounter", "MountTable", "HolderFinder", "SystemdServiceManager"]
