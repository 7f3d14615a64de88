# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# mntkeeper/maintenance/remounter.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Tuple

from ..core.exceptions import wrap_abort
from ..core.logger import Log
from .model import MountDescriptor, MountOutcome

BASE_OPTIONS: Tuple[str, ...] = ("defaults",)

PERFORMANCE_OPTIONS: Dict[str, Tuple[str, ...]] = {
    "ext4": ("data=writeback", "barrier=0"),
    "xfs": ("nobarrier",),
}

# Security-relevant: always carried over from the original mount.
SAFETY_FLAGS: Tuple[str, ...] = ("noexec", "nosuid", "nodev")


def build_mount_options(descriptor: MountDescriptor) -> str:
    opts: List[str] = list(BASE_OPTIONS)
    opts.extend(PERFORMANCE_OPTIONS.get(descriptor.fstype, ()))
    if (descriptor.device or "").startswith("/dev/loop"):
        opts.append("loop")
    original = descriptor.option_set
    opts.extend(f for f in SAFETY_FLAGS if f in original)
    return ",".join(opts)


class Remounter:
    def __init__(self, logger: logging.Logger, mounter: Any, *, fallback_options: str):
        self.logger = logger
        self.mounter = mounter
        self.fallback_options = fallback_options

    def remount(self, descriptor: MountDescriptor) -> MountOutcome:
        """
        Primary mount, then tmpfs fallback. A usable mount point beats the
        original filesystem, so the fallback is DEGRADED, not a failure.
        """
        path = descriptor.path
        opts = build_mount_options(descriptor)
        Log.step(self.logger, f"Remounting {path}", device=descriptor.device, fstype=descriptor.fstype, options=opts)

        outcome = MountOutcome.RESTORED
        if not self.mounter.mount(descriptor.device, descriptor.fstype, opts, path):
            Log.warn(self.logger, f"Mount of {descriptor.device} failed; trying tmpfs fallback", options=self.fallback_options)
            if not self.mounter.mount_fallback(path, self.fallback_options):
                raise wrap_abort(f"Cannot mount {path}. System may be unstable.", path=path)
            outcome = MountOutcome.DEGRADED
            Log.warn(self.logger, f"{path} is running on a tmpfs fallback (DEGRADED)")

        if not self.mounter.is_mountpoint(path):
            raise wrap_abort(f"Mount verification failed for {path}", path=path)

        Log.ok(self.logger, f"{path} is mounted", outcome=outcome.value)
        return outcome
