# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# mntkeeper/maintenance/fs_checker.py
"""
Filesystem check/repair with per-family exit-code interpretation.

Check tools do not agree on what their exit codes mean, so every family
carries its own table. Anything a table does not list is a critical failure.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..core.logger import Log
from .model import CheckOutcome, CheckStatus, MountDescriptor


@dataclass(frozen=True)
class FsckFamily:
    name: str
    fstypes: Tuple[str, ...]
    argv: Callable[[str, str], List[str]]
    codes: Dict[int, CheckStatus]


# e2fsck: 1 = corrected, 2 = corrected + reboot, 3 = both bits.
EXT = FsckFamily(
    name="ext",
    fstypes=("ext2", "ext3", "ext4"),
    argv=lambda dev, fstype: ["e2fsck", "-f", "-y", dev],
    codes={
        0: CheckStatus.CLEAN,
        1: CheckStatus.REPAIRED,
        2: CheckStatus.REBOOT_RECOMMENDED,
        3: CheckStatus.REBOOT_RECOMMENDED,
    },
)

# xfs_repair repairs in place and exits 0; 1 and 2 (dirty log) need a human.
XFS = FsckFamily(
    name="xfs",
    fstypes=("xfs",),
    argv=lambda dev, fstype: ["xfs_repair", dev],
    codes={0: CheckStatus.CLEAN},
)

FAT = FsckFamily(
    name="fat",
    fstypes=("vfat", "fat", "msdos"),
    argv=lambda dev, fstype: ["fsck.fat", "-a", dev],
    codes={0: CheckStatus.CLEAN, 1: CheckStatus.REPAIRED},
)

# fsck(8) wrapper; combined bit codes are not trusted for unknown checkers.
GENERIC = FsckFamily(
    name="generic",
    fstypes=(),
    argv=lambda dev, fstype: ["fsck", "-T", "-y"] + (["-t", fstype] if fstype else []) + [dev],
    codes={
        0: CheckStatus.CLEAN,
        1: CheckStatus.REPAIRED,
        2: CheckStatus.REBOOT_RECOMMENDED,
    },
)

FAMILIES: Tuple[FsckFamily, ...] = (EXT, XFS, FAT)


def family_for(fstype: str) -> FsckFamily:
    for fam in FAMILIES:
        if fstype in fam.fstypes:
            return fam
    return GENERIC


def interpret(family: FsckFamily, code: Any) -> CheckOutcome:
    if code is None:
        return CheckOutcome(CheckStatus.CRITICAL_FAILURE, None)
    status = family.codes.get(int(code))
    if status is None:
        return CheckOutcome(CheckStatus.CRITICAL_FAILURE, int(code))
    return CheckOutcome(status, int(code))


class FilesystemChecker:
    def __init__(self, logger: logging.Logger, fsck: Any):
        self.logger = logger
        self.fsck = fsck

    def plan(self, descriptor: MountDescriptor) -> Optional[Tuple[FsckFamily, List[str]]]:
        """
        Family and command line for `descriptor`, or None when the family's
        checker is not installed. Asked before any service is stopped.
        """
        if not descriptor.device:
            raise ValueError(f"no backing device for {descriptor.path}")
        fam = family_for(descriptor.fstype)
        argv = fam.argv(descriptor.device, descriptor.fstype)
        if not self.fsck.available(argv[0]):
            self.logger.error("%s checker %s not found in PATH", fam.name, argv[0])
            return None
        return fam, argv

    def check(self, descriptor: MountDescriptor) -> CheckOutcome:
        planned = self.plan(descriptor)
        if planned is None:
            return CheckOutcome(CheckStatus.CRITICAL_FAILURE, None)
        fam, argv = planned
        Log.step(self.logger, f"Running filesystem check on {descriptor.device}", family=fam.name)

        outcome = interpret(fam, self.fsck.check_and_repair(argv))

        if outcome.status is CheckStatus.CLEAN:
            Log.ok(self.logger, "Filesystem clean")
        elif outcome.status is CheckStatus.REPAIRED:
            Log.ok(self.logger, "Filesystem errors corrected")
        elif outcome.status is CheckStatus.REBOOT_RECOMMENDED:
            Log.warn(self.logger, "Filesystem repaired; REBOOT RECOMMENDED", device=descriptor.device)
        else:
            Log.critical(
                self.logger,
                f"Filesystem check critical error ({outcome.code}) on {descriptor.device}",
                family=fam.name,
            )
        return outcome
