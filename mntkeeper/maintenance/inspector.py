# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# mntkeeper/maintenance/inspector.py
from __future__ import annotations

import logging
from typing import Any, Iterable

from ..core.exceptions import HostCommandError, wrap_abort
from ..core.utils import U
from .model import MountClass, MountDescriptor


def classify(descriptor: MountDescriptor, memory_fstypes: Iterable[str]) -> MountClass:
    """
    Pure classification of a mount descriptor. Rules are checked in order.
    """
    if not descriptor.device:
        return MountClass.STANDALONE_NOT_MOUNTED
    if descriptor.fstype in set(memory_fstypes):
        return MountClass.MEMORY_BACKED
    return MountClass.DISK_BACKED


class MountInspector:
    def __init__(self, logger: logging.Logger, mount_table: Any, memory_fstypes: Iterable[str]):
        self.logger = logger
        self.mount_table = mount_table
        self.memory_fstypes = tuple(memory_fstypes)

    def inspect(self, path: str) -> MountDescriptor:
        """
        Single live query of the mount table. The result goes stale the moment
        the mount is touched and is never re-read.
        """
        try:
            info = self.mount_table.resolve(path)
        except HostCommandError as e:
            raise wrap_abort(f"Cannot read mount table for {path}", e, path=path) from e

        if not info:
            return MountDescriptor(path=path, device=None)

        desc = MountDescriptor(
            path=path,
            device=info.get("device") or None,
            fstype=str(info.get("fstype") or ""),
            options=str(info.get("options") or ""),
            size_bytes=info.get("size"),
        )
        self.logger.info(
            "💽 %s mounted from %s as %s (%s) with options: %s",
            path, desc.device, desc.fstype, U.human_bytes(desc.size_bytes), desc.options,
        )
        return desc

    def classify(self, descriptor: MountDescriptor) -> MountClass:
        return classify(descriptor, self.memory_fstypes)
