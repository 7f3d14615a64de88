# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# mntkeeper/host/mounts.py
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from ..core.exceptions import HostCommandError
from ..core.utils import U


def _parse_findmnt_json(text: str) -> Optional[Dict[str, Any]]:
    """
    Pick the first filesystem entry out of `findmnt -J` output.
    """
    try:
        data = json.loads(text or "{}")
    except json.JSONDecodeError:
        return None
    fss = data.get("filesystems") if isinstance(data, dict) else None
    if not fss or not isinstance(fss, list) or not isinstance(fss[0], dict):
        return None
    return fss[0]


class MountTable:
    """
    Read-only view of the live mount table (findmnt).
    """

    def __init__(self, logger: logging.Logger, *, timeout: float = 10.0):
        self.logger = logger
        self.timeout = timeout

    def resolve(self, path: str) -> Optional[Dict[str, Any]]:
        """
        Return {"device", "fstype", "options", "size"} for the filesystem mounted
        exactly at `path`, or None when `path` is not a separate mount.
        """
        cp = U.run_host(
            self.logger,
            ["findmnt", "-n", "-J", "-b", "-o", "SOURCE,FSTYPE,OPTIONS,SIZE", "--mountpoint", path],
            timeout=self.timeout,
        )
        if cp.returncode != 0:
            # findmnt exits 1 when nothing is mounted there.
            self.logger.debug("findmnt %s -> rc=%s", path, cp.returncode)
            return None

        entry = _parse_findmnt_json(cp.stdout)
        if entry is None:
            self.logger.warning("Unparseable findmnt output for %s", path)
            return None

        size = entry.get("size")
        try:
            size_bytes: Optional[int] = int(size) if size not in (None, "") else None
        except (TypeError, ValueError):
            size_bytes = None

        return {
            "device": entry.get("source") or None,
            "fstype": entry.get("fstype") or "",
            "options": entry.get("options") or "",
            "size": size_bytes,
        }


class Mounter:
    """
    mount/umount/mountpoint wrappers. Every call is bounded and returns a bool.
    """

    def __init__(self, logger: logging.Logger, *, timeout: float = 60.0):
        self.logger = logger
        self.timeout = timeout

    def _ok(self, cmd: list) -> bool:
        try:
            cp = U.run_host(self.logger, cmd, timeout=self.timeout)
        except HostCommandError as e:
            self.logger.error("%s: %s", cmd[0], e)
            return False
        if cp.returncode != 0:
            err = (cp.stderr or cp.stdout or "").strip()
            self.logger.warning("%s failed (rc=%s): %s", U._pretty_cmd(cmd), cp.returncode, err or "no output")
        return cp.returncode == 0

    def unmount(self, path: str, *, force: bool = False) -> bool:
        cmd = ["umount"]
        if force:
            cmd.append("-f")
        cmd.append(path)
        return self._ok(cmd)

    def mount(self, device: str, fstype: str, options: str, path: str) -> bool:
        return self._ok(["mount", "-t", fstype, "-o", options, device, path])

    def mount_fallback(self, path: str, options: str) -> bool:
        return self._ok(["mount", "-t", "tmpfs", "-o", options, "tmpfs", path])

    def is_mountpoint(self, path: str) -> bool:
        try:
            cp = U.run_host(self.logger, ["mountpoint", "-q", path], timeout=self.timeout)
        except HostCommandError as e:
            self.logger.error("mountpoint: %s", e)
            return False
        return cp.returncode == 0
