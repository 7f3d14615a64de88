# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# mntkeeper/core/audit.py
"""
Audit trail for maintenance runs: the timestamped log path, a JSON run report
written next to it, and retention of old records.
"""
from __future__ import annotations

import json
import logging
import os
import socket
import tempfile
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .. import __version__
from .utils import U

RECORD_PREFIX = "mntkeeper_"


def audit_log_path(log_dir: str, ts: Optional[str] = None) -> Path:
    return Path(log_dir) / f"{RECORD_PREFIX}{ts or U.now_ts()}.log"


def _atomic_write_text(path: Path, text: str, *, encoding: str = "utf-8") -> None:
    """
    Crash-safer atomic write:
      - write to unique temp file in same directory
      - fsync file
      - atomic replace
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=path.name + ".", suffix=".tmp", dir=str(path.parent), text=True)
    try:
        with os.fdopen(fd, "w", encoding=encoding) as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        Path(tmp_name).replace(path)
    finally:
        Path(tmp_name).unlink(missing_ok=True)


@dataclass
class RunReport:
    run_id: str
    created_ts: str
    host: str
    pid: int
    target: str
    tool_version: str = __version__
    status: str = "running"  # running|success|degraded|failure|interrupted|...
    exit_code: Optional[int] = None
    ended_ts: Optional[str] = None
    log_file: Optional[str] = None
    snapshot: Dict[str, str] = field(default_factory=dict)
    mount: Optional[Dict[str, Any]] = None
    classification: Optional[str] = None
    check_outcome: Optional[str] = None
    mount_outcome: Optional[str] = None
    services: List[Dict[str, Any]] = field(default_factory=list)
    failed_critical: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def start(cls, target: str, *, log_file: Optional[Path] = None) -> "RunReport":
        ts = U.now_ts()
        return cls(
            run_id=f"{ts}-{os.getpid()}",
            created_ts=U.utc_iso(),
            host=socket.gethostname(),
            pid=os.getpid(),
            target=target,
            log_file=str(log_file) if log_file else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def write(self, path: Path) -> None:
        _atomic_write_text(path, json.dumps(self.to_dict(), indent=2, sort_keys=True) + "\n")


def prune_old_records(
    logger: logging.Logger,
    log_dir: str,
    *,
    ttl_days: int,
    now: Optional[float] = None,
) -> List[Path]:
    """
    Delete mntkeeper_*.log / mntkeeper_*.json records older than ttl_days
    (by mtime). Failures are logged and never raised. Returns removed paths.
    """
    if ttl_days <= 0:
        return []
    root = Path(log_dir)
    if not root.is_dir():
        return []

    cutoff = (now if now is not None else time.time()) - ttl_days * 86400
    removed: List[Path] = []
    for p in sorted(root.glob(RECORD_PREFIX + "*")):
        if p.suffix not in (".log", ".json") or not p.is_file():
            continue
        try:
            if p.stat().st_mtime >= cutoff:
                continue
            p.unlink()
        except OSError as e:
            logger.warning("Could not prune old record %s: %s", p, e)
            continue
        removed.append(p)
        logger.debug("Pruned old record: %s", p.name)
    if removed:
        logger.info("🧹 Pruned %d audit record(s) older than %d days", len(removed), ttl_days)
    return removed
