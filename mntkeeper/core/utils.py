# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# mntkeeper/core/utils.py
from __future__ import annotations

import datetime as _dt
import json
import logging
import re
import shlex
import subprocess
from pathlib import Path
from typing import Any, List, Optional

from .exceptions import Fatal, HostCommandError


class U:
    @staticmethod
    def die(logger: logging.Logger, msg: str, code: int = 1) -> None:
        logger.error(msg)
        raise Fatal(code, msg)

    @staticmethod
    def ensure_dir(p: Path) -> None:
        p.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def which(prog: str) -> Optional[str]:
        from shutil import which as _which
        return _which(prog)

    @staticmethod
    def now_ts() -> str:
        return _dt.datetime.now().strftime("%Y%m%d_%H%M%S")

    @staticmethod
    def utc_iso() -> str:
        return _dt.datetime.now(_dt.timezone.utc).replace(microsecond=0).isoformat()

    @staticmethod
    def json_dump(obj: Any) -> str:
        try:
            return json.dumps(obj, indent=2, sort_keys=True, default=str)
        except Exception:
            return repr(obj)

    @staticmethod
    def human_bytes(n: Optional[int]) -> str:
        if n is None:
            return "unknown"
        x = float(n)
        for unit in ["B", "KiB", "MiB", "GiB", "TiB", "PiB"]:
            if x < 1024 or unit == "PiB":
                return f"{x:.2f} {unit}" if unit != "B" else f"{int(x)} {unit}"
            x /= 1024
        return f"{n} B"

    @staticmethod
    def _pretty_cmd(cmd: List[str]) -> str:
        return " ".join(shlex.quote(x) for x in cmd)

    @staticmethod
    def run_cmd(
        logger: logging.Logger,
        cmd: List[str],
        *,
        check: bool = True,
        capture: bool = False,
        timeout: Optional[float] = None,
        new_session: bool = False,
        fatal: bool = False,
    ) -> subprocess.CompletedProcess:
        """
        Run a command, logging it at DEBUG.

        new_session=True puts the child in its own session so a Ctrl+C aimed
        at mntkeeper does not also kill an in-flight umount or fsck.
        fatal=True turns failures into Fatal; otherwise subprocess errors
        propagate unchanged.
        """
        pretty = U._pretty_cmd(cmd)
        logger.debug("Running: %s", pretty)
        try:
            return subprocess.run(
                cmd,
                check=check,
                capture_output=capture,
                text=True,
                timeout=timeout,
                start_new_session=new_session,
            )
        except subprocess.CalledProcessError as e:
            detail = "\n".join(s.strip() for s in (e.stdout or "", e.stderr or "") if s and s.strip())
            logger.error("Command failed (rc=%s): %s%s", e.returncode, pretty, f"\n{detail}" if detail else "")
            if fatal:
                raise Fatal(e.returncode or 1, f"Command failed: {pretty}") from e
            raise
        except subprocess.TimeoutExpired as e:
            logger.error("Command timed out after %ss: %s", timeout, pretty)
            if fatal:
                raise Fatal(124, f"Command timed out: {pretty}") from e
            raise
        except OSError as e:
            logger.error("Cannot run %s: %s", pretty, e)
            if fatal:
                raise Fatal(127, f"Cannot run {pretty}: {e}") from e
            raise

    @staticmethod
    def run_host(
        logger: logging.Logger,
        cmd: List[str],
        *,
        timeout: float,
    ) -> subprocess.CompletedProcess:
        """
        Bounded host command for the host adapters. Any exit status is
        returned to the caller; only a command that could not run to
        completion raises HostCommandError (124 timeout, 127 not runnable).
        """
        try:
            return U.run_cmd(logger, cmd, check=False, capture=True, timeout=timeout, new_session=True)
        except subprocess.TimeoutExpired as e:
            raise HostCommandError(
                code=124, msg=f"timed out after {timeout}s: {U._pretty_cmd(cmd)}", cause=e
            ) from e
        except OSError as e:
            raise HostCommandError(code=127, msg=f"cannot run {cmd[0]}: {e}", cause=e) from e

    _SIZE_RE = re.compile(r"^(\d+(?:\.\d+)?)\s*([KMGT]?)(?:I?B)?$", re.IGNORECASE)

    @staticmethod
    def human_to_bytes(s: str) -> int:
        """
        Parse the sizes tmpfs accepts and the usual spellings of them:
        "1024", "512k", "512M", "1G", "1GiB", "1GB". Binary units throughout.
        """
        m = U._SIZE_RE.match((s or "").strip())
        if not m:
            raise ValueError(f"unknown size: {s!r}")
        num, unit = m.groups()
        return int(float(num) * 1024 ** " KMGT".index(unit.upper() or " "))
