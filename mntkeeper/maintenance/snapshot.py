# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# mntkeeper/maintenance/snapshot.py
from __future__ import annotations

import logging
from typing import Any, List, Sequence, Tuple

from ..core.exceptions import HostCommandError
from ..core.logger import Log
from .model import RunSnapshot, ServiceState


def query_state(logger: logging.Logger, services: Any, name: str) -> ServiceState:
    """
    Enablement first, then activity. A service we cannot positively confirm as
    active is never acted on, so query errors fall back to DISABLED.
    """
    try:
        if not services.is_enabled(name):
            return ServiceState.DISABLED
        if services.is_active(name):
            return ServiceState.ACTIVE
        return ServiceState.INACTIVE
    except HostCommandError as e:
        Log.warn(logger, f"Cannot query state of {name}; treating as disabled", error=str(e))
        return ServiceState.DISABLED


def capture_snapshot(logger: logging.Logger, services: Any, names: Sequence[str]) -> RunSnapshot:
    entries: List[Tuple[str, ServiceState]] = []
    for name in names:
        state = query_state(logger, services, name)
        if state is ServiceState.ACTIVE:
            logger.info("📋 %s: ACTIVE (enabled)", name)
        elif state is ServiceState.INACTIVE:
            logger.info("📋 %s: INACTIVE (enabled)", name)
        else:
            logger.info("📋 %s: DISABLED", name)
        entries.append((name, state))
    snap = RunSnapshot(entries)
    Log.trace(logger, "Snapshot captured: %r", snap)
    return snap
