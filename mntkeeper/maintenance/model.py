# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# mntkeeper/maintenance/model.py
"""
Data model shared by the maintenance phases.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple


class ServiceState(str, Enum):
    DISABLED = "disabled"
    INACTIVE = "inactive"
    ACTIVE = "active"


class RunSnapshot:
    """
    Ordered, read-only record of each configured service's state at the start
    of a run. It is the only input deciding which services get stopped and
    restored; live status is never consulted for that.
    """

    __slots__ = ("_order", "_states")

    def __init__(self, entries: Sequence[Tuple[str, ServiceState]]):
        order: List[str] = []
        states: Dict[str, ServiceState] = {}
        for name, state in entries:
            if name in states:
                continue
            order.append(name)
            states[name] = ServiceState(state)
        self._order: Tuple[str, ...] = tuple(order)
        self._states: Mapping[str, ServiceState] = MappingProxyType(states)

    @classmethod
    def empty(cls) -> "RunSnapshot":
        return cls(())

    def __setattr__(self, name: str, value: Any) -> None:
        if hasattr(self, name):
            raise AttributeError("RunSnapshot is immutable")
        object.__setattr__(self, name, value)

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self) -> Iterator[str]:
        return iter(self._order)

    def __contains__(self, name: object) -> bool:
        return name in self._states

    def __getitem__(self, name: str) -> ServiceState:
        return self._states[name]

    def __repr__(self) -> str:
        body = ", ".join(f"{n}={self._states[n].value}" for n in self._order)
        return f"RunSnapshot({body})"

    @property
    def order(self) -> Tuple[str, ...]:
        return self._order

    def items(self) -> List[Tuple[str, ServiceState]]:
        return [(n, self._states[n]) for n in self._order]

    def active(self) -> List[str]:
        """Services recorded active, in configured order."""
        return [n for n in self._order if self._states[n] is ServiceState.ACTIVE]

    def to_dict(self) -> Dict[str, str]:
        return {n: self._states[n].value for n in self._order}


class MountClass(str, Enum):
    STANDALONE_NOT_MOUNTED = "standalone-not-mounted"
    MEMORY_BACKED = "memory-backed"
    DISK_BACKED = "disk-backed"


@dataclass(frozen=True)
class MountDescriptor:
    path: str
    device: Optional[str]
    fstype: str = ""
    options: str = ""
    size_bytes: Optional[int] = None

    @property
    def option_set(self) -> frozenset:
        return frozenset(o.strip() for o in self.options.split(",") if o.strip())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "device": self.device,
            "fstype": self.fstype,
            "options": self.options,
            "size_bytes": self.size_bytes,
        }


class CheckStatus(str, Enum):
    CLEAN = "clean"
    REPAIRED = "repaired"
    REBOOT_RECOMMENDED = "reboot-recommended"
    CRITICAL_FAILURE = "critical-failure"


@dataclass(frozen=True)
class CheckOutcome:
    status: CheckStatus
    code: Optional[int] = None

    @property
    def proceed(self) -> bool:
        return self.status is not CheckStatus.CRITICAL_FAILURE

    def __str__(self) -> str:
        if self.status is CheckStatus.CRITICAL_FAILURE:
            return f"{self.status.value}({self.code})"
        return self.status.value


class MountOutcome(str, Enum):
    RESTORED = "restored"
    DEGRADED = "degraded"


@dataclass
class FailureTally:
    """
    Critical services that did not come back. Only the restoration and final
    verification phases touch it, and each service is counted once.
    """
    failed: List[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.failed)

    def record(self, service: str) -> bool:
        if service in self.failed:
            return False
        self.failed.append(service)
        return True


@dataclass
class ServiceResult:
    name: str
    critical: bool
    start_attempts: int = 0
    running: bool = False
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "critical": self.critical,
            "start_attempts": self.start_attempts,
            "running": self.running,
            "error": self.error,
        }
