# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# mntkeeper/config/settings.py
from __future__ import annotations

import argparse
from dataclasses import dataclass
from typing import Any, Tuple

DEFAULT_TARGET = "/tmp"

# Declaration order doubles as dependency order: stop runs last-to-first.
DEFAULT_SERVICES: Tuple[str, ...] = (
    "nginx",
    "apache2",
    "php-fpm",
    "mysql",
    "redis",
    "postgresql",
    "mongod",
    "docker",
    "cassandra",
    "elasticsearch",
    "rabbitmq-server",
)
DEFAULT_CRITICAL_SERVICES: Tuple[str, ...] = ("nginx", "apache2", "mysql", "redis")

DEFAULT_MEMORY_FSTYPES: Tuple[str, ...] = ("tmpfs", "ramfs")
DEFAULT_FALLBACK_OPTIONS = "size=1G,nr_inodes=10k,mode=1777"

DEFAULT_LOG_DIR = "/var/log/tmp_maintenance"
DEFAULT_LOG_RETENTION_DAYS = 30


def _as_tuple(v: Any) -> Tuple[str, ...]:
    if v is None:
        return ()
    if isinstance(v, str):
        v = v.replace(",", " ").split()
    return tuple(str(x).strip() for x in v if str(x).strip())


@dataclass(frozen=True)
class MaintenanceConfig:
    """
    Everything a maintenance run reads its settings from. Built once from the
    merged CLI/YAML namespace and never modified.
    """
    target: str = DEFAULT_TARGET
    services: Tuple[str, ...] = DEFAULT_SERVICES
    critical_services: Tuple[str, ...] = DEFAULT_CRITICAL_SERVICES

    stop_timeout: float = 30.0
    start_timeout: float = 45.0
    start_settle: float = 2.0
    holder_grace: float = 5.0
    fsck_timeout: float = 1800.0
    mount_timeout: float = 60.0

    memory_fstypes: Tuple[str, ...] = DEFAULT_MEMORY_FSTYPES
    fallback_options: str = DEFAULT_FALLBACK_OPTIONS

    log_dir: str = DEFAULT_LOG_DIR
    log_retention_days: int = DEFAULT_LOG_RETENTION_DAYS
    report: bool = True

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "MaintenanceConfig":
        def get(name: str, default: Any) -> Any:
            v = getattr(args, name, None)
            return default if v is None or v == [] else v

        return cls(
            target=str(get("target", DEFAULT_TARGET)).rstrip("/") or "/",
            services=_as_tuple(get("services", DEFAULT_SERVICES)),
            critical_services=_as_tuple(get("critical_services", DEFAULT_CRITICAL_SERVICES)),
            stop_timeout=float(get("stop_timeout", 30.0)),
            start_timeout=float(get("start_timeout", 45.0)),
            start_settle=float(get("start_settle", 2.0)),
            holder_grace=float(get("holder_grace", 5.0)),
            fsck_timeout=float(get("fsck_timeout", 1800.0)),
            mount_timeout=float(get("mount_timeout", 60.0)),
            memory_fstypes=_as_tuple(get("memory_fstypes", DEFAULT_MEMORY_FSTYPES)),
            fallback_options=str(get("fallback_options", DEFAULT_FALLBACK_OPTIONS)),
            log_dir=str(get("log_dir", DEFAULT_LOG_DIR)),
            log_retention_days=int(get("log_retention_days", DEFAULT_LOG_RETENTION_DAYS)),
            report=bool(get("report", True)),
        )
