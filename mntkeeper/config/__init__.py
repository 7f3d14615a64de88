# SPDX-License-Identifier: LGPL-3.0-or-later
# mntkeeper/config/__init__.py
from .config_loader import Config
from .settings import MaintenanceConfig

__all__ = ["Config", "MaintenanceConfig"]
