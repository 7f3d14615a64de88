# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# mntkeeper/cli/help_texts.py
from __future__ import annotations

# NOTE:
# Pure help/documentation text used by argparse epilog rendering.
# Keep it copy/paste runnable.

YAML_EXAMPLE = r"""# mntkeeper configuration example (YAML)
#
# Run:
# sudo mntkeeper --config maintenance.yaml --yes
#
# Merge multiple configs (later overrides earlier, CLI flags override both):
# sudo mntkeeper --config base.yaml --config host-overrides.yaml
#
target: /tmp

# Declaration order is dependency order: stopped last-to-first,
# restarted first-to-last.
services: [nginx, apache2, php-fpm, mysql, redis, postgresql]
critical_services: [nginx, mysql]

stop_timeout: 30      # seconds per `systemctl stop`
start_timeout: 45     # seconds per `systemctl start`
start_settle: 2       # pause before checking a started unit
holder_grace: 5       # pause between SIGTERM to holders and the next unmount
fsck_timeout: 1800
mount_timeout: 60

memory_fstypes: [tmpfs, ramfs]
fallback_options: size=1G,nr_inodes=10k,mode=1777

log_dir: /var/log/tmp_maintenance
log_retention_days: 30
report: true          # JSON run report next to the audit log
assume_yes: false
"""

EXIT_CODES = r"""  0    maintenance completed
  1    fatal error (services were still restored)
  2    bad arguments
  3    one or more critical services failed to restart
  4    completed on the tmpfs fallback mount (degraded)
  5    completed, filesystem check recommends a reboot
  10   not running as root
  11   required host tools missing
  130  interrupted (services were restored)
"""
