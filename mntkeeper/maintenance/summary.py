# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# mntkeeper/maintenance/summary.py
from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from .model import ServiceResult
from .recovery import ExitCode, RecoveryController


def _is_tty() -> bool:
    try:
        return sys.stderr.isatty()
    except Exception:
        return False


def services_table(results: List[ServiceResult]) -> Table:
    table = Table(title="Service restoration", expand=False)
    table.add_column("Service")
    table.add_column("Critical", justify="center")
    table.add_column("Attempts", justify="right")
    table.add_column("State")
    for r in results:
        state = "[green]running[/green]" if r.running else f"[red]{r.error or 'not running'}[/red]"
        table.add_row(r.name, "yes" if r.critical else "", str(r.start_attempts), state)
    return table


def print_summary(
    logger: logging.Logger,
    controller: RecoveryController,
    *,
    log_file: Optional[Path],
    console: Optional[Console] = None,
) -> None:
    """
    Final summary: a rich table on a TTY plus one summary line that always
    lands in the audit log.
    """
    if controller.results and (console is not None or _is_tty()):
        (console or Console(stderr=True)).print(services_table(controller.results))

    code = controller.exit_code()
    label = controller.outcome_label()
    where = f" Log: {log_file}" if log_file else ""

    if code is ExitCode.OK:
        logger.info("==== Maintenance completed successfully ====%s", where)
    elif code is ExitCode.REBOOT_ADVISED:
        logger.warning("==== Maintenance completed; reboot recommended ====%s", where)
    elif code is ExitCode.DEGRADED:
        logger.warning("==== Maintenance completed DEGRADED (tmpfs fallback in use) ====%s", where)
    else:
        logger.error("==== Maintenance finished: %s (exit %d) ====%s", label.upper(), int(code), where)
        if controller.tally.count:
            logger.error(
                "[FAILURES] %d critical service(s) failed to restart: %s",
                controller.tally.count, ", ".join(controller.tally.failed),
            )
            logger.error("Check: systemctl --failed, journalctl -xe")
