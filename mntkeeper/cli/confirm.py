# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# mntkeeper/cli/confirm.py
from __future__ import annotations

import logging
import sys
from typing import Callable, Optional, Sequence, TextIO

from ..core.utils import U


def confirm_run(
    logger: logging.Logger,
    target: str,
    services: Sequence[str],
    *,
    assume_yes: bool = False,
    stdin: Optional[TextIO] = None,
    ask: Callable[[str], str] = input,
) -> None:
    """
    Ask before stopping services. Raises Fatal(2) on a refusal or when there
    is no terminal to ask on and --yes was not given.
    """
    if assume_yes:
        logger.debug("Confirmation skipped (--yes)")
        return

    stream = stdin if stdin is not None else sys.stdin
    if not stream.isatty():
        U.die(logger, "stdin is not a terminal; pass --yes to run non-interactively", 2)

    logger.warning("⚠️  This will stop services using %s: %s", target, " ".join(services))
    try:
        answer = ask("Continue? (y/N) ")
    except EOFError:
        answer = ""
    if answer.strip().lower() not in ("y", "yes"):
        U.die(logger, "Aborted by user", 2)
