# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations
import logging
from .events import BaseEvent, BootstrapSummary, StepFailed


class LoggerObserver:
    """
    Mirrors events into the boot log. Step chatter goes to DEBUG (the steps
    already log their own progress); failures and the summary are promoted.
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def notify(self, event: BaseEvent) -> None:
        d = event.dict()
        etype = event.__class__.__name__
        msg = ", ".join(f"{k}={v}" for k, v in d.items() if k not in ("ts", "run_id"))

        if isinstance(event, StepFailed):
            level = logging.ERROR if event.fatal else logging.WARNING
        elif isinstance(event, BootstrapSummary):
            level = logging.INFO
        else:
            level = logging.DEBUG
        self.logger.log(level, f"[EVENT] {etype}: {msg}")
