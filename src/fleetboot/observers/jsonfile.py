# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations
import json
import os
from pathlib import Path
from .events import BaseEvent


class JsonFileObserver:
    """
    Appends one JSON object per event. Each line is fsynced: a host that
    hangs or is terminated mid-boot still leaves a readable trail.
    """

    def __init__(self, path: str | Path, *, fsync: bool = True):
        self.path = Path(path)
        self.fsync = fsync
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def notify(self, event: BaseEvent) -> None:
        record = {"event": event.__class__.__name__, **event.dict()}
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(record, sort_keys=True) + "\n")
            if self.fsync:
                f.flush()
                os.fsync(f.fileno())
