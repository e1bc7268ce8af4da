# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/fleetboot/observers/events.py

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import List, Dict, Any, Optional
from datetime import datetime, timezone
import uuid


# ---------------------------------------------------------------------
# Base context and helper
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class BaseEvent:
    ts: str           # ISO timestamp
    run_id: str       # correlates all events of one bootstrap run
    host: str         # hostname or SSH address

    def dict(self) -> Dict[str, Any]:
        return asdict(self)


def new_ctx(host: str, run_id: Optional[str] = None) -> Dict[str, Any]:
    return {
        "ts": datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z"),
        "run_id": run_id or str(uuid.uuid4()),
        "host": host,
    }


# ---------------------------------------------------------------------
# Bootstrap lifecycle
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class BootstrapStarted(BaseEvent):
    steps: List[str]

@dataclass(frozen=True)
class StepStarted(BaseEvent):
    step: str

@dataclass(frozen=True)
class StepSucceeded(BaseEvent):
    step: str
    duration_ms: int
    detail: Optional[str] = None

@dataclass(frozen=True)
class StepSkipped(BaseEvent):
    step: str
    reason: str

@dataclass(frozen=True)
class StepFailed(BaseEvent):
    step: str
    error: str
    fatal: bool

@dataclass(frozen=True)
class BootstrapSummary(BaseEvent):
    status: str       # "OK" | "FAILED"
    ok: int
    failed: int
    skipped: int
    failed_step: Optional[str] = None
