# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from fleetboot.config.models import BootstrapConfig
from fleetboot.host.interface import HostControl
from fleetboot.observers.dispatcher import EventBus, Observer
from fleetboot.observers.events import (
    new_ctx,
    BootstrapStarted,
    StepStarted,
    StepSucceeded,
    StepSkipped,
    StepFailed,
    BootstrapSummary,
)
from .agent import start_agent, write_agent_config
from .cleanup import install_cleanup
from .errors import BootstrapError
from .runtime import start_runtime, write_daemon_config
from .services import ServiceManager
from .storage import ensure_filesystem, mount_device, persist_mount, wait_for_device

log = logging.getLogger("fleetboot")

StepAction = Callable[[HostControl, BootstrapConfig], Optional[str]]


@dataclass(frozen=True)
class Step:
    name: str
    action: StepAction
    fatal: bool = True                                          # False: failure is logged, sequence continues
    skip_if: Optional[Callable[[BootstrapConfig], Optional[str]]] = None   # returns a skip reason


@dataclass
class StepOutcome:
    name: str
    status: str                 # "OK" | "FAILED" | "SKIPPED"
    detail: Optional[str] = None
    error: Optional[str] = None
    duration_ms: int = 0


@dataclass
class BootstrapReport:
    outcomes: List[StepOutcome] = field(default_factory=list)
    failed_step: Optional[str] = None      # first fatal failure; the sequence stopped there

    def add(self, outcome: StepOutcome) -> None:
        self.outcomes.append(outcome)

    @property
    def ok(self) -> bool:
        return self.failed_step is None

    def count(self, status: str) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    def summary(self) -> str:
        return f"OK={self.count('OK')} FAILED={self.count('FAILED')} SKIPPED={self.count('SKIPPED')}"


# ---------------------------------------------------------------------
# Steps, in the only order they may run
# ---------------------------------------------------------------------

def _write_agent_config(host: HostControl, cfg: BootstrapConfig) -> str:
    write_agent_config(host, cfg.agent, cfg.cluster_name, cfg.region)
    return cfg.agent.config_path


def _quiesce(host: HostControl, cfg: BootstrapConfig) -> str:
    # before storage is touched, so the runtime cannot initialise its default data dir on the root disk
    services = ServiceManager(host)
    units = [cfg.runtime.socket, cfg.runtime.service, cfg.agent.service]
    for unit in units:
        services.quiesce(unit)
    return "stopped " + ", ".join(units)


def _prepare_storage(host: HostControl, cfg: BootstrapConfig) -> str:
    wait_for_device(host, cfg.storage, interval=cfg.poll_interval)
    formatted = ensure_filesystem(host, cfg.storage)
    mount_device(host, cfg.storage)
    how = "formatted" if formatted else "existing filesystem"
    return f"{cfg.storage.device} -> {cfg.storage.mount_point} ({how})"


def _persist_mount(host: HostControl, cfg: BootstrapConfig) -> str:
    added = persist_mount(host, cfg.storage)
    return "entry added" if added else "entry already present"


def _configure_runtime(host: HostControl, cfg: BootstrapConfig) -> str:
    write_daemon_config(host, cfg.runtime, cfg.storage.mount_point)
    return f"data-root={cfg.storage.mount_point}"


def _start_runtime(host: HostControl, cfg: BootstrapConfig) -> str:
    return start_runtime(host, cfg.runtime, interval=cfg.poll_interval)


def _start_agent(host: HostControl, cfg: BootstrapConfig) -> None:
    start_agent(host, cfg.agent)


def _install_cleanup(host: HostControl, cfg: BootstrapConfig) -> str:
    return install_cleanup(host, cfg.cleanup, runtime_service=cfg.runtime.service)


def _cleanup_disabled(cfg: BootstrapConfig) -> Optional[str]:
    return None if cfg.cleanup.enabled else "cleanup disabled"


STEPS: List[Step] = [
    Step("write-agent-config", _write_agent_config),
    Step("quiesce-runtime", _quiesce, fatal=False),
    Step("prepare-storage", _prepare_storage),
    Step("persist-mount", _persist_mount),
    Step("configure-runtime", _configure_runtime),
    Step("start-runtime", _start_runtime),
    Step("start-agent", _start_agent),
    Step("install-cleanup", _install_cleanup, fatal=False, skip_if=_cleanup_disabled),
]


def run_bootstrap(
    host: HostControl,
    cfg: BootstrapConfig,
    *,
    observers: Optional[List[Observer]] = None,
    run_id: Optional[str] = None,
    steps: Optional[List[Step]] = None,
) -> BootstrapReport:
    """
    Run every step in order against *host*. The first failure of a fatal step
    stops the sequence; nothing done before it is rolled back. Non-fatal
    failures are logged and the sequence carries on.
    """
    steps = steps if steps is not None else STEPS
    report = BootstrapReport()
    bus = EventBus(observers or [])
    run_id = run_id or new_ctx(host.name)["run_id"]

    def ctx() -> dict:
        return new_ctx(host.name, run_id)

    bus.emit(BootstrapStarted(steps=[s.name for s in steps], **ctx()))
    log.info("Bootstrapping %s (cluster=%s region=%s)", host.name, cfg.cluster_name, cfg.region)

    total = len(steps)
    for i, step in enumerate(steps, 1):
        reason = step.skip_if(cfg) if step.skip_if else None
        if reason:
            log.info("[%d/%d] %s: skipped (%s)", i, total, step.name, reason)
            report.add(StepOutcome(name=step.name, status="SKIPPED", detail=reason))
            bus.emit(StepSkipped(step=step.name, reason=reason, **ctx()))
            continue

        log.info("[%d/%d] %s: starting", i, total, step.name)
        bus.emit(StepStarted(step=step.name, **ctx()))
        t0 = time.monotonic()
        try:
            detail = step.action(host, cfg)
        except Exception as e:
            duration_ms = int((time.monotonic() - t0) * 1000)
            if isinstance(e, BootstrapError):
                error = str(e)
            else:
                error = f"{type(e).__name__}: {e}"
                log.debug("[%d/%d] %s: unexpected error", i, total, step.name, exc_info=True)
            report.add(StepOutcome(name=step.name, status="FAILED", error=error, duration_ms=duration_ms))
            bus.emit(StepFailed(step=step.name, error=error, fatal=step.fatal, **ctx()))
            if step.fatal:
                log.error("[%d/%d] %s: FAILED, aborting: %s", i, total, step.name, error)
                report.failed_step = step.name
                break
            log.warning("[%d/%d] %s: failed (ignored): %s", i, total, step.name, error)
            continue

        duration_ms = int((time.monotonic() - t0) * 1000)
        report.add(StepOutcome(name=step.name, status="OK", detail=detail, duration_ms=duration_ms))
        bus.emit(StepSucceeded(step=step.name, duration_ms=duration_ms, detail=detail, **ctx()))
        log.info("[%d/%d] %s: done%s", i, total, step.name, f" ({detail})" if detail else "")

    status = "OK" if report.ok else "FAILED"
    bus.emit(BootstrapSummary(
        status=status,
        ok=report.count("OK"),
        failed=report.count("FAILED"),
        skipped=report.count("SKIPPED"),
        failed_step=report.failed_step,
        **ctx(),
    ))
    log.info("Bootstrap %s: %s", status, report.summary())
    return report
