# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/fleetboot/bootstrap/schedule.py

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass
from typing import Protocol

from fleetboot.config.models import CleanupConfig
from fleetboot.host.interface import HostControl
from .services import ServiceManager
from .templating import render

log = logging.getLogger("fleetboot")

FALLBACK_ON_CALENDAR = "hourly"


@dataclass(frozen=True)
class Trigger:
    on_calendar: str
    exact: bool                 # False when the schedule was degraded to hourly


def _int_field(value: str, lo: int, hi: int) -> int | None:
    if not (value.isascii() and value.isdigit()):
        return None
    n = int(value)
    return n if lo <= n <= hi else None


def _fallback(expr: str, why: str) -> Trigger:
    log.warning(
        "Schedule %r %s; falling back to OnCalendar=%s", expr, why, FALLBACK_ON_CALENDAR,
    )
    return Trigger(on_calendar=FALLBACK_ON_CALENDAR, exact=False)


def to_on_calendar(expr: str) -> Trigger:
    """
    Translate a 5-field cron expression into a systemd OnCalendar value.

    Only two shapes are understood:
      ``M * * * *``   -> every hour at minute M
      ``M H * * *``   -> every day at H:M
    Everything else becomes ``hourly``. The degradation is logged as a warning
    rather than raised, so an odd schedule never blocks a host from booting.
    """
    fields = expr.split()
    if len(fields) != 5:
        return _fallback(expr, f"has {len(fields)} fields, expected 5")

    minute, hour, dom, month, dow = fields
    m = _int_field(minute, 0, 59)
    if m is None:
        return _fallback(expr, "has a minute field that is not a single value")

    # an hourly schedule ignores the day fields
    if hour == "*":
        return Trigger(on_calendar=f"*-*-* *:{m:02d}:00", exact=True)

    if not (dom == "*" and month == "*" and dow == "*"):
        return _fallback(expr, "constrains day-of-month, month or day-of-week")

    h = _int_field(hour, 0, 23)
    if h is None:
        return _fallback(expr, "has an hour field that is not a single value")
    return Trigger(on_calendar=f"*-*-* {h:02d}:{m:02d}:00", exact=True)


class SchedulingBackend(Protocol):
    name: str

    def install(self, schedule: str, command: str) -> str:
        """Install *command* to run on *schedule*. Returns a short description."""
        ...


def render_timer_units(
    cleanup: CleanupConfig,
    schedule: str,
    command: str,
    *,
    runtime_service: str = "docker",
) -> tuple[str, str, Trigger]:
    """Returns (service unit text, timer unit text, trigger)."""
    trigger = to_on_calendar(schedule)
    service = render(
        "cleanup.service.j2",
        command=command,
        runtime_service=runtime_service,
    )
    timer = render(
        "cleanup.timer.j2",
        unit_name=cleanup.unit_name,
        schedule=schedule,
        on_calendar=trigger.on_calendar,
    )
    return service, timer, trigger


def unit_paths(cleanup: CleanupConfig) -> tuple[str, str]:
    base = posixpath.join(cleanup.systemd_dir, cleanup.unit_name)
    return f"{base}.service", f"{base}.timer"


def render_cron_entry(schedule: str, command: str) -> str:
    return f"{schedule} root {command}\n"


class PeriodicTriggerBackend:
    """systemd .service + .timer pair."""

    name = "systemd-timer"

    def __init__(self, host: HostControl, cleanup: CleanupConfig, *, runtime_service: str = "docker"):
        self.host = host
        self.cleanup = cleanup
        self.runtime_service = runtime_service

    @property
    def service_path(self) -> str:
        return unit_paths(self.cleanup)[0]

    @property
    def timer_path(self) -> str:
        return unit_paths(self.cleanup)[1]

    def install(self, schedule: str, command: str) -> str:
        service, timer, trigger = render_timer_units(
            self.cleanup, schedule, command, runtime_service=self.runtime_service,
        )
        self.host.write_text(self.service_path, service)
        self.host.write_text(self.timer_path, timer)

        services = ServiceManager(self.host)
        timer_unit = f"{self.cleanup.unit_name}.timer"
        services.daemon_reload()
        res = services.enable(timer_unit, now=True)
        if not res.ok:
            log.warning("Enabling %s failed (rc=%d, ignored): %s", timer_unit, res.rc, res.stderr.strip())
        return f"{timer_unit} OnCalendar={trigger.on_calendar}"


class LegacyScheduleFileBackend:
    """A cron.d entry; relies on a cron daemon that may not be installed."""

    name = "cron"

    def __init__(self, host: HostControl, cleanup: CleanupConfig):
        self.host = host
        self.cleanup = cleanup

    def install(self, schedule: str, command: str) -> str:
        self.host.write_text(self.cleanup.cron_path, render_cron_entry(schedule, command))
        return f"{self.cleanup.cron_path}: {schedule}"


def select_backend(host: HostControl, cleanup: CleanupConfig, *, runtime_service: str = "docker") -> SchedulingBackend:
    """Probe once for a running systemd; fall back to cron.d otherwise."""
    if ServiceManager(host).available():
        return PeriodicTriggerBackend(host, cleanup, runtime_service=runtime_service)
    log.info("systemd not running, using %s", cleanup.cron_path)
    return LegacyScheduleFileBackend(host, cleanup)
