# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/fleetboot/bootstrap/services.py

from __future__ import annotations

import logging

from fleetboot.host.interface import CommandResult, HostControl

log = logging.getLogger("fleetboot")

SYSTEMD_RUNTIME_DIR = "/run/systemd/system"


class ServiceManager:
    """
    Thin systemctl wrapper. Every call hands back the CommandResult; whether a
    failure matters is the caller's decision.
    """

    def __init__(self, host: HostControl):
        self.host = host

    def _systemctl(self, *args: str) -> CommandResult:
        return self.host.run(["systemctl", *args])

    def available(self) -> bool:
        """True when systemd is the running service manager (sd_booted check)."""
        return self.host.is_dir(SYSTEMD_RUNTIME_DIR)

    def stop(self, unit: str) -> CommandResult:
        return self._systemctl("stop", unit)

    def disable(self, unit: str) -> CommandResult:
        return self._systemctl("disable", unit)

    def enable(self, unit: str, *, now: bool = False) -> CommandResult:
        if now:
            return self._systemctl("enable", "--now", unit)
        return self._systemctl("enable", unit)

    def start(self, unit: str, *, no_block: bool = False) -> CommandResult:
        if no_block:
            return self._systemctl("start", "--no-block", unit)
        return self._systemctl("start", unit)

    def daemon_reload(self) -> CommandResult:
        return self._systemctl("daemon-reload")

    def quiesce(self, unit: str) -> None:
        """Stop and disable, tolerating units that are already stopped or absent."""
        for action in (self.stop, self.disable):
            res = action(unit)
            if not res.ok:
                log.debug("%s %s returned %d (ignored): %s", action.__name__, unit, res.rc, res.stderr.strip())
