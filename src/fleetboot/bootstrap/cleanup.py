# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging

from fleetboot.config.models import CleanupConfig
from fleetboot.host.interface import HostControl
from .schedule import select_backend
from .templating import render

log = logging.getLogger("fleetboot")


def render_cleanup_script(cleanup: CleanupConfig) -> str:
    return render(
        "docker-cleanup.sh.j2",
        schedule=cleanup.schedule,
        log_path=cleanup.log_path,
        max_age=cleanup.max_age,
    )


def install_cleanup(host: HostControl, cleanup: CleanupConfig, *, runtime_service: str = "docker") -> str:
    """
    Write the hygiene script and schedule it with whichever mechanism the host
    supports. Activation is best effort: failures are logged, never raised.
    """
    host.write_text(cleanup.script_path, render_cleanup_script(cleanup), mode=0o755)
    log.info("Wrote %s", cleanup.script_path)

    backend = select_backend(host, cleanup, runtime_service=runtime_service)
    installed = backend.install(cleanup.schedule, cleanup.script_path)
    log.info("Scheduled cleanup via %s: %s", backend.name, installed)
    return f"{backend.name}: {installed}"
