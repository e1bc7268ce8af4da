# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/fleetboot/bootstrap/runtime.py

from __future__ import annotations

import json
import logging

from fleetboot.config.models import RuntimeConfig
from fleetboot.host.interface import HostControl
from fleetboot.utils.helpers import wait_until
from .errors import RuntimeUnhealthyError
from .services import ServiceManager

log = logging.getLogger("fleetboot")

DOCKER_INFO_TIMEOUT = 10.0


def render_daemon_config(data_root: str) -> str:
    # daemon.json is plain JSON: no comments allowed
    return json.dumps({"data-root": data_root}, indent=2) + "\n"


def write_daemon_config(host: HostControl, runtime: RuntimeConfig, data_root: str) -> None:
    host.write_text(runtime.daemon_config_path, render_daemon_config(data_root))
    log.info("Wrote %s with data-root=%s", runtime.daemon_config_path, data_root)


def runtime_healthy(host: HostControl) -> bool:
    return host.run(["docker", "info"], timeout=DOCKER_INFO_TIMEOUT).ok


def start_runtime(host: HostControl, runtime: RuntimeConfig, *, interval: float) -> str:
    """
    Enable and start the runtime, then wait for ``docker info`` to succeed.
    Returns a one-line summary of the effective data-root and version.
    """
    services = ServiceManager(host)
    services.daemon_reload()
    services.enable(runtime.service)
    res = services.start(runtime.service)
    if not res.ok:
        # keep polling: socket activation can still bring it up
        log.warning("systemctl start %s returned %d: %s", runtime.service, res.rc, res.stderr.strip())

    log.info("Waiting for %s to become healthy (up to %d attempts)", runtime.service, runtime.health_attempts)
    try:
        attempt = wait_until(
            lambda: runtime_healthy(host),
            retries=runtime.health_attempts,
            delay=interval,
            error=f"{runtime.service} not healthy after {runtime.health_attempts} attempts",
            sleep=host.sleep,
            on_wait=lambda n: log.debug("%s not healthy yet (attempt %d/%d)", runtime.service, n, runtime.health_attempts),
        )
    except TimeoutError as e:
        raise RuntimeUnhealthyError(str(e)) from e

    root = host.run(["docker", "info", "--format", "{{.DockerRootDir}}"], timeout=DOCKER_INFO_TIMEOUT).stdout.strip()
    version = host.run(["docker", "version", "--format", "{{.Server.Version}}"], timeout=DOCKER_INFO_TIMEOUT).stdout.strip()
    summary = f"data-root={root or '?'} version={version or '?'}"
    log.info("%s healthy after %d attempt(s): %s", runtime.service, attempt, summary)
    return summary
