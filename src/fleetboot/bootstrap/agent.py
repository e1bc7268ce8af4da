# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging

from fleetboot.config.models import AgentConfig
from fleetboot.host.interface import HostControl
from .services import ServiceManager

log = logging.getLogger("fleetboot")


def render_agent_config(cluster_name: str, region: str, extra: dict[str, str] | None = None) -> str:
    """
    Flat KEY=VALUE file read by the agent at its own startup. Values are
    passed through as given; a bad cluster name shows up later as a
    registration failure in the agent's log.
    """
    lines = [
        f"ECS_CLUSTER={cluster_name}",
        f"AWS_DEFAULT_REGION={region}",
    ]
    for key, value in (extra or {}).items():
        lines.append(f"{key}={value}")
    return "\n".join(lines) + "\n"


def write_agent_config(host: HostControl, agent: AgentConfig, cluster_name: str, region: str) -> None:
    host.write_text(agent.config_path, render_agent_config(cluster_name, region, agent.extra))
    log.info("Wrote %s (cluster=%s region=%s)", agent.config_path, cluster_name, region)


def start_agent(host: HostControl, agent: AgentConfig) -> None:
    """
    Fire and forget: registration with the control plane is the agent's own
    business and is not awaited here.
    """
    services = ServiceManager(host)
    services.enable(agent.service)
    res = services.start(agent.service, no_block=True)
    if not res.ok:
        log.warning("systemctl start --no-block %s returned %d: %s", agent.service, res.rc, res.stderr.strip())
    log.info("Start of %s requested (not waiting for registration)", agent.service)
