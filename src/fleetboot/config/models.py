# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/fleetboot/config/models.py

import re
from typing import Dict

from pydantic import BaseModel, Field, field_validator


class AgentConfig(BaseModel):
    config_path: str = "/etc/ecs/ecs.config"
    service: str = "ecs"
    # extra KEY=VALUE lines written after ECS_CLUSTER / AWS_DEFAULT_REGION
    extra: Dict[str, str] = Field(default_factory=dict)


class StorageConfig(BaseModel):
    device: str = "/dev/xvdf"
    mount_point: str = "/var/lib/docker-data"
    fs_type: str = "ext4"
    mount_options: str = "defaults,nofail"
    fstab_path: str = "/etc/fstab"
    wait_attempts: int = Field(default=60, ge=1)


class RuntimeConfig(BaseModel):
    service: str = "docker"
    socket: str = "docker.socket"
    daemon_config_path: str = "/etc/docker/daemon.json"
    health_attempts: int = Field(default=30, ge=1)


_DURATION = re.compile(r"(?:[0-9]+(?:\.[0-9]+)?(?:ns|us|ms|s|m|h))+")


class CleanupConfig(BaseModel):
    enabled: bool = True
    schedule: str = "0 * * * *"     # minute hour day-of-month month day-of-week
    max_age: str = "24h"            # passed to the runtime's until= prune filter
    script_path: str = "/usr/local/bin/docker-cleanup.sh"
    log_path: str = "/var/log/docker-cleanup.log"
    unit_name: str = "docker-cleanup"
    systemd_dir: str = "/etc/systemd/system"
    cron_path: str = "/etc/cron.d/docker-cleanup"

    @field_validator("schedule")
    @classmethod
    def _five_fields(cls, v: str) -> str:
        fields = v.split()
        if len(fields) != 5:
            raise ValueError(
                f"schedule must have 5 fields (minute hour dom month dow), got {len(fields)}: {v!r}"
            )
        return " ".join(fields)

    @field_validator("max_age")
    @classmethod
    def _duration(cls, v: str) -> str:
        # Go-style duration, as accepted by the runtime's until= filter
        if not _DURATION.fullmatch(v):
            raise ValueError(f"max_age must be a duration such as 24h or 90m, got {v!r}")
        return v


class BootstrapConfig(BaseModel):
    """
    Boot-time parameters for one host. cluster_name and region are passed
    through to the agent untouched.
    """
    cluster_name: str
    region: str
    agent: AgentConfig = Field(default_factory=AgentConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)
    cleanup: CleanupConfig = Field(default_factory=CleanupConfig)
    poll_interval: float = Field(default=1.0, ge=0)
    log_path: str = "/var/log/fleetboot.log"
