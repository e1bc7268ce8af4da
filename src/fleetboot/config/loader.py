# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/fleetboot/config/loader.py

import logging
import os
import yaml
from pathlib import Path
from typing import Any, Dict, Optional

from .models import BootstrapConfig

log = logging.getLogger("fleetboot")


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Recursively merge *override* into *base* (mutates base).
    Only overwrites when the override value is non-empty.
    """
    for key, value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, dict)
        ):
            _deep_merge(base[key], value)
        else:
            if value not in (None, ""):
                base[key] = value
    return base


def _find_overrides_file(config_path: Path) -> Path | None:
    """
    Locate overrides.yaml using this priority:

    1. FLEETBOOT_OVERRIDES_FILE environment variable (explicit override)
    2. overrides.yaml in the same directory as the host config
    """
    env = os.environ.get("FLEETBOOT_OVERRIDES_FILE")
    if env:
        p = Path(env)
        if p.is_file():
            return p
        log.warning("FLEETBOOT_OVERRIDES_FILE=%s does not exist, skipping", env)
        return None

    p = config_path.parent / "overrides.yaml"
    if p.is_file():
        return p

    return None


def _load_yaml(path: Path) -> dict:
    """Load a YAML file, expanding ${ENV_VAR} references."""
    raw = path.read_text()
    expanded = os.path.expandvars(raw)
    return yaml.safe_load(expanded) or {}


def load_config(
    path: str | Path | None = None,
    *,
    overrides: Optional[Dict[str, Any]] = None,
) -> BootstrapConfig:
    """
    Load and validate a fleetboot host config.

    Sources, lowest precedence first:
      1. the YAML file at *path* (``${ENV_VAR}`` placeholders are expanded)
      2. an ``overrides.yaml`` discovered via ``FLEETBOOT_OVERRIDES_FILE`` or
         next to the config file, deep-merged
      3. *overrides*, usually built from CLI flags

    *path* may be omitted when every required field comes from *overrides*
    (the cloud-init case, where the user data passes --cluster/--region).
    """
    data: dict = {}
    if path is not None:
        path = Path(path)
        data = _load_yaml(path)

        overrides_path = _find_overrides_file(path)
        if overrides_path:
            log.debug("Merging overrides from %s", overrides_path)
            _deep_merge(data, _load_yaml(overrides_path))

    if overrides:
        _deep_merge(data, overrides)

    return BootstrapConfig.model_validate(data)
