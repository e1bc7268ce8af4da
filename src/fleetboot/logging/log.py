# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/fleetboot/logging/log.py

from __future__ import annotations

import logging
import uuid
from pathlib import Path


def _open_file_handler(log_path: Path) -> tuple[logging.FileHandler, Path]:
    """
    Open the boot log, falling back to ~/.fleetboot/logs when the configured
    path is not writable (running unprivileged, e.g. `fleetboot remote`).
    """
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(log_path), log_path
    except OSError:
        fallback = Path.home() / ".fleetboot" / "logs" / log_path.name
        fallback.parent.mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(fallback), fallback


def init_logging(
    *,
    log_path: str | Path = "/var/log/fleetboot.log",
    name: str = "fleetboot",
    verbose: bool = False,
) -> tuple[logging.Logger, str, Path]:
    """
    Initializes:
      - the boot log file (full DEBUG trace, appended across boots)
      - console output (INFO, or DEBUG with --verbose), which cloud-init
        copies to the instance console
      - returns run_id so observers can reuse it
    """
    run_id = str(uuid.uuid4())

    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()
    logger.propagate = False

    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)-7s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    fh, effective_path = _open_file_handler(Path(log_path))
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(formatter)

    ch = logging.StreamHandler()
    ch.setLevel(logging.DEBUG if verbose else logging.INFO)
    ch.setFormatter(formatter)

    logger.addHandler(fh)
    logger.addHandler(ch)

    logger.info("=== fleetboot run started ===")
    logger.info(f"run_id={run_id}")
    logger.info(f"log_file={effective_path}")

    return logger, run_id, effective_path
