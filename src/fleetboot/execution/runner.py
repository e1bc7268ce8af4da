# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging
import subprocess
import time
from dataclasses import dataclass, field
from typing import Optional, Sequence

Cmd = Sequence[str]


@dataclass
class CommandRunner:
    """
    Runs local commands and logs them. Never raises for a failing command:
    the exit status is the result, with 127 for a missing binary and 124
    for a timeout.
    """
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("fleetboot"))
    label: Optional[str] = None

    def run(self, cmd: Cmd, *, timeout: Optional[float] = None) -> subprocess.CompletedProcess:
        label = self.label or "cmd"
        cmd_str = " ".join(map(str, cmd))

        self.logger.debug(f"[{label}] $ {cmd_str}")

        start = time.time()

        try:
            result = subprocess.run(
                list(cmd),
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except FileNotFoundError as e:
            # same exit status a shell reports for a missing command
            self.logger.debug(f"[{label}][exit 127] {e}")
            return subprocess.CompletedProcess(args=list(cmd), returncode=127, stdout="", stderr=str(e))
        except subprocess.TimeoutExpired:
            self.logger.debug(f"[{label}] timed out after {timeout}s")
            return subprocess.CompletedProcess(args=list(cmd), returncode=124, stdout="", stderr="timed out")

        duration = time.time() - start

        if result.stdout:
            self.logger.debug(f"[{label}][stdout]\n{result.stdout.rstrip()}")
        if result.stderr:
            self.logger.debug(f"[{label}][stderr]\n{result.stderr.rstrip()}")
        self.logger.debug(f"[{label}][exit {result.returncode}] ({duration:.2f}s)")

        return result
