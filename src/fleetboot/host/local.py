# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/fleetboot/host/local.py

from __future__ import annotations

import logging
import os
import socket
import tempfile
import time
from pathlib import Path
from typing import Optional, Sequence

from fleetboot.execution.runner import CommandRunner
from .interface import CommandResult


class LocalHost:
    """
    Drives the machine this process runs on. Used from cloud-init user data,
    so it normally runs as root.
    """

    def __init__(self, *, logger: Optional[logging.Logger] = None, cmd_timeout: float = 300.0):
        self.name = socket.gethostname()
        self.cmd_timeout = cmd_timeout
        self._runner = CommandRunner(logger=logger or logging.getLogger("fleetboot"), label="local")

    def run(self, argv: Sequence[str], *, timeout: Optional[float] = None) -> CommandResult:
        cp = self._runner.run(argv, timeout=timeout or self.cmd_timeout)
        return CommandResult(rc=cp.returncode, stdout=cp.stdout or "", stderr=cp.stderr or "")

    def read_text(self, path: str) -> Optional[str]:
        p = Path(path)
        if not p.is_file():
            return None
        return p.read_text(encoding="utf-8")

    def write_text(self, path: str, content: str, *, mode: int = 0o644) -> None:
        """
        Write via a temp file in the target directory and rename, so readers
        never see a half-written config.
        """
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=f".{target.name}.", dir=str(target.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.chmod(tmp, mode)
            os.replace(tmp, target)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def append_text(self, path: str, content: str) -> None:
        with open(path, "a", encoding="utf-8") as f:
            f.write(content)

    def exists(self, path: str) -> bool:
        return os.path.exists(path)

    def is_dir(self, path: str) -> bool:
        return os.path.isdir(path)

    def make_dirs(self, path: str, *, mode: int = 0o755) -> None:
        Path(path).mkdir(mode=mode, parents=True, exist_ok=True)

    def sleep(self, seconds: float) -> None:
        time.sleep(seconds)
