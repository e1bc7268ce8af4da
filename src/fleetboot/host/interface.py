# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, Sequence


@dataclass(frozen=True)
class CommandResult:
    rc: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.rc == 0


class HostControl(Protocol):
    """
    Everything the bootstrap sequence needs from a machine.
    Only exit status (rc == 0) is relied on for commands.
    """

    name: str

    def run(self, argv: Sequence[str], *, timeout: Optional[float] = None) -> CommandResult: ...

    def read_text(self, path: str) -> Optional[str]:
        """Return file contents, or None if the file does not exist."""
        ...

    def write_text(self, path: str, content: str, *, mode: int = 0o644) -> None: ...

    def append_text(self, path: str, content: str) -> None: ...

    def exists(self, path: str) -> bool: ...

    def is_dir(self, path: str) -> bool: ...

    def make_dirs(self, path: str, *, mode: int = 0o755) -> None: ...

    def sleep(self, seconds: float) -> None: ...
