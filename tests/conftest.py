from __future__ import annotations

from typing import List, Optional, Sequence, Set, Tuple

import pytest

from fleetboot.config.models import BootstrapConfig
from fleetboot.host.interface import CommandResult


class FakeHost:
    """
    In-memory HostControl. Simulates just enough of blkid/mkfs/mount,
    systemctl and docker for the bootstrap steps, and records every call in
    order so tests can assert on sequencing.
    """

    def __init__(self):
        self.name = "fake-host"
        self.files: dict[str, str] = {}
        self.modes: dict[str, int] = {}
        self.dirs: Set[str] = set()
        self.calls: List[Tuple] = []

        # block device
        self.device = "/dev/xvdf"
        self.device_present_after: Optional[int] = 1     # exists() poll that first sees it; None = never
        self.filesystems: dict[str, str] = {}            # device -> fs type
        self.uuids: dict[str, str] = {}
        self.partition_tables: dict[str, str] = {}       # device -> gpt | dos
        self.mounted: Set[str] = set()
        self.mount_works = True
        self.mkfs_runs = 0
        self._device_polls = 0

        # services / runtime
        self.systemd = True
        self.failing_units: Set[str] = set()             # systemctl on these exits 5
        self.started: List[str] = []
        self.docker_healthy_after: Optional[int] = 1     # docker info poll that first succeeds; None = never
        self.docker_info_polls = 0

    # ------------------ helpers for assertions ------------------

    def runs(self) -> List[List[str]]:
        return [list(c[1]) for c in self.calls if c[0] == "run"]

    def index(self, kind: str, match) -> int:
        """Position of the first call of *kind* whose payload satisfies *match*; -1 if none."""
        for i, c in enumerate(self.calls):
            if c[0] == kind and match(c[1]):
                return i
        return -1

    def ran(self, *argv: str) -> bool:
        return list(argv) in self.runs()

    # ------------------ HostControl ------------------

    def run(self, argv: Sequence[str], *, timeout: Optional[float] = None) -> CommandResult:
        argv = list(argv)
        self.calls.append(("run", tuple(argv)))
        cmd = argv[0]

        if cmd == "blkid":
            field, dev = argv[4], argv[5]
            value = {"TYPE": self.filesystems, "UUID": self.uuids, "PTTYPE": self.partition_tables}[field].get(dev)
            return CommandResult(0, value + "\n") if value else CommandResult(2)

        if cmd == "mkfs":
            fs, dev = argv[2], argv[3]
            self.mkfs_runs += 1
            self.filesystems[dev] = fs
            self.uuids.setdefault(dev, "0f3c9a2e-5b1d-4c1e-9a57-2b8f1d7e6c11")
            return CommandResult(0)

        if cmd == "mountpoint":
            return CommandResult(0 if argv[-1] in self.mounted else 32)

        if cmd == "mount":
            if not self.mount_works:
                return CommandResult(32, stderr="mount: wrong fs type")
            self.mounted.add(argv[2])
            return CommandResult(0)

        if cmd == "systemctl":
            unit = argv[-1]
            if unit in self.failing_units:
                return CommandResult(5, stderr=f"Unit {unit} not loaded.")
            if argv[1] == "start":
                self.started.append(unit)
            return CommandResult(0)

        if cmd == "docker":
            if argv[1:] == ["info"]:
                self.docker_info_polls += 1
                healthy = (
                    self.docker_healthy_after is not None
                    and "docker" in self.started
                    and self.docker_info_polls >= self.docker_healthy_after
                )
                return CommandResult(0 if healthy else 1)
            if argv[1] == "info":
                return CommandResult(0, "/var/lib/docker-data\n")
            if argv[1] == "version":
                return CommandResult(0, "24.0.5\n")

        return CommandResult(0)

    def read_text(self, path: str) -> Optional[str]:
        return self.files.get(path)

    def write_text(self, path: str, content: str, *, mode: int = 0o644) -> None:
        self.calls.append(("write", path))
        self.files[path] = content
        self.modes[path] = mode

    def append_text(self, path: str, content: str) -> None:
        self.calls.append(("append", path))
        self.files[path] = self.files.get(path, "") + content

    def exists(self, path: str) -> bool:
        if path == self.device:
            self._device_polls += 1
            return self.device_present_after is not None and self._device_polls >= self.device_present_after
        return path in self.files or path in self.dirs

    def is_dir(self, path: str) -> bool:
        if path == "/run/systemd/system":
            return self.systemd
        return path in self.dirs

    def make_dirs(self, path: str, *, mode: int = 0o755) -> None:
        self.calls.append(("mkdir", path))
        self.dirs.add(path)

    def sleep(self, seconds: float) -> None:
        self.calls.append(("sleep", seconds))


@pytest.fixture
def fake_host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def cfg() -> BootstrapConfig:
    return BootstrapConfig(cluster_name="ci-runners", region="eu-west-1")
