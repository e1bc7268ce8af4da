# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/fleetboot/bootstrap/storage.py

from __future__ import annotations

import logging
from typing import Optional

from fleetboot.config.models import StorageConfig
from fleetboot.host.interface import HostControl
from fleetboot.utils.helpers import wait_until
from .errors import DeviceNotFoundError, FormatError, MountVerificationError

log = logging.getLogger("fleetboot")


def wait_for_device(host: HostControl, storage: StorageConfig, *, interval: float) -> int:
    """
    Block until the secondary device node exists. The hypervisor attaches it
    asynchronously, so it may show up some seconds after boot.
    """
    log.info("Waiting for %s (up to %d attempts)", storage.device, storage.wait_attempts)
    try:
        attempt = wait_until(
            lambda: host.exists(storage.device),
            retries=storage.wait_attempts,
            delay=interval,
            error=f"{storage.device} did not appear after {storage.wait_attempts} attempts",
            sleep=host.sleep,
            on_wait=lambda n: log.debug("%s not present yet (attempt %d/%d)", storage.device, n, storage.wait_attempts),
        )
    except TimeoutError as e:
        raise DeviceNotFoundError(str(e)) from e
    log.info("%s present (attempt %d)", storage.device, attempt)
    return attempt


def filesystem_type(host: HostControl, device: str) -> Optional[str]:
    """Filesystem signature on *device*, or None when blkid finds nothing."""
    res = host.run(["blkid", "-o", "value", "-s", "TYPE", device])
    fs = res.stdout.strip()
    if res.ok and fs:
        return fs
    return None


def partition_table_type(host: HostControl, device: str) -> Optional[str]:
    res = host.run(["blkid", "-o", "value", "-s", "PTTYPE", device])
    pt = res.stdout.strip()
    if res.ok and pt:
        return pt
    return None


def device_uuid(host: HostControl, device: str) -> Optional[str]:
    res = host.run(["blkid", "-o", "value", "-s", "UUID", device])
    uuid = res.stdout.strip()
    if res.ok and uuid:
        return uuid
    return None


def ensure_filesystem(host: HostControl, storage: StorageConfig) -> bool:
    """
    Create a filesystem only when the device carries no signature, neither a
    filesystem nor a partition table.
    Returns True if mkfs ran. Existing data is never touched.
    """
    existing = filesystem_type(host, storage.device)
    if existing:
        log.info("%s already has a %s filesystem, skipping format", storage.device, existing)
        return False

    # a partitioned disk is never formatted
    table = partition_table_type(host, storage.device)
    if table:
        log.warning("%s carries a %s partition table, skipping format", storage.device, table)
        return False

    log.info("No filesystem on %s, creating %s", storage.device, storage.fs_type)
    res = host.run(["mkfs", "-t", storage.fs_type, storage.device])
    if not res.ok:
        raise FormatError(f"mkfs -t {storage.fs_type} {storage.device} failed (rc={res.rc}): {res.stderr.strip()}")
    return True


def is_mounted(host: HostControl, path: str) -> bool:
    return host.run(["mountpoint", "-q", path]).ok


def mount_device(host: HostControl, storage: StorageConfig) -> None:
    """
    Mount the device on the mount point and verify the result. A mount point
    that is not actually mounted afterwards is fatal: the runtime would
    silently fall back to the root disk.
    """
    host.make_dirs(storage.mount_point)

    detail = ""
    if is_mounted(host, storage.mount_point):
        log.info("%s is already mounted", storage.mount_point)
    else:
        log.info("Mounting %s on %s", storage.device, storage.mount_point)
        res = host.run(["mount", storage.device, storage.mount_point])
        if not res.ok:
            detail = f" (mount rc={res.rc}: {res.stderr.strip()})"

    if not is_mounted(host, storage.mount_point):
        raise MountVerificationError(f"{storage.mount_point} is not a mount point after mounting {storage.device}{detail}")
    log.info("Verified %s is mounted", storage.mount_point)


def fstab_line(uuid: str, storage: StorageConfig) -> str:
    return f"UUID={uuid} {storage.mount_point} {storage.fs_type} {storage.mount_options} 0 2"


def persist_mount(host: HostControl, storage: StorageConfig) -> bool:
    """
    Append a mount-table entry keyed by filesystem UUID unless one already
    exists. Returns True when a line was appended.
    """
    uuid = device_uuid(host, storage.device)
    if not uuid:
        raise MountVerificationError(f"could not read filesystem UUID of {storage.device}")

    current = host.read_text(storage.fstab_path) or ""
    if any(uuid in line for line in current.splitlines()):
        log.info("%s already has an entry for UUID=%s", storage.fstab_path, uuid)
        return False

    line = fstab_line(uuid, storage)
    prefix = "" if not current or current.endswith("\n") else "\n"
    host.append_text(storage.fstab_path, f"{prefix}{line}\n")
    log.info("Added to %s: %s", storage.fstab_path, line)
    return True
