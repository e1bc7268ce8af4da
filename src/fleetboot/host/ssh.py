# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/fleetboot/host/ssh.py

from __future__ import annotations

import itertools
import logging
import os
import shlex
import socket
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

import paramiko

from .interface import CommandResult

log = logging.getLogger("fleetboot")

# unique temp names for uploads
_counter = itertools.count(1)


@dataclass
class RemoteTarget:
    """
    A host reachable over SSH.
    """
    address: str                  # IP or DNS to connect
    username: str = "ec2-user"
    port: int = 22
    pkey_path: Optional[Path] = None
    become_password: Optional[str] = None     # for sudo -S


class SshHost:
    """
    HostControl over paramiko. Commands run as root through ``sudo -S bash -lc``;
    files go to a temp path over SFTP and are moved into place with ``install``
    so root-owned targets keep their ownership.
    """

    def __init__(
        self,
        target: RemoteTarget,
        *,
        connect_timeout: float = 30.0,
        cmd_timeout: float = 300.0,
        connect_attempts: int = 30,
        connect_delay: float = 10.0,
    ):
        self.target = target
        self.name = target.address
        self.connect_timeout = connect_timeout
        self.cmd_timeout = cmd_timeout
        self.connect_attempts = connect_attempts
        self.connect_delay = connect_delay
        self._client: Optional[paramiko.SSHClient] = None
        self._sftp: Optional[paramiko.SFTPClient] = None

    # ------------------ connection ------------------

    def _load_pkey(self):
        if not self.target.pkey_path:
            return None
        key_path = str(self.target.pkey_path)
        for key_cls in (paramiko.Ed25519Key, paramiko.RSAKey, paramiko.ECDSAKey):
            try:
                return key_cls.from_private_key_file(key_path)
            except paramiko.SSHException:
                continue
        raise RuntimeError(f"Unsupported private key format for {key_path}")

    def _connect_once(self) -> paramiko.SSHClient:
        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        pkey = self._load_pkey()
        client.connect(
            hostname=self.target.address,
            port=self.target.port,
            username=self.target.username,
            pkey=pkey,
            look_for_keys=pkey is None,
            allow_agent=pkey is None,
            timeout=self.connect_timeout,
        )
        return client

    def connect(self) -> "SshHost":
        # freshly launched instances may not accept SSH yet
        for attempt in range(1, self.connect_attempts + 1):
            try:
                self._client = self._connect_once()
                break
            except (paramiko.SSHException, OSError) as e:
                if attempt == self.connect_attempts:
                    raise RuntimeError(
                        f"Failed to SSH into {self.target.address} as '{self.target.username}' "
                        f"after {self.connect_attempts} attempts: {e}"
                    ) from e
                log.info(
                    "[%s] SSH not ready (attempt %d/%d, %s: %s), retrying in %ss...",
                    self.name, attempt, self.connect_attempts, type(e).__name__, e, self.connect_delay,
                )
                time.sleep(self.connect_delay)
        self._sftp = self._client.open_sftp()
        return self

    def close(self) -> None:
        try:
            if self._sftp:
                self._sftp.close()
        finally:
            if self._client:
                self._client.close()
            self._sftp = None
            self._client = None

    def __enter__(self) -> "SshHost":
        return self.connect()

    def __exit__(self, *exc) -> None:
        self.close()

    # ------------------ commands ------------------

    def _q(self, s: str) -> str:
        """
        Quote for bash -lc.
        """
        return "'" + s.replace("'", "'\"'\"'") + "'"

    def _shell(self, script: str, *, timeout: Optional[float] = None) -> CommandResult:
        if self._client is None:
            raise RuntimeError(f"not connected to {self.name}")
        cmd = f"sudo -S bash -lc {self._q(script)}"
        timeout = timeout or self.cmd_timeout
        stdin, stdout, stderr = self._client.exec_command(cmd, timeout=timeout)
        if self.target.become_password:
            stdin.write(self.target.become_password + "\n")
        stdin.flush()
        # EOF on stdin: a sudo password prompt fails at once instead of hanging
        stdin.channel.shutdown_write()
        try:
            out = stdout.read().decode("utf-8", errors="replace")
            err = stderr.read().decode("utf-8", errors="replace")
        except socket.timeout:
            stdout.channel.close()
            log.debug("[%s] $ %s [timed out after %ss]", self.name, script, timeout)
            # same status LocalHost reports for a timeout
            return CommandResult(rc=124, stdout="", stderr="timed out")
        rc = stdout.channel.recv_exit_status()
        log.debug("[%s] $ %s [exit %d]", self.name, script, rc)
        return CommandResult(rc=rc, stdout=out, stderr=err)

    def run(self, argv: Sequence[str], *, timeout: Optional[float] = None) -> CommandResult:
        return self._shell(shlex.join(argv), timeout=timeout)

    # ------------------ files ------------------

    def _upload_tmp(self, content: str) -> str:
        tmp_remote = f"/tmp/.fleetboot_tmp_{os.getpid()}_{next(_counter)}"
        with self._sftp.file(tmp_remote, "w") as f:
            f.write(content)
        return tmp_remote

    def read_text(self, path: str) -> Optional[str]:
        p = shlex.quote(path)
        res = self._shell(f"test -f {p} && cat {p}")
        if not res.ok:
            return None
        return res.stdout

    def write_text(self, path: str, content: str, *, mode: int = 0o644) -> None:
        tmp = self._upload_tmp(content)
        p = shlex.quote(path)
        res = self._shell(
            f"install -D -m {oct(mode)[2:]} -o root -g root {tmp} {p} ; rc=$? ; rm -f {tmp} ; exit $rc"
        )
        if not res.ok:
            raise OSError(f"[{self.name}] failed to write {path}: {res.stderr.strip()}")

    def append_text(self, path: str, content: str) -> None:
        tmp = self._upload_tmp(content)
        p = shlex.quote(path)
        res = self._shell(f"cat {tmp} >> {p} ; rc=$? ; rm -f {tmp} ; exit $rc")
        if not res.ok:
            raise OSError(f"[{self.name}] failed to append to {path}: {res.stderr.strip()}")

    def exists(self, path: str) -> bool:
        return self._shell(f"test -e {shlex.quote(path)}").ok

    def is_dir(self, path: str) -> bool:
        return self._shell(f"test -d {shlex.quote(path)}").ok

    def make_dirs(self, path: str, *, mode: int = 0o755) -> None:
        res = self._shell(f"install -d -m {oct(mode)[2:]} {shlex.quote(path)}")
        if not res.ok:
            raise OSError(f"[{self.name}] failed to create {path}: {res.stderr.strip()}")

    def sleep(self, seconds: float) -> None:
        time.sleep(seconds)
