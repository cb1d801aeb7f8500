# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kubestrap/utils/ssh_runner.py

from __future__ import annotations

import itertools
import logging
import os
import shlex
import sys
import time
from typing import Optional, TextIO

import paramiko

from kubestrap.assets.models import DeliveryUnit
from kubestrap.errors import CommandError

log = logging.getLogger("kubestrap")

# shared by the update flow and the image preload thread
_counter = itertools.count(1)

# socket.timeout is an OSError
_TRANSPORT_ERRORS = (paramiko.SSHException, OSError)


class SSHRunner:
    """
    CommandRunner over an established paramiko session.

    Transport failures (dropped session, channel timeout, sftp errors)
    surface as CommandError with returncode -1.
    """

    def __init__(
        self,
        client: paramiko.SSHClient,
        *,
        timeout: Optional[float] = None,
        stream: TextIO | None = None,
    ):
        self.client = client
        self.timeout = timeout
        self.stream = stream or sys.stdout

    def _exec(self, cmd: str) -> paramiko.Channel:
        log.debug("[ssh] $ %s", cmd)
        _stdin, stdout, _stderr = self.client.exec_command(cmd, timeout=self.timeout)
        channel = stdout.channel
        channel.set_combine_stderr(True)
        return channel

    def run(self, cmd: str) -> None:
        try:
            channel = self._exec(cmd)
            while True:
                if channel.recv_ready():
                    chunk = channel.recv(4096).decode("utf-8", "replace")
                    self.stream.write(chunk)
                    self.stream.flush()
                    continue
                if channel.exit_status_ready() and not channel.recv_ready():
                    break
                time.sleep(0.1)
            rc = channel.recv_exit_status()
        except _TRANSPORT_ERRORS as e:
            raise CommandError(cmd, -1, str(e)) from e
        log.debug("[ssh][exit %d]", rc)
        if rc != 0:
            raise CommandError(cmd, rc)

    def combined_output(self, cmd: str) -> str:
        try:
            channel = self._exec(cmd)
            chunks = []
            while True:
                data = channel.recv(4096)
                if not data:
                    break
                chunks.append(data)
            rc = channel.recv_exit_status()
        except _TRANSPORT_ERRORS as e:
            raise CommandError(cmd, -1, str(e)) from e
        out = b"".join(chunks).decode("utf-8", "replace")
        if out:
            log.debug("[ssh][output]\n%s", out.rstrip())
        if rc != 0:
            raise CommandError(cmd, rc, out)
        return out

    def copy(self, unit: DeliveryUnit) -> None:
        """
        Upload to a temp path then install with sudo so root-owned
        targets keep their owner and get the requested mode.
        """
        tmp = f"/tmp/.kubestrap_tmp_{os.getpid()}_{next(_counter)}"
        log.debug("[ssh] copy %s (via %s)", unit, tmp)
        try:
            sftp = self.client.open_sftp()
            try:
                with unit.open() as src:
                    sftp.putfo(src, tmp, file_size=unit.length)
            finally:
                sftp.close()
        except _TRANSPORT_ERRORS as e:
            raise CommandError(f"sftp put {tmp}", -1, str(e)) from e

        q_tmp = shlex.quote(tmp)
        self.combined_output(
            f"sudo install -D -m {unit.permissions} {q_tmp} {shlex.quote(unit.target_path)}"
            f" ; rc=$? ; rm -f {q_tmp} ; exit $rc"
        )

    def close(self) -> None:
        self.client.close()
