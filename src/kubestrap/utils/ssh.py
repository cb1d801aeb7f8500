# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import paramiko
from kubestrap.config.models import SSHTarget
from kubestrap.utils.ssh_runner import SSHRunner


def _load_pkey(path) -> paramiko.PKey | None:
    for key_cls in (
        paramiko.Ed25519Key,
        paramiko.RSAKey,
        paramiko.ECDSAKey,
    ):
        try:
            return key_cls.from_private_key_file(str(path))
        except paramiko.SSHException:
            continue
    raise paramiko.SSHException(f"Unsupported private key format for {path}")


def open_ssh(
    target: SSHTarget,
    *,
    connect_timeout: float = 20.0,
    cmd_timeout: float | None = None,
) -> SSHRunner:
    client = paramiko.SSHClient()
    client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

    pkey = _load_pkey(target.pkey_path.expanduser()) if target.pkey_path else None

    client.connect(
        hostname=target.address,
        port=target.port,
        username=target.username,
        password=target.password if not pkey else None,
        pkey=pkey,
        timeout=connect_timeout,
        allow_agent=True,
        look_for_keys=pkey is None,
    )

    return SSHRunner(client, timeout=cmd_timeout)
