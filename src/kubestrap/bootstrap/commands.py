# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kubestrap/bootstrap/commands.py

"""
Shell commands issued against the node, paired with the label used when
they fail.
"""

from __future__ import annotations

from typing import List, NamedTuple

from kubestrap import constants


class CommandSpec(NamedTuple):
    cmd: str
    label: str


KUBEADM = "/usr/bin/kubeadm"

STATUS = CommandSpec(
    'sudo systemctl is-active kubelet &>/dev/null && echo "Running" || echo "Stopped"',
    "getting status",
)

START_KUBELET = CommandSpec(
    "sudo systemctl daemon-reload && "
    "sudo systemctl enable kubelet && "
    "sudo systemctl start kubelet",
    "starting kubelet",
)

# certs -> kubeconfig -> controlplane -> etcd; each phase reads what the
# previous one wrote
RESTART_PHASES = (
    ("certs", "all"),
    ("kubeconfig", "all"),
    ("controlplane", "all"),
    ("etcd", "local"),
)


def kubeadm_init(config_file: str = constants.KUBEADM_CONFIG_FILE) -> CommandSpec:
    # preflight is skipped: our own addon manifests already sit in
    # /etc/kubernetes/manifests and would trip it
    cmd = f"sudo {KUBEADM} init --config {config_file} --skip-preflight-checks"
    return CommandSpec(cmd, f"kubeadm init error running command: {cmd}")


def restart_phases(config_file: str = constants.KUBEADM_CONFIG_FILE) -> List[CommandSpec]:
    return [
        CommandSpec(
            f"sudo {KUBEADM} alpha phase {phase} {arg} --config {config_file}",
            f"running kubeadm phase {phase}",
        )
        for phase, arg in RESTART_PHASES
    ]


def kubelet_logs(follow: bool = False) -> CommandSpec:
    flags = "-f " if follow else ""
    return CommandSpec(f"sudo journalctl {flags}-u kubelet", "getting cluster logs")


def docker_load(path: str) -> CommandSpec:
    return CommandSpec(f"sudo docker load -i {path}", f"loading image {path}")
