# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kubestrap/kube/kubectl.py

from __future__ import annotations

import logging
import shlex

import yaml

from kubestrap import constants
from kubestrap.execution.runner import CommandRunner

log = logging.getLogger("kubestrap")


class KubectlRunner:
    """
    kubectl executed on the node through a CommandRunner, against the
    admin kubeconfig kubeadm writes.

    Every action here is safe to repeat.
    """

    def __init__(
        self,
        runner: CommandRunner,
        *,
        kubeconfig: str = constants.ADMIN_KUBECONFIG,
    ):
        self.runner = runner
        self.kubeconfig = kubeconfig

    def _run(self, cmd: str) -> str:
        return self.runner.combined_output(
            f"sudo kubectl --kubeconfig={self.kubeconfig} {cmd}"
        )

    def node_taints(self, node_name: str) -> str:
        return self._run(
            f"get node {shlex.quote(node_name)} -o jsonpath='{{.spec.taints[*].key}}'"
        )

    def unmark_master(self, node_name: str) -> None:
        """
        Drop the master NoSchedule taint so a single node can run
        workloads. Fails until the node object exists.
        """
        keys = self.node_taints(node_name).split()
        if constants.MASTER_TAINT_KEY not in keys:
            log.debug("node %s already schedulable", node_name)
            return
        self._run(f"taint nodes {shlex.quote(node_name)} {constants.MASTER_TAINT_KEY}-")
        log.info("Removed %s taint from %s", constants.MASTER_TAINT_KEY, node_name)

    def elevate_kube_system_privileges(self) -> None:
        """
        Bind cluster-admin to kube-system:default so addon manifests
        applied by that service account can create what they need.
        """
        binding = {
            "apiVersion": "rbac.authorization.k8s.io/v1",
            "kind": "ClusterRoleBinding",
            "metadata": {"name": constants.RBAC_BINDING_NAME},
            "roleRef": {
                "apiGroup": "rbac.authorization.k8s.io",
                "kind": "ClusterRole",
                "name": "cluster-admin",
            },
            "subjects": [
                {"kind": "ServiceAccount", "name": "default", "namespace": "kube-system"},
            ],
        }
        manifest = yaml.safe_dump(binding, sort_keys=False)
        self._run(f"apply -f - <<'EOF'\n{manifest}EOF")
        log.info("Applied ClusterRoleBinding %s", constants.RBAC_BINDING_NAME)

    def restart_kube_proxy(self) -> None:
        """kube-proxy runs as a DaemonSet; deleting its pods restarts them."""
        self._run("-n kube-system delete pods -l k8s-app=kube-proxy --ignore-not-found")
