# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kubestrap/constants.py

"""
Well-known paths and defaults shared by the bootstrap engine.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_HOME = Path.home() / ".kubestrap"

# Files delivered to the node
KUBELET_SERVICE_FILE = "/lib/systemd/system/kubelet.service"
KUBELET_SYSTEMD_CONF_FILE = "/etc/systemd/system/kubelet.service.d/10-kubeadm.conf"
KUBEADM_CONFIG_FILE = "/var/lib/kubeadm.yaml"
ADDONS_PATH = "/etc/kubernetes/addons"
BINARY_INSTALL_DIR = "/usr/bin"
ADMIN_KUBECONFIG = "/etc/kubernetes/admin.conf"

GENERATED_FILE_PERMISSIONS = "0640"
BINARY_PERMISSIONS = "0641"
CERT_PERMISSIONS = "0644"
KEY_PERMISSIONS = "0600"

# kubelet + kubeadm must be installed at the same version
REQUIRED_BINARIES: tuple[str, ...] = ("kubelet", "kubeadm")

# kubeadm ships its own DNS addon; never deliver ours alongside it
RESERVED_DNS_ADDON = "kube-dns"

# HostConfig defaults
DEFAULT_API_SERVER_PORT = 8443
DEFAULT_SERVICE_CIDR = "10.0.0.0/24"
DEFAULT_ETCD_DATA_DIR = "/data"
DEFAULT_CERT_DIR = "/var/lib/kubestrap/certs/"

RELEASE_URL_BASE = "https://storage.googleapis.com/kubernetes-release/release"

# post-init convergence
POST_INIT_RETRY_ATTEMPTS = 100
POST_INIT_RETRY_INTERVAL = 0.5

MASTER_TAINT_KEY = "node-role.kubernetes.io/master"
RBAC_BINDING_NAME = "kubestrap-rbac"


def release_url(binary: str, version: str, base: str = RELEASE_URL_BASE) -> str:
    return f"{base.rstrip('/')}/{version}/bin/linux/amd64/{binary}"


def release_sha1_url(binary: str, version: str, base: str = RELEASE_URL_BASE) -> str:
    return release_url(binary, version, base) + ".sha1"


def cached_images(kubernetes_version: str) -> list[str]:
    """
    Control-plane images kubeadm pulls for *kubernetes_version*.
    """
    return [
        f"gcr.io/google_containers/kube-proxy-amd64:{kubernetes_version}",
        f"gcr.io/google_containers/kube-scheduler-amd64:{kubernetes_version}",
        f"gcr.io/google_containers/kube-controller-manager-amd64:{kubernetes_version}",
        f"gcr.io/google_containers/kube-apiserver-amd64:{kubernetes_version}",
        "gcr.io/google_containers/etcd-amd64:3.0.17",
        "gcr.io/google_containers/pause-amd64:3.0",
        "gcr.io/google_containers/k8s-dns-kube-dns-amd64:1.14.4",
        "gcr.io/google_containers/k8s-dns-dnsmasq-nanny-amd64:1.14.4",
        "gcr.io/google_containers/k8s-dns-sidecar-amd64:1.14.4",
        "gcr.io/google-containers/kube-addon-manager:v6.4-beta.2",
        "gcr.io/google_containers/kubernetes-dashboard-amd64:v1.6.3",
        "gcr.io/k8s-minikube/storage-provisioner:v1.8.0",
    ]
