# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kubestrap/bootstrap/renderer.py

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import NamedTuple

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError

from kubestrap.config.models import HostConfig
from kubestrap.errors import RenderError

TEMPLATES_DIR = Path(__file__).parent / "templates"
KUBEADM_TEMPLATE = "kubeadm.yaml.j2"

KUBELET_SERVICE = textwrap.dedent("""\
    [Unit]
    Description=kubelet: The Kubernetes Node Agent
    Documentation=http://kubernetes.io/docs/

    [Service]
    ExecStart=/usr/bin/kubelet
    Restart=always
    StartLimitInterval=0
    RestartSec=10

    [Install]
    WantedBy=multi-user.target
""")

KUBELET_SYSTEMD_CONF = textwrap.dedent("""\
    [Service]
    Environment="KUBELET_KUBECONFIG_ARGS=--kubeconfig=/etc/kubernetes/kubelet.conf --require-kubeconfig=true"
    Environment="KUBELET_SYSTEM_PODS_ARGS=--pod-manifest-path=/etc/kubernetes/manifests --allow-privileged=true"
    Environment="KUBELET_DNS_ARGS=--cluster-dns=10.0.0.10 --cluster-domain=cluster.local"
    Environment="KUBELET_CADVISOR_ARGS=--cadvisor-port=0"
    Environment="KUBELET_CGROUP_ARGS=--cgroup-driver=cgroupfs"
    ExecStart=
    ExecStart=/usr/bin/kubelet $KUBELET_KUBECONFIG_ARGS $KUBELET_SYSTEM_PODS_ARGS $KUBELET_DNS_ARGS $KUBELET_CADVISOR_ARGS $KUBELET_CGROUP_ARGS $KUBELET_EXTRA_ARGS
""")

REQUIRED_FIELDS = (
    "node_name",
    "advertise_address",
    "api_server_port",
    "kubernetes_version",
    "cert_dir",
    "service_cidr",
    "etcd_data_dir",
)


class RenderedConfig(NamedTuple):
    kubeadm_config: str
    kubelet_service: str
    kubelet_dropin: str


class ConfigRenderer:
    def __init__(self, templates_dir: Path = TEMPLATES_DIR):
        self.env = Environment(
            loader=FileSystemLoader(str(templates_dir)),
            autoescape=False,
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )

    def render(self, host: HostConfig) -> RenderedConfig:
        context = {name: getattr(host, name) for name in REQUIRED_FIELDS}
        missing = [k for k, v in context.items() if v is None or (isinstance(v, str) and not v.strip())]
        if missing:
            raise RenderError(f"host config is missing required field(s): {', '.join(missing)}")

        try:
            kubeadm_config = self.env.get_template(KUBEADM_TEMPLATE).render(**context)
        except TemplateError as e:
            raise RenderError(f"rendering {KUBEADM_TEMPLATE}: {e}") from e

        return RenderedConfig(
            kubeadm_config=kubeadm_config,
            kubelet_service=KUBELET_SERVICE,
            kubelet_dropin=KUBELET_SYSTEMD_CONF,
        )
