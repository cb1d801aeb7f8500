# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kubestrap/bootstrap/kubeadm.py

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional, Sequence

import paramiko

from kubestrap import constants
from kubestrap.assets.addons import build_addon_bundles
from kubestrap.assets.models import AddonBundle
from kubestrap.bootstrap import commands
from kubestrap.bootstrap.cache import ArtifactCache
from kubestrap.bootstrap.certs import CertGenerator
from kubestrap.bootstrap.delivery import FileDeliveryPlanner
from kubestrap.bootstrap.fetch import ParallelFetchCoordinator
from kubestrap.bootstrap.images import ImageLoader, start_background_load
from kubestrap.bootstrap.renderer import ConfigRenderer
from kubestrap.config.models import HostConfig, KubestrapSettings
from kubestrap.errors import (
    ConvergenceTimeoutError,
    KubestrapError,
    OperationError,
    RenderError,
    UnrecognizedOutputError,
)
from kubestrap.execution.runner import CommandRunner, ExecRunner
from kubestrap.kube.kubectl import KubectlRunner
from kubestrap.utils.ssh import open_ssh
from kubestrap.utils.retry import retry_after

log = logging.getLogger("kubestrap")

RUNNING = "Running"
STOPPED = "Stopped"


class KubeadmBootstrapper:
    """
    Drives a single node through kubeadm:

      update   install kubelet/kubeadm, service files, kubeadm config, addons
      certs    cluster CA + apiserver certificate into certificatesDir
      start    kubeadm init + make the lone node usable
      restart  re-run the kubeadm phases against the existing config
      status   Running / Stopped from systemd
      logs     kubelet journal

    Every step is idempotent; after a failure fix the cause and re-run.
    """

    retry_attempts = constants.POST_INIT_RETRY_ATTEMPTS
    retry_interval = constants.POST_INIT_RETRY_INTERVAL

    def __init__(
        self,
        runner: CommandRunner,
        cache: ArtifactCache,
        *,
        addons: Sequence[AddonBundle] = (),
        image_cache_dir: Optional[Path] = None,
        renderer: Optional[ConfigRenderer] = None,
        planner: Optional[FileDeliveryPlanner] = None,
        fetcher: Optional[ParallelFetchCoordinator] = None,
        certs: Optional[CertGenerator] = None,
    ):
        self.runner = runner
        self.addons = list(addons)
        self.image_cache_dir = image_cache_dir
        self.certs = certs
        self.renderer = renderer or ConfigRenderer()
        self.planner = planner or FileDeliveryPlanner()
        self.fetcher = fetcher or ParallelFetchCoordinator(cache)
        self.kubectl = KubectlRunner(runner)

    @classmethod
    def from_settings(cls, settings: KubestrapSettings) -> "KubeadmBootstrapper":
        """Pick the transport once; nothing downstream looks at the driver."""
        if settings.driver == "ssh":
            try:
                runner: CommandRunner = open_ssh(settings.ssh)
            except (paramiko.SSHException, OSError) as e:
                raise OperationError(f"connecting to {settings.ssh.address}", e) from e
        else:
            runner = ExecRunner()

        cache = ArtifactCache(settings.cache_dir, release_url_base=settings.release_url_base)
        addons = build_addon_bundles(settings.addons, settings.addons_dir, settings.addon_state_file)
        return cls(
            runner,
            cache,
            addons=addons,
            image_cache_dir=settings.image_cache_dir,
            certs=CertGenerator(settings.certs_dir),
        )

    # ------------------ status / logs ------------------

    def get_cluster_status(self) -> str:
        try:
            out = self.runner.combined_output(commands.STATUS.cmd)
        except KubestrapError as e:
            raise OperationError(commands.STATUS.label, e) from e
        status = out.strip()
        if status in (RUNNING, STOPPED):
            return status
        raise UnrecognizedOutputError("ClusterStatus", status)

    def get_cluster_logs(self, follow: bool = False) -> str:
        spec = commands.kubelet_logs(follow)
        if follow:
            try:
                self.runner.run(spec.cmd)
            except KubestrapError as e:
                raise OperationError("getting shell", e) from e
        try:
            return self.runner.combined_output(spec.cmd)
        except KubestrapError as e:
            raise OperationError(spec.label, e) from e

    # ------------------ start / restart ------------------

    def start_cluster(self, host: HostConfig) -> None:
        if not (host.node_name or "").strip():
            raise OperationError("starting cluster", RenderError("node_name is required"))

        init = commands.kubeadm_init()
        log.info("Running kubeadm init on %s", host.node_name)
        try:
            self.runner.run(init.cmd)
        except KubestrapError as e:
            raise OperationError(init.label, e) from e

        node_name = host.node_name
        log.info("Waiting for node %s to become schedulable...", node_name)
        retry_after(
            self.retry_attempts,
            lambda: self.kubectl.unmark_master(node_name),
            self.retry_interval,
            error=lambda: ConvergenceTimeoutError("timed out waiting to unmark master"),
        )

        log.info("Elevating kube-system privileges...")
        retry_after(
            self.retry_attempts,
            self.kubectl.elevate_kube_system_privileges,
            self.retry_interval,
            error=lambda: ConvergenceTimeoutError(
                "timed out waiting to elevate kube-system RBAC privileges"
            ),
        )
        log.info("Cluster started on %s", node_name)

    def restart_cluster(self, host: HostConfig) -> None:
        for phase in commands.restart_phases():
            log.info("[restart] %s", phase.label)
            try:
                self.runner.run(phase.cmd)
            except KubestrapError as e:
                raise OperationError(phase.label, e) from e

        try:
            self.kubectl.restart_kube_proxy()
        except KubestrapError as e:
            raise OperationError("restarting kube-proxy", e) from e
        log.info("Cluster restarted on %s", host.node_name)

    # ------------------ certs ------------------

    def setup_certs(self, host: HostConfig) -> None:
        if self.certs is None:
            raise OperationError("generating certs", RenderError("no local certificate directory configured"))
        try:
            units = self.certs.generate(host)
        except (KubestrapError, OSError, ValueError) as e:
            raise OperationError("generating certs", e) from e

        try:
            self.planner.deliver(units, self.runner)
        except KubestrapError as e:
            raise OperationError("transferring certs", e) from e
        log.info("Certificates installed in %s on %s", host.cert_dir, host.node_name)

    # ------------------ update ------------------

    def update_cluster(self, host: HostConfig) -> Optional[threading.Thread]:
        preload = None
        if host.should_load_cached_images and self.image_cache_dir is not None:
            preload = start_background_load(
                ImageLoader(self.runner, self.image_cache_dir),
                constants.cached_images(host.kubernetes_version or ""),
            )

        try:
            rendered = self.renderer.render(host)
        except KubestrapError as e:
            raise OperationError("generating kubeadm cfg", e) from e

        files = self.planner.plan(rendered, addons=self.addons)
        try:
            self.planner.deliver(files, self.runner)
        except KubestrapError as e:
            raise OperationError("transferring kubeadm files", e) from e

        try:
            binaries = self.fetcher.fetch(host.kubernetes_version)
            self.planner.deliver(binaries, self.runner)
        except KubestrapError as e:
            raise OperationError("downloading binaries", e) from e

        try:
            self.runner.run(commands.START_KUBELET.cmd)
        except KubestrapError as e:
            raise OperationError(commands.START_KUBELET.label, e) from e

        log.info("Node %s updated to %s", host.node_name, host.kubernetes_version)
        return preload

    def close(self) -> None:
        close = getattr(self.runner, "close", None)
        if close:
            close()
