# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kubestrap/bootstrap/delivery.py

from __future__ import annotations

import logging
from typing import Iterable, List

from kubestrap import constants
from kubestrap.assets.models import AddonBundle, DeliveryUnit
from kubestrap.bootstrap.renderer import RenderedConfig
from kubestrap.errors import DeliveryError
from kubestrap.execution.runner import CommandRunner

log = logging.getLogger("kubestrap")


class FileDeliveryPlanner:
    """
    Decides which files go to the node, in which order, and copies them.

    Service and config files always come first so they are in place
    before kubelet is (re)started.
    """

    def plan(
        self,
        rendered: RenderedConfig,
        binaries: Iterable[DeliveryUnit] = (),
        addons: Iterable[AddonBundle] = (),
    ) -> List[DeliveryUnit]:
        perms = constants.GENERATED_FILE_PERMISSIONS
        units = [
            DeliveryUnit.from_bytes(rendered.kubelet_service, constants.KUBELET_SERVICE_FILE, perms),
            DeliveryUnit.from_bytes(rendered.kubelet_dropin, constants.KUBELET_SYSTEMD_CONF_FILE, perms),
            DeliveryUnit.from_bytes(rendered.kubeadm_config, constants.KUBEADM_CONFIG_FILE, perms),
        ]
        units.extend(binaries)

        for bundle in addons:
            if bundle.name == constants.RESERVED_DNS_ADDON:
                log.debug("skipping addon %s: kubeadm provisions its own DNS", bundle.name)
                continue
            try:
                enabled = bundle.is_enabled()
            except Exception as e:
                log.warning("addon %s: enablement check failed, treating as disabled: %s", bundle.name, e)
                continue
            if not enabled:
                log.debug("addon %s disabled", bundle.name)
                continue
            log.debug("addon %s enabled (%d file(s))", bundle.name, len(bundle.assets))
            units.extend(bundle.assets)

        return units

    def deliver(self, units: Iterable[DeliveryUnit], runner: CommandRunner) -> None:
        for unit in units:
            log.debug("transferring %s", unit)
            try:
                runner.copy(unit)
            except Exception as e:
                raise DeliveryError(unit.target_path, str(e)) from e
