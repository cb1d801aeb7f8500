# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kubestrap/assets/addons.py

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, List

import yaml

from kubestrap import constants
from kubestrap.assets.models import AddonBundle, DeliveryUnit
from kubestrap.config.models import AddonSpec

log = logging.getLogger("kubestrap")

CUSTOM_ADDONS_BUNDLE = "custom"


def read_addon_state(state_file: Path) -> dict[str, bool]:
    """
    Read the persisted {addon-name: enabled} map. A missing file means
    nothing was toggled; a malformed one raises.
    """
    if not state_file.exists():
        return {}
    data = yaml.safe_load(state_file.read_text()) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{state_file}: expected a mapping of addon name to bool")
    for name, value in data.items():
        if not isinstance(value, bool):
            raise ValueError(f"{state_file}: addon '{name}' must be true or false, got {value!r}")
    return data


def write_addon_state(state_file: Path, name: str, enabled: bool) -> None:
    state = read_addon_state(state_file)
    state[name] = enabled
    state_file.parent.mkdir(parents=True, exist_ok=True)
    state_file.write_text(yaml.safe_dump(state, sort_keys=True))


def enabled_predicate(name: str, default: bool, state_file: Path) -> Callable[[], bool]:
    """The persisted state wins over the config default."""
    def _is_enabled() -> bool:
        return read_addon_state(state_file).get(name, default)
    return _is_enabled


def bundle_from_spec(spec: AddonSpec, state_file: Path) -> AddonBundle:
    assets = tuple(
        DeliveryUnit.from_file(
            f.source.expanduser(),
            f.target_dir,
            f.target_name or f.source.name,
            f.permissions,
        )
        for f in spec.files
    )
    return AddonBundle(
        name=spec.name,
        is_enabled=enabled_predicate(spec.name, spec.enabled, state_file),
        assets=assets,
    )


def custom_addon_units(addons_dir: Path) -> List[DeliveryUnit]:
    """
    Every regular file under addons_dir, flattened into the node's addon
    manifest directory.
    """
    if not addons_dir.is_dir():
        return []
    units = []
    for path in sorted(addons_dir.rglob("*")):
        if path.is_file():
            units.append(
                DeliveryUnit.from_file(
                    path,
                    constants.ADDONS_PATH,
                    path.name,
                    constants.GENERATED_FILE_PERMISSIONS,
                )
            )
    return units


def build_addon_bundles(specs: List[AddonSpec], addons_dir: Path, state_file: Path) -> List[AddonBundle]:
    """
    User-dropped manifests first (always on), then the configured bundles
    in declaration order.
    """
    bundles: List[AddonBundle] = []
    custom = custom_addon_units(addons_dir)
    if custom:
        bundles.append(AddonBundle(CUSTOM_ADDONS_BUNDLE, lambda: True, tuple(custom)))
    for spec in specs:
        bundles.append(bundle_from_spec(spec, state_file))
    log.debug("addon bundles: %s", [b.name for b in bundles])
    return bundles
