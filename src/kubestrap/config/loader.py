# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kubestrap/config/loader.py

import logging
import os
import yaml
from pathlib import Path
from .models import KubestrapSettings

log = logging.getLogger("kubestrap")


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Recursively merge *override* into *base* (mutates base).
    Only overwrites when the override value is non-empty.
    """
    for key, value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, dict)
        ):
            _deep_merge(base[key], value)
        else:
            if value not in (None, ""):
                base[key] = value
    return base


def _find_overrides_file(config_path: Path) -> Path | None:
    """
    Locate overrides.yaml using this priority:

    1. KUBESTRAP_OVERRIDES_FILE environment variable (explicit override)
    2. overrides.yaml in the same directory as the config
    """
    env = os.environ.get("KUBESTRAP_OVERRIDES_FILE")
    if env:
        p = Path(env)
        if p.is_file():
            return p
        log.warning("KUBESTRAP_OVERRIDES_FILE=%s does not exist, skipping", env)
        return None

    p = config_path.parent / "overrides.yaml"
    if p.is_file():
        return p

    return None


def _load_yaml(path: Path) -> dict:
    """Load a YAML file, expanding ${ENV_VAR} references."""
    raw = path.read_text()
    expanded = os.path.expandvars(raw)
    return yaml.safe_load(expanded) or {}


def load_config(path: str | Path) -> KubestrapSettings:
    """
    Load and validate a kubestrap YAML config.

    Per-machine values (node IP, SSH key, ...) can live in an
    ``overrides.yaml`` that mirrors the config structure. It is found via
    ``KUBESTRAP_OVERRIDES_FILE`` or next to the config file and deep-merged
    before validation. ``${ENV_VAR}`` placeholders are expanded in both.
    """
    path = Path(path)
    data = _load_yaml(path)

    overrides_path = _find_overrides_file(path)
    if overrides_path:
        log.debug("Merging overrides from %s", overrides_path)
        _deep_merge(data, _load_yaml(overrides_path))
    else:
        log.debug("No overrides.yaml found, using %s as-is", path)

    return KubestrapSettings.model_validate(data)
