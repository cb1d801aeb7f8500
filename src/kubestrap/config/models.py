# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kubestrap/config/models.py

from __future__ import annotations

from pathlib import Path
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from kubestrap import constants


class HostConfig(BaseModel):
    """
    Per-invocation parameters for one control-plane node.

    node_name / node_ip / kubernetes_version may be left out here; the
    renderer refuses to produce a kubeadm config without them.
    """

    model_config = ConfigDict(frozen=True)

    node_name: Optional[str] = None
    node_ip: Optional[str] = None
    advertise_address: Optional[str] = None   # defaults to node_ip
    api_server_port: int = constants.DEFAULT_API_SERVER_PORT
    kubernetes_version: Optional[str] = None
    service_cidr: str = constants.DEFAULT_SERVICE_CIDR
    etcd_data_dir: str = constants.DEFAULT_ETCD_DATA_DIR
    cert_dir: str = constants.DEFAULT_CERT_DIR
    should_load_cached_images: bool = True

    @model_validator(mode="before")
    @classmethod
    def _default_advertise_address(cls, data):
        if isinstance(data, dict) and not data.get("advertise_address") and data.get("node_ip"):
            data = {**data, "advertise_address": data["node_ip"]}
        return data


class SSHTarget(BaseModel):
    address: str
    username: str
    port: int = 22
    password: Optional[str] = None
    pkey_path: Optional[Path] = None


class AddonFileSpec(BaseModel):
    source: Path
    target_dir: str = constants.ADDONS_PATH
    target_name: Optional[str] = None          # defaults to source file name
    permissions: str = constants.GENERATED_FILE_PERMISSIONS


class AddonSpec(BaseModel):
    name: str
    enabled: bool = False
    files: List[AddonFileSpec] = Field(default_factory=list)


class KubestrapSettings(BaseModel):
    """Top-level kubestrap.yaml."""

    driver: Literal["none", "ssh"] = "none"
    ssh: Optional[SSHTarget] = None
    home: Path = constants.DEFAULT_HOME
    release_url_base: str = constants.RELEASE_URL_BASE
    host: HostConfig = Field(default_factory=HostConfig)
    addons: List[AddonSpec] = Field(default_factory=list)

    @model_validator(mode="after")
    def _ssh_requires_target(self) -> "KubestrapSettings":
        if self.driver == "ssh" and self.ssh is None:
            raise ValueError("driver 'ssh' requires an 'ssh' section")
        return self

    @property
    def cache_dir(self) -> Path:
        return self.home.expanduser() / "cache"

    @property
    def image_cache_dir(self) -> Path:
        return self.cache_dir / "images"

    @property
    def addons_dir(self) -> Path:
        return self.home.expanduser() / "addons"

    @property
    def addon_state_file(self) -> Path:
        return self.home.expanduser() / "config" / "addons.yaml"

    @property
    def logs_dir(self) -> Path:
        return self.home.expanduser() / "logs"

    @property
    def certs_dir(self) -> Path:
        return self.home.expanduser() / "certs"
