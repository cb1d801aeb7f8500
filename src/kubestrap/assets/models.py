# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kubestrap/assets/models.py

from __future__ import annotations

import io
import posixpath
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Callable, Optional, Tuple


@dataclass(frozen=True)
class DeliveryUnit:
    """
    Bytes to place on the node at target_dir/target_name with the given
    permissions. Backed either by in-memory content or a local file.
    """
    target_dir: str
    target_name: str
    permissions: str                   # octal string, e.g. "0640"
    content: Optional[bytes] = None
    source_path: Optional[Path] = None

    def __post_init__(self):
        if (self.content is None) == (self.source_path is None):
            raise ValueError("DeliveryUnit needs exactly one of content or source_path")
        int(self.permissions, 8)

    @classmethod
    def from_bytes(cls, content: bytes | str, target_path: str, permissions: str) -> "DeliveryUnit":
        if isinstance(content, str):
            content = content.encode("utf-8")
        target_dir, target_name = posixpath.split(target_path)
        return cls(target_dir=target_dir, target_name=target_name, permissions=permissions, content=content)

    @classmethod
    def from_file(cls, source: str | Path, target_dir: str, target_name: str, permissions: str) -> "DeliveryUnit":
        source = Path(source)
        if not source.is_file():
            raise FileNotFoundError(f"asset source {source} does not exist")
        return cls(target_dir=target_dir, target_name=target_name, permissions=permissions, source_path=source)

    @property
    def target_path(self) -> str:
        return posixpath.join(self.target_dir, self.target_name)

    @property
    def mode(self) -> int:
        return int(self.permissions, 8)

    @property
    def length(self) -> int:
        if self.content is not None:
            return len(self.content)
        return self.source_path.stat().st_size

    def open(self) -> BinaryIO:
        if self.content is not None:
            return io.BytesIO(self.content)
        return open(self.source_path, "rb")

    def __str__(self) -> str:
        src = str(self.source_path) if self.source_path else f"<{len(self.content)} bytes>"
        return f"{src} -> {self.target_path} ({self.permissions})"


@dataclass(frozen=True)
class AddonBundle:
    """
    An optional set of files delivered alongside the control plane.
    is_enabled may raise; the planner treats that as disabled.
    """
    name: str
    is_enabled: Callable[[], bool]
    assets: Tuple[DeliveryUnit, ...] = field(default_factory=tuple)
