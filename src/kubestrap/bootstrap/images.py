# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kubestrap/bootstrap/images.py

from __future__ import annotations

import logging
import posixpath
import threading
from pathlib import Path
from typing import Iterable, List

from kubestrap.assets.models import DeliveryUnit
from kubestrap.bootstrap import commands
from kubestrap.execution.runner import CommandRunner

log = logging.getLogger("kubestrap")

REMOTE_TMP_DIR = "/tmp"


def image_tarball_name(image: str) -> str:
    # "gcr.io/foo/bar:v1" -> "gcr.io/foo/bar_v1"
    return image.replace(":", "_")


class ImageLoader:
    """
    Pushes previously saved image tarballs to the node and loads them
    into docker, so kubeadm does not have to pull them.
    """

    def __init__(self, runner: CommandRunner, cache_dir: Path):
        self.runner = runner
        self.cache_dir = Path(cache_dir)

    def load(self, images: Iterable[str]) -> List[str]:
        loaded = []
        for image in images:
            src = self.cache_dir / image_tarball_name(image)
            if not src.is_file():
                log.debug("no cached tarball for %s", image)
                continue
            unit = DeliveryUnit.from_file(src, REMOTE_TMP_DIR, src.name, "0777")
            self.runner.copy(unit)
            spec = commands.docker_load(posixpath.join(REMOTE_TMP_DIR, src.name))
            self.runner.combined_output(spec.cmd)
            log.debug("loaded cached image %s", image)
            loaded.append(image)
        return loaded


def start_background_load(loader: ImageLoader, images: Iterable[str]) -> threading.Thread:
    """
    Best effort: the thread is never joined by the caller and a failure
    only produces a warning.
    """
    images = list(images)

    def _load():
        try:
            loaded = loader.load(images)
            log.info("Loaded %d cached image(s)", len(loaded))
        except Exception as e:
            log.warning("Loading cached images failed (continuing): %s", e)

    t = threading.Thread(target=_load, name="kubestrap-image-preload", daemon=True)
    t.start()
    return t
