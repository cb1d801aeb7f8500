# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kubestrap/bootstrap/fetch.py

from __future__ import annotations

import concurrent.futures
import logging
from pathlib import Path
from typing import Dict, List, Sequence

from kubestrap import constants
from kubestrap.assets.models import DeliveryUnit
from kubestrap.bootstrap.cache import ArtifactCache
from kubestrap.errors import FetchError

log = logging.getLogger("kubestrap")


class ParallelFetchCoordinator:
    """
    Resolves every required binary through the cache at once and turns
    them into install units. All or nothing: one failure fails the batch.
    """

    def __init__(
        self,
        cache: ArtifactCache,
        binaries: Sequence[str] = constants.REQUIRED_BINARIES,
        install_dir: str = constants.BINARY_INSTALL_DIR,
    ):
        self.cache = cache
        self.binaries = tuple(binaries)
        self.install_dir = install_dir

    def fetch(self, version: str) -> List[DeliveryUnit]:
        paths: Dict[str, Path] = {}
        first_error: FetchError | None = None

        # Thread pool sized to the batch; leaving the block joins every fetch
        with concurrent.futures.ThreadPoolExecutor(
            max_workers=max(1, len(self.binaries)),
            thread_name_prefix="kubestrap-fetch",
        ) as pool:
            futures = {
                pool.submit(self.cache.resolve, binary, version): binary
                for binary in self.binaries
            }
            for fut in concurrent.futures.as_completed(futures):
                binary = futures[fut]
                try:
                    paths[binary] = fut.result()
                except Exception as e:
                    log.debug("fetch of %s %s failed: %s", binary, version, e)
                    if first_error is None:
                        if isinstance(e, FetchError) and e.binary == binary:
                            first_error = e
                        else:
                            first_error = FetchError(binary, version, str(e))
                            first_error.__cause__ = e

        if first_error is not None:
            raise first_error

        return [
            DeliveryUnit.from_file(
                paths[binary],
                self.install_dir,
                binary,
                constants.BINARY_PERMISSIONS,
            )
            for binary in self.binaries
        ]
