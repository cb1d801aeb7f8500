# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kubestrap/bootstrap/cache.py

from __future__ import annotations

import hashlib
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Callable, Optional

import requests

from kubestrap import constants
from kubestrap.errors import CacheError, FetchError

log = logging.getLogger("kubestrap")

CHUNK_SIZE = 1 << 20
_SHA1_RE = re.compile(r"[0-9a-f]{40}")


class ArtifactCache:
    """
    Versioned binary cache: <cache_root>/<version>/<binary>.

    A file that exists is trusted as-is; checksums are only verified
    while downloading.
    """

    def __init__(
        self,
        cache_root: Path,
        *,
        session: Optional[requests.Session] = None,
        release_url_base: str = constants.RELEASE_URL_BASE,
        checksum_for: Optional[Callable[[str, str], str]] = None,
        timeout: float = 60.0,
    ):
        self.cache_root = Path(cache_root)
        self.session = session or requests.Session()
        self.release_url_base = release_url_base
        self.checksum_for = checksum_for or self._published_sha1
        self.timeout = timeout

    def path_for(self, binary: str, version: str) -> Path:
        return self.cache_root / version / binary

    def resolve(self, binary: str, version: str) -> Path:
        target_dir = self.cache_root / version
        target = target_dir / binary

        try:
            os.stat(target)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise CacheError(f"stat {binary} version {version} at {target_dir}: {e}") from e
        else:
            log.debug("cache hit: %s %s -> %s", binary, version, target)
            return target

        try:
            os.makedirs(target_dir, mode=0o777, exist_ok=True)
        except OSError as e:
            raise CacheError(f"mkdir {target_dir}: {e}") from e

        log.info("Downloading %s %s", binary, version)
        self._download(binary, version, target)
        log.info("Finished downloading %s %s", binary, version)
        return target

    # ------------------ download ------------------

    def _published_sha1(self, binary: str, version: str) -> str:
        url = constants.release_sha1_url(binary, version, self.release_url_base)
        r = self.session.get(url, timeout=self.timeout)
        r.raise_for_status()
        # "<hex>" or "<hex>  <filename>"
        fields = r.text.split()
        return fields[0] if fields else ""

    def _expected_sha1(self, binary: str, version: str) -> str:
        try:
            digest = self.checksum_for(binary, version)
        except FetchError:
            raise
        except Exception as e:
            raise FetchError(binary, version, f"looking up sha1: {e}") from e
        digest = (digest or "").strip().lower()
        if not _SHA1_RE.fullmatch(digest):
            raise FetchError(binary, version, f"invalid published sha1 {digest!r}")
        return digest

    def _download(self, binary: str, version: str, target: Path) -> None:
        url = constants.release_url(binary, version, self.release_url_base)
        expected = self._expected_sha1(binary, version)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{binary}.", dir=target.parent)
        tmp = Path(tmp_name)
        digest = hashlib.sha1()
        try:
            with os.fdopen(fd, "wb") as out:
                try:
                    with self.session.get(url, stream=True, timeout=self.timeout) as r:
                        r.raise_for_status()
                        for chunk in r.iter_content(chunk_size=CHUNK_SIZE):
                            if chunk:
                                digest.update(chunk)
                                out.write(chunk)
                except (requests.RequestException, OSError) as e:
                    raise FetchError(binary, version, str(e)) from e

            actual = digest.hexdigest()
            if actual != expected:
                raise FetchError(
                    binary, version, f"checksum mismatch: expected sha1 {expected}, got {actual}"
                )
            os.chmod(tmp, 0o755)
            os.replace(tmp, target)
        finally:
            if tmp.exists():
                tmp.unlink()
