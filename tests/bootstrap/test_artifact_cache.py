import hashlib
import os
from pathlib import Path

import pytest
import requests

import kubestrap.bootstrap.cache as cache_mod
from kubestrap.bootstrap.cache import ArtifactCache
from kubestrap.errors import CacheError, FetchError

# ----------------- Fakes for requests -----------------

class FakeResponse:
    def __init__(self, body: bytes = b"", status: int = 200):
        self.body = body
        self.status_code = status
        self.text = body.decode("utf-8", "replace")

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def iter_content(self, chunk_size=1):
        for i in range(0, len(self.body), 4):
            yield self.body[i:i + 4]

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class FakeSession:
    def __init__(self, routes):
        self.routes = routes
        self.calls = []

    def get(self, url, stream=False, timeout=None):
        self.calls.append(url)
        route = self.routes.get(url)
        if route is None:
            return FakeResponse(b"", status=404)
        if isinstance(route, Exception):
            raise route
        return FakeResponse(route)


BASE = "https://dl.example.test/release"
KUBELET_URL = f"{BASE}/v1.7.5/bin/linux/amd64/kubelet"
PAYLOAD = b"\x7fELF kubelet binary"
PAYLOAD_SHA1 = hashlib.sha1(PAYLOAD).hexdigest()


def _cache(tmp_path, routes):
    session = FakeSession(routes)
    return ArtifactCache(tmp_path / "cache", session=session, release_url_base=BASE), session

# ----------------- Tests -----------------

def test_miss_downloads_then_hit_reuses_without_network(tmp_path: Path):
    cache, session = _cache(tmp_path, {
        KUBELET_URL: PAYLOAD,
        KUBELET_URL + ".sha1": f"{PAYLOAD_SHA1}  kubelet\n".encode(),
    })

    first = cache.resolve("kubelet", "v1.7.5")
    calls_after_first = list(session.calls)
    second = cache.resolve("kubelet", "v1.7.5")

    assert first == second == tmp_path / "cache" / "v1.7.5" / "kubelet"
    assert first.read_bytes() == PAYLOAD
    assert calls_after_first == [KUBELET_URL + ".sha1", KUBELET_URL]
    assert session.calls == calls_after_first


def test_existing_entry_is_trusted_without_verification(tmp_path: Path):
    cache, session = _cache(tmp_path, {})
    target = tmp_path / "cache" / "v1.7.5" / "kubeadm"
    target.parent.mkdir(parents=True)
    target.write_bytes(b"not what upstream serves")

    assert cache.resolve("kubeadm", "v1.7.5") == target
    assert session.calls == []


def test_checksum_mismatch_is_fetch_error_and_leaves_nothing_cached(tmp_path: Path):
    cache, session = _cache(tmp_path, {
        KUBELET_URL: PAYLOAD,
        KUBELET_URL + ".sha1": b"0" * 40,
    })

    with pytest.raises(FetchError) as ei:
        cache.resolve("kubelet", "v1.7.5")

    assert ei.value.binary == "kubelet"
    assert ei.value.version == "v1.7.5"
    assert "kubelet" in str(ei.value) and "v1.7.5" in str(ei.value)
    assert "checksum mismatch" in str(ei.value)
    assert not cache.path_for("kubelet", "v1.7.5").exists()
    # no temp files left behind
    assert os.listdir(tmp_path / "cache" / "v1.7.5") == []
    # exactly one download attempt
    assert session.calls.count(KUBELET_URL) == 1


def test_network_error_is_fetch_error(tmp_path: Path):
    cache, _ = _cache(tmp_path, {
        KUBELET_URL + ".sha1": PAYLOAD_SHA1.encode(),
        KUBELET_URL: requests.ConnectionError("connection reset"),
    })

    with pytest.raises(FetchError, match="connection reset"):
        cache.resolve("kubelet", "v1.7.5")
    assert not cache.path_for("kubelet", "v1.7.5").exists()


def test_http_error_on_binary_is_fetch_error(tmp_path: Path):
    cache, _ = _cache(tmp_path, {KUBELET_URL + ".sha1": PAYLOAD_SHA1.encode()})

    with pytest.raises(FetchError, match="404"):
        cache.resolve("kubelet", "v1.7.5")


def test_explicit_checksum_resolver_is_used(tmp_path: Path):
    session = FakeSession({KUBELET_URL: PAYLOAD})
    seen = []

    def checksum_for(binary, version):
        seen.append((binary, version))
        return PAYLOAD_SHA1.upper()

    cache = ArtifactCache(tmp_path, session=session, release_url_base=BASE, checksum_for=checksum_for)
    path = cache.resolve("kubelet", "v1.7.5")

    assert path.read_bytes() == PAYLOAD
    assert seen == [("kubelet", "v1.7.5")]
    assert session.calls == [KUBELET_URL]


def test_stat_failure_other_than_missing_is_cache_error(monkeypatch, tmp_path: Path):
    cache, session = _cache(tmp_path, {})
    target = cache.path_for("kubelet", "v1.7.5")
    real_stat = os.stat

    def fake_stat(path, *a, **kw):
        if Path(path) == target:
            raise PermissionError(13, "Permission denied", str(path))
        return real_stat(path, *a, **kw)

    monkeypatch.setattr(cache_mod.os, "stat", fake_stat)

    with pytest.raises(CacheError, match="Permission denied"):
        cache.resolve("kubelet", "v1.7.5")
    assert session.calls == []


@pytest.mark.parametrize("published", [b"", b"   \n", b"<html>not found</html>", b"abc123"])
def test_unusable_published_sha1_is_fetch_error(tmp_path: Path, published):
    cache, session = _cache(tmp_path, {
        KUBELET_URL: PAYLOAD,
        KUBELET_URL + ".sha1": published,
    })

    with pytest.raises(FetchError, match="invalid published sha1") as ei:
        cache.resolve("kubelet", "v1.7.5")

    assert ei.value.binary == "kubelet"
    assert KUBELET_URL not in session.calls
    assert os.listdir(tmp_path / "cache" / "v1.7.5") == []


def test_missing_sha1_file_is_fetch_error(tmp_path: Path):
    cache, _ = _cache(tmp_path, {KUBELET_URL: PAYLOAD})

    with pytest.raises(FetchError, match="looking up sha1: 404"):
        cache.resolve("kubelet", "v1.7.5")


def test_checksum_resolver_failure_is_fetch_error(tmp_path: Path):
    def checksum_for(binary, version):
        raise KeyError(binary)

    cache = ArtifactCache(
        tmp_path, session=FakeSession({KUBELET_URL: PAYLOAD}),
        release_url_base=BASE, checksum_for=checksum_for,
    )

    with pytest.raises(FetchError) as ei:
        cache.resolve("kubelet", "v1.7.5")

    assert "kubelet v1.7.5" in str(ei.value)
    assert isinstance(ei.value.__cause__, KeyError)
