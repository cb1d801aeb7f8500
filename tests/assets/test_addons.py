from pathlib import Path

import pytest

from kubestrap.assets.addons import (
    build_addon_bundles,
    custom_addon_units,
    enabled_predicate,
    read_addon_state,
    write_addon_state,
)
from kubestrap.assets.models import DeliveryUnit
from kubestrap.config.models import AddonFileSpec, AddonSpec


def test_delivery_unit_from_bytes():
    u = DeliveryUnit.from_bytes("hello\n", "/etc/kubernetes/addons/x.yaml", "0640")
    assert u.target_dir == "/etc/kubernetes/addons"
    assert u.target_name == "x.yaml"
    assert u.mode == 0o640
    assert u.length == 6
    with u.open() as f:
        assert f.read() == b"hello\n"


def test_delivery_unit_from_file(tmp_path: Path):
    src = tmp_path / "kubelet"
    src.write_bytes(b"bin")
    u = DeliveryUnit.from_file(src, "/usr/bin", "kubelet", "0641")
    assert u.target_path == "/usr/bin/kubelet"
    assert u.mode == 0o641
    assert u.length == 3


def test_delivery_unit_validation(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        DeliveryUnit.from_file(tmp_path / "missing", "/usr/bin", "x", "0641")
    with pytest.raises(ValueError):
        DeliveryUnit("/etc", "x", "0640")
    with pytest.raises(ValueError):
        DeliveryUnit.from_bytes("x", "/etc/x", "rw-r")


def test_custom_addon_units(tmp_path: Path):
    addons = tmp_path / "addons"
    (addons / "nested").mkdir(parents=True)
    (addons / "a.yaml").write_text("a")
    (addons / "nested" / "b.yaml").write_text("b")

    units = custom_addon_units(addons)

    assert sorted(u.target_path for u in units) == [
        "/etc/kubernetes/addons/a.yaml",
        "/etc/kubernetes/addons/b.yaml",
    ]
    assert all(u.permissions == "0640" for u in units)
    assert custom_addon_units(tmp_path / "nope") == []


def test_state_file_overrides_default(tmp_path: Path):
    state = tmp_path / "config" / "addons.yaml"
    pred = enabled_predicate("dashboard", False, state)
    assert pred() is False

    write_addon_state(state, "dashboard", True)
    assert pred() is True
    assert read_addon_state(state) == {"dashboard": True}


def test_malformed_state_raises_inside_predicate(tmp_path: Path):
    state = tmp_path / "addons.yaml"
    state.write_text("dashboard: maybe\n")
    with pytest.raises(ValueError, match="dashboard"):
        enabled_predicate("dashboard", True, state)()


def test_build_addon_bundles(tmp_path: Path):
    manifest = tmp_path / "dashboard-dp.yaml"
    manifest.write_text("kind: Deployment\n")
    custom = tmp_path / "addons"
    custom.mkdir()
    (custom / "mine.yaml").write_text("kind: ConfigMap\n")

    specs = [AddonSpec(name="dashboard", enabled=True, files=[AddonFileSpec(source=manifest)])]
    bundles = build_addon_bundles(specs, custom, tmp_path / "state.yaml")

    assert [b.name for b in bundles] == ["custom", "dashboard"]
    assert all(b.is_enabled() for b in bundles)
    assert bundles[1].assets[0].target_path == "/etc/kubernetes/addons/dashboard-dp.yaml"
