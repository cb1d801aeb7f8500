import logging
from pathlib import Path
import textwrap

import pytest
from typer.testing import CliRunner

import kubestrap.cli.app as cli
from kubestrap.errors import OperationError, UnrecognizedOutputError


class FakeBootstrapper:
    def __init__(self, status="Running", error=None):
        self.status = status
        self.error = error
        self.calls = []
        self.closed = False

    def _maybe_fail(self):
        if self.error:
            raise self.error

    def get_cluster_status(self):
        self.calls.append("status")
        self._maybe_fail()
        return self.status

    def get_cluster_logs(self, follow=False):
        self.calls.append(("logs", follow))
        self._maybe_fail()
        return "kubelet log line"

    def start_cluster(self, host):
        self.calls.append(("start", host.node_name))
        self._maybe_fail()

    def restart_cluster(self, host):
        self.calls.append(("restart", host.node_name))
        self._maybe_fail()

    def update_cluster(self, host):
        self.calls.append(("update", host.node_name))
        self._maybe_fail()

    def close(self):
        self.closed = True


@pytest.fixture
def config(tmp_path: Path, monkeypatch) -> Path:
    monkeypatch.delenv("KUBESTRAP_OVERRIDES_FILE", raising=False)
    f = tmp_path / "kubestrap.yaml"
    f.write_text(textwrap.dedent(f"""
        home: {tmp_path / "home"}
        host:
          node_name: kubestrap
          node_ip: 192.168.99.100
          kubernetes_version: v1.7.5
    """))
    yield f
    # init_logging detaches the package logger from root; undo for other tests
    logger = logging.getLogger("kubestrap")
    for h in list(logger.handlers):
        h.close()
    logger.handlers.clear()
    logger.propagate = True


def _use(monkeypatch, fake):
    monkeypatch.setattr(cli, "_bootstrapper", lambda settings: fake)


def test_status_prints_state(monkeypatch, config):
    fake = FakeBootstrapper(status="Stopped")
    _use(monkeypatch, fake)

    result = CliRunner().invoke(cli.app, ["status", "--config", str(config)])

    assert result.exit_code == 0, result.output
    assert result.output.strip() == "Stopped"
    assert fake.closed


def test_status_error_exits_1(monkeypatch, config):
    _use(monkeypatch, FakeBootstrapper(error=UnrecognizedOutputError("ClusterStatus", "banana")))

    result = CliRunner().invoke(cli.app, ["status", "-c", str(config)])

    assert result.exit_code == 1
    assert "banana" in result.output


@pytest.mark.parametrize("command", ["update", "start", "restart"])
def test_lifecycle_commands_use_host_config(monkeypatch, config, command):
    fake = FakeBootstrapper()
    _use(monkeypatch, fake)

    result = CliRunner().invoke(cli.app, [command, "-c", str(config)])

    assert result.exit_code == 0, result.output
    assert fake.calls == [(command, "kubestrap")]
    assert "kubestrap" in result.output


def test_update_failure_reports_stage(monkeypatch, config):
    fake = FakeBootstrapper(error=OperationError("downloading binaries", RuntimeError("checksum mismatch")))
    _use(monkeypatch, fake)

    result = CliRunner().invoke(cli.app, ["update", "-c", str(config)])

    assert result.exit_code == 1
    assert "downloading binaries" in result.output
    assert fake.closed


def test_logs_follow_flag(monkeypatch, config):
    fake = FakeBootstrapper()
    _use(monkeypatch, fake)

    result = CliRunner().invoke(cli.app, ["logs", "-c", str(config), "--follow"])

    assert result.exit_code == 0, result.output
    assert fake.calls == [("logs", True)]
    assert "kubelet log line" in result.output


def test_missing_config_exits_2(tmp_path: Path):
    result = CliRunner().invoke(cli.app, ["status", "-c", str(tmp_path / "missing.yaml")])
    assert result.exit_code == 2


def test_addons_enable_disable_persist_state(config, tmp_path: Path):
    runner = CliRunner()
    assert runner.invoke(cli.app, ["addons", "enable", "dashboard", "-c", str(config)]).exit_code == 0
    assert runner.invoke(cli.app, ["addons", "disable", "heapster", "-c", str(config)]).exit_code == 0

    state = (tmp_path / "home" / "config" / "addons.yaml").read_text()
    assert "dashboard: true" in state
    assert "heapster: false" in state


@pytest.mark.parametrize("body", [
    "driver: ssh\nhost:\n  node_name: kubestrap\n",   # ssh driver without an ssh section
    "host: [unclosed\n",
])
def test_invalid_config_exits_2(tmp_path: Path, body):
    f = tmp_path / "kubestrap.yaml"
    f.write_text(body)

    result = CliRunner().invoke(cli.app, ["status", "-c", str(f)])

    assert result.exit_code == 2
    assert "invalid config" in result.output
    assert not isinstance(result.exception, (ValueError, SyntaxError))


def test_certs_command(monkeypatch, config):
    fake = FakeBootstrapper()
    fake.setup_certs = lambda host: fake.calls.append(("certs", host.cert_dir))
    _use(monkeypatch, fake)

    result = CliRunner().invoke(cli.app, ["certs", "-c", str(config)])

    assert result.exit_code == 0, result.output
    assert fake.calls == [("certs", "/var/lib/kubestrap/certs/")]
    assert fake.closed
