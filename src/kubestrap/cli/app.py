# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kubestrap/cli/app.py

from __future__ import annotations

from pathlib import Path

import typer
import yaml
from pydantic import ValidationError

from kubestrap.assets.addons import write_addon_state
from kubestrap.bootstrap.kubeadm import KubeadmBootstrapper
from kubestrap.config.loader import load_config
from kubestrap.config.models import KubestrapSettings
from kubestrap.errors import KubestrapError
from kubestrap.logging.log import init_logging


# ------------------------------------------------------------------------------
# CLI setup
# ------------------------------------------------------------------------------

app = typer.Typer(help="kubestrap single-node control-plane CLI")
addons_app = typer.Typer(help="Enable or disable addon bundles")
app.add_typer(addons_app, name="addons")

ConfigOpt = typer.Option(Path("kubestrap.yaml"), "--config", "-c", help="Path to kubestrap.yaml")
VerboseOpt = typer.Option(False, "--verbose", "-v", help="Debug output on the console")


# ------------------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------------------

def _settings(config: Path, verbose: bool) -> KubestrapSettings:
    try:
        settings = load_config(config)
    except FileNotFoundError:
        typer.echo(f"error: config file {config} not found", err=True)
        raise typer.Exit(code=2)
    except (ValidationError, yaml.YAMLError) as e:
        typer.echo(f"error: invalid config {config}: {e}", err=True)
        raise typer.Exit(code=2)
    init_logging(base_dir=settings.logs_dir, verbose=verbose)
    return settings


def _fail(e: Exception) -> None:
    typer.echo(f"error: {e}", err=True)
    raise typer.Exit(code=1)


def _bootstrapper(settings: KubestrapSettings) -> KubeadmBootstrapper:
    try:
        return KubeadmBootstrapper.from_settings(settings)
    except KubestrapError as e:
        _fail(e)


# ------------------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------------------

@app.command()
def update(config: Path = ConfigOpt, verbose: bool = VerboseOpt):
    """Install kubelet/kubeadm, service files, kubeadm config and addons."""
    settings = _settings(config, verbose)
    bs = _bootstrapper(settings)
    try:
        bs.update_cluster(settings.host)
    except KubestrapError as e:
        _fail(e)
    finally:
        bs.close()
    typer.echo(f"Node {settings.host.node_name} updated")


@app.command()
def certs(config: Path = ConfigOpt, verbose: bool = VerboseOpt):
    """Install the cluster CA and apiserver certificate on the node."""
    settings = _settings(config, verbose)
    bs = _bootstrapper(settings)
    try:
        bs.setup_certs(settings.host)
    except KubestrapError as e:
        _fail(e)
    finally:
        bs.close()
    typer.echo(f"Certificates installed in {settings.host.cert_dir}")


@app.command()
def start(config: Path = ConfigOpt, verbose: bool = VerboseOpt):
    """Run kubeadm init and make the node schedulable."""
    settings = _settings(config, verbose)
    bs = _bootstrapper(settings)
    try:
        bs.start_cluster(settings.host)
    except KubestrapError as e:
        _fail(e)
    finally:
        bs.close()
    typer.echo(f"Cluster started on {settings.host.node_name}")


@app.command()
def restart(config: Path = ConfigOpt, verbose: bool = VerboseOpt):
    """Re-run the kubeadm phases and restart kube-proxy."""
    settings = _settings(config, verbose)
    bs = _bootstrapper(settings)
    try:
        bs.restart_cluster(settings.host)
    except KubestrapError as e:
        _fail(e)
    finally:
        bs.close()
    typer.echo(f"Cluster restarted on {settings.host.node_name}")


@app.command()
def status(config: Path = ConfigOpt, verbose: bool = VerboseOpt):
    """Print Running or Stopped."""
    settings = _settings(config, verbose)
    bs = _bootstrapper(settings)
    try:
        typer.echo(bs.get_cluster_status())
    except KubestrapError as e:
        _fail(e)
    finally:
        bs.close()


@app.command()
def logs(
    config: Path = ConfigOpt,
    verbose: bool = VerboseOpt,
    follow: bool = typer.Option(False, "--follow", "-f", help="Stream the kubelet journal"),
):
    """Show the kubelet journal."""
    settings = _settings(config, verbose)
    bs = _bootstrapper(settings)
    try:
        typer.echo(bs.get_cluster_logs(follow=follow))
    except KubestrapError as e:
        _fail(e)
    finally:
        bs.close()


@addons_app.command("enable")
def addons_enable(name: str, config: Path = ConfigOpt):
    settings = _settings(config, False)
    write_addon_state(settings.addon_state_file, name, True)
    typer.echo(f"{name} was successfully enabled")


@addons_app.command("disable")
def addons_disable(name: str, config: Path = ConfigOpt):
    settings = _settings(config, False)
    write_addon_state(settings.addon_state_file, name, False)
    typer.echo(f"{name} was successfully disabled")


if __name__ == "__main__":
    app()
