# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kubestrap/execution/runner.py

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time
from dataclasses import dataclass
from typing import Protocol

from kubestrap.assets.models import DeliveryUnit
from kubestrap.errors import CommandError

log = logging.getLogger("kubestrap")


class CommandRunner(Protocol):
    """
    Run commands on, and copy files to, the node being bootstrapped.
    The bootstrapper only talks to this contract, never to a concrete
    transport.
    """

    def run(self, cmd: str) -> None:
        """Run cmd with live output; raise CommandError on non-zero exit."""
        ...

    def combined_output(self, cmd: str) -> str:
        """Run cmd and return stdout+stderr; raise CommandError on non-zero exit."""
        ...

    def copy(self, unit: DeliveryUnit) -> None:
        """Place unit's bytes at unit.target_path with unit.mode."""
        ...


@dataclass
class ExecRunner:
    """
    Runs commands on the local machine (the "none" driver).
    """
    shell: str = "/bin/bash"
    timeout: float | None = None

    def run(self, cmd: str) -> None:
        log.debug("[exec] $ %s", cmd)
        start = time.time()
        # inherit stdout/stderr so output streams live
        result = subprocess.run([self.shell, "-c", cmd], timeout=self.timeout)
        log.debug("[exec][exit %d] (%.2fs)", result.returncode, time.time() - start)
        if result.returncode != 0:
            raise CommandError(cmd, result.returncode)

    def combined_output(self, cmd: str) -> str:
        log.debug("[exec] $ %s", cmd)
        result = subprocess.run(
            [self.shell, "-c", cmd],
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            timeout=self.timeout,
        )
        out = result.stdout or ""
        if out:
            log.debug("[exec][output]\n%s", out.rstrip())
        if result.returncode != 0:
            raise CommandError(cmd, result.returncode, out)
        return out

    def copy(self, unit: DeliveryUnit) -> None:
        log.debug("[exec] copy %s", unit)
        os.makedirs(unit.target_dir, exist_ok=True)
        with unit.open() as src, open(unit.target_path, "wb") as dst:
            shutil.copyfileobj(src, dst)
        os.chmod(unit.target_path, unit.mode)
