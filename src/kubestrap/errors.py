# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kubestrap/errors.py

from __future__ import annotations


class KubestrapError(RuntimeError):
    """Base class for bootstrap failures."""


class CommandError(KubestrapError):
    """Raised when a command exits non-zero on the target host."""

    def __init__(self, cmd: str, returncode: int, output: str = ""):
        self.cmd = cmd
        self.returncode = returncode
        self.output = output
        msg = f"command failed (rc={returncode}): {cmd}"
        if output.strip():
            msg += f"\n{output.rstrip()}"
        super().__init__(msg)


class DeliveryError(KubestrapError):
    """Raised when a file could not be copied to the target host."""

    def __init__(self, target_path: str, reason: str = ""):
        self.target_path = target_path
        super().__init__(
            f"transferring file to {target_path}" + (f": {reason}" if reason else "")
        )


class RenderError(KubestrapError):
    """Raised when configuration text cannot be produced from the inputs."""


class CacheError(KubestrapError):
    """Raised when the artifact cache cannot be inspected (not a cache miss)."""


class FetchError(KubestrapError):
    """Raised when a binary could not be downloaded or verified."""

    def __init__(self, binary: str, version: str, reason: str = ""):
        self.binary = binary
        self.version = version
        super().__init__(
            f"downloading {binary} {version}" + (f": {reason}" if reason else "")
        )


class ConvergenceTimeoutError(KubestrapError):
    """Raised when a bounded retry runs out of attempts."""


class UnrecognizedOutputError(KubestrapError):
    """Raised when a probe returns output outside its contract."""

    def __init__(self, what: str, output: str):
        self.output = output
        super().__init__(f"Unrecognized output from {what}: {output}")


class OperationError(KubestrapError):
    """Wraps a lower level failure with the stage that was running."""

    def __init__(self, stage: str, cause: BaseException | None = None):
        self.stage = stage
        super().__init__(f"{stage}: {cause}" if cause is not None else stage)
