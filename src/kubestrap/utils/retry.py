# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

import logging
import time
from typing import Callable

from kubestrap.errors import ConvergenceTimeoutError

log = logging.getLogger("kubestrap")


def retry_after(
    attempts: int,
    callback: Callable[[], None],
    interval: float,
    *,
    error: Callable[[], Exception] = lambda: ConvergenceTimeoutError("timed out"),
    on_retry: Callable[[int, Exception], None] | None = None,
) -> int:
    """
    Call an idempotent *callback* until it stops raising.

    attempts: maximum number of calls
    interval: seconds slept between two calls
    error: builds the exception raised once attempts are exhausted;
           the last failure is chained as its cause
    on_retry: callback(attempt, exception) after each failed call

    Returns the attempt number that succeeded.
    """
    last_exc = None
    for attempt in range(1, attempts + 1):
        try:
            callback()
            return attempt
        except Exception as exc:
            last_exc = exc
            if on_retry:
                on_retry(attempt, exc)
            else:
                log.debug("attempt %d/%d failed: %s", attempt, attempts, exc)
            if attempt == attempts:
                break
            time.sleep(interval)
    raise error() from last_exc
