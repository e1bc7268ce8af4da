# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/fleetboot/utils/helpers.py

from __future__ import annotations

import time
from typing import Callable, Optional


def wait_until(
    predicate: Callable[[], bool],
    *,
    retries: int,
    delay: float,
    error: str,
    sleep: Callable[[float], None] = time.sleep,
    on_wait: Optional[Callable[[int], None]] = None,
) -> int:
    """
    Poll *predicate* up to *retries* times, *delay* seconds apart.
    Returns the attempt that succeeded; raises TimeoutError(error) otherwise.
    No sleep follows the final attempt.
    """
    for attempt in range(1, retries + 1):
        if predicate():
            return attempt
        if on_wait:
            on_wait(attempt)
        if attempt < retries:
            sleep(delay)
    raise TimeoutError(error)
