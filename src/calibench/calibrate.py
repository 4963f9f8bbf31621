"""Iteration-count calibration.

A round must last long enough for the clock to resolve it.  Calibration
times increasingly large batches of back-to-back calls until one batch
lasts at least ``clock.resolution * CALIBRATION_PRECISION`` seconds, and
returns that batch size.

Calibration runs a single batch per step, so functions whose own duration
varies a lot can be calibrated from an unrepresentative batch.  That is
an accepted source of variance.  A function too fast to clear the floor
even at ``max_iterations`` simply gets the ceiling.
"""

from __future__ import annotations

import logging
import math
from typing import Callable

from calibench.clock import Clock

log = logging.getLogger("calibench")

CALIBRATION_PRECISION = 5
MAX_CALIBRATION_ATTEMPTS = 10
MAX_ITERATIONS = 1_000_000
ZERO_ELAPSED_FACTOR = 100


def time_batch(batch: Callable[[int], None], iterations: int, clock: Clock) -> float:
    """Run ``batch(iterations)`` once and return the elapsed seconds."""
    start = clock.now()
    batch(iterations)
    return clock.now() - start


def next_iterations(
    iterations: int,
    elapsed: float,
    min_time: float,
    max_iterations: int,
) -> int:
    """Scale *iterations* so that the next batch should reach *min_time*."""
    if elapsed > 0:
        scaled = math.ceil(iterations * min_time / elapsed)
    else:
        scaled = iterations * ZERO_ELAPSED_FACTOR
    return min(max(scaled, iterations + 1), max_iterations)


def calibrate(
    batch: Callable[[int], None],
    clock: Clock,
    *,
    min_time: float | None = None,
    max_iterations: int = MAX_ITERATIONS,
    max_attempts: int = MAX_CALIBRATION_ATTEMPTS,
) -> int:
    """Find how many calls per round are needed to clear the clock's noise.

    Args:
        batch: Runs the benchmarked call the given number of times,
            including any per-iteration hooks.
        clock: The clock rounds will be measured with.
        min_time: Minimum batch duration in seconds. Defaults to the
            clock resolution times ``CALIBRATION_PRECISION``.
        max_iterations: Upper bound on the returned count.
        max_attempts: Maximum number of measured batches.

    Returns:
        The calibrated iteration count, always >= 1.
    """
    if min_time is None:
        min_time = clock.min_time(CALIBRATION_PRECISION)
    max_iterations = max(1, max_iterations)

    iterations = 1
    for _ in range(max_attempts):
        elapsed = time_batch(batch, iterations, clock)
        if elapsed >= min_time:
            break
        if iterations >= max_iterations:
            log.debug(
                "Calibration hit the %d iteration ceiling (%.3gs < %.3gs)",
                max_iterations,
                elapsed,
                min_time,
            )
            break
        iterations = next_iterations(iterations, elapsed, min_time, max_iterations)

    log.debug("Calibrated to %d iteration(s) per round", iterations)
    return iterations
