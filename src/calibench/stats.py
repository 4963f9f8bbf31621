"""Statistical reduction of benchmark samples.

Turns the per-round samples produced by the round executor into a
:class:`~calibench.results.Stats`: median, a percentile-bootstrap
confidence interval for the median, total, and descriptive fields.
Everything here is pure Python.

References:
    Bootstrap CI: Efron, B. & Tibshirani, R. J. (1993). "An
        Introduction to the Bootstrap."
"""

from __future__ import annotations

import math
import random
import statistics
import time
from dataclasses import dataclass
from typing import Sequence

from calibench.results import TIME_UNIT, Stats

BOOTSTRAP_MIN_SAMPLES = 3
BOOTSTRAP_MAX_SAMPLES = 2000  # above this, order statistics replace resampling
DEFAULT_BOOTSTRAP_N = 1000
DEFAULT_CONFIDENCE = 0.95


# ---------------------------------------------------------------------------
# Descriptive statistics
# ---------------------------------------------------------------------------


@dataclass
class DescriptiveStats:
    """Summary statistics for a sample."""

    n: int
    mean: float
    median: float
    stdev: float
    min: float
    max: float
    q1: float  # 25th percentile
    q3: float  # 75th percentile
    iqr: float  # interquartile range


def describe(values: Sequence[float]) -> DescriptiveStats:
    """Compute descriptive statistics for a sample.

    If n < 2, stdev is 0.0. An empty sample yields NaN everywhere.
    """
    if not values:
        nan = float("nan")
        return DescriptiveStats(0, nan, nan, nan, nan, nan, nan, nan, nan)

    sorted_v = sorted(values)
    n = len(sorted_v)
    stdev = statistics.stdev(sorted_v) if n >= 2 else 0.0
    q1 = _percentile(sorted_v, 0.25)
    q3 = _percentile(sorted_v, 0.75)

    return DescriptiveStats(
        n=n,
        mean=statistics.fmean(sorted_v),
        median=median(sorted_v),
        stdev=stdev,
        min=sorted_v[0],
        max=sorted_v[-1],
        q1=q1,
        q3=q3,
        iqr=q3 - q1,
    )


def median(sorted_values: Sequence[float]) -> float:
    """Median of an ascending sequence.

    Middle element for odd length, mean of the two middle elements for
    even length.
    """
    n = len(sorted_values)
    if n == 0:
        return float("nan")
    mid = n // 2
    if n % 2:
        return sorted_values[mid]
    return (sorted_values[mid - 1] + sorted_values[mid]) / 2


def _percentile(sorted_values: Sequence[float], p: float) -> float:
    """Compute the p-th percentile using linear interpolation.

    Equivalent to numpy.percentile with interpolation='linear'.
    Assumes sorted_values is already sorted in ascending order.
    """
    n = len(sorted_values)
    if n == 0:
        return float("nan")
    if n == 1:
        return sorted_values[0]

    k = (n - 1) * p
    f = math.floor(k)
    c = math.ceil(k)
    if f == c:
        return sorted_values[int(k)]
    d = k - f
    return sorted_values[int(f)] * (1 - d) + sorted_values[int(c)] * d


def detect_outliers(
    values: Sequence[float],
    *,
    factor: float = 1.5,
) -> list[bool]:
    """Detect outliers using the IQR method.

    A value is an outlier if it falls below Q1 - factor*IQR or
    above Q3 + factor*IQR.  Fewer than 4 values never have outliers.
    """
    if len(values) < 4:
        return [False] * len(values)

    sorted_v = sorted(values)
    q1 = _percentile(sorted_v, 0.25)
    q3 = _percentile(sorted_v, 0.75)
    iqr = q3 - q1

    lower = q1 - factor * iqr
    upper = q3 + factor * iqr

    return [v < lower or v > upper for v in values]


# ---------------------------------------------------------------------------
# Bootstrap confidence interval
# ---------------------------------------------------------------------------


def bootstrap_median_ci(
    sorted_values: Sequence[float],
    *,
    confidence: float = DEFAULT_CONFIDENCE,
    n_bootstrap: int = DEFAULT_BOOTSTRAP_N,
    rng: random.Random | None = None,
) -> tuple[float, float]:
    """Percentile bootstrap confidence interval for the median.

    Draws *n_bootstrap* resamples with replacement, each the size of the
    original sample, takes the median of each, and returns the central
    *confidence* interval of those medians.

    Below ``BOOTSTRAP_MIN_SAMPLES`` values resampling is meaningless and
    the interval collapses onto the median.  The returned interval always
    contains the sample median.

    Returns:
        ``(lower, upper)``.
    """
    point = median(sorted_values)
    n = len(sorted_values)
    if n < BOOTSTRAP_MIN_SAMPLES or n_bootstrap < 1:
        return point, point

    rng = rng or random.Random()
    values = list(sorted_values)

    medians = sorted(statistics.median(rng.choices(values, k=n)) for _ in range(n_bootstrap))

    alpha = 1 - confidence
    lower_idx = int(math.floor(alpha / 2 * n_bootstrap))
    upper_idx = int(math.ceil((1 - alpha / 2) * n_bootstrap)) - 1
    lower_idx = max(0, min(lower_idx, n_bootstrap - 1))
    upper_idx = max(0, min(upper_idx, n_bootstrap - 1))

    return min(medians[lower_idx], point), max(medians[upper_idx], point)


def rank_median_ci(
    sorted_values: Sequence[float],
    *,
    confidence: float = DEFAULT_CONFIDENCE,
) -> tuple[float, float]:
    """Distribution-free confidence interval for the median from order statistics.

    Uses the normal approximation to the binomial: the bounds are the
    values at ranks ``n/2 ± z*sqrt(n)/2``.  Costs nothing beyond the
    sort, so it replaces the bootstrap for large sample counts.  The
    returned interval always contains the sample median.
    """
    point = median(sorted_values)
    n = len(sorted_values)
    if n < BOOTSTRAP_MIN_SAMPLES:
        return point, point

    z = statistics.NormalDist().inv_cdf(1 - (1 - confidence) / 2)
    half_width = z * math.sqrt(n) / 2
    lower_idx = max(0, math.floor(n / 2 - half_width) - 1)
    upper_idx = min(n - 1, math.ceil(n / 2 + half_width))

    return min(sorted_values[lower_idx], point), max(sorted_values[upper_idx], point)


def median_ci(
    sorted_values: Sequence[float],
    *,
    confidence: float = DEFAULT_CONFIDENCE,
    n_bootstrap: int = DEFAULT_BOOTSTRAP_N,
    rng: random.Random | None = None,
) -> tuple[float, float]:
    """Confidence interval for the median: bootstrap up to ``BOOTSTRAP_MAX_SAMPLES``."""
    if len(sorted_values) > BOOTSTRAP_MAX_SAMPLES:
        return rank_median_ci(sorted_values, confidence=confidence)
    return bootstrap_median_ci(
        sorted_values,
        confidence=confidence,
        n_bootstrap=n_bootstrap,
        rng=rng,
    )


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------


def summarize(
    samples: Sequence[float],
    *,
    unit: str,
    iterations: int,
    rng: random.Random | None = None,
    confidence: float = DEFAULT_CONFIDENCE,
    n_bootstrap: int = DEFAULT_BOOTSTRAP_N,
) -> Stats:
    """Reduce raw round samples to a :class:`Stats`.

    Args:
        samples: One value per round (seconds per call or kilobytes).
            Must not be empty.
        unit: ``"s"`` for time, ``"kb"`` for memory.
        iterations: Calls per round, recorded on the result.
        rng: Random source for the bootstrap (seed it for
            reproducible intervals).
    """
    if not samples:
        raise ValueError("Cannot summarize an empty sample set.")

    ordered = sorted(samples)
    mid = median(ordered)
    lower, upper = median_ci(
        ordered,
        confidence=confidence,
        n_bootstrap=n_bootstrap,
        rng=rng,
    )
    desc = describe(ordered)

    ops: float | None = None
    if unit == TIME_UNIT:
        ops = 1 / mid if mid > 0 else math.inf

    return Stats(
        median=mid,
        ci_lower=lower,
        ci_upper=upper,
        ci_margin=(upper - lower) / 2,
        total=math.fsum(ordered),
        samples=tuple(ordered),
        rounds=len(ordered),
        iterations=iterations,
        unit=unit,
        ops=ops,
        timestamp=time.strftime("%Y-%m-%dT%H:%M:%S%z"),
        mean=desc.mean,
        min=desc.min,
        max=desc.max,
        stdev=desc.stdev,
        outliers=sum(detect_outliers(ordered)),
    )
