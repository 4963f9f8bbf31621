"""Comparative ranking of benchmark results.

Results are compared only against others measured under the same
parameter combination.  Within such a group they are ordered by median
and chained together wherever adjacent confidence intervals overlap;
each maximal chain shares one rank (the sorted position of its first
member) and is flagged approximate when it holds more than one result.
Overlap is only tested between neighbours, so a long chain can group
results whose own intervals are disjoint.
"""

from __future__ import annotations

import logging
import math
from typing import Hashable, Sequence

from calibench.results import Result

log = logging.getLogger("calibench")


def params_key(params: dict[str, object]) -> Hashable:
    """Hashable, order-independent key for a parameter combination."""
    return tuple((name, type(value).__name__, value) for name, value in sorted(params.items()))


def intervals_overlap(a: Result, b: Result) -> bool:
    """True if the confidence intervals of *a* and *b* intersect."""
    return a.ci_lower <= b.ci_upper and b.ci_lower <= a.ci_upper


def group_by_params(results: Sequence[Result]) -> dict[Hashable, list[Result]]:
    """Group results by parameter combination, keeping first-seen order."""
    groups: dict[Hashable, list[Result]] = {}
    for r in results:
        groups.setdefault(params_key(r.params), []).append(r)
    return groups


def _relative(value: float, reference: float) -> float:
    if reference == 0:
        return 1.0 if value == 0 else math.inf
    return value / reference


def rank_group(results: Sequence[Result]) -> list[Result]:
    """Assign rank, relative and is_approximate within one group.

    Mutates the results in place and returns them sorted by rank
    (ties broken by median, then name).

    Raises:
        ValueError: If *results* is empty or flags more than one baseline.
    """
    if not results:
        raise ValueError("'results' is empty.")

    ordered = sorted(results, key=lambda r: (r.median, r.name))

    # Partition the sorted sequence into maximal overlapping runs.
    runs: list[list[Result]] = [[ordered[0]]]
    for prev, cur in zip(ordered, ordered[1:]):
        if intervals_overlap(prev, cur):
            runs[-1].append(cur)
        else:
            runs.append([cur])

    position = 1
    for run in runs:
        approximate = len(run) > 1
        for r in run:
            r.rank = position
            r.is_approximate = approximate
        position += len(run)

    flagged = [r for r in ordered if r.baseline]
    if len(flagged) > 1:
        names = ", ".join(r.name for r in flagged)
        raise ValueError(f"Only one baseline is allowed per group, got: {names}")
    reference = flagged[0] if flagged else ordered[0]
    for r in ordered:
        r.relative = _relative(r.median, reference.median)
    reference.relative = 1.0

    log.debug(
        "Ranked %d result(s) in %d group(s) of overlap",
        len(ordered),
        len(runs),
    )
    return ordered


def rank_results(results: Sequence[Result]) -> list[Result]:
    """Rank every parameter group independently.

    Returns a flat list ordered by group (first appearance) and then by
    rank within each group.

    Raises:
        ValueError: If *results* is empty.
    """
    if not results:
        raise ValueError("'results' is empty.")

    ranked: list[Result] = []
    for group in group_by_params(results).values():
        ranked.extend(rank_group(group))
    return ranked
