"""Benchmark result data structures and serialization.

Hierarchy::

    RunMeta (top level, one benchmark invocation from the CLI)
      -> clock, mode, options

    Result (one per function x parameter combination)
      -> Stats fields (median, CI, samples, ...)
      -> name, params, rank, relative, is_approximate, baseline

Files produced::

    bench_meta.json      RunMeta
    bench_results.jsonl  one Result per line
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Union

log = logging.getLogger("calibench")

ParamValue = Union[str, int, float, bool]

TIME_UNIT = "s"
MEMORY_UNIT = "kb"


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------


@dataclass
class Stats:
    """Statistical summary of one function's samples.

    One sample per round, already divided by ``iterations``.  ``samples``
    is sorted ascending and ``ci_lower <= median <= ci_upper``.
    """

    median: float
    ci_lower: float
    ci_upper: float
    ci_margin: float
    total: float
    samples: tuple[float, ...]
    rounds: int
    iterations: int
    unit: str  # "s" or "kb"
    ops: float | None = None  # calls per second, time results only
    timestamp: str = ""
    mean: float = math.nan
    min: float = math.nan
    max: float = math.nan
    stdev: float = math.nan
    outliers: int = 0

    @property
    def count(self) -> int:
        """Number of samples (equal to ``rounds``)."""
        return len(self.samples)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        d: dict[str, Any] = {}
        for f in fields(Stats):
            value = getattr(self, f.name)
            if f.name == "samples":
                value = list(value)
            d[f.name] = value
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Stats:
        """Deserialize from a dict, ignoring unknown fields."""
        return cls(**_stats_kwargs(data))


def _stats_kwargs(data: dict[str, Any]) -> dict[str, Any]:
    known = {f.name for f in fields(Stats)}
    kwargs = {k: v for k, v in data.items() if k in known}
    kwargs["samples"] = tuple(kwargs.get("samples", ()))
    return kwargs


# ---------------------------------------------------------------------------
# Result row
# ---------------------------------------------------------------------------


@dataclass
class Result(Stats):
    """A Stats row for one function under one parameter combination.

    ``rank``, ``relative`` and ``is_approximate`` are filled in by
    :func:`calibench.rank.rank_results`.
    """

    name: str = ""
    params: dict[str, ParamValue] = field(default_factory=dict)
    rank: int = 0
    relative: float = 1.0
    is_approximate: bool = False
    baseline: bool = False

    @classmethod
    def from_stats(
        cls,
        stats: Stats,
        *,
        name: str,
        params: dict[str, ParamValue] | None = None,
        baseline: bool = False,
    ) -> Result:
        """Wrap a Stats into a named, not yet ranked, Result."""
        values = {f.name: getattr(stats, f.name) for f in fields(Stats)}
        return cls(**values, name=name, params=dict(params or {}), baseline=baseline)

    @property
    def rank_label(self) -> str:
        """Rank as displayed: ``"≈2"`` for approximate ranks."""
        prefix = "≈" if self.is_approximate else ""
        return f"{prefix}{self.rank}"

    def to_dict(self) -> dict[str, Any]:
        d = super().to_dict()
        d.update(
            {
                "name": self.name,
                "params": dict(self.params),
                "rank": self.rank,
                "relative": self.relative,
                "is_approximate": self.is_approximate,
                "baseline": self.baseline,
            }
        )
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Result:
        return cls(
            **_stats_kwargs(data),
            name=data.get("name", ""),
            params=data.get("params", {}),
            rank=data.get("rank", 0),
            relative=data.get("relative", 1.0),
            is_approximate=data.get("is_approximate", False),
            baseline=data.get("baseline", False),
        )

    def to_jsonl_line(self) -> str:
        """Serialize to a single JSONL line."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_jsonl_line(cls, line: str) -> Result:
        return cls.from_dict(json.loads(line))


# ---------------------------------------------------------------------------
# Run-level metadata
# ---------------------------------------------------------------------------


@dataclass
class RunMeta:
    """Metadata for a benchmark run started from the command line."""

    source: str  # benchmark file
    mode: str = "time"  # "time" or "memory"
    clock: str = ""
    clock_resolution: float = 0.0
    options: dict[str, Any] = field(default_factory=dict)
    start_time: str = ""
    end_time: str = ""
    version: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "mode": self.mode,
            "clock": self.clock,
            "clock_resolution": self.clock_resolution,
            "options": self.options,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RunMeta:
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


# ---------------------------------------------------------------------------
# I/O functions
# ---------------------------------------------------------------------------

META_FILE = "bench_meta.json"
RESULTS_FILE = "bench_results.jsonl"


def save_results(path: Path, results: list[Result]) -> None:
    """Write results as JSON Lines, one Result per line."""
    with open(path, "w") as f:
        for result in results:
            f.write(result.to_jsonl_line() + "\n")
    log.info("Wrote %d results to %s", len(results), path)


def load_results(path: Path) -> list[Result]:
    """Read results written by :func:`save_results`, skipping blank lines."""
    results: list[Result] = []
    for line in path.read_text().splitlines():
        line = line.strip()
        if line:
            results.append(Result.from_jsonl_line(line))
    return results


def save_run(output_dir: Path, meta: RunMeta, results: list[Result]) -> None:
    """Save a benchmark run to ``bench_meta.json`` and ``bench_results.jsonl``."""
    output_dir.mkdir(parents=True, exist_ok=True)

    meta_path = output_dir / META_FILE
    meta_path.write_text(json.dumps(meta.to_dict(), indent=2) + "\n")
    log.info("Wrote %s", meta_path)

    save_results(output_dir / RESULTS_FILE, results)


def load_run(run_dir: Path) -> tuple[RunMeta, list[Result]]:
    """Load a benchmark run saved by :func:`save_run`.

    Raises:
        FileNotFoundError: If ``bench_meta.json`` is missing.
    """
    meta_path = run_dir / META_FILE
    if not meta_path.exists():
        raise FileNotFoundError(f"No {META_FILE} in {run_dir}")

    meta = RunMeta.from_dict(json.loads(meta_path.read_text()))

    results_path = run_dir / RESULTS_FILE
    results = load_results(results_path) if results_path.exists() else []
    return meta, results
