"""Export benchmark results to CSV and Markdown formats.

CSV format: one row per function per parameter combination, with the
raw numbers in seconds or kilobytes (for pandas/R).

Markdown format: one summary table per parameter combination, suitable
for reports, README files and GitHub issues.
"""

from __future__ import annotations

import csv
import io
from typing import Sequence

from calibench.formatting import format_ratio, humanize, humanize_count
from calibench.params import format_param_value, format_params
from calibench.rank import group_by_params
from calibench.results import Result

CSV_COLUMNS = [
    "name",
    "rank",
    "ratio",
    "median",
    "ci_lower",
    "ci_upper",
    "ci_margin",
    "mean",
    "min",
    "max",
    "stdev",
    "rounds",
    "iterations",
    "ops",
    "unit",
    "approximate",
    "baseline",
]


# ---------------------------------------------------------------------------
# CSV export
# ---------------------------------------------------------------------------


def export_csv(results: Sequence[Result]) -> str:
    """Export results as CSV.

    Parameter names become extra columns (sorted) after ``name``.
    Names containing commas or quotes are quoted by the csv module.
    """
    param_names = sorted({name for r in results for name in r.params})

    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow([CSV_COLUMNS[0], *param_names, *CSV_COLUMNS[1:]])

    for r in results:
        writer.writerow(
            [
                r.name,
                *(format_param_value(r.params[p]) if p in r.params else "" for p in param_names),
                r.rank,
                f"{r.relative:.6g}",
                f"{r.median:.9g}",
                f"{r.ci_lower:.9g}",
                f"{r.ci_upper:.9g}",
                f"{r.ci_margin:.9g}",
                f"{r.mean:.9g}",
                f"{r.min:.9g}",
                f"{r.max:.9g}",
                f"{r.stdev:.9g}",
                r.rounds,
                r.iterations,
                f"{r.ops:.6g}" if r.ops is not None else "",
                r.unit,
                r.is_approximate,
                r.baseline,
            ]
        )

    return output.getvalue()


# ---------------------------------------------------------------------------
# Markdown export
# ---------------------------------------------------------------------------


def _escape_cell(text: str) -> str:
    return text.replace("|", "\\|")


def export_markdown(results: Sequence[Result]) -> str:
    """Export results as Markdown tables, one per parameter combination."""
    lines: list[str] = []

    for group in group_by_params(results).values():
        ordered = sorted(group, key=lambda r: (r.rank, r.median, r.name))
        if ordered[0].params:
            if lines:
                lines.append("")
            lines.append(f"### {_escape_cell(format_params(ordered[0].params))}")
            lines.append("")
        elif lines:
            lines.append("")

        lines.append("| Name | Rank | Ratio | Median | CI | Ops | Rounds |")
        lines.append("|---|---:|---:|---:|---|---:|---:|")
        for r in ordered:
            ci = f"[{humanize(r.ci_lower, r.unit)}, {humanize(r.ci_upper, r.unit)}]"
            ops = f"{humanize_count(r.ops)}/s" if r.ops is not None else ""
            lines.append(
                f"| {_escape_cell(r.name)} | {r.rank_label} | {format_ratio(r.relative)} | "
                f"{humanize(r.median, r.unit)} | {ci} | {ops} | "
                f"{r.rounds} × {humanize_count(r.iterations)} |"
            )

    return "\n".join(lines) + "\n"
