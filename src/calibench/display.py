"""Terminal display formatting for benchmark results.

Produces aligned tables and bar charts for ranked results. Results are
shown one parameter combination at a time, fastest first.
"""

from __future__ import annotations

from typing import Sequence, Union

from calibench.export import export_csv, export_markdown
from calibench.formatting import (
    format_bar,
    format_ratio,
    format_section_header,
    format_table,
    humanize,
    humanize_count,
    table_width,
    truncate,
)
from calibench.params import format_params
from calibench.rank import group_by_params
from calibench.results import Result, RunMeta, Stats

DEFAULT_TERM_WIDTH = 100
FORMATS = ("plain", "compact", "markdown", "csv")

MAX_BAR_WIDTH = 40
MIN_BAR_WIDTH = 10
MIN_NAME_WIDTH = 8
_INDENT = 2

_HEADERS = ["Name", "Rank", "Ratio", "Median", "CI Low", "CI High", "Ops", "Iters"]
_ALIGNMENTS = ["l", "r", "r", "r", "r", "r", "r", "r"]


# ---------------------------------------------------------------------------
# Single result
# ---------------------------------------------------------------------------


def format_stats(stats: Stats) -> str:
    """Format one Stats as a single human-readable line.

    Example: ``'1.25µs ± 20ns per call (median ± CI margin of 100 rounds × 1k iterations)'``.
    """
    return (
        f"{humanize(stats.median, stats.unit)} ± {humanize(stats.ci_margin, stats.unit)} "
        f"per call (median ± CI margin of {stats.rounds} rounds × "
        f"{humanize_count(stats.iterations)} iterations)"
    )


# ---------------------------------------------------------------------------
# Tables and bar charts
# ---------------------------------------------------------------------------


def _row_cells(r: Result) -> list[str]:
    ops = f"{humanize_count(r.ops)}/s" if r.ops is not None else ""
    return [
        r.name,
        r.rank_label,
        format_ratio(r.relative),
        humanize(r.median, r.unit),
        humanize(r.ci_lower, r.unit),
        humanize(r.ci_upper, r.unit),
        ops,
        f"{r.rounds} × {humanize_count(r.iterations)}",
    ]


def _format_result_table(results: Sequence[Result], max_width: int) -> str:
    """Format the full table, truncating names so lines fit *max_width*."""
    rows = [_row_cells(r) for r in results]
    other_widths = [
        max(len(_HEADERS[ci]), *(len(row[ci]) for row in rows)) for ci in range(1, len(_HEADERS))
    ]
    name_width = max(MIN_NAME_WIDTH, max_width - table_width([0, *other_widths], indent=_INDENT))
    return format_table(
        _HEADERS,
        rows,
        alignments=_ALIGNMENTS,
        max_col_width={0: name_width},
        indent=_INDENT,
    )


def _format_bar_chart(results: Sequence[Result], max_width: int) -> str:
    """Format one bar per result, scaled to the slowest median."""
    suffixes = [f"{format_ratio(r.relative)} ({humanize(r.median, r.unit)})" for r in results]
    suffix_width = max(len(s) for s in suffixes)
    longest_name = max(len(r.name) for r in results)

    # Layout: indent, name, 2 spaces, bar, 2 spaces, suffix.
    room = max_width - _INDENT - suffix_width - 4
    name_width = min(longest_name, max(MIN_NAME_WIDTH, room - MIN_BAR_WIDTH))
    bar_width = max(1, min(MAX_BAR_WIDTH, room - name_width))
    slowest = max(r.median for r in results)

    lines = []
    for r, suffix in zip(results, suffixes):
        name = truncate(r.name, name_width)
        bar = format_bar(r.median, slowest, bar_width)
        line = f"{' ' * _INDENT}{name:<{name_width}}  {bar:<{bar_width}}  {suffix}"
        lines.append(line.rstrip())
    return "\n".join(lines)


def _render_group(results: Sequence[Result], fmt: str, max_width: int) -> str:
    parts = []
    if fmt == "plain":
        parts.append(_format_result_table(results, max_width))
        parts.append("")
    parts.append(_format_bar_chart(results, max_width))
    return "\n".join(parts)


def render(
    results: Union[Sequence[Result], Stats],
    fmt: str = "plain",
    max_width: int = DEFAULT_TERM_WIDTH,
) -> str:
    """Render results for the terminal or for export.

    Args:
        results: Ranked results, or a single Stats or Result (rendered
            as one line).
        fmt: ``'plain'`` (table and bar chart), ``'compact'`` (bar chart
            only), ``'markdown'`` or ``'csv'``.
        max_width: Maximum line width for ``plain`` and ``compact``.

    Raises:
        ValueError: If *results* is empty or *fmt* is unknown.
    """
    if isinstance(results, Stats):
        return format_stats(results)
    if not results:
        raise ValueError("'results' is empty.")
    if fmt not in FORMATS:
        raise ValueError("format must be 'plain', 'compact', 'markdown', or 'csv'")

    if fmt == "markdown":
        return export_markdown(results)
    if fmt == "csv":
        return export_csv(results)

    sections = []
    for group in group_by_params(results).values():
        ordered = sorted(group, key=lambda r: (r.rank, r.median, r.name))
        if ordered[0].params:
            title = format_params(ordered[0].params)
            sections.append(format_section_header(title, width=min(max_width, 80)))
        sections.append(_render_group(ordered, fmt, max_width))
    return "\n\n".join(sections)


# ---------------------------------------------------------------------------
# Saved runs
# ---------------------------------------------------------------------------


def format_run_header(meta: RunMeta) -> str:
    """Format the header shown above a saved run."""
    title = f"Benchmark: {meta.source}"
    lines = [title, "─" * len(title)]
    resolution = humanize(meta.clock_resolution, "s") if meta.clock_resolution else "?"
    lines.append(f"Mode:  {meta.mode}")
    lines.append(f"Clock: {meta.clock or '?'} (resolution {resolution})")
    if meta.options:
        opts = ", ".join(f"{k}={v}" for k, v in sorted(meta.options.items()))
        lines.append(f"Options: {opts}")
    if meta.start_time and meta.end_time:
        lines.append(f"Time:  {meta.start_time} → {meta.end_time}")
    return "\n".join(lines)


def format_run(
    meta: RunMeta,
    results: Sequence[Result],
    fmt: str = "plain",
    max_width: int = DEFAULT_TERM_WIDTH,
) -> str:
    """Format a saved run: header plus rendered results."""
    if not results:
        return format_run_header(meta) + "\n\nNo results."
    return format_run_header(meta) + "\n\n" + render(results, fmt, max_width)
