"""Shared text formatting helpers for calibench.

Provides functions for humanizing times, memory sizes and counts, and for
formatting tables and bars used by the renderers and the CLI.
"""

from __future__ import annotations

import math

# Factors in nanoseconds.
_TIME_UNITS: list[tuple[str, float]] = [
    ("ns", 1.0),
    ("µs", 1e3),
    ("ms", 1e6),
    ("s", 1e9),
]

_MEMORY_UNITS: list[tuple[str, float]] = [
    ("B", 1.0),
    ("KB", 1024.0),
    ("MB", 1024.0**2),
    ("GB", 1024.0**3),
    ("TB", 1024.0**4),
]

_COUNT_SUFFIXES: list[tuple[str, float]] = [
    ("", 1.0),
    ("k", 1e3),
    ("M", 1e6),
    ("G", 1e9),
]

_BAR_FULL = "█"
_BAR_PARTIAL = "▏"


def _scaled(value: float, units: list[tuple[str, float]]) -> str:
    """Render *value* (in base units) with the largest unit it reaches.

    The smallest unit is shown as a whole number; larger units keep up to
    two decimals without trailing zeros.
    """
    if math.isnan(value):
        return "N/A"
    if math.isinf(value):
        return "inf"
    name, factor = units[0]
    for unit_name, unit_factor in units:
        if abs(value) >= unit_factor:
            name, factor = unit_name, unit_factor
    scaled = value / factor
    if factor == units[0][1]:
        return f"{scaled:.0f}{name}"
    text = f"{scaled:.2f}".rstrip("0").rstrip(".")
    return f"{text}{name}"


def humanize_time(seconds: float) -> str:
    """Format seconds with an adaptive unit.

    Examples: ``'5ns'``, ``'1.25µs'``, ``'3ms'``, ``'2.5s'``.
    Sub-nanosecond values round to ``'0ns'``.
    """
    return _scaled(seconds * 1e9, _TIME_UNITS)


def humanize_memory(kilobytes: float) -> str:
    """Format a size given in kilobytes with an adaptive unit.

    Examples: ``'512B'``, ``'1.5KB'``, ``'1.5TB'``. Sub-byte values round
    to ``'0B'``.
    """
    return _scaled(kilobytes * 1024, _MEMORY_UNITS)


def humanize_count(value: float) -> str:
    """Format a count compactly: ``'950'``, ``'1k'``, ``'2.5M'``."""
    if math.isinf(value):
        return "inf"
    suffix, factor = _COUNT_SUFFIXES[0]
    for s, f in _COUNT_SUFFIXES:
        if abs(value) >= f:
            suffix, factor = s, f
    if factor == 1.0:
        return f"{value:.0f}"
    text = f"{value / factor:.1f}".rstrip("0").rstrip(".")
    return f"{text}{suffix}"


def humanize(value: float, unit: str) -> str:
    """Format a sample value in its own unit (``"s"`` or ``"kb"``)."""
    if unit == "kb":
        return humanize_memory(value)
    return humanize_time(value)


def format_ratio(value: float) -> str:
    """Format a relative value: ``'1.00x'``, ``'12.50x'``, ``'inf'``."""
    if math.isinf(value):
        return "inf"
    return f"{value:.2f}x"


def format_bar(value: float, maximum: float, width: int) -> str:
    """Return a bar of block characters proportional to *value*/*maximum*.

    Non-zero values always get at least a thin bar.
    """
    if width <= 0 or maximum <= 0 or value <= 0 or math.isnan(value):
        return ""
    if math.isinf(maximum):
        return _BAR_FULL * width if math.isinf(value) else _BAR_PARTIAL
    length = int(min(value / maximum, 1.0) * width)
    return _BAR_FULL * length if length > 0 else _BAR_PARTIAL


def format_table(
    headers: list[str],
    rows: list[list[str]],
    *,
    alignments: list[str] | None = None,
    max_col_width: dict[int, int] | None = None,
    indent: int = 2,
) -> str:
    """Format a list of rows as an aligned text table.

    Auto-calculates column widths from content. Truncates columns that
    exceed *max_col_width* (with ``'...'`` suffix). Right-aligns columns
    marked ``'r'`` in *alignments*.

    Args:
        headers: Column header strings.
        rows: List of rows, each a list of cell strings.
        alignments: Per-column alignment: ``'l'``, ``'r'``, or ``'c'``.
        max_col_width: Column index to max width mapping.
        indent: Number of leading spaces per line.

    Returns:
        The formatted table as a string.
    """
    if not headers:
        return ""

    ncols = len(headers)
    aligns = list(alignments or [])
    aligns += ["l"] * (ncols - len(aligns))

    proc_headers = list(headers)
    proc_rows = [(list(row) + [""] * ncols)[:ncols] for row in rows]

    for ci, max_w in (max_col_width or {}).items():
        if ci < ncols:
            proc_headers[ci] = truncate(proc_headers[ci], max_w)
            for row in proc_rows:
                row[ci] = truncate(row[ci], max_w)

    widths = [len(h) for h in proc_headers]
    for row in proc_rows:
        for ci, cell in enumerate(row):
            widths[ci] = max(widths[ci], len(cell))

    def _format_cell(text: str, width: int, align: str) -> str:
        if align == "r":
            return text.rjust(width)
        if align == "c":
            return text.center(width)
        return text.ljust(width)

    prefix = " " * indent
    lines = []
    for row in [proc_headers, *proc_rows]:
        line = "  ".join(_format_cell(row[i], widths[i], aligns[i]) for i in range(ncols))
        lines.append((prefix + line).rstrip())
    return "\n".join(lines)


def table_width(widths: list[int], *, indent: int = 2) -> int:
    """Total line width of a :func:`format_table` table with these column widths."""
    if not widths:
        return 0
    return indent + sum(widths) + 2 * (len(widths) - 1)


def truncate(text: str, max_len: int, suffix: str = "...") -> str:
    """Truncate text to *max_len*, adding *suffix* if truncated."""
    if len(text) <= max_len:
        return text
    if max_len <= len(suffix):
        return suffix[:max_len]
    return text[: max_len - len(suffix)] + suffix


def format_section_header(title: str, width: int = 80) -> str:
    """Format a section header: ``'─── Title ──...'``."""
    prefix = "─── "
    suffix_len = width - len(prefix) - len(title) - 1
    suffix = " " + "─" * max(0, suffix_len)
    return prefix + title + suffix
