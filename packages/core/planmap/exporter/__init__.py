"""Export a bundle comparison to CSV, Markdown or JSON."""

from __future__ import annotations

from datetime import date
from pathlib import Path

from planmap.matrix import ComparisonMatrix, build_matrix
from planmap.models import Bundle, Capability

FORMATS = ("csv", "markdown", "json")

_EXTENSIONS = {"csv": "csv", "markdown": "md", "json": "json"}


def default_filename(fmt: str, on: date | None = None) -> str:
    day = (on or date.today()).isoformat()
    return f"m365_comparison_{day}.{_EXTENSIONS.get(fmt, 'txt')}"


def render_matrix(matrix: ComparisonMatrix, fmt: str) -> str:
    fmt = fmt.lower().strip()

    if fmt == "csv":
        from planmap.exporter.csvfile import render

        return render(matrix)

    if fmt in ("markdown", "md"):
        from planmap.exporter.markdown import render

        return render(matrix)

    if fmt == "json":
        from planmap.exporter.jsondoc import render

        return render(matrix)

    raise ValueError(f"Unknown export format: {fmt!r}. Supported: {', '.join(FORMATS)}")


def export_comparison(
    capabilities: list[Capability],
    bundles: list[Bundle],
    fmt: str = "csv",
    output: str | Path | None = None,
) -> str:
    """Render the comparison of the given bundles. Writes to output when provided."""
    content = render_matrix(build_matrix(capabilities, bundles), fmt)
    if output:
        Path(output).write_text(content, encoding="utf-8")
    return content
