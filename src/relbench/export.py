"""Export benchmark reports to CSV, Markdown and JSON.

CSV format: one row per candidate per replication (long format for
pandas/R), failed replications included.  This is the raw data.

CSV summary: one row per ranked candidate.

Markdown format: a ranked table suitable for reports, README files
and issues.
"""

from __future__ import annotations

import csv
import io
import json
import math

from relbench.display import format_relative, format_time
from relbench.report import Report
from relbench.results import BenchMeta


# ---------------------------------------------------------------------------
# CSV export
# ---------------------------------------------------------------------------


def export_csv(report: Report) -> str:
    """Export every replication as CSV (long format).

    Columns:
        candidate, replication, ok, wall_time_s, user_time_s,
        sys_time_s, error
    """
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(
        [
            "candidate",
            "replication",
            "ok",
            "wall_time_s",
            "user_time_s",
            "sys_time_s",
            "error",
        ]
    )

    for mset in report.measurement_sets:
        for m in mset.all_measurements:
            writer.writerow(
                [
                    m.candidate_name,
                    m.replication_index,
                    m.ok,
                    f"{m.wall_time_s:.9f}",
                    f"{m.user_time_s:.6f}",
                    f"{m.sys_time_s:.6f}",
                    m.error,
                ]
            )

    return output.getvalue()


def export_csv_summary(report: Report) -> str:
    """Export one row per ranked candidate with its summary statistics."""
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(
        [
            "rank",
            "candidate",
            "completed",
            "failed",
            "statistic",
            "summary_s",
            "relative",
            "mean_s",
            "median_s",
            "stdev_s",
            "min_s",
            "max_s",
            "cv",
            "outliers",
        ]
    )

    for e in report.entries:
        s = e.stats
        writer.writerow(
            [
                e.rank,
                e.name,
                e.replications_completed,
                e.replications_failed,
                report.statistic,
                f"{e.summary:.9f}",
                f"{e.relative:.6f}",
                f"{s.mean:.9f}",
                f"{s.median:.9f}",
                f"{s.stdev:.9f}",
                f"{s.min:.9f}",
                f"{s.max:.9f}",
                f"{s.cv:.6f}",
                s.n_outliers,
            ]
        )

    return output.getvalue()


# ---------------------------------------------------------------------------
# Markdown export
# ---------------------------------------------------------------------------


def _md_cell(text: str) -> str:
    # A raw pipe or newline would split the table row.
    return text.replace("|", "\\|").replace("\n", " ")


def export_markdown(report: Report, meta: BenchMeta | None = None) -> str:
    """Export the ranked table as Markdown."""
    lines: list[str] = []

    if meta is not None:
        lines.append(f"# {meta.name or meta.bench_id}")
        lines.append("")
        if meta.description:
            lines.append(meta.description)
            lines.append("")
        sys_p = meta.system
        lines.append(
            f"- **Python:** {sys_p.python_version} ({sys_p.python_implementation})"
        )
        lines.append(f"- **CPU:** {sys_p.cpu_model} ({sys_p.cpu_count} logical)")
        lines.append(f"- **OS:** {sys_p.os_name} {sys_p.os_release}")
        lines.append("")

    lines.append(
        f"Replications: {report.replications}, statistic: {report.statistic}"
    )
    lines.append("")

    show_ci = any(e.relative_ci is not None for e in report.entries)
    header = f"| # | Candidate | N | {report.statistic.capitalize()} | Stdev | Relative |"
    align = "|---:|---|---:|---:|---:|---:|"
    if show_ci:
        header += " CI |"
        align += "---|"
    lines.append(header)
    lines.append(align)

    for e in report.entries:
        row = (
            f"| {e.rank} | {_md_cell(e.name)} | {e.replications_completed} | "
            f"{format_time(e.summary)} | {format_time(e.stats.stdev)} | "
            f"{format_relative(e.relative)} |"
        )
        if show_ci:
            ci = e.relative_ci
            cell = (
                f"[{format_relative(ci.lower)}, {format_relative(ci.upper)}]"
                if ci is not None
                else ""
            )
            row += f" {cell} |"
        lines.append(row)

    if report.excluded:
        lines.append("")
        lines.append("## Excluded")
        lines.append("")
        for x in report.excluded:
            line = f"- **{x.name}** ({x.reason}, {x.replications_failed} failed)"
            if x.first_error:
                line += f": `{x.first_error}`"
            lines.append(line)

    if meta is not None:
        lines.append("")
        lines.append(f"*Generated by relbench on {meta.start_time or 'unknown'}*")

    return "\n".join(lines)


# ---------------------------------------------------------------------------
# JSON export
# ---------------------------------------------------------------------------


def export_json(report: Report, meta: BenchMeta | None = None) -> str:
    """Export the report (and optional run metadata) as indented JSON."""
    data: dict[str, object] = {"report": report.to_dict()}
    if meta is not None:
        data["meta"] = meta.to_dict()
    return json.dumps(_json_safe(data), indent=2, allow_nan=False)


def _json_safe(obj: object) -> object:
    """Replace non-finite floats with None so the output is strict JSON."""
    if isinstance(obj, float) and not math.isfinite(obj):
        return None
    if isinstance(obj, dict):
        return {k: _json_safe(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_json_safe(v) for v in obj]
    return obj
