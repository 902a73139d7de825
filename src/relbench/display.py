"""Terminal display formatting for benchmark reports.

Produces aligned tables with Unicode rules.  Only reads a Report;
nothing here feeds back into measurement or ranking.
"""

from __future__ import annotations

import math
import statistics as _stats

from relbench.report import RankedCandidate, Report
from relbench.results import BenchMeta
from relbench.system import format_system_profile


# ---------------------------------------------------------------------------
# Value formatting
# ---------------------------------------------------------------------------


def format_time(seconds: float, precision: int = 2) -> str:
    """Format a duration with adaptive units (ns, µs, ms, s, m)."""
    if math.isnan(seconds):
        return "N/A"
    if seconds < 1e-6:
        return f"{seconds * 1e9:.0f}ns"
    if seconds < 1e-3:
        return f"{seconds * 1e6:.{precision}f}µs"
    if seconds < 1:
        return f"{seconds * 1e3:.{precision}f}ms"
    if seconds < 60:
        return f"{seconds:.{precision}f}s"
    minutes = int(seconds // 60)
    return f"{minutes}m{seconds % 60:.0f}s"


def format_relative(value: float, precision: int = 2) -> str:
    """Format a relative value as a multiplier, e.g. ``1.00x``."""
    if math.isnan(value):
        return "N/A"
    if math.isinf(value):
        return "inf"
    return f"{value:.{precision}f}x"


def _format_ci(entry: RankedCandidate) -> str:
    ci = entry.relative_ci
    if ci is None or math.isnan(ci.lower):
        return ""
    return f"[{format_relative(ci.lower)}, {format_relative(ci.upper)}]"


# ---------------------------------------------------------------------------
# Report table
# ---------------------------------------------------------------------------


def format_report(report: Report, *, cv_threshold: float = 0.10) -> str:
    """Format the ranked table, exclusions and a measurement-quality note."""
    show_ci = any(e.relative_ci is not None for e in report.entries)
    stat_label = report.statistic.capitalize()

    header = (
        f"{'#':>3s}  {'Candidate':<24s} {'N':>5s} {stat_label:>10s} "
        f"{'± stdev':>10s} {'Min':>10s} {'Relative':>9s}"
    )
    if show_ci:
        header += f" {'CI':>18s}"
    header += " Notes"
    lines = [header, "─" * len(header)]

    for e in report.entries:
        notes: list[str] = []
        if e.replications_failed:
            notes.append(f"{e.replications_failed} failed")
        if e.stats.cv > cv_threshold:
            notes.append(f"noisy (CV {e.stats.cv:.0%})")
        if e.stats.n_outliers:
            notes.append(f"{e.stats.n_outliers} outliers")

        row = (
            f"{e.rank:>3d}  {e.name:<24s} {e.replications_completed:>5d} "
            f"{format_time(e.summary):>10s} {format_time(e.stats.stdev):>10s} "
            f"{format_time(e.stats.min):>10s} {format_relative(e.relative):>9s}"
        )
        if show_ci:
            row += f" {_format_ci(e):>18s}"
        if notes:
            row += " " + ", ".join(notes)
        lines.append(row.rstrip())

    if report.excluded:
        lines.append("")
        lines.append("Excluded from ranking:")
        for x in report.excluded:
            detail = f"{x.replications_failed} failed, {x.replications_completed} completed"
            line = f"  {x.name:<24s} {x.reason:<8s} ({detail})"
            if x.first_error:
                line += f": {x.first_error}"
            lines.append(line)

    lines.append("")
    lines.append(_format_quality(report, cv_threshold))
    return "\n".join(lines)


def _format_quality(report: Report, cv_threshold: float) -> str:
    """One-line assessment of timing stability across candidates."""
    cvs = [e.stats.cv for e in report.entries if e.stats.n >= 2]
    if not cvs:
        return "Measurement quality: N/A (fewer than 2 replications)"

    median_cv = _stats.median(cvs)
    if median_cv < 0.03:
        quality = "excellent"
    elif median_cv < 0.05:
        quality = "good"
    elif median_cv < cv_threshold:
        quality = "acceptable"
    else:
        quality = "poor, rankings may be unreliable"
    return f"Measurement quality: {quality} (median CV {median_cv:.1%})"


# ---------------------------------------------------------------------------
# Saved run display
# ---------------------------------------------------------------------------


def format_bench_show(meta: BenchMeta, report: Report) -> str:
    """Format a saved benchmark run: header, system, settings and table."""
    lines: list[str] = []

    title = meta.name or meta.bench_id
    lines.append(title)
    lines.append("─" * len(title))
    if meta.description:
        lines.append(meta.description)
    lines.append("")

    lines.append(format_system_profile(meta.system))
    lines.append("")

    cfg = meta.config
    lines.append(
        f"Replications: {cfg.get('replications', '?')} measured + "
        f"{cfg.get('warmup', 0)} warm-up, policy: {cfg.get('failure_policy', '?')}"
    )
    if meta.start_time and meta.end_time:
        lines.append(f"Time: {meta.start_time} → {meta.end_time}")
    lines.append("")

    lines.append(format_report(report, cv_threshold=cfg.get("cv_threshold", 0.10)))
    return "\n".join(lines)
