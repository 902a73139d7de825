"""Aggregation and ranking of measurement sets.

Turns the measurement sets of one run into a :class:`Report`: one
summary statistic per candidate, candidates ranked fastest first, and
each candidate's slowdown relative to the fastest.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from relbench.errors import InvalidArgument, NoSuccessfulCandidates
from relbench.results import MeasurementSet
from relbench.stats import (
    SUMMARY_STATISTICS,
    BootstrapCI,
    DescriptiveStats,
    bootstrap_ratio_ci,
    describe,
)

log = logging.getLogger("relbench")


# ---------------------------------------------------------------------------
# Report structures
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RankedCandidate:
    """One row of a report."""

    rank: int  # 1-based, fastest first
    name: str
    replications_completed: int
    replications_failed: int
    summary: float
    relative: float
    stats: DescriptiveStats
    relative_ci: BootstrapCI | None = None

    @property
    def is_baseline(self) -> bool:
        """True for the fastest candidate."""
        return self.rank == 1

    def to_dict(self) -> dict[str, object]:
        """Serialize to a JSON-compatible dict."""
        d: dict[str, object] = {
            "rank": self.rank,
            "name": self.name,
            "replications_completed": self.replications_completed,
            "replications_failed": self.replications_failed,
            "summary": round(self.summary, 9),
            "relative": round(self.relative, 6),
            "stats": self.stats.to_dict(),
        }
        if self.relative_ci is not None:
            d["relative_ci"] = self.relative_ci.to_dict()
        return d


@dataclass(frozen=True)
class ExcludedCandidate:
    """A candidate left out of the ranking."""

    name: str
    reason: str  # "failed" or "partial"
    replications_completed: int
    replications_failed: int
    first_error: str = ""

    def to_dict(self) -> dict[str, object]:
        """Serialize to a JSON-compatible dict."""
        return {
            "name": self.name,
            "reason": self.reason,
            "replications_completed": self.replications_completed,
            "replications_failed": self.replications_failed,
            "first_error": self.first_error,
        }


@dataclass(frozen=True)
class Report:
    """Ranked comparison of the candidates of one run.

    ``entries`` is sorted by ascending summary statistic; ties keep
    registration order.  The first entry always has ``relative == 1.0``.
    """

    statistic: str
    replications: int
    entries: tuple[RankedCandidate, ...]
    excluded: tuple[ExcludedCandidate, ...] = ()
    measurement_sets: tuple[MeasurementSet, ...] = ()

    @property
    def fastest(self) -> RankedCandidate:
        """The baseline (rank 1) candidate."""
        return self.entries[0]

    @property
    def slowest(self) -> RankedCandidate:
        """The last-ranked candidate."""
        return self.entries[-1]

    @property
    def names(self) -> list[str]:
        """Ranked candidate names, fastest first."""
        return [e.name for e in self.entries]

    def entry(self, name: str) -> RankedCandidate | None:
        """Look up a ranked candidate by name."""
        for e in self.entries:
            if e.name == name:
                return e
        return None

    def to_dict(self) -> dict[str, object]:
        """Serialize to a JSON-compatible dict."""
        return {
            "statistic": self.statistic,
            "replications": self.replications,
            "entries": [e.to_dict() for e in self.entries],
            "excluded": [e.to_dict() for e in self.excluded],
        }


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


def build_report(
    measurement_sets: Sequence[MeasurementSet],
    *,
    statistic: str = "mean",
    replications: int | None = None,
    exclude_partial: bool = False,
    ci_confidence: float = 0.95,
    ci_bootstrap_n: int = 0,
    ci_seed: int | None = None,
) -> Report:
    """Aggregate measurement sets into a ranked report.

    Args:
        measurement_sets: One set per candidate, in registration order.
        statistic: Summary statistic: ``"mean"``, ``"median"`` or ``"min"``.
        replications: Requested replications per candidate (recorded on
            the report; defaults to the largest ``requested`` seen).
        exclude_partial: Leave out candidates with any failed replication.
        ci_confidence: Confidence level of the relative-value CIs.
        ci_bootstrap_n: Bootstrap resamples per CI; 0 disables CIs.
        ci_seed: Random seed for reproducible CIs.

    Raises:
        InvalidArgument: If *statistic* is unknown.
        NoSuccessfulCandidates: If no candidate is left to rank.
    """
    if statistic not in SUMMARY_STATISTICS:
        raise InvalidArgument(
            f"Unknown summary statistic {statistic!r}; "
            f"choose one of {', '.join(SUMMARY_STATISTICS)}."
        )

    usable: list[tuple[MeasurementSet, DescriptiveStats, float]] = []
    excluded: list[ExcludedCandidate] = []

    for mset in measurement_sets:
        if mset.failed or (exclude_partial and mset.partial):
            reason = "failed" if mset.failed else "partial"
            excluded.append(
                ExcludedCandidate(
                    name=mset.candidate_name,
                    reason=reason,
                    replications_completed=mset.completed,
                    replications_failed=len(mset.failures),
                    first_error=mset.failures[0].error if mset.failures else "",
                )
            )
            log.warning(
                "Excluding candidate '%s' from ranking (%s, %d/%d replications failed)",
                mset.candidate_name,
                reason,
                len(mset.failures),
                mset.requested,
            )
            continue

        stats = describe(mset.wall_times)
        usable.append((mset, stats, stats.summary(statistic)))

    if not usable:
        raise NoSuccessfulCandidates(excluded)

    # sorted() is stable, so ties keep registration order.
    ranked = sorted(usable, key=lambda item: item[2])
    baseline_set, _, baseline_summary = ranked[0]

    entries: list[RankedCandidate] = []
    for rank, (mset, stats, summary) in enumerate(ranked, start=1):
        ci = None
        if rank == 1:
            relative = 1.0
        else:
            relative = _relative(summary, baseline_summary)
            if ci_bootstrap_n > 0:
                ci = bootstrap_ratio_ci(
                    baseline_set.wall_times,
                    mset.wall_times,
                    statistic=statistic,
                    confidence=ci_confidence,
                    n_bootstrap=ci_bootstrap_n,
                    seed=ci_seed,
                )
        entries.append(
            RankedCandidate(
                rank=rank,
                name=mset.candidate_name,
                replications_completed=mset.completed,
                replications_failed=len(mset.failures),
                summary=summary,
                relative=relative,
                stats=stats,
                relative_ci=ci,
            )
        )

    if replications is None:
        replications = max((m.requested for m in measurement_sets), default=0)

    return Report(
        statistic=statistic,
        replications=replications,
        entries=tuple(entries),
        excluded=tuple(excluded),
        measurement_sets=tuple(measurement_sets),
    )


def _relative(summary: float, baseline: float) -> float:
    """Ratio to the baseline; a zero baseline only matches another zero."""
    if baseline > 0:
        return summary / baseline
    return 1.0 if summary == baseline else float("inf")
