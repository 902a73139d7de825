"""Exceptions raised by relbench.

All of them derive from :class:`RelbenchError` so callers can catch the
whole family at once.  Argument problems additionally derive from
``ValueError``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from relbench.report import ExcludedCandidate
    from relbench.results import Measurement, MeasurementSet


class RelbenchError(Exception):
    """Base class for every relbench error."""


class InvalidArgument(RelbenchError, ValueError):
    """An argument is out of range (e.g. a replication count below 1)."""


class DuplicateName(RelbenchError, ValueError):
    """A candidate with this name is already registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Candidate '{name}' is already registered.")
        self.name = name


class CandidateFailure(RelbenchError):
    """A candidate's computation raised during measurement.

    Attributes:
        candidate_name: Name of the failing candidate.
        measurement: The failed measurement, with the time spent until
            the failure.
        partial: Measurements collected before the failure, when the
            failure aborted a :func:`~relbench.runner.repeat` loop.
    """

    def __init__(
        self,
        candidate_name: str,
        measurement: Measurement,
        *,
        partial: MeasurementSet | None = None,
    ) -> None:
        label = candidate_name or "<anonymous>"
        super().__init__(
            f"Candidate '{label}' failed in replication "
            f"{measurement.replication_index} after "
            f"{measurement.wall_time_s:.6f}s: {measurement.error}"
        )
        self.candidate_name = candidate_name
        self.measurement = measurement
        self.partial = partial


class NoSuccessfulCandidates(RelbenchError):
    """No candidate produced a usable measurement, so there is no baseline."""

    def __init__(self, excluded: Sequence[ExcludedCandidate] = ()) -> None:
        names = ", ".join(e.name for e in excluded) or "none registered"
        super().__init__(f"No candidate completed a replication successfully ({names}).")
        self.excluded = tuple(excluded)
