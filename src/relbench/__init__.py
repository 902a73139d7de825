"""relbench: rank alternative implementations of a computation by speed.

Register named zero-argument candidates, replicate each one, and get a
report ranking them by a summary of their wall-clock times, with every
candidate's slowdown relative to the fastest::

    from relbench import CandidateRegistry, run

    registry = CandidateRegistry()
    registry.register("sqrt", lambda: [math.sqrt(v) for v in data])
    registry.register("exp_log", lambda: [math.exp(math.log(v) / 2) for v in data])
    report = run(registry, replications=100)
"""

from __future__ import annotations

__version__ = "0.1.0"

from relbench.config import BenchConfig
from relbench.errors import (
    CandidateFailure,
    DuplicateName,
    InvalidArgument,
    NoSuccessfulCandidates,
    RelbenchError,
)
from relbench.registry import Candidate, CandidateRegistry
from relbench.report import ExcludedCandidate, RankedCandidate, Report, build_report
from relbench.results import Measurement, MeasurementSet
from relbench.runner import BenchRunner, RunState, repeat, run
from relbench.timing import measure

__all__ = [
    "BenchConfig",
    "BenchRunner",
    "Candidate",
    "CandidateFailure",
    "CandidateRegistry",
    "DuplicateName",
    "ExcludedCandidate",
    "InvalidArgument",
    "Measurement",
    "MeasurementSet",
    "NoSuccessfulCandidates",
    "RankedCandidate",
    "RelbenchError",
    "Report",
    "RunState",
    "build_report",
    "measure",
    "repeat",
    "run",
]
