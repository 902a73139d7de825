"""Measurement data structures and serialization.

Hierarchy::

    BenchMeta (top level, one benchmark execution)
      -> system: SystemProfile
      -> candidates: dict[str, str]   (name -> description)

    MeasurementSet (per candidate)
      -> measurements: tuple[Measurement, ...]   (successful replications)
      -> failures: tuple[Measurement, ...]       (sentinels, ok=False)

Files produced::

    bench_meta.json            BenchMeta (system, config, candidates)
    bench_measurements.jsonl   one MeasurementSet per line
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator

from relbench.system import SystemProfile

log = logging.getLogger("relbench")


# ---------------------------------------------------------------------------
# Replication-level result
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Measurement:
    """Outcome of one timed replication of a candidate."""

    candidate_name: str
    replication_index: int  # 0-based
    wall_time_s: float
    user_time_s: float = 0.0
    sys_time_s: float = 0.0
    ok: bool = True
    error: str = ""  # "ExcType: message" when ok is False

    @property
    def cpu_time_s(self) -> float:
        """Total CPU time (user + system)."""
        return self.user_time_s + self.sys_time_s

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        d: dict[str, Any] = {
            "candidate_name": self.candidate_name,
            "replication_index": self.replication_index,
            "wall_time_s": round(self.wall_time_s, 9),
            "user_time_s": round(self.user_time_s, 6),
            "sys_time_s": round(self.sys_time_s, 6),
            "ok": self.ok,
        }
        if self.error:
            d["error"] = self.error
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Measurement:
        """Deserialize from a dict, ignoring unknown fields."""
        known = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in data.items() if k in known}
        return cls(**filtered)


# ---------------------------------------------------------------------------
# Candidate-level result
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MeasurementSet:
    """All replications of one candidate, in execution order.

    Only successful measurements count towards ``len()``; failed
    replications are kept apart in ``failures`` so they can never leak
    into a summary statistic.
    """

    candidate_name: str
    requested: int
    measurements: tuple[Measurement, ...] = ()
    failures: tuple[Measurement, ...] = ()

    def __len__(self) -> int:
        return len(self.measurements)

    def __iter__(self) -> Iterator[Measurement]:
        return iter(self.measurements)

    @property
    def completed(self) -> int:
        """Number of successful replications."""
        return len(self.measurements)

    @property
    def partial(self) -> bool:
        """True if at least one replication failed."""
        return bool(self.failures)

    @property
    def failed(self) -> bool:
        """True if no replication succeeded."""
        return not self.measurements

    @property
    def wall_times(self) -> list[float]:
        """Wall times of the successful replications."""
        return [m.wall_time_s for m in self.measurements]

    @property
    def cpu_times(self) -> list[float]:
        """CPU times (user + system) of the successful replications."""
        return [m.cpu_time_s for m in self.measurements]

    @property
    def all_measurements(self) -> list[Measurement]:
        """Successes and failures merged back into replication order."""
        return sorted(
            self.measurements + self.failures,
            key=lambda m: m.replication_index,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "candidate_name": self.candidate_name,
            "requested": self.requested,
            "measurements": [m.to_dict() for m in self.all_measurements],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MeasurementSet:
        """Deserialize from a dict, splitting successes from failures."""
        items = [Measurement.from_dict(m) for m in data.get("measurements", [])]
        return cls(
            candidate_name=data["candidate_name"],
            requested=data.get("requested", len(items)),
            measurements=tuple(m for m in items if m.ok),
            failures=tuple(m for m in items if not m.ok),
        )

    def to_jsonl_line(self) -> str:
        """Serialize to a single JSONL line."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_jsonl_line(cls, line: str) -> MeasurementSet:
        """Deserialize from a single JSONL line."""
        return cls.from_dict(json.loads(line))


# ---------------------------------------------------------------------------
# Run-level metadata
# ---------------------------------------------------------------------------


@dataclass
class BenchMeta:
    """Metadata for a complete benchmark run."""

    bench_id: str
    name: str = ""
    description: str = ""
    system: SystemProfile = field(default_factory=SystemProfile)
    config: dict[str, Any] = field(default_factory=dict)
    candidates: dict[str, str] = field(default_factory=dict)
    cli_args: list[str] = field(default_factory=list)
    start_time: str = ""
    end_time: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "bench_id": self.bench_id,
            "name": self.name,
            "description": self.description,
            "system": self.system.to_dict(),
            "config": self.config,
            "candidates": self.candidates,
            "cli_args": self.cli_args,
            "start_time": self.start_time,
            "end_time": self.end_time,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BenchMeta:
        """Deserialize from a dict."""
        return cls(
            bench_id=data["bench_id"],
            name=data.get("name", ""),
            description=data.get("description", ""),
            system=SystemProfile.from_dict(data.get("system", {})),
            config=data.get("config", {}),
            candidates=data.get("candidates", {}),
            cli_args=data.get("cli_args", []),
            start_time=data.get("start_time", ""),
            end_time=data.get("end_time", ""),
        )


# ---------------------------------------------------------------------------
# I/O functions
# ---------------------------------------------------------------------------


def save_bench_run(
    output_dir: Path,
    meta: BenchMeta,
    measurement_sets: list[MeasurementSet],
) -> None:
    """Save a complete benchmark run to disk.

    Creates ``output_dir/bench_meta.json`` and
    ``output_dir/bench_measurements.jsonl``.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    meta_path = output_dir / "bench_meta.json"
    meta_path.write_text(json.dumps(meta.to_dict(), indent=2) + "\n")
    log.info("Wrote %s", meta_path)

    results_path = output_dir / "bench_measurements.jsonl"
    with open(results_path, "w") as f:
        for mset in measurement_sets:
            f.write(mset.to_jsonl_line() + "\n")
    log.info("Wrote %d measurement sets to %s", len(measurement_sets), results_path)


def load_bench_run(
    run_dir: Path,
) -> tuple[BenchMeta, list[MeasurementSet]]:
    """Load a benchmark run from disk.

    Raises:
        FileNotFoundError: If ``bench_meta.json`` is missing.
    """
    meta_path = run_dir / "bench_meta.json"
    if not meta_path.exists():
        raise FileNotFoundError(f"No bench_meta.json in {run_dir}")

    meta = BenchMeta.from_dict(json.loads(meta_path.read_text()))

    measurement_sets: list[MeasurementSet] = []
    results_path = run_dir / "bench_measurements.jsonl"
    if results_path.exists():
        for line in results_path.read_text().splitlines():
            line = line.strip()
            if line:
                measurement_sets.append(MeasurementSet.from_jsonl_line(line))

    return meta, measurement_sets
