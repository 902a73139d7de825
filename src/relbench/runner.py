"""Benchmark execution engine.

Orchestrates:
1. Configuration validation
2. Replication of every candidate, one after another (``repeat``)
3. Aggregation into a ranked report (``build_report``)
4. Optional persistence of the raw measurements

Execution is strictly sequential on the calling thread.  Running
candidates concurrently would make them compete for CPU and memory
bandwidth and corrupt the very timings being compared.
"""

from __future__ import annotations

import enum
import time
from dataclasses import dataclass
from typing import Any, Callable

from relbench.config import FAILURE_POLICIES, BenchConfig, validate_config
from relbench.errors import CandidateFailure, InvalidArgument
from relbench.logging import get_logger
from relbench.registry import CandidateRegistry
from relbench.report import Report, build_report
from relbench.results import BenchMeta, Measurement, MeasurementSet, save_bench_run
from relbench.system import capture_system_profile
from relbench.timing import Clock, Computation, measure

log = get_logger("runner")


# ---------------------------------------------------------------------------
# Progress callback
# ---------------------------------------------------------------------------


@dataclass
class BenchProgress:
    """Progress info passed to the callback after each replication."""

    phase: str  # "warmup" or "measure"
    candidate: str
    replication: int  # 1-based
    total_replications: int
    candidates_done: int
    candidates_total: int
    wall_time_s: float = 0.0
    ok: bool = True


ProgressCallback = Callable[[BenchProgress], None]


# ---------------------------------------------------------------------------
# Repeater
# ---------------------------------------------------------------------------


def repeat(
    computation: Computation,
    count: int,
    *,
    candidate_name: str = "",
    failure_policy: str = "record",
    warmup: int = 0,
    clock: Clock = time.perf_counter,
    disable_gc: bool = False,
    on_replication: Callable[[str, int, Measurement], None] | None = None,
) -> MeasurementSet:
    """Time *computation* *count* times in a row.

    Args:
        computation: Zero-argument callable to time.
        count: Number of timed replications (at least 1).
        candidate_name: Recorded on every measurement.
        failure_policy: ``"record"`` keeps going after a failure and
            records it as a sentinel; ``"abort"`` re-raises the first
            failure with the partial set attached.
        warmup: Invocations run before the timed replications and
            discarded.
        clock: Monotonic clock returning seconds.
        disable_gc: Pause the cyclic GC during each replication.
        on_replication: Called as ``(phase, index, measurement)`` after
            every invocation, warm-up included.

    Returns:
        A MeasurementSet whose length is the number of successful
        replications (``count`` when the computation never fails).

    Raises:
        InvalidArgument: If *count* < 1, *warmup* < 0 or the policy is unknown.
        CandidateFailure: Under ``"abort"``, on the first failure.
    """
    if isinstance(count, bool) or not isinstance(count, int) or count < 1:
        raise InvalidArgument(f"Replication count must be an integer >= 1 (got {count!r}).")
    if isinstance(warmup, bool) or not isinstance(warmup, int) or warmup < 0:
        raise InvalidArgument(f"Warmup count must be an integer >= 0 (got {warmup!r}).")
    if failure_policy not in FAILURE_POLICIES:
        raise InvalidArgument(
            f"Unknown failure policy {failure_policy!r}; "
            f"choose one of {', '.join(FAILURE_POLICIES)}."
        )

    for idx in range(warmup):
        try:
            m = measure(
                computation,
                candidate_name=candidate_name,
                replication_index=idx,
                clock=clock,
                disable_gc=disable_gc,
            )
        except CandidateFailure as exc:
            if failure_policy == "abort":
                exc.partial = MeasurementSet(candidate_name=candidate_name, requested=count)
                raise
            log.warning("Warm-up %d of '%s' failed: %s", idx + 1, candidate_name, exc)
            m = exc.measurement
        if on_replication is not None:
            on_replication("warmup", idx, m)

    successes: list[Measurement] = []
    failures: list[Measurement] = []

    for idx in range(count):
        try:
            m = measure(
                computation,
                candidate_name=candidate_name,
                replication_index=idx,
                clock=clock,
                disable_gc=disable_gc,
            )
        except CandidateFailure as exc:
            failures.append(exc.measurement)
            if failure_policy == "abort":
                exc.partial = MeasurementSet(
                    candidate_name=candidate_name,
                    requested=count,
                    measurements=tuple(successes),
                    failures=tuple(failures),
                )
                raise
            m = exc.measurement
        else:
            successes.append(m)
        if on_replication is not None:
            on_replication("measure", idx, m)

    if failures:
        log.warning(
            "Candidate '%s': %d of %d replications failed (first: %s)",
            candidate_name,
            len(failures),
            count,
            failures[0].error,
        )

    return MeasurementSet(
        candidate_name=candidate_name,
        requested=count,
        measurements=tuple(successes),
        failures=tuple(failures),
    )


# ---------------------------------------------------------------------------
# BenchRunner
# ---------------------------------------------------------------------------


class RunState(enum.Enum):
    """Lifecycle of a single run."""

    IDLE = "idle"
    RUNNING = "running"
    AGGREGATING = "aggregating"
    COMPLETE = "complete"
    FAILED = "failed"


class BenchRunner:
    """Executes a benchmark run according to a BenchConfig.

    Usage::

        runner = BenchRunner(BenchConfig(replications=100))
        report = runner.run(registry)
        runner.save()  # optional: bench_meta.json + bench_measurements.jsonl
    """

    def __init__(
        self,
        config: BenchConfig,
        progress_callback: ProgressCallback | None = None,
        *,
        clock: Clock = time.perf_counter,
    ) -> None:
        self.config = config
        self.progress: ProgressCallback = progress_callback or self._default_progress
        self.clock = clock
        self.state = RunState.IDLE
        self.meta: BenchMeta | None = None
        self.measurement_sets: list[MeasurementSet] = []
        self.report: Report | None = None

    def run(self, registry: CandidateRegistry) -> Report:
        """Replicate every candidate and rank them.

        The registry is only read.  Each call starts from scratch; the
        previous report is discarded.

        Raises:
            InvalidArgument: If the configuration is invalid or the
                registry is empty.
            CandidateFailure: Under the ``"abort"`` policy.
            NoSuccessfulCandidates: If every candidate failed.
        """
        errors = validate_config(self.config)
        for w in (e for e in errors if e.severity == "warning"):
            log.warning("Config warning: %s: %s", w.field, w.message)
        fatal = [e for e in errors if e.severity == "error"]
        if fatal:
            messages = [f"  {e.field}: {e.message}" for e in fatal]
            raise InvalidArgument("Invalid benchmark configuration:\n" + "\n".join(messages))

        candidates = registry.list()
        if not candidates:
            raise InvalidArgument("The candidate registry is empty.")

        self.report = None
        self.measurement_sets = []
        self.meta = BenchMeta(
            bench_id=self.config.bench_id,
            name=self.config.name or registry.name,
            description=self.config.description,
            system=capture_system_profile(),
            config=self.config.to_dict(),
            candidates={c.name: c.description for c in candidates},
            cli_args=self.config.cli_args,
            start_time=time.strftime("%Y-%m-%dT%H:%M:%S%z"),
        )

        self._set_state(RunState.RUNNING)
        log.info(
            "Benchmarking %d candidates x %d replications (%d warm-up)",
            len(candidates),
            self.config.replications,
            self.config.warmup,
        )

        try:
            for cand_idx, cand in enumerate(candidates):
                self.measurement_sets.append(
                    self._replicate(cand.name, cand.computation, cand_idx, len(candidates))
                )

            self._set_state(RunState.AGGREGATING)
            report = build_report(
                self.measurement_sets,
                statistic=self.config.statistic,
                replications=self.config.replications,
                exclude_partial=self.config.exclude_partial,
                ci_confidence=self.config.ci_confidence,
                ci_bootstrap_n=self.config.ci_bootstrap_n,
                ci_seed=self.config.ci_seed,
            )
        except BaseException:
            self._set_state(RunState.FAILED)
            raise
        finally:
            self.meta.end_time = time.strftime("%Y-%m-%dT%H:%M:%S%z")

        self.report = report
        self._set_state(RunState.COMPLETE)
        return report

    def save(self) -> None:
        """Write the last run's metadata and measurements to ``config.output_dir``."""
        if self.meta is None:
            raise RuntimeError("Nothing to save: run() has not been called.")
        save_bench_run(self.config.output_dir, self.meta, self.measurement_sets)

    def _replicate(
        self,
        name: str,
        computation: Computation,
        cand_idx: int,
        cand_total: int,
    ) -> MeasurementSet:
        """Run one candidate's warm-up and timed replications."""
        log.debug("Replicating candidate '%s'", name)

        def on_replication(phase: str, idx: int, m: Measurement) -> None:
            self.progress(
                BenchProgress(
                    phase=phase,
                    candidate=name,
                    replication=idx + 1,
                    total_replications=(
                        self.config.warmup if phase == "warmup" else self.config.replications
                    ),
                    candidates_done=cand_idx,
                    candidates_total=cand_total,
                    wall_time_s=m.wall_time_s,
                    ok=m.ok,
                )
            )

        return repeat(
            computation,
            self.config.replications,
            candidate_name=name,
            failure_policy=self.config.failure_policy,
            warmup=self.config.warmup,
            clock=self.clock,
            disable_gc=self.config.disable_gc,
            on_replication=on_replication,
        )

    def _set_state(self, state: RunState) -> None:
        log.debug("Run %s: %s -> %s", self.config.bench_id, self.state.value, state.value)
        self.state = state

    @staticmethod
    def _default_progress(progress: BenchProgress) -> None:
        """Default progress callback: debug-log each replication."""
        marker = "W" if progress.phase == "warmup" else "M"
        log.debug(
            "  [%d/%d] %-24s %s%d/%d %.6fs%s",
            progress.candidates_done + 1,
            progress.candidates_total,
            progress.candidate,
            marker,
            progress.replication,
            progress.total_replications,
            progress.wall_time_s,
            "" if progress.ok else " [failed]",
        )


# ---------------------------------------------------------------------------
# Functional entry point
# ---------------------------------------------------------------------------


def run(
    registry: CandidateRegistry,
    replications: int,
    *,
    failure_policy: str = "record",
    statistic: str = "mean",
    warmup: int = 0,
    exclude_partial: bool = False,
    **config_kwargs: Any,
) -> Report:
    """Run every candidate of *registry* and return the ranked report.

    A thin wrapper around :class:`BenchRunner` for interactive use.
    Extra keyword arguments are passed to :class:`BenchConfig`.

    Raises:
        InvalidArgument: If *replications* < 1 or another setting is invalid.
        CandidateFailure: Under ``failure_policy="abort"``.
        NoSuccessfulCandidates: If every candidate failed.
    """
    if isinstance(replications, bool) or not isinstance(replications, int) or replications < 1:
        raise InvalidArgument(
            f"Replication count must be an integer >= 1 (got {replications!r})."
        )
    clock = config_kwargs.pop("clock", time.perf_counter)
    config = BenchConfig(
        replications=replications,
        failure_policy=failure_policy,
        statistic=statistic,
        warmup=warmup,
        exclude_partial=exclude_partial,
        **config_kwargs,
    )
    return BenchRunner(config, clock=clock).run(registry)
