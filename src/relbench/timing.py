"""Timing capture for a single replication.

Measures wall-clock time with a high-resolution monotonic clock and
user/system CPU time with ``resource.getrusage(RUSAGE_SELF)`` deltas.
The computation runs in-process, exactly once per call.
"""

from __future__ import annotations

import gc
import resource
import time
from typing import Any, Callable

from relbench.errors import CandidateFailure
from relbench.logging import get_logger
from relbench.results import Measurement

log = get_logger("timing")

Clock = Callable[[], float]
Computation = Callable[[], Any]


def measure(
    computation: Computation,
    *,
    candidate_name: str = "",
    replication_index: int = 0,
    clock: Clock = time.perf_counter,
    disable_gc: bool = False,
) -> Measurement:
    """Invoke *computation* once and capture its timing.

    The return value of the computation is discarded.  Any side effects
    it has happen as part of the measured interval.

    Args:
        computation: Zero-argument callable to time.
        candidate_name: Recorded on the measurement.
        replication_index: Recorded on the measurement (0-based).
        clock: Monotonic clock returning seconds.
        disable_gc: Turn the cyclic garbage collector off for the
            measured interval; its prior state is restored afterwards.

    Returns:
        A successful Measurement.

    Raises:
        CandidateFailure: If the computation raises.  The attached
            measurement has ``ok=False`` and the time spent until the
            failure; the original exception is the ``__cause__``.
    """
    gc_was_enabled = gc.isenabled()
    if disable_gc:
        gc.disable()

    pre_rusage = resource.getrusage(resource.RUSAGE_SELF)
    start = clock()
    try:
        computation()
    except Exception as exc:
        elapsed = clock() - start
        post_rusage = resource.getrusage(resource.RUSAGE_SELF)
        failed = _build_measurement(
            candidate_name,
            replication_index,
            elapsed,
            pre_rusage,
            post_rusage,
            error=f"{type(exc).__name__}: {exc}",
        )
        log.debug(
            "Candidate '%s' replication %d raised %s",
            candidate_name,
            replication_index,
            failed.error,
        )
        raise CandidateFailure(candidate_name, failed) from exc
    else:
        elapsed = clock() - start
        post_rusage = resource.getrusage(resource.RUSAGE_SELF)
    finally:
        if disable_gc and gc_was_enabled:
            gc.enable()

    return _build_measurement(
        candidate_name,
        replication_index,
        elapsed,
        pre_rusage,
        post_rusage,
    )


def _build_measurement(
    candidate_name: str,
    replication_index: int,
    elapsed: float,
    pre_rusage: resource.struct_rusage,
    post_rusage: resource.struct_rusage,
    *,
    error: str = "",
) -> Measurement:
    """Assemble a Measurement, clamping negative deltas to zero."""
    user_time = post_rusage.ru_utime - pre_rusage.ru_utime
    sys_time = post_rusage.ru_stime - pre_rusage.ru_stime
    return Measurement(
        candidate_name=candidate_name,
        replication_index=replication_index,
        wall_time_s=max(elapsed, 0.0),
        user_time_s=max(user_time, 0.0),
        sys_time_s=max(sys_time, 0.0),
        ok=not error,
        error=error,
    )
