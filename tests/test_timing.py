"""Tests for relbench.timing — timing capture for a single replication."""

from __future__ import annotations

import gc
import unittest

from bench_test_helpers import FakeClock, StepComputation, zero_step_clock

from relbench.errors import CandidateFailure
from relbench.results import Measurement
from relbench.timing import measure


class TestMeasure(unittest.TestCase):
    """Tests for measure()."""

    def test_measure_runs_computation_once(self) -> None:
        calls: list[int] = []
        measure(lambda: calls.append(1))
        self.assertEqual(calls, [1])

    def test_measure_returns_successful_measurement(self) -> None:
        m = measure(lambda: sum(range(1000)), candidate_name="sum", replication_index=3)
        self.assertIsInstance(m, Measurement)
        self.assertTrue(m.ok)
        self.assertEqual(m.candidate_name, "sum")
        self.assertEqual(m.replication_index, 3)
        self.assertEqual(m.error, "")
        self.assertGreaterEqual(m.wall_time_s, 0.0)
        self.assertGreaterEqual(m.user_time_s, 0.0)
        self.assertGreaterEqual(m.sys_time_s, 0.0)

    def test_measure_uses_injected_clock(self) -> None:
        clock = FakeClock([0.0, 0.25])
        m = measure(lambda: None, clock=clock)
        self.assertAlmostEqual(m.wall_time_s, 0.25)
        self.assertEqual(clock.calls, 2)

    def test_measure_elapsed_covers_computation(self) -> None:
        clock = zero_step_clock()
        m = measure(StepComputation(clock, 0.5), clock=clock)
        self.assertAlmostEqual(m.wall_time_s, 0.5)

    def test_measure_discards_return_value(self) -> None:
        m = measure(lambda: "ignored")
        self.assertFalse(hasattr(m, "result"))

    def test_measure_cpu_bound_registers_cpu_time(self) -> None:
        m = measure(lambda: sum(i * i for i in range(2_000_000)))
        self.assertGreater(m.wall_time_s, 0.0)
        self.assertGreaterEqual(m.cpu_time_s, 0.0)

    def test_negative_clock_delta_clamped(self) -> None:
        clock = FakeClock([1.0, -0.5])
        m = measure(lambda: None, clock=clock)
        self.assertEqual(m.wall_time_s, 0.0)


class TestMeasureFailure(unittest.TestCase):
    """Tests for failure reporting in measure()."""

    def test_failure_raises_candidate_failure(self) -> None:
        def broken() -> None:
            raise ZeroDivisionError("division by zero")

        with self.assertRaises(CandidateFailure) as ctx:
            measure(broken, candidate_name="broken", replication_index=2)

        exc = ctx.exception
        self.assertEqual(exc.candidate_name, "broken")
        self.assertIsInstance(exc.__cause__, ZeroDivisionError)
        self.assertFalse(exc.measurement.ok)
        self.assertEqual(exc.measurement.replication_index, 2)
        self.assertIn("ZeroDivisionError", exc.measurement.error)
        self.assertIn("division by zero", str(exc))
        self.assertIsNone(exc.partial)

    def test_failure_carries_partial_timing(self) -> None:
        clock = zero_step_clock()
        with self.assertRaises(CandidateFailure) as ctx:
            measure(StepComputation(clock, 0.125, fail_on={0}), clock=clock)
        self.assertAlmostEqual(ctx.exception.measurement.wall_time_s, 0.125)

    def test_keyboard_interrupt_not_wrapped(self) -> None:
        def interrupted() -> None:
            raise KeyboardInterrupt

        with self.assertRaises(KeyboardInterrupt):
            measure(interrupted)


class TestMeasureGC(unittest.TestCase):
    """Tests for the disable_gc option."""

    def setUp(self) -> None:
        self._was_enabled = gc.isenabled()
        gc.enable()

    def tearDown(self) -> None:
        if self._was_enabled:
            gc.enable()
        else:
            gc.disable()

    def test_gc_disabled_during_measurement(self) -> None:
        seen: list[bool] = []
        measure(lambda: seen.append(gc.isenabled()), disable_gc=True)
        self.assertEqual(seen, [False])
        self.assertTrue(gc.isenabled())

    def test_gc_restored_after_failure(self) -> None:
        def broken() -> None:
            raise ValueError("nope")

        with self.assertRaises(CandidateFailure):
            measure(broken, disable_gc=True)
        self.assertTrue(gc.isenabled())

    def test_gc_left_alone_by_default(self) -> None:
        seen: list[bool] = []
        measure(lambda: seen.append(gc.isenabled()))
        self.assertEqual(seen, [True])

    def test_gc_stays_disabled_if_it_was(self) -> None:
        gc.disable()
        measure(lambda: None, disable_gc=True)
        self.assertFalse(gc.isenabled())


if __name__ == "__main__":
    unittest.main()
