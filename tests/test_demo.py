"""Tests for relbench.demo — the ready-made comparisons."""

from __future__ import annotations

import unittest

from relbench.demo import build_csv_registry, build_growth_registry, build_sqrt_registry
from relbench.runner import run


class TestDemoRegistries(unittest.TestCase):
    def test_sqrt_candidates_agree(self) -> None:
        registry = build_sqrt_registry(size=100)
        self.assertEqual(registry.names, ["sqrt", "exp_log", "power"])
        results = [c.computation() for c in registry]
        for a, b in zip(results[0], results[1]):
            self.assertAlmostEqual(a, b)
        for a, b in zip(results[0], results[2]):
            self.assertAlmostEqual(a, b)

    def test_sqrt_descriptions_from_docstrings(self) -> None:
        cand = build_sqrt_registry(size=10).get("exp_log")
        assert cand is not None
        self.assertEqual(cand.description, "exp(log(x) / 2) on each element")

    def test_growth_candidates_agree(self) -> None:
        registry = build_growth_registry(size=50)
        results = [c.computation() for c in registry]
        self.assertTrue(all(r == results[0] for r in results))
        self.assertEqual(len(results[0]), 50)

    def test_csv_candidates_read_all_rows(self) -> None:
        registry = build_csv_registry(rows=30)
        reader = registry.get("csv_reader")
        dict_reader = registry.get("dict_reader")
        split = registry.get("split")
        assert reader and dict_reader and split
        self.assertEqual(len(reader.computation()), 31)
        self.assertEqual(len(dict_reader.computation()), 30)
        self.assertEqual(reader.computation(), split.computation())

    def test_same_seed_same_data(self) -> None:
        a = build_sqrt_registry(size=20, seed=1).get("sqrt")
        b = build_sqrt_registry(size=20, seed=1).get("sqrt")
        assert a and b
        self.assertEqual(a.computation(), b.computation())

    def test_growth_ranking(self) -> None:
        report = run(build_growth_registry(size=3000), 5, statistic="min")
        self.assertEqual(report.slowest.name, "concatenate")


if __name__ == "__main__":
    unittest.main()
