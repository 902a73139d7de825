"""Tests for relbench.cli — the Click command-line interface."""

from __future__ import annotations

import csv
import io
import json
import logging
import tempfile
import unittest
from pathlib import Path

import click
from click.testing import CliRunner

from relbench.cli import load_registry, main
from relbench.registry import CandidateRegistry

QUICK = "bench_test_helpers:quick_registry"
FAILING = "bench_test_helpers:failing_registry"


def _reset_logging() -> None:
    logger = logging.getLogger("relbench")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


class TestHelp(unittest.TestCase):
    def test_group_help(self) -> None:
        result = CliRunner().invoke(main, ["--help"])
        self.assertEqual(result.exit_code, 0)
        for cmd in ("run", "show", "export", "system"):
            self.assertIn(cmd, result.output)

    def test_version(self) -> None:
        result = CliRunner().invoke(main, ["--version"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("0.1.0", result.output)

    def test_run_help(self) -> None:
        result = CliRunner().invoke(main, ["run", "--help"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("--replications", result.output)
        self.assertIn("--policy", result.output)
        self.assertIn("--statistic", result.output)
        self.assertIn("--profile", result.output)

    def test_export_help(self) -> None:
        result = CliRunner().invoke(main, ["export", "--help"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("--format", result.output)


class TestLoadRegistry(unittest.TestCase):
    def test_factory_called(self) -> None:
        registry = load_registry(QUICK)
        self.assertIsInstance(registry, CandidateRegistry)
        self.assertEqual(registry.names, ["noop", "sleepy"])

    def test_demo_target(self) -> None:
        registry = load_registry("relbench.demo:build_growth_registry")
        self.assertIn("append", registry)

    def test_missing_colon(self) -> None:
        with self.assertRaises(click.BadParameter):
            load_registry("bench_test_helpers")

    def test_unknown_module(self) -> None:
        with self.assertRaises(click.BadParameter):
            load_registry("no_such_module_for_relbench:registry")

    def test_unknown_attribute(self) -> None:
        with self.assertRaises(click.BadParameter):
            load_registry("bench_test_helpers:missing")

    def test_not_a_registry(self) -> None:
        with self.assertRaises(click.BadParameter) as ctx:
            load_registry("bench_test_helpers:not_a_registry")
        self.assertIn("int", str(ctx.exception))


class TestRun(unittest.TestCase):
    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        self.tmp = Path(self.tmpdir.name)

    def tearDown(self) -> None:
        _reset_logging()
        self.tmpdir.cleanup()

    def test_run_table(self) -> None:
        result = CliRunner().invoke(main, ["run", QUICK, "-n", "3", "-q", "--no-progress"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("1.00x", result.output)
        self.assertLess(result.output.index("noop"), result.output.index("sleepy"))
        self.assertIn("Measurement quality", result.output)

    def test_run_with_progress_bar(self) -> None:
        result = CliRunner().invoke(main, ["run", QUICK, "-n", "2", "--warmup", "1"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("sleepy", result.output)

    def test_run_json_output_file(self) -> None:
        out = self.tmp / "report.json"
        result = CliRunner().invoke(
            main,
            ["run", QUICK, "-n", "3", "-q", "--no-progress", "--format", "json", "-o", str(out)],
        )
        self.assertEqual(result.exit_code, 0, result.output)
        data = json.loads(out.read_text())
        entries = data["report"]["entries"]
        self.assertEqual([e["name"] for e in entries], ["noop", "sleepy"])
        self.assertEqual(entries[0]["relative"], 1.0)
        self.assertEqual(data["meta"]["candidates"]["sleepy"], "sleeps 2ms")

    def test_run_statistic_and_ci(self) -> None:
        out = self.tmp / "report.json"
        result = CliRunner().invoke(
            main,
            [
                "run", QUICK, "-n", "4", "-q", "--no-progress",
                "--statistic", "min", "--ci", "100", "--seed", "1",
                "--format", "json", "-o", str(out),
            ],
        )  # fmt: skip
        self.assertEqual(result.exit_code, 0, result.output)
        report = json.loads(out.read_text())["report"]
        self.assertEqual(report["statistic"], "min")
        self.assertIn("relative_ci", report["entries"][1])

    def test_run_all_failing_exits_1(self) -> None:
        result = CliRunner().invoke(main, ["run", FAILING, "-n", "2", "-q", "--no-progress"])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("Error:", result.output)
        self.assertIn("always broken", result.output)

    def test_run_abort_exits_1(self) -> None:
        result = CliRunner().invoke(
            main, ["run", FAILING, "-n", "5", "--policy", "abort", "-q", "--no-progress"]
        )
        self.assertEqual(result.exit_code, 1)
        self.assertIn("broken_a", result.output)
        self.assertIn("0 of 5 replications", result.output)

    def test_run_zero_replications_exits_1(self) -> None:
        result = CliRunner().invoke(main, ["run", QUICK, "-n", "0", "-q", "--no-progress"])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("replications", result.output)

    def test_run_bad_target_exits_2(self) -> None:
        result = CliRunner().invoke(main, ["run", "bench_test_helpers:missing", "--no-progress"])
        self.assertEqual(result.exit_code, 2)

    def test_run_profile(self) -> None:
        profile = self.tmp / "bench.yaml"
        profile.write_text("name: profiled\nreplications: 2\nstatistic: median\n")
        out = self.tmp / "report.json"
        result = CliRunner().invoke(
            main,
            [
                "run", QUICK, "--profile", str(profile), "-q", "--no-progress",
                "--format", "json", "-o", str(out),
            ],
        )  # fmt: skip
        self.assertEqual(result.exit_code, 0, result.output)
        data = json.loads(out.read_text())
        self.assertEqual(data["report"]["statistic"], "median")
        self.assertEqual(data["report"]["replications"], 2)
        self.assertEqual(data["meta"]["name"], "profiled")

    def test_run_invalid_profile_exits_1(self) -> None:
        profile = self.tmp / "bench.yaml"
        profile.write_text("- not\n- a mapping\n")
        result = CliRunner().invoke(main, ["run", QUICK, "--profile", str(profile)])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("invalid profile", result.output)

    def test_run_profile_string_replications_exits_1(self) -> None:
        profile = self.tmp / "bench.yaml"
        profile.write_text('replications: "5"\n')
        result = CliRunner().invoke(main, ["run", QUICK, "--profile", str(profile)])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("invalid profile", result.output)
        self.assertIn("replications", result.output)

    def test_run_profile_string_bootstrap_exits_1(self) -> None:
        profile = self.tmp / "bench.yaml"
        profile.write_text("ci_bootstrap_n: x\n")
        result = CliRunner().invoke(main, ["run", QUICK, "--profile", str(profile)])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("invalid profile", result.output)

    def test_run_malformed_profile_exits_1(self) -> None:
        profile = self.tmp / "bench.yaml"
        profile.write_text("replications: [1,\n")
        result = CliRunner().invoke(main, ["run", QUICK, "--profile", str(profile)])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("invalid profile", result.output)
        self.assertIn("Malformed YAML", result.output)

    def test_run_negative_warmup_exits_before_running(self) -> None:
        result = CliRunner().invoke(main, ["run", QUICK, "-n", "2", "--warmup=-5"])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("invalid configuration", result.output)
        self.assertIn("warmup", result.output)

    def test_run_log_file(self) -> None:
        log_file = self.tmp / "run.log"
        result = CliRunner().invoke(
            main, ["run", QUICK, "-n", "2", "-q", "--no-progress", "--log-file", str(log_file)]
        )
        self.assertEqual(result.exit_code, 0, result.output)
        _reset_logging()
        self.assertIn("Benchmarking 2 candidates", log_file.read_text())


class TestSaveShowExport(unittest.TestCase):
    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        self.tmp = Path(self.tmpdir.name)
        result = CliRunner().invoke(
            main,
            [
                "run", QUICK, "-n", "3", "-q", "--no-progress", "--save",
                "--results-dir", str(self.tmp), "--name", "CLI Bench",
            ],
        )  # fmt: skip
        self.assertEqual(result.exit_code, 0, result.output)
        runs = [p for p in self.tmp.iterdir() if p.is_dir()]
        self.assertEqual(len(runs), 1)
        self.run_dir = runs[0]

    def tearDown(self) -> None:
        _reset_logging()
        self.tmpdir.cleanup()

    def test_saved_files(self) -> None:
        self.assertTrue((self.run_dir / "bench_meta.json").exists())
        self.assertTrue((self.run_dir / "bench_measurements.jsonl").exists())

    def test_show(self) -> None:
        result = CliRunner().invoke(main, ["show", str(self.run_dir)])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("CLI Bench", result.output)
        self.assertIn("System Profile", result.output)
        self.assertIn("1.00x", result.output)

    def test_export_csv(self) -> None:
        result = CliRunner().invoke(main, ["export", str(self.run_dir), "--format", "csv"])
        self.assertEqual(result.exit_code, 0, result.output)
        rows = list(csv.DictReader(io.StringIO(result.output)))
        self.assertEqual(len(rows), 6)

    def test_export_markdown_to_file(self) -> None:
        out = self.tmp / "report.md"
        result = CliRunner().invoke(
            main, ["export", str(self.run_dir), "--format", "markdown", "-o", str(out)]
        )
        self.assertEqual(result.exit_code, 0, result.output)
        text = out.read_text()
        self.assertTrue(text.startswith("# CLI Bench"))
        self.assertIn("| 1 | noop |", text)

    def test_export_json(self) -> None:
        result = CliRunner().invoke(main, ["export", str(self.run_dir), "--format", "json"])
        self.assertEqual(result.exit_code, 0, result.output)
        data = json.loads(result.output)
        self.assertEqual(data["meta"]["name"], "CLI Bench")

    def test_show_missing_meta_exits_1(self) -> None:
        empty = self.tmp / "empty"
        empty.mkdir()
        result = CliRunner().invoke(main, ["show", str(empty)])
        self.assertEqual(result.exit_code, 1)

    def test_show_missing_dir(self) -> None:
        result = CliRunner().invoke(main, ["show", str(self.tmp / "nope")])
        self.assertNotEqual(result.exit_code, 0)


class TestSystem(unittest.TestCase):
    def test_system_text(self) -> None:
        result = CliRunner().invoke(main, ["system"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("System Profile", result.output)

    def test_system_json(self) -> None:
        result = CliRunner().invoke(main, ["system", "--json"])
        self.assertEqual(result.exit_code, 0)
        data = json.loads(result.output)
        self.assertIn("cpu_model", data)
        self.assertIn("python_version", data)


if __name__ == "__main__":
    unittest.main()
