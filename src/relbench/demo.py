"""Ready-made registries for the classic comparisons.

Each factory builds its input once, with a fixed seed, so every
candidate in a registry sees exactly the same data.  They double as
CLI targets::

    relbench run relbench.demo:build_sqrt_registry -n 100
    relbench run relbench.demo:build_growth_registry --statistic median
"""

from __future__ import annotations

import csv
import io
import math
import random

from relbench.registry import CandidateRegistry


def build_sqrt_registry(size: int = 100_000, seed: int = 42) -> CandidateRegistry:
    """``sqrt(x)`` against ``exp(log(x)/2)`` and ``x ** 0.5``."""
    rng = random.Random(seed)
    data = [rng.uniform(1.0, 100.0) for _ in range(size)]
    registry = CandidateRegistry("square roots")

    @registry.candidate("sqrt")
    def sqrt() -> list[float]:
        """math.sqrt on each element"""
        return [math.sqrt(v) for v in data]

    @registry.candidate("exp_log")
    def exp_log() -> list[float]:
        """exp(log(x) / 2) on each element"""
        return [math.exp(math.log(v) / 2) for v in data]

    @registry.candidate("power")
    def power() -> list[float]:
        """x ** 0.5 on each element"""
        return [v**0.5 for v in data]

    return registry


def build_growth_registry(size: int = 10_000) -> CandidateRegistry:
    """Growing a result one element at a time against building it whole."""
    registry = CandidateRegistry("result growth")

    @registry.candidate("concatenate")
    def concatenate() -> list[int]:
        """copy the list on every step"""
        out: list[int] = []
        for i in range(size):
            out = out + [i * i]
        return out

    @registry.candidate("append")
    def append() -> list[int]:
        """list.append in a loop"""
        out: list[int] = []
        for i in range(size):
            out.append(i * i)
        return out

    @registry.candidate("preallocate")
    def preallocate() -> list[int]:
        """fill a preallocated list"""
        out = [0] * size
        for i in range(size):
            out[i] = i * i
        return out

    @registry.candidate("comprehension")
    def comprehension() -> list[int]:
        """list comprehension"""
        return [i * i for i in range(size)]

    return registry


def build_csv_registry(rows: int = 20_000, seed: int = 42) -> CandidateRegistry:
    """Reading the same in-memory CSV text three different ways."""
    rng = random.Random(seed)
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(["id", "group", "value"])
    for i in range(rows):
        writer.writerow([i, rng.choice("abcde"), f"{rng.gauss(0, 1):.6f}"])
    text = buf.getvalue()

    registry = CandidateRegistry("csv reading")

    @registry.candidate("csv_reader")
    def csv_reader() -> list[list[str]]:
        """csv.reader"""
        return list(csv.reader(io.StringIO(text)))

    @registry.candidate("dict_reader")
    def dict_reader() -> list[dict[str, str]]:
        """csv.DictReader"""
        return list(csv.DictReader(io.StringIO(text)))

    @registry.candidate("split")
    def split() -> list[list[str]]:
        """str.split, no quoting support"""
        return [line.split(",") for line in text.splitlines()]

    return registry
