"""Benchmark configuration and profile loading.

Handles:
- Loading benchmark profiles from YAML files.
- Merging CLI options with profile defaults.
- Validating the final configuration before execution.

Candidates are never configured here: they are Python callables
registered by the caller's code.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from relbench.stats import SUMMARY_STATISTICS

log = logging.getLogger("relbench")

FAILURE_POLICIES = ("record", "abort")


# ---------------------------------------------------------------------------
# BenchConfig
# ---------------------------------------------------------------------------


@dataclass
class BenchConfig:
    """Resolved configuration for a benchmark run."""

    # Identity
    bench_id: str = ""  # Auto-generated if empty
    name: str = ""
    description: str = ""

    # Replication control
    replications: int = 10
    warmup: int = 0
    failure_policy: str = "record"  # "record" or "abort"
    disable_gc: bool = False

    # Aggregation
    statistic: str = "mean"  # "mean", "median" or "min"
    exclude_partial: bool = False
    ci_bootstrap_n: int = 0  # 0 disables relative-value CIs
    ci_confidence: float = 0.95
    ci_seed: int | None = None
    cv_threshold: float = 0.10  # CV above this flags a noisy candidate

    # Output
    results_dir: Path = field(default_factory=lambda: Path("results"))

    # CLI provenance
    cli_args: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.bench_id:
            self.bench_id = f"bench_{time.strftime('%Y%m%d_%H%M%S')}"

    @property
    def output_dir(self) -> Path:
        """The output directory for this benchmark run."""
        return self.results_dir / self.bench_id

    def to_dict(self) -> dict[str, Any]:
        """Settings recorded in the run metadata."""
        return {
            "replications": self.replications,
            "warmup": self.warmup,
            "failure_policy": self.failure_policy,
            "disable_gc": self.disable_gc,
            "statistic": self.statistic,
            "exclude_partial": self.exclude_partial,
            "ci_bootstrap_n": self.ci_bootstrap_n,
            "ci_confidence": self.ci_confidence,
            "ci_seed": self.ci_seed,
            "cv_threshold": self.cv_threshold,
        }


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@dataclass
class ValidationError:
    """A single configuration validation error."""

    field: str
    message: str
    severity: str = "error"  # "error" or "warning"


def validate_config(config: BenchConfig) -> list[ValidationError]:
    """Validate a benchmark configuration.

    Returns a list of validation errors.  Empty list means valid.
    """
    errors: list[ValidationError] = []

    if not _is_int(config.replications) or config.replications < 1:
        errors.append(
            ValidationError(
                field="replications",
                message=f"Need at least 1 replication (got {config.replications}).",
            )
        )
    elif config.replications < 3:
        errors.append(
            ValidationError(
                field="replications",
                message=(
                    f"Only {config.replications} replication(s): spread and "
                    f"outlier statistics will not be meaningful."
                ),
                severity="warning",
            )
        )

    if not _is_int(config.warmup) or config.warmup < 0:
        errors.append(
            ValidationError(
                field="warmup",
                message=f"Warmup replications cannot be negative (got {config.warmup}).",
            )
        )

    if config.failure_policy not in FAILURE_POLICIES:
        errors.append(
            ValidationError(
                field="failure_policy",
                message=(
                    f"Unknown failure policy {config.failure_policy!r}; "
                    f"choose one of {', '.join(FAILURE_POLICIES)}."
                ),
            )
        )

    if config.statistic not in SUMMARY_STATISTICS:
        errors.append(
            ValidationError(
                field="statistic",
                message=(
                    f"Unknown summary statistic {config.statistic!r}; "
                    f"choose one of {', '.join(SUMMARY_STATISTICS)}."
                ),
            )
        )

    if not _is_int(config.ci_bootstrap_n) or config.ci_bootstrap_n < 0:
        errors.append(
            ValidationError(
                field="ci_bootstrap_n",
                message=f"Bootstrap resamples cannot be negative (got {config.ci_bootstrap_n}).",
            )
        )

    if not _is_number(config.ci_confidence) or not 0 < config.ci_confidence < 1:
        errors.append(
            ValidationError(
                field="ci_confidence",
                message=f"Confidence level must be in (0, 1) (got {config.ci_confidence}).",
            )
        )

    if (
        _is_int(config.ci_bootstrap_n)
        and config.ci_bootstrap_n > 0
        and _is_int(config.replications)
        and config.replications < 2
    ):
        errors.append(
            ValidationError(
                field="ci_bootstrap_n",
                message="Bootstrap intervals need at least 2 replications.",
                severity="warning",
            )
        )

    return errors


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


# ---------------------------------------------------------------------------
# YAML profile loading
# ---------------------------------------------------------------------------

_PROFILE_KEYS = (
    "name",
    "description",
    "replications",
    "warmup",
    "failure_policy",
    "disable_gc",
    "statistic",
    "exclude_partial",
    "ci_bootstrap_n",
    "ci_confidence",
    "ci_seed",
    "cv_threshold",
    "results_dir",
)

# Accepted YAML value types per profile key, with a readable name for errors.
_PROFILE_TYPES: dict[str, tuple[Any, str]] = {
    "name": (str, "a string"),
    "description": (str, "a string"),
    "replications": (_is_int, "an integer"),
    "warmup": (_is_int, "an integer"),
    "failure_policy": (str, "a string"),
    "disable_gc": (bool, "a boolean"),
    "statistic": (str, "a string"),
    "exclude_partial": (bool, "a boolean"),
    "ci_bootstrap_n": (_is_int, "an integer"),
    "ci_confidence": (_is_number, "a number"),
    "ci_seed": (lambda v: v is None or _is_int(v), "an integer or null"),
    "cv_threshold": (_is_number, "a number"),
    "results_dir": ((str, Path), "a path"),
}


def _check_profile_types(profile_data: dict[str, Any]) -> None:
    for key in _PROFILE_KEYS:
        if key not in profile_data:
            continue
        value = profile_data[key]
        accepted, expected = _PROFILE_TYPES[key]
        if isinstance(accepted, (type, tuple)):
            ok = isinstance(value, accepted)
        else:
            ok = accepted(value)
        if not ok:
            raise ValueError(f"{key} must be {expected}, got {value!r}")


def load_profile(profile_path: Path) -> dict[str, Any]:
    """Load a benchmark profile from a YAML file.

    Profile format::

        name: "sqrt vs exp(log(x)/2)"
        description: "Square roots of 100k uniform draws"
        replications: 100
        warmup: 2
        failure_policy: record
        statistic: median
        ci_bootstrap_n: 2000
        ci_seed: 42

    Returns:
        The parsed YAML as a dict.
    """
    if not profile_path.exists():
        raise FileNotFoundError(f"Profile not found: {profile_path}")

    try:
        data = yaml.safe_load(profile_path.read_text())
    except yaml.YAMLError as exc:
        raise ValueError(f"Malformed YAML in {profile_path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Profile must be a YAML mapping, got {type(data).__name__}")

    unknown = sorted(set(data) - set(_PROFILE_KEYS))
    if unknown:
        log.warning("Ignoring unknown profile keys: %s", ", ".join(unknown))

    return data


def config_from_profile(
    profile_data: dict[str, Any],
    *,
    cli_overrides: dict[str, Any] | None = None,
) -> BenchConfig:
    """Build a BenchConfig from a parsed profile.

    Non-None values in *cli_overrides* take precedence over the
    profile; keys match BenchConfig field names.

    Raises:
        ValueError: A profile value has the wrong type for its key.
    """
    _check_profile_types(profile_data)
    merged: dict[str, Any] = {k: profile_data[k] for k in _PROFILE_KEYS if k in profile_data}
    for key, value in (cli_overrides or {}).items():
        if value is not None and key in _PROFILE_KEYS:
            merged[key] = value

    if "results_dir" in merged:
        merged["results_dir"] = Path(merged["results_dir"])

    return BenchConfig(**merged)
