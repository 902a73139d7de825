"""Host characterization recorded alongside each benchmark run.

Relative timings are only comparable between runs on similar machines,
so every saved run carries the CPU, OS, interpreter and load average
observed when it started.
"""

from __future__ import annotations

import logging
import os
import platform
import socket
import sys
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

log = logging.getLogger("relbench")


@dataclass
class SystemProfile:
    """Characterization of the system running a benchmark."""

    # CPU
    cpu_model: str = "unknown"
    cpu_count: int = 0
    cpu_architecture: str = ""

    # OS
    os_name: str = ""
    os_release: str = ""

    # Python running the candidates
    python_version: str = ""
    python_implementation: str = ""
    gil_disabled: bool = False

    # System state at capture time
    load_avg_1m: float = 0.0
    load_avg_5m: float = 0.0
    load_avg_15m: float = 0.0

    hostname: str = ""
    timestamp: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SystemProfile:
        """Deserialize from a dict, ignoring unknown fields."""
        known = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in data.items() if k in known}
        return cls(**filtered)


def capture_system_profile() -> SystemProfile:
    """Capture the current host's profile.

    Never raises: fields that cannot be determined keep their defaults.
    """
    profile = SystemProfile(
        cpu_count=os.cpu_count() or 0,
        cpu_architecture=platform.machine(),
        os_name=platform.system(),
        os_release=platform.release(),
        python_version=platform.python_version(),
        python_implementation=platform.python_implementation(),
        gil_disabled=not getattr(sys, "_is_gil_enabled", lambda: True)(),
        hostname=socket.gethostname(),
        timestamp=time.strftime("%Y-%m-%dT%H:%M:%S%z"),
    )
    profile.cpu_model = _cpu_model() or platform.processor() or "unknown"

    try:
        load = os.getloadavg()
    except (AttributeError, OSError):
        log.debug("Load average not available on this platform")
    else:
        profile.load_avg_1m = round(load[0], 2)
        profile.load_avg_5m = round(load[1], 2)
        profile.load_avg_15m = round(load[2], 2)

    return profile


def _cpu_model() -> str:
    """Read the CPU model name from ``/proc/cpuinfo`` (Linux only)."""
    cpuinfo = Path("/proc/cpuinfo")
    try:
        text = cpuinfo.read_text()
    except OSError:
        return ""
    for line in text.splitlines():
        if line.startswith("model name"):
            _, _, value = line.partition(":")
            return value.strip()
    return ""


def format_system_profile(profile: SystemProfile) -> str:
    """Format a system profile for terminal display."""
    lines = [
        "System Profile",
        "─" * 14,
        f"CPU:      {profile.cpu_model} ({profile.cpu_count} logical, {profile.cpu_architecture})",
        f"OS:       {profile.os_name} {profile.os_release}",
    ]
    python = f"Python:   {profile.python_version} ({profile.python_implementation})"
    if profile.gil_disabled:
        python += ", free-threaded"
    lines.append(python)
    lines.append(
        f"Load:     {profile.load_avg_1m} / {profile.load_avg_5m} / {profile.load_avg_15m}"
    )
    lines.append(f"Hostname: {profile.hostname}")
    lines.append(f"Time:     {profile.timestamp}")
    return "\n".join(lines)
