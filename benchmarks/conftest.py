from __future__ import annotations

import json
import os
import platform
import sys
from pathlib import Path
from typing import Any

import pytest

from benchmarks.fixtures.context_medium import MEDIUM_CONTEXT
from tessera import Environment

try:
    import importlib.metadata as importlib_metadata
except ModuleNotFoundError:  # pragma: no cover
    import importlib_metadata  # type: ignore


BASE_DIR = Path(__file__).resolve().parent
BENCHMARK_OUTPUT_DIR = BASE_DIR.parent / ".benchmarks"
BENCHMARK_OUTPUT_DIR.mkdir(exist_ok=True)


def _version(dist: str) -> str:
    try:
        return importlib_metadata.version(dist)
    except importlib_metadata.PackageNotFoundError:
        return "unknown"


def collect_environment_metadata() -> dict[str, object]:
    """Capture reproducibility metadata for each benchmark run."""
    return {
        "python": {
            "version": platform.python_version(),
            "implementation": platform.python_implementation(),
            "executable": sys.executable,
        },
        "os": {
            "system": platform.system(),
            "release": platform.release(),
            "machine": platform.machine(),
        },
        "cpu": {
            "processor": platform.processor(),
            "count": os.cpu_count(),
        },
        "tessera": _version("tessera"),
    }


@pytest.fixture(scope="session")
def environment_metadata() -> dict[str, object]:
    """Write environment metadata to .benchmarks for ingestion."""
    metadata = collect_environment_metadata()
    (BENCHMARK_OUTPUT_DIR / "environment.json").write_text(json.dumps(metadata, indent=2))
    return metadata


@pytest.fixture(scope="session")
def medium_context() -> dict[str, Any]:
    return MEDIUM_CONTEXT


@pytest.fixture
def bench_env() -> Environment:
    """Environment with one tag of each kind plus one that keeps its handle."""
    env = Environment()
    kept: list[Any] = []

    env.register_tag("plain", lambda label: label.upper())

    @env.tag(takes_context=True)
    def stamp(ctx):
        ctx["stamped"] = ctx["timezone"]
        return ""

    @env.tag(takes_context=True)
    def keep(ctx):
        kept.clear()
        kept.append(ctx)
        return ""

    return env
