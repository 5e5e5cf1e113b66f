"""Run artifact helpers."""

from __future__ import annotations

import json
import os
import platform
import subprocess
import time
from pathlib import Path
from typing import Mapping

from ..core.network import Network


def _git_sha() -> str:
    try:
        out = subprocess.check_output(["git", "rev-parse", "HEAD"], stderr=subprocess.DEVNULL)
        return out.decode().strip()
    except (OSError, subprocess.CalledProcessError):  # pragma: no cover - git may be unavailable
        return "unknown"


def write_manifest(
    path: str | Path,
    *,
    config: Mapping[str, object],
    network: Network,
    run_id: str,
    trace_path: str | Path,
) -> str:
    """Write a manifest JSON file describing how a trace was produced."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    manifest = {
        "git_sha": _git_sha(),
        "generated_at": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "run_id": run_id,
        "trace": str(trace_path),
        "config": config,
        "network": {
            "layer_sizes": network.describe().layer_dims,
            "parameters": network.parameter_count(),
        },
        "environment": {
            "python": platform.python_version(),
            "user": os.environ.get("USER", "unknown"),
        },
    }
    path.write_text(json.dumps(manifest, indent=2))
    return str(path)


__all__ = ["write_manifest"]
