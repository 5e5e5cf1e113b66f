"""Pipeline assembly for FeedTrace forward-pass runs."""

from __future__ import annotations

import hashlib
import json
import logging
from copy import deepcopy
from pathlib import Path
from typing import Callable, Dict, Mapping, Optional

from ..core.errors import ConfigurationError
from ..core.network import DEFAULT_LAYER_SIZES, Network
from ..core.params import build_source
from ..core.types import RunResult
from ..reporting.artifacts import write_manifest
from ..reporting.progress import ConsoleProgress, NullProgress
from ..reporting.trace import DEFAULT_TRACE_PATH, record_trace

logger = logging.getLogger("feedtrace.runs.pipelines")

Progress = Callable[[str], None]

_PRESETS: Dict[str, Mapping[str, object]] = {
    "default": {
        "network": {
            "layer_sizes": list(DEFAULT_LAYER_SIZES),
            "init": {"kind": "gaussian", "mean": 0.0, "stddev": 1.0},
        },
        "input": [0.1, 0.3, 0.2],
        "output": {"path": DEFAULT_TRACE_PATH, "manifest": False},
        "progress": {"enabled": True, "delay_ms": 33},
    },
    "custom": {
        "network": {
            "layer_sizes": [4, 3, 2],
            "init": {"kind": "gaussian", "mean": 0.0, "stddev": 1.0},
        },
        "input": [0.1, 0.4, 0.2, 0.3],
        "output": {"path": DEFAULT_TRACE_PATH, "manifest": False},
        "progress": {"enabled": True, "delay_ms": 33},
    },
}

_REQUIRED_SECTIONS = {"network", "input"}
_PRESET_DIR = Path(__file__).resolve().parents[2] / "configs" / "presets"
_FILE_PRESETS_CACHE: Dict[str, Mapping[str, object]] | None = None


def _read_preset_file(path: Path) -> Mapping[str, object]:
    text = path.read_text()
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        import yaml

        data = yaml.safe_load(text) or {}
    elif suffix == ".json":
        data = json.loads(text or "{}")
    else:
        raise ValueError(f"Unsupported preset file type: {path.suffix}")

    if not isinstance(data, Mapping):
        raise TypeError(f"Preset {path.name} must decode to a mapping")
    return data


def _file_presets() -> Dict[str, Mapping[str, object]]:
    global _FILE_PRESETS_CACHE
    if _FILE_PRESETS_CACHE is None:
        found: Dict[str, Mapping[str, object]] = {}
        if _PRESET_DIR.exists():
            for file in sorted(_PRESET_DIR.iterdir()):
                if file.suffix.lower() not in {".yaml", ".yml", ".json"}:
                    continue
                data = _read_preset_file(file)
                missing = _REQUIRED_SECTIONS - set(data)
                if missing:
                    missing_str = ", ".join(sorted(missing))
                    raise KeyError(f"Preset {file.name} is missing required sections: {missing_str}")
                found[file.stem] = json.loads(json.dumps(data))
        _FILE_PRESETS_CACHE = found
    cache = _FILE_PRESETS_CACHE or {}
    return {name: deepcopy(cfg) for name, cfg in cache.items()}


def presets() -> Mapping[str, Mapping[str, object]]:
    combined: Dict[str, Mapping[str, object]] = {}
    combined.update({name: deepcopy(cfg) for name, cfg in _PRESETS.items()})
    combined.update(_file_presets())
    return combined


def load_preset(name: str) -> Dict[str, object]:
    file_overrides = _file_presets()
    if name in file_overrides:
        return dict(file_overrides[name])
    try:
        return dict(deepcopy(_PRESETS[name]))
    except KeyError as exc:
        raise KeyError(f"Unknown preset: {name}") from exc


def _normalise(value):
    if isinstance(value, Mapping):
        return {str(k): _normalise(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalise(v) for v in value]
    if isinstance(value, Path):
        return str(value)
    return value


def config_hash(config: Mapping[str, object]) -> str:
    """Return a stable 12-character hash for ``config``."""

    canonical = json.dumps(_normalise(config), sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:12]


def merge_config(base: Mapping[str, object], override: Mapping[str, object]) -> Dict[str, object]:
    """Deep-merge ``override`` into a copy of ``base``."""

    merged = dict(deepcopy(base))
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = merge_config(merged[key], value)  # type: ignore[arg-type]
        else:
            merged[key] = deepcopy(value)
    return merged


def _section(config: Mapping[str, object], name: str) -> Mapping[str, object]:
    value = config.get(name, {})
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"Config section '{name}' must be a mapping")
    return value


def _build_progress(progress_cfg: Mapping[str, object]) -> Progress:
    if not progress_cfg.get("enabled", True):
        return NullProgress()
    try:
        delay_ms = float(progress_cfg.get("delay_ms", 33))
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid progress delay: {exc}") from exc
    return ConsoleProgress(delay=delay_ms / 1000.0)


def run_pipeline(config: Mapping[str, object], progress: Optional[Progress] = None) -> RunResult:
    """Build a network, run one forward pass and persist its trace.

    Invalid configuration and shape errors are raised before anything is
    written. A failed write is reported through ``RunResult.error``.
    """

    missing = _REQUIRED_SECTIONS - set(config)
    if missing:
        raise ConfigurationError(f"Config is missing required sections: {', '.join(sorted(missing))}")
    network_cfg = _section(config, "network")
    output_cfg = _section(config, "output")
    init_cfg = network_cfg.get("init")
    if init_cfg is not None and not isinstance(init_cfg, Mapping):
        raise ConfigurationError("Config section 'network.init' must be a mapping")
    inputs = config["input"]
    if not isinstance(inputs, (list, tuple)):
        raise ConfigurationError("Config 'input' must be a list of numbers")

    if progress is None:
        progress = _build_progress(_section(config, "progress"))
    destination = Path(str(output_cfg.get("path", DEFAULT_TRACE_PATH)))
    run_id = config_hash(config)

    source = build_source(init_cfg)  # type: ignore[arg-type]
    network = Network(network_cfg.get("layer_sizes", DEFAULT_LAYER_SIZES), source=source)  # type: ignore[arg-type]
    logger.info(
        "Run %s: layers=%s parameters=%d trace=%s",
        run_id,
        network.layer_sizes,
        network.parameter_count(),
        destination,
    )

    progress("Starting Neural Network...")
    record = record_trace(network, inputs, destination)
    final_output = record.trace.final_output.tolist()
    progress(f"Output from forward propagation: {final_output}")

    if not record.persisted:
        progress(f"Unable to open file for writing: {record.error}")
        return RunResult(
            final_output=final_output,
            trace_path="",
            run_id=run_id,
            error=str(record.error),
        )

    manifest_path = ""
    error = ""
    if output_cfg.get("manifest", False):
        target = destination.with_suffix(".manifest.json")
        try:
            manifest_path = write_manifest(
                target,
                config=_normalise(config),
                network=network,
                run_id=run_id,
                trace_path=record.path,  # type: ignore[arg-type]
            )
        except OSError as exc:
            logger.error("Unable to write manifest to %s: %s", target, exc)
            error = f"Unable to write manifest to {target}: {exc}"
            progress(error)
    return RunResult(
        final_output=final_output,
        trace_path=str(record.path),
        manifest_path=manifest_path,
        run_id=run_id,
        error=error,
    )


__all__ = ["run_pipeline", "load_preset", "presets", "config_hash", "merge_config"]
