"""Command line entry point for FeedTrace forward-pass runs."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Iterable, List

from feedtrace.runs import pipelines


def _format_result(result) -> str:
    payload = {
        "final_output": result.final_output,
        "trace": result.trace_path,
        "run_id": result.run_id,
    }
    if result.manifest_path:
        payload["manifest"] = result.manifest_path
    return json.dumps(payload, sort_keys=True)


def _int_list(text: str) -> List[int]:
    try:
        return [int(part) for part in text.split(",") if part.strip()]
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected comma-separated integers: {text!r}") from exc


def _float_list(text: str) -> List[float]:
    try:
        return [float(part) for part in text.split(",") if part.strip()]
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected comma-separated numbers: {text!r}") from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--preset",
        default="custom",
        help="Preset configuration to execute (see --list-presets)",
    )
    parser.add_argument("--config", type=Path, help="Optional JSON/YAML config override")
    parser.add_argument(
        "--layer-sizes", type=_int_list, help="Comma-separated layer sizes, e.g. 4,3,2"
    )
    parser.add_argument(
        "--input", type=_float_list, help="Comma-separated input vector, e.g. 0.1,0.4,0.2,0.3"
    )
    parser.add_argument("--output", type=Path, help="Destination of the trace JSON document")
    parser.add_argument("--seed", type=int, help="Seed for the Gaussian initialiser")
    parser.add_argument("--mean", type=float, help="Mean of the Gaussian initialiser")
    parser.add_argument("--stddev", type=float, help="Stddev of the Gaussian initialiser")
    parser.add_argument(
        "--delay-ms", type=float, help="Per-character delay of progress messages"
    )
    parser.add_argument("--quiet", action="store_true", help="Suppress progress messages")
    parser.add_argument(
        "--manifest", action="store_true", help="Write a manifest next to the trace"
    )
    parser.add_argument(
        "--list-presets", action="store_true", help="List available presets and exit"
    )
    parser.add_argument(
        "--dump-config", type=Path, help="Dump the resolved config to a JSON file"
    )
    return parser


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def _load_override(path: Path) -> dict:
    text = path.read_text()
    if path.suffix in {".yml", ".yaml"}:
        import yaml

        return yaml.safe_load(text) or {}
    return json.loads(text)


def _apply_flags(config: dict, args: argparse.Namespace) -> dict:
    network = config.setdefault("network", {})
    if args.layer_sizes is not None:
        network["layer_sizes"] = args.layer_sizes
    if args.seed is not None or args.mean is not None or args.stddev is not None:
        init = network.setdefault("init", {"kind": "gaussian"})
        if init.get("kind", "gaussian") != "gaussian":
            init = network["init"] = {"kind": "gaussian"}
        if args.seed is not None:
            init["seed"] = args.seed
        if args.mean is not None:
            init["mean"] = args.mean
        if args.stddev is not None:
            init["stddev"] = args.stddev
    if args.input is not None:
        config["input"] = args.input
    output = config.setdefault("output", {})
    if args.output is not None:
        output["path"] = str(args.output)
    if args.manifest:
        output["manifest"] = True
    progress = config.setdefault("progress", {})
    if args.delay_ms is not None:
        progress["delay_ms"] = args.delay_ms
    if args.quiet:
        progress["enabled"] = False
    return config


def main(argv: Iterable[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.list_presets:
        for name in sorted(pipelines.presets().keys()):
            print(name)
        raise SystemExit(0)

    try:
        config = pipelines.load_preset(args.preset)
    except KeyError as exc:
        parser.error(str(exc.args[0]))
    config = json.loads(json.dumps(config))

    if args.config:
        override = _load_override(args.config)
        if not isinstance(override, dict):
            parser.error(f"{args.config} must contain a mapping")
        config = pipelines.merge_config(config, override)

    config = _apply_flags(config, args)

    if args.dump_config:
        args.dump_config.parent.mkdir(parents=True, exist_ok=True)
        args.dump_config.write_text(json.dumps(config, indent=2))

    try:
        result = pipelines.run_pipeline(config)
    except ValueError as exc:
        parser.error(str(exc))

    print(_format_result(result))
    if result.error:
        print(f"error: {result.error}", file=sys.stderr)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
