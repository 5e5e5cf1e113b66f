"""Activation trace serialisation and persistence."""

from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Iterable, List, Mapping

import numpy as np

from ..core.errors import PersistenceError, ShapeMismatchError
from ..core.network import Network
from ..core.types import ActivationTrace, Array, TraceRecord

logger = logging.getLogger("feedtrace.reporting.trace")

DEFAULT_TRACE_PATH = "neuralNetwork.json"


def _vector(values: Array) -> List[float]:
    return [float(v) for v in np.asarray(values, dtype=np.float64)]


def serialize(network: Network, trace: ActivationTrace) -> Dict[str, object]:
    """Build the trace document for one forward pass of ``network``."""

    if len(trace) != len(network.layers) + 1:
        raise ShapeMismatchError(
            f"Trace holds {len(trace)} vectors, network with {len(network.layers)} "
            f"layers produces {len(network.layers) + 1}"
        )
    document: Dict[str, object] = {"initial_input": _vector(trace.initial_input)}
    for index, layer in enumerate(network.layers, start=1):
        document[f"layer_{index}_input"] = _vector(trace[index - 1])
        document[f"layer_{index}_output"] = _vector(trace[index])
        document[f"layer_{index}_neurons"] = [
            {"weights": _vector(unit.weights), "bias": float(unit.bias)}
            for unit in layer.units
        ]
    document["final_output"] = _vector(trace.final_output)
    return document


def persist(document: Mapping[str, object], destination: str | Path) -> Path:
    """Write ``document`` as JSON, replacing ``destination`` in a single step."""

    path = Path(destination)
    if not path.name or path.name in {".", ".."}:
        logger.error("Unable to open file for writing: %r has no file name", str(destination))
        raise PersistenceError(f"Trace destination {str(destination)!r} has no file name")
    payload = json.dumps(document, indent=2)
    tmp_path: Path | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as handle:
            tmp_path = Path(handle.name)
            handle.write(payload)
            handle.write("\n")
        os.replace(tmp_path, path)
    except OSError as exc:
        logger.error("Unable to open file for writing: %s (%s)", path, exc)
        if tmp_path is not None:
            with contextlib.suppress(OSError):
                tmp_path.unlink(missing_ok=True)
        raise PersistenceError(f"Unable to write trace to {path}: {exc}") from exc
    logger.debug("Wrote trace document to %s", path)
    return path


def load_trace(path: str | Path) -> Dict[str, object]:
    """Read a trace document written by :func:`persist`."""

    return json.loads(Path(path).read_text(encoding="utf-8"))


def trace_from_document(document: Mapping[str, object]) -> ActivationTrace:
    """Recover the activation vectors stored in ``document``."""

    outputs: List[Array] = [np.asarray(document["initial_input"], dtype=np.float64)]
    index = 1
    while f"layer_{index}_output" in document:
        outputs.append(np.asarray(document[f"layer_{index}_output"], dtype=np.float64))
        index += 1
    return ActivationTrace(outputs=outputs)


def record_trace(
    network: Network, inputs: Iterable[float], destination: str | Path
) -> TraceRecord:
    """Run a forward pass, then serialise and persist it.

    Shape errors propagate. A failed write does not discard the computation:
    the returned record keeps the trace and document and carries the error.
    """

    trace = network.forward(inputs)
    document = serialize(network, trace)
    try:
        path = persist(document, destination)
    except PersistenceError as exc:
        return TraceRecord(trace=trace, document=document, path=None, error=exc)
    return TraceRecord(trace=trace, document=document, path=path)


__all__ = [
    "DEFAULT_TRACE_PATH",
    "serialize",
    "persist",
    "load_trace",
    "trace_from_document",
    "record_trace",
]
