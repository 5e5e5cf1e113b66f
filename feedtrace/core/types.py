"""Core typing contracts for FeedTrace."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional

import numpy as np

Array = np.ndarray


@dataclass(frozen=True)
class ActivationTrace:
    """Every vector produced by one forward pass.

    ``outputs[0]`` is the external input and ``outputs[i]`` for ``i >= 1`` is
    the output of layer ``i - 1``.
    """

    outputs: List[Array]

    def __len__(self) -> int:
        return len(self.outputs)

    def __getitem__(self, index: int) -> Array:
        return self.outputs[index]

    def __iter__(self) -> Iterator[Array]:
        return iter(self.outputs)

    @property
    def initial_input(self) -> Array:
        return self.outputs[0]

    @property
    def final_output(self) -> Array:
        return self.outputs[-1]


@dataclass(frozen=True)
class ModelDescription:
    """Description of the feed-forward network architecture."""

    layer_dims: List[int]


@dataclass(frozen=True)
class TraceRecord:
    """Outcome of :func:`feedtrace.reporting.trace.record_trace`.

    The trace and document are always present; ``path`` is ``None`` and
    ``error`` is set when the document could not be written.
    """

    trace: ActivationTrace
    document: Dict[str, object]
    path: Optional[Path] = None
    error: Optional[Exception] = None

    @property
    def persisted(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class RunResult:
    """Summary returned by :func:`feedtrace.runs.pipelines.run_pipeline`."""

    final_output: List[float]
    trace_path: str
    manifest_path: str = ""
    run_id: str = ""
    error: str = ""
