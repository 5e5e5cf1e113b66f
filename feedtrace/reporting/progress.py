"""Progress sinks for human-readable run status."""

from __future__ import annotations

import sys
import time
from typing import Callable, List, Optional, TextIO

from ..core.errors import ConfigurationError


class ConsoleProgress:
    """Print messages one character at a time, like a typewriter."""

    def __init__(
        self,
        delay: float = 0.033,
        stream: Optional[TextIO] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if delay < 0:
            raise ConfigurationError(f"Progress delay must be >= 0, got {delay}")
        self.delay = float(delay)
        self.stream = stream
        self._sleep = sleep

    def emit(self, message: str) -> None:
        # Resolved per call so redirected stdout (e.g. under pytest) is honoured.
        stream = self.stream or sys.stdout
        if self.delay == 0:
            stream.write(message + "\n")
            stream.flush()
            return
        for char in message:
            stream.write(char)
            stream.flush()
            self._sleep(self.delay)
        stream.write("\n")
        stream.flush()

    __call__ = emit


class NullProgress:
    """Discard every message."""

    def emit(self, message: str) -> None:
        return None

    __call__ = emit


class ProgressCapture:
    """Keep messages in memory."""

    def __init__(self) -> None:
        self.messages: List[str] = []

    def emit(self, message: str) -> None:
        self.messages.append(message)

    __call__ = emit


__all__ = ["ConsoleProgress", "NullProgress", "ProgressCapture"]
