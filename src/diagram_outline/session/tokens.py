from __future__ import annotations

import threading
from dataclasses import dataclass, field


class GenerationCounter:
    """Monotonic counter shared by every request of one kind (renders, aggregate views)."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value = 0

    @property
    def current(self) -> int:
        with self._lock:
            return self._value

    def issue(self) -> "RenderCancellationToken":
        """Supersede every previously issued token and return a fresh one."""
        with self._lock:
            self._value += 1
            return RenderCancellationToken(generation=self._value, counter=self)


@dataclass(frozen=True)
class RenderCancellationToken:
    """
    Captured generation of one request. Continuations check `is_current()`
    and drop their result once a newer request has been issued; the
    superseded work itself is never interrupted.
    """

    generation: int
    counter: GenerationCounter = field(compare=False, repr=False)

    def is_current(self) -> bool:
        return self.counter.current == self.generation

    @property
    def superseded(self) -> bool:
        return not self.is_current()
