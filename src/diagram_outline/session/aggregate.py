from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from enum import Enum
from time import perf_counter
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from ..logging import get_logger
from ..manifest import DEFAULT_CATEGORY, DiagramSource
from ..util.concurrency import completed_future, wait_ordered
from ..util.errors import AggregateBuildError
from ..util.progress import AggregateProgress
from .cache import OutlineCache

LOG = get_logger(__name__)

ListingSource = Callable[[], Sequence[DiagramSource]]


class AggregateStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"


def assemble_aggregate(entries: Iterable[Tuple[DiagramSource, str]]) -> str:
    """
    Combine per-diagram outlines into one report. Diagrams without outline
    data contribute nothing.
    """
    lines: List[str] = []
    for diagram, outline in entries:
        if not outline:
            continue
        lines.append(f"Diagram: {diagram.name}")
        if diagram.display_path:
            lines.append(f"Path: {diagram.display_path}")
        lines.append(f"Category: {diagram.category or DEFAULT_CATEGORY}")
        lines.append("")
        lines.append(outline)
        lines.append("")
    return "\n".join(lines).rstrip()


class AggregateOutlineCoordinator:
    """
    Builds the combined outline report over every real diagram, once.

    idle -> loading -> ready on success; loading -> idle when the build fails
    outside per-diagram handling, so the next request starts over. While
    loading, every request shares the same Future.
    """

    def __init__(
        self,
        cache: OutlineCache,
        listing: ListingSource,
        *,
        progress: Optional[AggregateProgress] = None,
    ) -> None:
        self._cache = cache
        self._listing = listing
        self._progress = progress
        self._lock = threading.Lock()
        self._status = AggregateStatus.IDLE
        self._text = ""
        self._future: Optional[Future[str]] = None
        self._builds = 0
        # Dedicated thread: the build waits on per-diagram futures running in
        # the session's worker pool and must never occupy one of its workers.
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="aggregate-outline")

    @property
    def status(self) -> AggregateStatus:
        with self._lock:
            return self._status

    @property
    def text(self) -> str:
        with self._lock:
            return self._text

    @property
    def build_count(self) -> int:
        """Number of fan-out passes started so far."""
        with self._lock:
            return self._builds

    def request(self) -> "Future[str]":
        with self._lock:
            if self._status is AggregateStatus.READY:
                return completed_future(self._text)
            if self._status is AggregateStatus.LOADING and self._future is not None:
                return self._future
            self._status = AggregateStatus.LOADING
            self._builds += 1
            self._future = self._executor.submit(self._run_build)
            return self._future

    def get(self) -> str:
        return self.request().result()

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)

    def _run_build(self) -> str:
        started = perf_counter()
        try:
            text = self._build()
        except Exception as e:
            with self._lock:
                self._status = AggregateStatus.IDLE
                self._text = ""
                self._future = None
            LOG.error("Aggregate outline build failed", extra={"step": "aggregate", "phase": "error", "error": str(e)})
            if isinstance(e, AggregateBuildError):
                raise
            raise AggregateBuildError(f"Unable to build the outline overview: {e}") from e
        with self._lock:
            self._status = AggregateStatus.READY
            self._text = text
            self._future = None
        LOG.info(
            "Aggregate outline ready",
            extra={
                "step": "aggregate",
                "phase": "complete",
                "duration_ms": int((perf_counter() - started) * 1000),
                "chars": len(text),
            },
        )
        return text

    def _build(self) -> str:
        diagrams = [d for d in self._listing() if d is not None and not d.is_aggregate]
        if not diagrams:
            return ""
        LOG.info("Aggregate outline build started", extra={"step": "aggregate", "phase": "start", "count": len(diagrams)})
        if self._progress is not None:
            self._progress.start_build(len(diagrams))

        def _on_done(index: int) -> None:
            if self._progress is not None:
                self._progress.advance(diagrams[index].id)

        futures = [self._cache.request(diagram) for diagram in diagrams]
        outlines = wait_ordered(futures, on_done=_on_done)
        return assemble_aggregate(zip(diagrams, outlines))
