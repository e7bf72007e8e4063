from __future__ import annotations

import threading
from concurrent.futures import Executor, Future
from typing import Dict, Optional

from ..logging import get_logger
from ..manifest import DiagramSource
from ..outline import derive_outline
from ..sources.providers import SourceProvider
from ..util.concurrency import SingleFlight, completed_future
from ..util.errors import FetchError

LOG = get_logger(__name__)


class OutlineCache:
    """
    Session-wide memo of diagram source text and derived outlines, keyed by
    diagram id.

    Diagram text is treated as immutable once loaded, so nothing is ever
    invalidated. An empty outline is a final value: diagrams that fail to
    load or have no outline are not retried.
    """

    def __init__(self, provider: SourceProvider, executor: Executor) -> None:
        self._provider = provider
        self._executor = executor
        self._lock = threading.Lock()
        self._sources: Dict[str, str] = {}
        self._outlines: Dict[str, str] = {}
        self._source_flights: SingleFlight[str, str] = SingleFlight()
        self._outline_flights: SingleFlight[str, str] = SingleFlight()

    def __contains__(self, diagram_id: object) -> bool:
        with self._lock:
            return diagram_id in self._outlines

    def __len__(self) -> int:
        with self._lock:
            return len(self._outlines)

    def peek(self, diagram_id: str) -> Optional[str]:
        with self._lock:
            return self._outlines.get(diagram_id)

    def store(self, diagram_id: str, outline: str) -> None:
        with self._lock:
            self._outlines[diagram_id] = outline or ""

    def peek_source(self, diagram_id: str) -> Optional[str]:
        with self._lock:
            return self._sources.get(diagram_id)

    def fetch_source(self, diagram: DiagramSource) -> str:
        """Return the diagram's raw text, fetching it at most once per session."""
        cached = self.peek_source(diagram.id)
        if cached is not None:
            return cached
        if not diagram.file:
            raise FetchError(f"Diagram '{diagram.name}' has no source path")
        return self._source_flights.do(diagram.id, self._load_source, diagram)

    def _load_source(self, diagram: DiagramSource) -> str:
        cached = self.peek_source(diagram.id)
        if cached is not None:
            return cached
        text = self._provider.fetch(diagram.file or "")
        with self._lock:
            self._sources[diagram.id] = text
        LOG.debug("Diagram source fetched", extra={"diagram": diagram.id, "chars": len(text)})
        return text

    def derive(self, diagram: DiagramSource, text: str) -> str:
        """Derive and memoize the outline for already fetched text."""
        cached = self.peek(diagram.id)
        if cached is not None:
            return cached
        outline = derive_outline(diagram, text)
        with self._lock:
            # First stored value wins if another thread derived concurrently
            return self._outlines.setdefault(diagram.id, outline)

    def request(self, diagram: DiagramSource) -> "Future[str]":
        """
        Future for the diagram's outline. Concurrent requests for the same
        diagram share one fetch and derivation; the future never fails.
        """
        cached = self.peek(diagram.id)
        if cached is not None:
            return completed_future(cached)
        if not diagram.file:
            LOG.warning("Diagram is missing a Mermaid source file", extra={"diagram": diagram.id})
            self.store(diagram.id, "")
            return completed_future("")
        return self._outline_flights.submit(diagram.id, self._executor, self._load_outline, diagram)

    def get(self, diagram: DiagramSource) -> str:
        return self.request(diagram).result()

    def _load_outline(self, diagram: DiagramSource) -> str:
        cached = self.peek(diagram.id)
        if cached is not None:
            return cached
        try:
            return self.derive(diagram, self.fetch_source(diagram))
        except Exception as e:
            LOG.error(
                "Unable to derive outline",
                extra={"diagram": diagram.id, "diagram_name": diagram.name, "error": str(e)},
            )
            self.store(diagram.id, "")
            return ""
