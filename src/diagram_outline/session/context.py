from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Any, List, Optional, Sequence

from ..manifest import DiagramSource, find_diagram, order_for_listing, real_diagrams
from ..render.mmdc import NullRenderer, Renderer
from ..sources.providers import SourceProvider
from ..util.progress import AggregateProgress
from .aggregate import AggregateOutlineCoordinator
from .cache import OutlineCache
from .tokens import GenerationCounter

DEFAULT_WORKERS = 8


class OutlineSession:
    """
    Everything one host process shares across outline requests: the diagram
    listing, the outline cache, the aggregate coordinator, the render and
    aggregate-view generation counters, the renderer and the worker pool.

    Created once at startup and passed to every caller; `close()` only stops
    the worker threads.
    """

    def __init__(
        self,
        diagrams: Sequence[DiagramSource],
        provider: SourceProvider,
        *,
        renderer: Optional[Renderer] = None,
        workers: int = DEFAULT_WORKERS,
        progress: Optional[AggregateProgress] = None,
    ) -> None:
        self.listing: List[DiagramSource] = order_for_listing(diagrams)
        self.provider = provider
        self.renderer: Renderer = renderer or NullRenderer()
        self.executor = ThreadPoolExecutor(max_workers=max(1, int(workers)), thread_name_prefix="diagram-outline")
        self.cache = OutlineCache(provider, self.executor)
        self.coordinator = AggregateOutlineCoordinator(self.cache, self.real_diagrams, progress=progress)
        self.render_tokens = GenerationCounter()
        self.aggregate_generations = GenerationCounter()

    def __enter__(self) -> OutlineSession:
        return self

    def __exit__(self, exc_type: Any, exc: Any, exc_tb: Any) -> None:
        self.close()

    def real_diagrams(self) -> List[DiagramSource]:
        return real_diagrams(self.listing)

    def find(self, diagram_id: str) -> Optional[DiagramSource]:
        return find_diagram(self.listing, diagram_id)

    def outline_for(self, diagram: DiagramSource) -> str:
        return self.cache.get(diagram)

    def aggregate_outline(self) -> str:
        return self.coordinator.get()

    def close(self) -> None:
        self.coordinator.shutdown()
        self.executor.shutdown(wait=True)
