from __future__ import annotations

from .aggregate import AggregateOutlineCoordinator, AggregateStatus, assemble_aggregate
from .cache import OutlineCache
from .context import OutlineSession
from .tokens import GenerationCounter, RenderCancellationToken
from .viewer import OutlineViewer, ViewState

__all__ = [
    "AggregateOutlineCoordinator",
    "AggregateStatus",
    "GenerationCounter",
    "OutlineCache",
    "OutlineSession",
    "OutlineViewer",
    "RenderCancellationToken",
    "ViewState",
    "assemble_aggregate",
]
