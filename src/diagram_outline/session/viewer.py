from __future__ import annotations

import threading
from concurrent.futures import Future
from dataclasses import dataclass, replace
from typing import Any, Optional

from ..logging import get_logger
from ..manifest import DiagramSource
from ..util.concurrency import completed_future
from ..util.errors import FetchError, RenderError
from .aggregate import AggregateStatus
from .context import OutlineSession
from .tokens import RenderCancellationToken

LOG = get_logger(__name__)

NO_OUTLINE = "No outline data detected in this diagram."
DERIVING_OUTLINE = "Deriving outline…"
LOADING_SOURCE = "Loading…"
MISSING_DIAGRAM_FILE = "Diagram source path missing for this entry."
OUTLINE_FAILED = "Unable to derive outline for this diagram."
BUILDING_AGGREGATE = "Building outline overview…"
NO_AGGREGATE = "No outline data detected yet."
AGGREGATE_FAILED = "Unable to build the outline overview."


@dataclass(frozen=True)
class ViewState:
    """
    What the consumer currently shows. `outline_text` is either outline data
    or a status message; `copy_available` tells which.
    """

    diagram_id: Optional[str] = None
    aggregate: bool = False
    loading: bool = False
    outline_text: str = ""
    copy_available: bool = False
    source_text: str = ""
    rendered: str = ""
    render_message: str = ""
    error: str = ""


class OutlineViewer:
    """
    Selection controller: most recent selection wins.

    Selecting a diagram issues a render token before its fetch -> derive ->
    render pipeline starts; every continuation re-checks the token under the
    viewer lock and drops its result if a newer selection exists. Selecting
    the aggregate overview bumps the aggregate generation and also
    supersedes any pending single-diagram pipeline.
    """

    def __init__(self, session: OutlineSession) -> None:
        self._session = session
        self._lock = threading.Lock()
        self._state = ViewState()

    @property
    def state(self) -> ViewState:
        with self._lock:
            return self._state

    def select(self, diagram: DiagramSource) -> "Future[ViewState]":
        """Switch the view; the returned future resolves once this selection settles."""
        if diagram.is_aggregate:
            return self._show_aggregate(diagram)
        return self._show_diagram(diagram)

    def select_id(self, diagram_id: str) -> "Future[ViewState]":
        diagram = self._session.find(diagram_id)
        if diagram is None:
            raise KeyError(diagram_id)
        return self.select(diagram)

    def _apply(self, token: RenderCancellationToken, **changes: Any) -> bool:
        with self._lock:
            if not token.is_current():
                return False
            self._state = replace(self._state, **changes)
            return True

    # Single diagram

    def _show_diagram(self, diagram: DiagramSource) -> "Future[ViewState]":
        with self._lock:
            token = self._session.render_tokens.issue()
            self._state = ViewState(
                diagram_id=diagram.id,
                loading=True,
                outline_text=DERIVING_OUTLINE,
                source_text=LOADING_SOURCE,
            )
        if not diagram.file:
            self._apply(
                token,
                loading=False,
                outline_text=NO_OUTLINE,
                source_text="",
                render_message=MISSING_DIAGRAM_FILE,
            )
            return completed_future(self.state)
        return self._session.executor.submit(self._run_pipeline, diagram, token)

    def _run_pipeline(self, diagram: DiagramSource, token: RenderCancellationToken) -> ViewState:
        cache = self._session.cache
        try:
            source = cache.fetch_source(diagram)
        except FetchError as e:
            LOG.error("Diagram source unavailable", extra={"diagram": diagram.id, "error": str(e)})
            self._apply(
                token,
                loading=False,
                source_text="",
                outline_text=OUTLINE_FAILED,
                copy_available=False,
                render_message=f"Rendering failed: {e}",
                error=str(e),
            )
            return self.state
        if token.superseded:
            LOG.debug("Discarding superseded diagram source", extra={"diagram": diagram.id})
            return self.state

        outline = cache.derive(diagram, source)
        self._apply(
            token,
            source_text=source,
            outline_text=outline or NO_OUTLINE,
            copy_available=bool(outline),
        )

        try:
            rendered = self._session.renderer.render(diagram, source)
        except RenderError as e:
            LOG.error("Diagram rendering failed", extra={"diagram": diagram.id, "error": str(e)})
            self._apply(token, loading=False, render_message=f"Rendering failed: {e}")
            return self.state
        if not self._apply(token, loading=False, rendered=rendered, render_message=""):
            LOG.debug("Discarding superseded render", extra={"diagram": diagram.id})
        return self.state

    # Aggregate overview

    def _show_aggregate(self, diagram: DiagramSource) -> "Future[ViewState]":
        coordinator = self._session.coordinator
        with self._lock:
            # Leaving the single view supersedes any pending render
            self._session.render_tokens.issue()
            generation = self._session.aggregate_generations.issue()
            ready_text = coordinator.text if coordinator.status is AggregateStatus.READY else ""
            self._state = ViewState(
                diagram_id=diagram.id,
                aggregate=True,
                loading=not ready_text,
                outline_text=ready_text or BUILDING_AGGREGATE,
                copy_available=bool(ready_text),
            )

        settled: Future[ViewState] = Future()

        def _on_built(build: "Future[str]") -> None:
            with self._lock:
                stale = not generation.is_current() or not self._state.aggregate
                error = build.exception()
                if stale:
                    LOG.debug("Discarding superseded aggregate outline", extra={"generation": generation.generation})
                elif error is not None:
                    LOG.error("Aggregate outline error", extra={"error": str(error)})
                    self._state = replace(
                        self._state,
                        loading=False,
                        outline_text=AGGREGATE_FAILED,
                        copy_available=False,
                        error=str(error),
                    )
                else:
                    text = build.result()
                    self._state = replace(
                        self._state, loading=False, outline_text=text or NO_AGGREGATE, copy_available=bool(text)
                    )
                snapshot = self._state
            settled.set_result(snapshot)

        coordinator.request().add_done_callback(_on_built)
        return settled
