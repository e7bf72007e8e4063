from __future__ import annotations

import threading
from typing import Callable, Dict, Iterable, List, Optional

import pytest

from diagram_outline.manifest import DiagramSource
from diagram_outline.session import OutlineSession
from diagram_outline.util.errors import FetchError


class FakeProvider:
    """In-memory source provider that records every fetch and can be held open."""

    def __init__(
        self,
        sources: Dict[str, str],
        *,
        gate: Optional[threading.Event] = None,
        fail: Iterable[str] = (),
    ) -> None:
        self.sources = dict(sources)
        self.gate = gate
        self.fail = set(fail)
        self.calls: List[str] = []
        self.started = threading.Event()
        self._lock = threading.Lock()

    def fetch(self, path: str) -> str:
        with self._lock:
            self.calls.append(path)
        self.started.set()
        if self.gate is not None:
            assert self.gate.wait(timeout=5), "gate was never released"
        if path in self.fail or path not in self.sources:
            raise FetchError(f"Unable to load Mermaid file {path}")
        return self.sources[path]


def make_diagram(diagram_id: str, **kwargs: object) -> DiagramSource:
    kwargs.setdefault("name", diagram_id.title())
    kwargs.setdefault("file", f"diagrams/{diagram_id}.mmd")
    kwargs.setdefault("source_path", f"{diagram_id}.mmd")
    return DiagramSource(id=diagram_id, **kwargs)  # type: ignore[arg-type]


@pytest.fixture
def diagram_factory() -> Callable[..., DiagramSource]:
    return make_diagram


@pytest.fixture
def provider_factory() -> Callable[..., FakeProvider]:
    return FakeProvider


@pytest.fixture
def session_factory():
    sessions: List[OutlineSession] = []

    def _make(diagrams, provider, **kwargs) -> OutlineSession:
        session = OutlineSession(diagrams, provider, **kwargs)
        sessions.append(session)
        return session

    yield _make
    for session in sessions:
        session.close()
