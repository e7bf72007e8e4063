from __future__ import annotations

import subprocess
import tempfile
from pathlib import Path
from shutil import which
from typing import Optional, Protocol

from ..logging import get_logger
from ..manifest import DiagramSource
from ..util.errors import ConfigError, RenderError

LOG = get_logger(__name__)

RENDERERS = {"none", "mmdc"}


class Renderer(Protocol):
    def render(self, diagram: DiagramSource, text: str) -> str:
        """Render raw diagram text, returning the rendered document (SVG)."""
        ...


class NullRenderer:
    """Rendering disabled; outlines are still derived."""

    def render(self, diagram: DiagramSource, text: str) -> str:
        return ""


def is_mmdc_available() -> bool:
    return which("mmdc") is not None


class MmdcRenderer:
    """Render diagrams to SVG with the Mermaid CLI (`mmdc`)."""

    def __init__(self, executable: Optional[str] = None, *, timeout: float = 120.0) -> None:
        self.executable = executable
        self.timeout = timeout

    def _resolve_executable(self) -> str:
        mmdc = self.executable or which("mmdc")
        if not mmdc:
            raise RenderError(
                "Rendering requested but 'mmdc' was not found on PATH. "
                "Install Mermaid CLI and retry: npm install -g @mermaid-js/mermaid-cli"
            )
        return mmdc

    def render(self, diagram: DiagramSource, text: str) -> str:
        mmdc = self._resolve_executable()
        with tempfile.TemporaryDirectory(prefix="diagram-outline-mmdc-") as td:
            tmp_dir = Path(td)
            src = tmp_dir / "diagram.mmd"
            out_svg = tmp_dir / "diagram.svg"
            src.write_text(text, encoding="utf-8")
            try:
                proc = subprocess.run(
                    [mmdc, "-i", str(src), "-o", str(out_svg)],
                    text=True,
                    capture_output=True,
                    timeout=self.timeout,
                )
            except (OSError, subprocess.TimeoutExpired) as e:
                raise RenderError(f"mmdc failed for {diagram.id}: {e}") from e
            if proc.returncode != 0:
                stderr = (proc.stderr or "").strip()
                stdout = (proc.stdout or "").strip()
                detail = stderr or stdout or f"mmdc exited with code {proc.returncode}"
                raise RenderError(f"mmdc failed for {diagram.id}: {detail}")
            if not out_svg.is_file():
                raise RenderError(f"mmdc failed for {diagram.id}: no SVG output produced")
            return out_svg.read_text(encoding="utf-8")


def get_renderer(name: str) -> Renderer:
    name = (name or "none").lower()
    if name == "none":
        return NullRenderer()
    if name == "mmdc":
        return MmdcRenderer()
    raise ConfigError(f"Unknown renderer '{name}' (expected one of: {', '.join(sorted(RENDERERS))})")
