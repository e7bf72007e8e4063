from __future__ import annotations

from typing import Any, Optional, Sequence, Tuple

from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeElapsedColumn
from rich.table import Table


class AggregateProgress:
    """
    Progress bar for the combined outline build: one tick per diagram as its
    outline settles. All methods are no-ops when disabled.
    """

    def __init__(self, *, enabled: bool, console: Optional[Console] = None) -> None:
        self._enabled = bool(enabled)
        self._console = console or Console(stderr=True)
        self._progress: Optional[Progress] = None
        self._task: Optional[Any] = None
        self._started = False
        if self._enabled:
            self._progress = Progress(
                TextColumn("{task.description}"),
                BarColumn(),
                MofNCompleteColumn(),
                TextColumn("{task.fields[current]}", justify="left"),
                TimeElapsedColumn(),
                console=self._console,
                transient=True,
            )

    def __enter__(self) -> AggregateProgress:
        if self._enabled and self._progress and not self._started:
            self._progress.start()
            self._started = True
        return self

    def __exit__(self, exc_type: Any, exc: Any, exc_tb: Any) -> None:
        if self._enabled and self._progress and self._started:
            self._progress.stop()
            self._started = False

    @property
    def enabled(self) -> bool:
        return self._enabled

    def start_build(self, total: int) -> None:
        if not self._enabled or not self._progress:
            return
        self._task = self._progress.add_task("Outlines", total=total, current="")

    def advance(self, diagram_id: str) -> None:
        if not self._enabled or not self._progress or self._task is None:
            return
        self._progress.update(self._task, advance=1, current=diagram_id)


def render_aggregate_summary_table(
    *,
    enabled: bool,
    rows: Sequence[Tuple[str, str, int]],
    outdir: Optional[str] = None,
    console: Optional[Console] = None,
) -> None:
    """Print one row per diagram: (diagram id, category, outline line count)."""
    if not enabled:
        return
    table = Table(title="Outline Summary", show_header=True, header_style="bold")
    table.add_column("Diagram", style="cyan")
    table.add_column("Category", style="white")
    table.add_column("Lines", justify="right")
    for diagram_id, category, line_count in rows:
        table.add_row(diagram_id, category, str(line_count) if line_count else "-")
    with_outline = sum(1 for _, _, count in rows if count)
    table.caption = f"{with_outline}/{len(rows)} diagrams with outline data"
    if outdir:
        table.caption = f"{table.caption}; written to {outdir}"
    (console or Console(stderr=True)).print(table)
