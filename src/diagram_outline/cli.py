from __future__ import annotations

import logging
import sys
from pathlib import Path
from time import perf_counter
from typing import Any, Dict, List, Optional, Tuple

from .config import RunConfig, dump_config, load_run_config
from .export.text import write_outline_files
from .logging import LogConfig, get_logger, setup_logging
from .manifest import AGGREGATE_ENTRY, DEFAULT_CATEGORY, DiagramSource, load_manifest
from .render.mmdc import get_renderer
from .session import OutlineSession, OutlineViewer
from .sources.providers import resolve_source_provider
from .util.errors import (
    ConfigError,
    ExitCode,
    ExportError,
    FetchError,
    RenderError,
    as_exit_code,
)
from .util.progress import AggregateProgress, render_aggregate_summary_table

LOG = get_logger(__name__)


class _StepTimers:
    def __init__(self) -> None:
        self._starts: Dict[str, float] = {}

    def start(self, key: str) -> None:
        self._starts[key] = perf_counter()

    def finish(self, key: str) -> Optional[int]:
        started = self._starts.pop(key, None)
        if started is None:
            return None
        return int((perf_counter() - started) * 1000)


def _log_event(
    logger: Any,
    level: int,
    message: str,
    *,
    step: str,
    phase: str,
    timers: Optional[_StepTimers] = None,
    **extra: Any,
) -> None:
    duration_ms = None
    if timers is not None:
        if phase == "start":
            timers.start(step)
        elif phase in {"complete", "error", "skipped"}:
            duration_ms = timers.finish(step)
    payload: Dict[str, Any] = {"step": step, "phase": phase, "event": f"{step}.{phase}"}
    if duration_ms is not None:
        payload["duration_ms"] = duration_ms
    payload.update(extra)
    logger.log(level, message, extra=payload)


def _open_session(cfg: RunConfig, *, progress: Optional[AggregateProgress] = None) -> OutlineSession:
    listing = load_manifest(cfg.manifest, timeout=cfg.timeout)
    provider = resolve_source_provider(cfg.source_root, timeout=cfg.timeout)
    return OutlineSession(
        listing,
        provider,
        renderer=get_renderer(cfg.renderer),
        workers=cfg.workers,
        progress=progress,
    )


def _find_or_fail(session: OutlineSession, diagram_id: Optional[str]) -> DiagramSource:
    if not diagram_id:
        raise ConfigError("A diagram id is required")
    diagram = session.find(diagram_id)
    if diagram is None:
        raise ConfigError(f"Unknown diagram id: {diagram_id} (see `diagram-outline list`)")
    return diagram


def _emit(text: str, output: Optional[Path]) -> None:
    if output is None:
        print(text)
        return
    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(f"{text}\n", encoding="utf-8")
    except OSError as e:
        raise ExportError(f"Unable to write {output}: {e}") from e
    LOG.info("Output written", extra={"output": str(output)})


def cmd_list(cfg: RunConfig) -> int:
    for diagram in load_manifest(cfg.manifest, timeout=cfg.timeout):
        print(f"{diagram.id}\t{diagram.category or DEFAULT_CATEGORY}\t{diagram.name}")
    return 0


def cmd_outline(cfg: RunConfig) -> int:
    timers = _StepTimers()
    with _open_session(cfg) as session:
        diagram = _find_or_fail(session, cfg.diagram)
        _log_event(LOG, logging.INFO, "Outline started", step="outline", phase="start", timers=timers, diagram=diagram.id)
        state = OutlineViewer(session).select(diagram).result()
    if state.error:
        _log_event(LOG, logging.ERROR, "Outline failed", step="outline", phase="error", timers=timers, diagram=diagram.id)
        print(state.outline_text, file=sys.stderr)
        if diagram.is_aggregate:
            return int(ExitCode.RUNTIME_ERROR)
        return int(ExitCode.FETCH_ERROR)
    if not state.copy_available:
        _log_event(LOG, logging.INFO, "No outline data", step="outline", phase="skipped", timers=timers, diagram=diagram.id)
        print(state.outline_text, file=sys.stderr)
        return 0
    _emit(state.outline_text, cfg.output)
    _log_event(LOG, logging.INFO, "Outline complete", step="outline", phase="complete", timers=timers, diagram=diagram.id)
    return 0


def _summary_rows(entries: List[Tuple[DiagramSource, str]]) -> List[Tuple[str, str, int]]:
    return [
        (diagram.id, diagram.category or DEFAULT_CATEGORY, len(outline.splitlines()) if outline else 0)
        for diagram, outline in entries
    ]


def cmd_aggregate(cfg: RunConfig) -> int:
    timers = _StepTimers()
    _log_event(LOG, logging.INFO, "Aggregate started", step="aggregate_cmd", phase="start", timers=timers)
    with AggregateProgress(enabled=cfg.progress) as progress:
        with _open_session(cfg, progress=progress) as session:
            state = OutlineViewer(session).select(AGGREGATE_ENTRY).result()
            entries = [(d, session.cache.peek(d.id) or "") for d in session.real_diagrams()]
    if state.error:
        _log_event(LOG, logging.ERROR, "Aggregate failed", step="aggregate_cmd", phase="error", timers=timers)
        print(state.outline_text, file=sys.stderr)
        return int(ExitCode.RUNTIME_ERROR)

    if state.copy_available:
        print(state.outline_text)
    else:
        print(state.outline_text, file=sys.stderr)

    if cfg.outdir is not None:
        overview = state.outline_text if state.copy_available else ""
        written = write_outline_files(cfg.outdir, entries, overview)
        LOG.info("Outline files written", extra={"outdir": str(cfg.outdir), "files": len(written)})
    render_aggregate_summary_table(
        enabled=cfg.progress,
        rows=_summary_rows(entries),
        outdir=str(cfg.outdir) if cfg.outdir else None,
    )
    _log_event(
        LOG,
        logging.INFO,
        "Aggregate complete",
        step="aggregate_cmd",
        phase="complete",
        timers=timers,
        diagrams=len(entries),
        with_outline=sum(1 for _, outline in entries if outline),
    )
    return 0


def cmd_render(cfg: RunConfig) -> int:
    with _open_session(cfg) as session:
        diagram = _find_or_fail(session, cfg.diagram)
        if diagram.is_aggregate:
            raise ConfigError("The outline overview has no diagram to render")
        state = OutlineViewer(session).select(diagram).result()
    if state.error:
        raise FetchError(state.error)
    if state.render_message:
        raise RenderError(state.render_message)
    if not state.rendered:
        print("Rendering disabled (renderer: none).", file=sys.stderr)
        return 0
    _emit(state.rendered, cfg.output)
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    try:
        command, cfg = load_run_config(argv=argv)
        setup_logging(LogConfig(level=cfg.log_level, json_logs=cfg.json_logs))
        LOG.debug("Configuration resolved", extra={"command": command, "config": dump_config(cfg)})

        if command == "list":
            code = cmd_list(cfg)
        elif command == "outline":
            code = cmd_outline(cfg)
        elif command == "aggregate":
            code = cmd_aggregate(cfg)
        elif command == "render":
            code = cmd_render(cfg)
        else:
            raise ConfigError(f"Unknown command: {command}")

        sys.exit(code)
    except SystemExit:
        raise
    except BrokenPipeError:
        # Common when users pipe to `head` or similar tools.
        sys.exit(0)
    except Exception as e:
        setup_logging(LogConfig())
        LOG.error("Execution failed", extra={"error": str(e)})
        sys.exit(as_exit_code(e))


if __name__ == "__main__":
    main()
