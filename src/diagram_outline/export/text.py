from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Dict, List, Sequence, Tuple

from ..manifest import DiagramSource
from ..util.errors import ExportError

OVERVIEW_FILENAME = "outline_overview.txt"
SUMMARY_FILENAME = "outline_summary.json"
OUTLINES_DIRNAME = "outlines"

_UNSAFE_FILENAME_RE = re.compile(r"[^A-Za-z0-9._-]+")


def outline_filename(diagram_id: str) -> str:
    safe = _UNSAFE_FILENAME_RE.sub("-", diagram_id).strip("-.") or "diagram"
    return f"{safe}.txt"


def _write_text(path: Path, text: str) -> None:
    try:
        path.write_text(f"{text}\n" if text else "", encoding="utf-8")
    except OSError as e:
        raise ExportError(f"Unable to write {path}: {e}") from e


def write_outline_files(
    outdir: Path,
    entries: Sequence[Tuple[DiagramSource, str]],
    overview: str,
) -> List[Path]:
    """
    Write the combined overview, each non-empty per-diagram outline and a
    JSON summary to outdir. Returns the written paths, overview first.
    """
    outlines_dir = outdir / OUTLINES_DIRNAME
    outlines_dir.mkdir(parents=True, exist_ok=True)

    written: List[Path] = []
    overview_path = outdir / OVERVIEW_FILENAME
    _write_text(overview_path, overview)
    written.append(overview_path)

    diagrams: List[Dict[str, object]] = []
    for diagram, outline in entries:
        record: Dict[str, object] = {
            "id": diagram.id,
            "name": diagram.name,
            "category": diagram.category,
            "lines": len(outline.splitlines()) if outline else 0,
            "file": None,
        }
        if outline:
            path = outlines_dir / outline_filename(diagram.id)
            _write_text(path, outline)
            written.append(path)
            record["file"] = str(path.relative_to(outdir))
        diagrams.append(record)

    summary = {
        "total": len(entries),
        "with_outline": sum(1 for _, outline in entries if outline),
        "empty": sum(1 for _, outline in entries if not outline),
        "diagrams": diagrams,
    }
    summary_path = outdir / SUMMARY_FILENAME
    _write_text(summary_path, json.dumps(summary, indent=2, sort_keys=True, ensure_ascii=False))
    written.append(summary_path)
    return written
