from __future__ import annotations

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

import requests

from .logging import get_logger
from .util.errors import ManifestError

LOG = get_logger(__name__)

AGGREGATE_VIEW_ID = "structured-outline-overview"
SITEMAP_DIAGRAM_ID = "sitemap-mmd"
DEFAULT_CATEGORY = "Diagram"

_SITEMAP_PATH_RE = re.compile(r"sitemap\.mmd$", re.IGNORECASE)


@dataclass(frozen=True)
class DiagramSource:
    """
    Identity of one diagram in the manifest.

    `file` is the storage path handed to the source provider; the raw text
    itself is fetched lazily and never stored here.
    """

    id: str
    name: str
    source_path: str = ""
    display_path: Optional[str] = None
    category: Optional[str] = None
    file: Optional[str] = None
    url: Optional[str] = None
    description: Optional[str] = None
    is_aggregate: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DiagramSource":
        diagram_id = data.get("id")
        if not isinstance(diagram_id, str) or not diagram_id.strip():
            raise ManifestError(f"Manifest entry is missing an 'id': {dict(data)!r}")

        def _opt(key: str) -> Optional[str]:
            value = data.get(key)
            if value is None:
                return None
            if not isinstance(value, str):
                raise ManifestError(f"Manifest entry '{diagram_id}' field '{key}' must be a string")
            return value

        return cls(
            id=diagram_id,
            name=_opt("name") or diagram_id,
            source_path=_opt("sourcePath") or "",
            display_path=_opt("displayPath"),
            category=_opt("category"),
            file=_opt("file"),
            url=_opt("url"),
            description=_opt("description"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "sourcePath": self.source_path,
            "displayPath": self.display_path,
            "category": self.category,
            "file": self.file,
            "url": self.url,
            "description": self.description,
        }


AGGREGATE_ENTRY = DiagramSource(
    id=AGGREGATE_VIEW_ID,
    name="Structured outline overview",
    display_path="All diagrams",
    category="Overview",
    description="Combined structured outline data from every Mermaid diagram.",
    is_aggregate=True,
)


def is_sitemap_diagram(diagram: Optional[DiagramSource]) -> bool:
    """Whether the diagram gets the flattened sitemap outline format."""
    if diagram is None:
        return False
    return diagram.id == SITEMAP_DIAGRAM_ID or bool(_SITEMAP_PATH_RE.search(diagram.source_path or ""))


def is_sitemap_entry(diagram: DiagramSource) -> bool:
    """Looser match used only to promote the site map to the front of the listing."""
    haystack = f"{diagram.source_path or ''} {diagram.name or ''}".lower()
    return "sitemap" in haystack


def order_for_listing(diagrams: Iterable[DiagramSource]) -> List[DiagramSource]:
    """
    Listing order: the aggregate overview first, then the site map diagram
    (if any), then the remaining diagrams in manifest order.
    """
    items = [d for d in diagrams if not d.is_aggregate]
    for index, diagram in enumerate(items):
        if is_sitemap_entry(diagram):
            items.insert(0, items.pop(index))
            break
    return [AGGREGATE_ENTRY, *items]


def real_diagrams(listing: Iterable[DiagramSource]) -> List[DiagramSource]:
    return [d for d in listing if not d.is_aggregate]


def find_diagram(listing: Iterable[DiagramSource], diagram_id: str) -> Optional[DiagramSource]:
    for diagram in listing:
        if diagram.id == diagram_id:
            return diagram
    return None


def _read_manifest_text(location: str, *, timeout: float) -> str:
    if re.match(r"^https?://", location, re.IGNORECASE):
        try:
            response = requests.get(location, timeout=timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise ManifestError(f"Unable to load diagram manifest from {location}: {e}") from e
        return response.text
    path = Path(location)
    if not path.is_file():
        raise ManifestError(f"Manifest file not found: {path}")
    return path.read_text(encoding="utf-8")


def parse_manifest(text: str) -> List[DiagramSource]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ManifestError(f"Manifest is not valid JSON: {e}") from e
    if not isinstance(data, list):
        raise ManifestError("Top-level manifest must be a list of diagrams")
    diagrams: List[DiagramSource] = []
    seen = set()
    for entry in data:
        if not isinstance(entry, dict):
            raise ManifestError("Manifest entries must be objects")
        diagram = DiagramSource.from_dict(entry)
        if diagram.id in seen:
            LOG.warning("Duplicate diagram id in manifest ignored", extra={"diagram": diagram.id})
            continue
        seen.add(diagram.id)
        diagrams.append(diagram)
    return diagrams


def load_manifest(location: str, *, timeout: float = 30.0) -> List[DiagramSource]:
    """
    Load the diagram manifest from a local path or an http(s) URL and return
    the diagrams in listing order (aggregate overview entry included).
    """
    diagrams = parse_manifest(_read_manifest_text(location, timeout=timeout))
    LOG.debug("Manifest loaded", extra={"manifest": location, "count": len(diagrams)})
    return order_for_listing(diagrams)
