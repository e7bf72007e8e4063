from __future__ import annotations

import json

import pytest

from diagram_outline.manifest import (
    AGGREGATE_VIEW_ID,
    DiagramSource,
    find_diagram,
    is_sitemap_diagram,
    is_sitemap_entry,
    load_manifest,
    order_for_listing,
    parse_manifest,
    real_diagrams,
)
from diagram_outline.util.errors import ManifestError

MANIFEST = [
    {
        "id": "pages-maps-city-mmd",
        "name": "Maps City",
        "sourcePath": "pages/maps_city.mmd",
        "displayPath": "pages/maps_city.html",
        "file": "diagrams/pages/maps_city.mmd",
        "category": "Maps",
        "url": "https://example.test/maps_city.html",
        "description": None,
    },
    {
        "id": "sitemap-mmd",
        "name": "Sitemap",
        "sourcePath": "sitemap.mmd",
        "displayPath": "sitemap",
        "file": "diagrams/sitemap.mmd",
        "category": "Overview",
    },
    {
        "id": "pages-times-1-mmd",
        "name": "Times 1",
        "sourcePath": "pages/times_1.mmd",
        "file": "diagrams/pages/times_1.mmd",
        "category": "Timetables",
    },
]


def test_parse_manifest_maps_fields() -> None:
    diagrams = parse_manifest(json.dumps(MANIFEST))

    first = diagrams[0]
    assert first.id == "pages-maps-city-mmd"
    assert first.source_path == "pages/maps_city.mmd"
    assert first.display_path == "pages/maps_city.html"
    assert first.file == "diagrams/pages/maps_city.mmd"
    assert first.url == "https://example.test/maps_city.html"
    assert first.description is None
    assert first.to_dict()["sourcePath"] == "pages/maps_city.mmd"


def test_listing_order_promotes_sitemap_after_aggregate_entry() -> None:
    listing = order_for_listing(parse_manifest(json.dumps(MANIFEST)))

    assert [d.id for d in listing] == [
        AGGREGATE_VIEW_ID,
        "sitemap-mmd",
        "pages-maps-city-mmd",
        "pages-times-1-mmd",
    ]
    assert listing[0].is_aggregate
    assert [d.id for d in real_diagrams(listing)] == ["sitemap-mmd", "pages-maps-city-mmd", "pages-times-1-mmd"]


def test_listing_order_is_idempotent() -> None:
    listing = order_for_listing(parse_manifest(json.dumps(MANIFEST)))

    assert order_for_listing(listing) == listing


def test_listing_without_sitemap_keeps_manifest_order() -> None:
    entries = [MANIFEST[0], MANIFEST[2]]
    listing = order_for_listing(parse_manifest(json.dumps(entries)))

    assert [d.id for d in listing] == [AGGREGATE_VIEW_ID, "pages-maps-city-mmd", "pages-times-1-mmd"]


def test_sitemap_entry_matches_name_loosely() -> None:
    diagram = DiagramSource(id="x", name="Full SITEMAP", source_path="pages/other.mmd")

    assert is_sitemap_entry(diagram)
    assert not is_sitemap_diagram(diagram)


def test_sitemap_diagram_predicate() -> None:
    assert is_sitemap_diagram(DiagramSource(id="sitemap-mmd", name="S"))
    assert is_sitemap_diagram(DiagramSource(id="other", name="S", source_path="nested/Sitemap.mmd"))
    assert not is_sitemap_diagram(DiagramSource(id="other", name="S", source_path="sitemap.mmd.bak"))
    assert not is_sitemap_diagram(None)


def test_find_diagram() -> None:
    listing = order_for_listing(parse_manifest(json.dumps(MANIFEST)))

    assert find_diagram(listing, "pages-times-1-mmd").name == "Times 1"  # type: ignore[union-attr]
    assert find_diagram(listing, "missing") is None


def test_duplicate_ids_keep_first_entry() -> None:
    entries = [MANIFEST[0], dict(MANIFEST[0], name="Duplicate")]
    diagrams = parse_manifest(json.dumps(entries))

    assert len(diagrams) == 1
    assert diagrams[0].name == "Maps City"


@pytest.mark.parametrize(
    "payload",
    [
        "not json",
        json.dumps({"id": "x"}),
        json.dumps(["x"]),
        json.dumps([{"name": "no id"}]),
        json.dumps([{"id": "x", "file": 3}]),
    ],
)
def test_malformed_manifest_raises(payload: str) -> None:
    with pytest.raises(ManifestError):
        parse_manifest(payload)


def test_load_manifest_from_file(tmp_path) -> None:
    path = tmp_path / "diagrams.json"
    path.write_text(json.dumps(MANIFEST), encoding="utf-8")

    listing = load_manifest(str(path))

    assert listing[0].id == AGGREGATE_VIEW_ID
    assert listing[1].id == "sitemap-mmd"


def test_load_manifest_missing_file(tmp_path) -> None:
    with pytest.raises(ManifestError):
        load_manifest(str(tmp_path / "missing.json"))


def test_load_manifest_over_http(monkeypatch) -> None:
    import diagram_outline.manifest as manifest

    calls = []

    class _Response:
        text = json.dumps(MANIFEST)

        def raise_for_status(self) -> None:
            return None

    def _fake_get(url, timeout=None):
        calls.append((url, timeout))
        return _Response()

    monkeypatch.setattr(manifest.requests, "get", _fake_get)

    listing = load_manifest("https://example.test/data/diagrams.json", timeout=5)

    assert calls == [("https://example.test/data/diagrams.json", 5)]
    assert len(real_diagrams(listing)) == 3
