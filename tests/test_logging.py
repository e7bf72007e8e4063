from __future__ import annotations

import json
import logging

from diagram_outline.logging import JsonFormatter, PlainFormatter


def _record(**extra: object) -> logging.LogRecord:
    record = logging.LogRecord("diagram_outline.test", logging.INFO, __file__, 1, "Outline ready", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_extras() -> None:
    payload = json.loads(JsonFormatter().format(_record(diagram="home", duration_ms=12, config={"workers": 2})))

    assert payload["message"] == "Outline ready"
    assert payload["level"] == "INFO"
    assert payload["diagram"] == "home"
    assert payload["duration_ms"] == 12
    assert payload["config"] == {"workers": 2}
    assert "args" not in payload


def test_plain_formatter_prefixes_step_and_phase() -> None:
    line = PlainFormatter().format(_record(step="aggregate", phase="complete", duration_ms=5, diagram="home"))

    assert line.endswith("INFO diagram_outline.test: [aggregate:complete] Outline ready diagram=home (duration_ms=5)")


def test_plain_formatter_without_extras() -> None:
    line = PlainFormatter().format(_record())

    assert line.endswith("INFO diagram_outline.test: Outline ready")
