from __future__ import annotations

import argparse
import json
import os
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from .render.mmdc import RENDERERS
from .session.context import DEFAULT_WORKERS

# --------
# Defaults
# --------
DEFAULT_MANIFEST = "data/diagrams.json"
DEFAULT_TIMEOUT = 30.0
COMMANDS = ("list", "outline", "aggregate", "render")
ALLOWED_CONFIG_KEYS = {
    "manifest",
    "source_root",
    "outdir",
    "workers",
    "timeout",
    "renderer",
    "progress",
    "json_logs",
    "log_level",
}
BOOL_CONFIG_KEYS = {"progress", "json_logs"}
INT_CONFIG_KEYS = {"workers"}
FLOAT_CONFIG_KEYS = {"timeout"}
STR_CONFIG_KEYS = {"manifest", "source_root", "outdir", "renderer", "log_level"}


@dataclass(frozen=True)
class RunConfig:
    # Inputs
    manifest: str = DEFAULT_MANIFEST
    source_root: Optional[str] = None  # directory or http(s) base URL; default cwd

    # Selection / outputs
    diagram: Optional[str] = None
    outdir: Optional[Path] = None
    output: Optional[Path] = None

    # Behaviour
    workers: int = DEFAULT_WORKERS
    timeout: float = DEFAULT_TIMEOUT
    renderer: str = "none"
    progress: bool = True

    # Logging
    json_logs: bool = False
    log_level: str = "INFO"


def _parse_config_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text) or {}
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ValueError(f"Failed to parse config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError("Top-level config must be an object")
    return data


def _env_str(name: str) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None:
        return None
    raw = raw.strip()
    return raw or None


def _env_bool(name: str) -> Optional[bool]:
    raw = _env_str(name)
    if raw is None:
        return None
    return raw.lower() in {"1", "true", "yes", "on"}


def _env_int(name: str) -> Optional[int]:
    raw = _env_str(name)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def _env_float(name: str) -> Optional[float]:
    raw = _env_str(name)
    if raw is None:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


def _coerce_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        raw = value.strip().lower()
        if raw in {"1", "true", "yes", "on"}:
            return True
        if raw in {"0", "false", "no", "off"}:
            return False
    raise ValueError(f"Config field '{key}' must be a boolean")


def _coerce_int(key: str, value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return int(value)
        except ValueError:
            pass
    raise ValueError(f"Config field '{key}' must be an integer")


def _coerce_float(key: str, value: Any) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    if isinstance(value, str) and value.strip():
        try:
            return float(value)
        except ValueError:
            pass
    raise ValueError(f"Config field '{key}' must be a number")


def _normalize_config_file(data: Dict[str, Any]) -> Dict[str, Any]:
    unknown = sorted(set(data.keys()) - ALLOWED_CONFIG_KEYS)
    if unknown:
        warnings.warn(f"Unknown config keys ignored: {', '.join(unknown)}")
    normalized: Dict[str, Any] = {}
    for key, value in data.items():
        if key not in ALLOWED_CONFIG_KEYS or value is None:
            continue
        if key in BOOL_CONFIG_KEYS:
            normalized[key] = _coerce_bool(key, value)
        elif key in INT_CONFIG_KEYS:
            normalized[key] = _coerce_int(key, value)
        elif key in FLOAT_CONFIG_KEYS:
            normalized[key] = _coerce_float(key, value)
        elif key in STR_CONFIG_KEYS:
            if not isinstance(value, str):
                raise ValueError(f"Config field '{key}' must be a string")
            normalized[key] = value
    return normalized


def _compact_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Drop keys with None values so they don't override lower-precedence config.
    """
    return {k: v for k, v in data.items() if v is not None}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="diagram-outline",
        description="Derive structured text outlines from Mermaid diagrams",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common(p: argparse.ArgumentParser) -> None:
        p.add_argument("--config", type=Path, help="Optional YAML/JSON config file")
        p.add_argument("--manifest", default=None, help=f"Diagram manifest path or URL (default {DEFAULT_MANIFEST})")
        p.add_argument(
            "--source-root",
            default=None,
            help="Directory or http(s) base URL that manifest 'file' paths are relative to (default: cwd)",
        )
        p.add_argument("--workers", type=int, default=None, help=f"Max parallel fetches (default {DEFAULT_WORKERS})")
        p.add_argument("--timeout", type=float, default=None, help=f"HTTP timeout in seconds (default {DEFAULT_TIMEOUT})")
        p.add_argument(
            "--json-logs",
            action=argparse.BooleanOptionalAction,
            default=None,
            help="Enable JSON logs",
        )
        p.add_argument("--log-level", default=None, help="Log level (INFO, DEBUG, ...)")

    p_list = subparsers.add_parser("list", help="List diagrams in listing order")
    add_common(p_list)

    p_outline = subparsers.add_parser("outline", help="Print the outline of one diagram")
    add_common(p_outline)
    p_outline.add_argument("diagram", help="Diagram id")
    p_outline.add_argument("--output", type=Path, default=None, help="Write the outline to this file")

    p_agg = subparsers.add_parser("aggregate", help="Print the combined outline overview of every diagram")
    add_common(p_agg)
    p_agg.add_argument("--outdir", default=None, help="Also write overview, per-diagram outlines and summary here")
    p_agg.add_argument(
        "--progress",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Show a progress bar and summary table (default: on when stderr is a terminal)",
    )

    p_render = subparsers.add_parser("render", help="Render one diagram with the configured backend")
    add_common(p_render)
    p_render.add_argument("diagram", help="Diagram id")
    p_render.add_argument("--output", type=Path, default=None, help="Write the rendered SVG to this file")
    p_render.add_argument(
        "--renderer",
        default=None,
        choices=sorted(RENDERERS),
        help="Rendering backend (default: mmdc for this command)",
    )
    return parser


def load_run_config(
    args: Optional[argparse.Namespace] = None,
    argv: Optional[list[str]] = None,
) -> Tuple[str, RunConfig]:
    """
    Build RunConfig by merging defaults, optional config file, env vars, and CLI args.
    Precedence (low -> high): defaults < config file < env < CLI.

    Returns:
      (command, RunConfig) where command is one of: list|outline|aggregate|render
    """
    ns = args if args is not None else build_parser().parse_args(argv)
    command = ns.command

    base: Dict[str, Any] = {
        "manifest": DEFAULT_MANIFEST,
        "source_root": None,
        "outdir": None,
        "workers": DEFAULT_WORKERS,
        "timeout": DEFAULT_TIMEOUT,
        "renderer": "mmdc" if command == "render" else "none",
        "progress": None,
        "json_logs": False,
        "log_level": "INFO",
    }

    file_cfg: Dict[str, Any] = {}
    if getattr(ns, "config", None):
        file_cfg = _normalize_config_file(_parse_config_file(Path(ns.config)))

    env_cfg: Dict[str, Any] = _compact_dict(
        {
            "manifest": _env_str("DIAGRAM_OUTLINE_MANIFEST"),
            "source_root": _env_str("DIAGRAM_OUTLINE_SOURCE_ROOT"),
            "outdir": _env_str("DIAGRAM_OUTLINE_OUTDIR"),
            "workers": _env_int("DIAGRAM_OUTLINE_WORKERS"),
            "timeout": _env_float("DIAGRAM_OUTLINE_TIMEOUT"),
            "renderer": _env_str("DIAGRAM_OUTLINE_RENDERER"),
            "progress": _env_bool("DIAGRAM_OUTLINE_PROGRESS"),
            "json_logs": _env_bool("DIAGRAM_OUTLINE_JSON_LOGS"),
            "log_level": _env_str("DIAGRAM_OUTLINE_LOG_LEVEL"),
        }
    )

    cli_cfg: Dict[str, Any] = _compact_dict(
        {
            "manifest": getattr(ns, "manifest", None),
            "source_root": getattr(ns, "source_root", None),
            "outdir": getattr(ns, "outdir", None),
            "workers": getattr(ns, "workers", None),
            "timeout": getattr(ns, "timeout", None),
            "renderer": getattr(ns, "renderer", None),
            "progress": getattr(ns, "progress", None),
            "json_logs": getattr(ns, "json_logs", None),
            "log_level": getattr(ns, "log_level", None),
        }
    )

    merged = {**base, **file_cfg, **env_cfg, **cli_cfg}

    workers = int(merged["workers"])
    if workers < 1:
        raise ValueError("workers must be >= 1")
    timeout = float(merged["timeout"])
    if timeout <= 0:
        raise ValueError("timeout must be > 0")
    renderer = str(merged["renderer"] or "none").lower()
    if renderer not in RENDERERS:
        raise ValueError(f"renderer must be one of: {', '.join(sorted(RENDERERS))}")
    progress = merged.get("progress")
    if progress is None:
        progress = os.isatty(2)

    cfg = RunConfig(
        manifest=str(merged["manifest"] or DEFAULT_MANIFEST),
        source_root=str(merged["source_root"]) if merged.get("source_root") else None,
        diagram=getattr(ns, "diagram", None),
        outdir=Path(merged["outdir"]) if merged.get("outdir") else None,
        output=getattr(ns, "output", None),
        workers=workers,
        timeout=timeout,
        renderer=renderer,
        progress=bool(progress),
        json_logs=bool(merged["json_logs"]),
        log_level=str(merged.get("log_level") or "INFO").upper(),
    )
    return command, cfg


def dump_config(cfg: RunConfig) -> Dict[str, Any]:
    return {
        "manifest": cfg.manifest,
        "source_root": cfg.source_root,
        "diagram": cfg.diagram,
        "outdir": str(cfg.outdir) if cfg.outdir else None,
        "output": str(cfg.output) if cfg.output else None,
        "workers": cfg.workers,
        "timeout": cfg.timeout,
        "renderer": cfg.renderer,
        "progress": cfg.progress,
        "json_logs": cfg.json_logs,
        "log_level": cfg.log_level,
    }
