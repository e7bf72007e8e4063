from __future__ import annotations

from .providers import FileSourceProvider, HttpSourceProvider, SourceProvider, resolve_source_provider

__all__ = [
    "FileSourceProvider",
    "HttpSourceProvider",
    "SourceProvider",
    "resolve_source_provider",
]
