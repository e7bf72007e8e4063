from __future__ import annotations

from .mmdc import MmdcRenderer, NullRenderer, Renderer, get_renderer, is_mmdc_available

__all__ = [
    "MmdcRenderer",
    "NullRenderer",
    "Renderer",
    "get_renderer",
    "is_mmdc_available",
]
