"""Structured text outlines for Mermaid flowchart diagrams."""

__version__ = "0.1.0"
