"""Export formatting."""

from __future__ import annotations

from .exporter import FORMATS, BaseExporter, get_exporter, render_sitemap, to_jsonable

__all__ = ["FORMATS", "BaseExporter", "get_exporter", "render_sitemap", "to_jsonable"]
