"""
Renders the similarity log and performance snapshot for export.
"""

from __future__ import annotations

import csv
import dataclasses
import io
import json
from abc import ABC, abstractmethod
from collections.abc import Mapping
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence
from xml.sax.saxutils import escape

import structlog

from sitesift.protocols import PerformanceSnapshot, SimilarityRecord, SitemapEntry, utc_now

logger = structlog.get_logger(__name__)

XML_ENTITIES = {'"': "&quot;", "'": "&apos;"}
SITEMAP_NAMESPACE = "http://www.sitemaps.org/schemas/sitemap/0.9"
RECORD_FIELDS = ("url", "text", "timestamp")


def to_jsonable(value: Any) -> Any:
    """Recursively convert dataclasses, enums and datetimes to JSON types."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, Mapping):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


def _record_row(record: SimilarityRecord) -> Dict[str, str]:
    return {"url": record.url, "text": record.text, "timestamp": record.timestamp.isoformat()}


class BaseExporter(ABC):
    """Abstract base class for all exporters."""

    format_name: str = ""

    @abstractmethod
    def render(
        self,
        records: Sequence[SimilarityRecord],
        performance: PerformanceSnapshot,
        timestamp: Optional[datetime] = None,
    ) -> str:
        """Render the log and snapshot to a string."""

    def export(
        self,
        records: Sequence[SimilarityRecord],
        performance: PerformanceSnapshot,
        output_path: Path,
    ) -> None:
        logger.info("Exporting data", format=self.format_name, path=str(output_path), records=len(records))
        output_path.write_text(self.render(records, performance), encoding="utf-8")
        logger.info("Export complete", format=self.format_name, path=str(output_path))


class JsonExporter(BaseExporter):
    """Full document: similarity log, performance snapshot and timestamp."""

    format_name = "json"

    def render(self, records, performance, timestamp=None) -> str:
        document = {
            "similarity_log": [_record_row(record) for record in records],
            "performance": to_jsonable(performance),
            "timestamp": (timestamp or utc_now()).isoformat(),
        }
        return json.dumps(document, indent=2, ensure_ascii=False)


class CsvExporter(BaseExporter):
    """One row per similarity record; empty string for an empty log."""

    format_name = "csv"

    def render(self, records, performance, timestamp=None) -> str:
        if not records:
            return ""
        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=RECORD_FIELDS, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
        writer.writeheader()
        writer.writerows(_record_row(record) for record in records)
        return buffer.getvalue().rstrip("\n")


class XmlExporter(BaseExporter):
    format_name = "xml"

    def render(self, records, performance, timestamp=None) -> str:
        lines = ['<?xml version="1.0" encoding="UTF-8"?>', "<siteSiftData>"]
        for record in records:
            lines.append("  <page>")
            for key, value in _record_row(record).items():
                lines.append(f"    <{key}>{escape(value, XML_ENTITIES)}</{key}>")
            lines.append("  </page>")
        lines.append("</siteSiftData>")
        return "\n".join(lines)


_EXPORTERS = {cls.format_name: cls for cls in (JsonExporter, CsvExporter, XmlExporter)}

FORMATS: List[str] = sorted(_EXPORTERS)


def get_exporter(format_name: str) -> BaseExporter:
    """Factory function to get the appropriate exporter."""
    try:
        return _EXPORTERS[format_name.lower()]()
    except KeyError:
        raise ValueError(f"Unknown exporter format: {format_name}") from None


def render_sitemap(entries: Iterable[SitemapEntry]) -> str:
    """XML sitemap (sitemaps.org 0.9) for ``entries``."""
    lines = ['<?xml version="1.0" encoding="UTF-8"?>', f'<urlset xmlns="{SITEMAP_NAMESPACE}">']
    for entry in entries:
        lines.extend(
            [
                "  <url>",
                f"    <loc>{escape(entry.url)}</loc>",
                f"    <lastmod>{entry.last_modified.isoformat()}</lastmod>",
                f"    <changefreq>{entry.change_freq}</changefreq>",
                f"    <priority>{entry.priority}</priority>",
                "  </url>",
            ]
        )
    lines.append("</urlset>")
    return "\n".join(lines)
