"""DOM field and smart content extraction."""

from .dom_extractor import (
    extract_forms,
    extract_images,
    extract_links,
    extract_metadata,
    extract_page,
    extract_schema,
    extract_text,
)
from .smart_extractor import extract_smart_content

__all__ = [
    "extract_forms",
    "extract_images",
    "extract_links",
    "extract_metadata",
    "extract_page",
    "extract_schema",
    "extract_smart_content",
    "extract_text",
]
