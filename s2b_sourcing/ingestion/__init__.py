"""
s2b-sourcing Ingestion Framework
================================

This package extracts product data from vendor sites.

Pipeline Stages:
1. Detect - The registry picks the vendor descriptor matching a URL
2. Extract - Vendor adapters read basic fields, options and attribute pairs
3. Acquire - Main images are downloaded and the detail panel is captured
4. Enrich - The enrichment service refines the raw crawl (services package)
5. Resolve - Certification numbers are validated and filed into buckets
6. Map - Source categories are mapped to catalog categories
7. Assemble - Priced registration records are built per option

The orchestrator lives in ``s2b_sourcing.ingestion.pipeline``.
"""

from s2b_sourcing.ingestion.registry import (
    BusinessConfig,
    GlobalConfig,
    VendorDescriptor,
    VendorRegistry,
    get_default_registry,
)
from s2b_sourcing.ingestion.document import (
    Document,
    HtmlDocument,
    Node,
)
from s2b_sourcing.ingestion.images import (
    ImageAcquirer,
    product_directory,
)

__all__ = [
    # Registry
    "BusinessConfig",
    "GlobalConfig",
    "VendorDescriptor",
    "VendorRegistry",
    "get_default_registry",
    # Documents
    "Document",
    "HtmlDocument",
    "Node",
    # Images
    "ImageAcquirer",
    "product_directory",
]
