from .base import SourceAdapter, SourceKind, SourceSpec
from .archive_org import ArchiveOrgAdapter
from .newspapers import ChroniclingAmericaAdapter, EuropeanaAdapter
from .searxng import SearXNGCategoryAdapter, SearXNGClient, SiteSearchAdapter
from .registry import (
    SOURCE_CATALOG,
    SourceClients,
    build_source_adapters,
    catalog_index,
)

__all__ = [
    "SourceAdapter",
    "SourceKind",
    "SourceSpec",
    "ArchiveOrgAdapter",
    "ChroniclingAmericaAdapter",
    "EuropeanaAdapter",
    "SearXNGCategoryAdapter",
    "SearXNGClient",
    "SiteSearchAdapter",
    "SOURCE_CATALOG",
    "SourceClients",
    "build_source_adapters",
    "catalog_index",
]
