"""
Shared enums for media records and sources.
"""

from enum import Enum, IntEnum


class MediaType(str, Enum):
    VIDEO = "video"
    IMAGE = "image"
    NEWS = "news"
    NEWSPAPER = "newspaper"


class License(str, Enum):
    PUBLIC_DOMAIN = "public_domain"
    CREATIVE_COMMONS = "creative_commons"
    COMMERCIAL = "commercial"
    EDITORIAL = "editorial"
    UNKNOWN = "unknown"
    MIXED = "mixed"


class SourceTier(IntEnum):
    """Source preference used for ordering only; lower sorts first."""

    ARCHIVAL_PUBLIC_DOMAIN = 1
    CURATED_OPEN = 2
    HISTORICAL_ARCHIVE = 3
    NEWS_DOCUMENTARY = 4
    COMMERCIAL_STOCK = 5
    GENERAL_WEB = 6
