"""
Typed source catalog and adapter builder.

Every source the pipeline queries is one ``SourceSpec`` entry here; the
builder turns entries into adapters by ``kind``. Tier and license are looked
up from this catalog by source name during normalization, so an entry is the
single place a source's ranking is decided.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence

import structlog

from mediamind.core import config
from mediamind.models.base import License, MediaType, SourceTier
from mediamind.services.http_client import HttpClient

from .archive_org import ArchiveOrgAdapter
from .base import SourceAdapter, SourceKind, SourceSpec
from .newspapers import ChroniclingAmericaAdapter, EuropeanaAdapter
from .searxng import SearXNGCategoryAdapter, SearXNGClient, SiteSearchAdapter

logger = structlog.get_logger(__name__)

VIDEO, IMAGE, NEWS, PAPER = MediaType.VIDEO, MediaType.IMAGE, MediaType.NEWS, MediaType.NEWSPAPER


def _sites(
    media_type: MediaType,
    tier: SourceTier,
    license: License,
    sites: Sequence[tuple],
    *,
    category: str = "general",
    max_queries: int = 1,
) -> List[SourceSpec]:
    return [
        SourceSpec(
            name=name,
            media_type=media_type,
            kind=SourceKind.SITE,
            tier=tier,
            license=license,
            label=label,
            site=site,
            category=category,
            max_queries=max_queries,
            timeout_sec=15.0,
        )
        for name, label, site in sites
    ]


# ---------- Video ---------- #

VIDEO_SOURCES: List[SourceSpec] = [
    SourceSpec("archive_org_video", VIDEO, SourceKind.ARCHIVE_ORG,
               SourceTier.ARCHIVAL_PUBLIC_DOMAIN, License.PUBLIC_DOMAIN,
               label="Internet Archive", max_queries=2, timeout_sec=45.0),
    SourceSpec("searxng_video", VIDEO, SourceKind.SEARXNG,
               SourceTier.CURATED_OPEN, License.UNKNOWN, label="SearXNG Videos",
               category="videos", query_template="{query} historical footage documentary",
               max_queries=3),
    *_sites(VIDEO, SourceTier.CURATED_OPEN, License.CREATIVE_COMMONS, [
        ("pexels_video", "Pexels", "pexels.com"),
        ("pixabay_video", "Pixabay", "pixabay.com"),
        ("videvo", "Videvo", "videvo.net"),
        ("coverr", "Coverr", "coverr.co"),
        ("mixkit", "Mixkit", "mixkit.co"),
    ], category="videos"),
    *_sites(VIDEO, SourceTier.HISTORICAL_ARCHIVE, License.MIXED, [
        ("british_pathe", "British Pathé", "britishpathe.com"),
        ("c_span", "C-SPAN", "c-span.org"),
        ("loc_video", "Library of Congress", "loc.gov"),
        ("ap_archive", "AP Archive", "aparchive.com"),
        ("reuters_archive", "Reuters Archive", "reuters.screenocean.com"),
        ("itn_source", "ITN Source", "itnsource.com"),
        ("critical_past", "Critical Past", "criticalpast.com"),
        ("footage_farm", "Footage Farm", "footagefarm.com"),
        ("historic_films", "Historic Films", "historicfilms.com"),
        ("nbc_archives", "NBCUniversal Archives", "nbcuniversalarchives.com"),
        ("cbs_news_archive", "CBS News", "cbsnews.com"),
        ("bbc_motion_gallery", "BBC Motion Gallery", "bbcmotiongallery.com"),
        ("europeana_video", "Europeana", "europeana.eu"),
        ("bfi_player", "BFI", "player.bfi.org.uk"),
        ("national_archives_video", "National Archives", "archives.gov"),
    ], category="videos"),
    *_sites(VIDEO, SourceTier.NEWS_DOCUMENTARY, License.EDITORIAL, [
        ("history_channel", "History", "history.com"),
        ("smithsonian_channel", "Smithsonian Channel", "smithsonianchannel.com"),
        ("natgeo_video", "National Geographic", "nationalgeographic.com"),
        ("pbs_video", "PBS", "pbs.org"),
        ("documentary_storm", "Documentary Storm", "documentarystorm.com"),
        ("top_documentary_films", "Top Documentary Films", "topdocumentaryfilms.com"),
    ], category="videos"),
    *_sites(VIDEO, SourceTier.COMMERCIAL_STOCK, License.COMMERCIAL, [
        ("getty_video", "Getty Images", "gettyimages.com"),
        ("shutterstock_video", "Shutterstock", "shutterstock.com"),
        ("pond5", "Pond5", "pond5.com"),
        ("artgrid", "Artgrid", "artgrid.io"),
        ("storyblocks", "Storyblocks", "storyblocks.com"),
    ], category="videos"),
    SourceSpec("web_video", VIDEO, SourceKind.SEARXNG,
               SourceTier.GENERAL_WEB, License.UNKNOWN, label="Web",
               category="videos", query_template="{query} video", max_queries=2),
]

# ---------- Images ---------- #

IMAGE_SOURCES: List[SourceSpec] = [
    SourceSpec("archive_org_images", IMAGE, SourceKind.ARCHIVE_ORG,
               SourceTier.ARCHIVAL_PUBLIC_DOMAIN, License.PUBLIC_DOMAIN,
               label="Internet Archive", max_queries=2, timeout_sec=45.0),
    SourceSpec("searxng_images", IMAGE, SourceKind.SEARXNG,
               SourceTier.CURATED_OPEN, License.UNKNOWN, label="SearXNG Images",
               category="images", query_template="{query} historical photograph",
               max_queries=3),
    *_sites(IMAGE, SourceTier.ARCHIVAL_PUBLIC_DOMAIN, License.PUBLIC_DOMAIN, [
        ("loc_pictures", "Library of Congress", "loc.gov"),
        ("national_archives_catalog", "National Archives Catalog", "catalog.archives.gov"),
        ("rawpixel_public_domain", "rawpixel", "rawpixel.com"),
        ("nypl_digital", "NYPL Digital Collections", "digitalcollections.nypl.org"),
        ("wellcome_collection", "Wellcome Collection", "wellcomecollection.org"),
        ("biodiversity_library", "Biodiversity Heritage Library", "biodiversitylibrary.org"),
    ], category="images"),
    *_sites(IMAGE, SourceTier.ARCHIVAL_PUBLIC_DOMAIN, License.CREATIVE_COMMONS, [
        ("wikimedia_commons", "Wikimedia Commons", "commons.wikimedia.org"),
    ], category="images", max_queries=2),
    *_sites(IMAGE, SourceTier.CURATED_OPEN, License.CREATIVE_COMMONS, [
        ("flickr", "Flickr", "flickr.com"),
    ], category="images"),
    # Museum "open access" programmes mix CC0 with restricted items
    *_sites(IMAGE, SourceTier.HISTORICAL_ARCHIVE, License.MIXED, [
        ("smithsonian", "Smithsonian", "si.edu"),
        ("met_museum", "The Met", "metmuseum.org"),
        ("getty_museum", "Getty Museum", "getty.edu"),
        ("rijksmuseum", "Rijksmuseum", "rijksmuseum.nl"),
        ("british_museum", "British Museum", "britishmuseum.org"),
        ("europeana_images", "Europeana", "europeana.eu"),
        ("art_institute_chicago", "Art Institute of Chicago", "artic.edu"),
        ("cleveland_art", "Cleveland Museum of Art", "clevelandart.org"),
        ("national_gallery_art", "National Gallery of Art", "nga.gov"),
        ("moma", "MoMA", "moma.org"),
    ], category="images"),
    *_sites(IMAGE, SourceTier.NEWS_DOCUMENTARY, License.MIXED, [
        ("shorpy", "Shorpy", "shorpy.com"),
        ("rare_historical_photos", "Rare Historical Photos", "rarehistoricalphotos.com"),
        ("vintage_everyday", "Vintag.es", "vintag.es"),
    ], category="images"),
]

# ---------- News ---------- #

NEWS_SOURCES: List[SourceSpec] = [
    SourceSpec("searxng_news", NEWS, SourceKind.SEARXNG,
               SourceTier.NEWS_DOCUMENTARY, License.EDITORIAL, label="SearXNG News",
               category="news"),
    *_sites(NEWS, SourceTier.HISTORICAL_ARCHIVE, License.EDITORIAL, [
        ("britannica", "Britannica", "britannica.com"),
        ("smithsonian_magazine", "Smithsonian Magazine", "smithsonianmag.com"),
        ("history_articles", "History", "history.com"),
    ], max_queries=2),
    *_sites(NEWS, SourceTier.NEWS_DOCUMENTARY, License.EDITORIAL, [
        ("ap_news", "AP News", "apnews.com"),
        ("reuters", "Reuters", "reuters.com"),
        ("bbc_news", "BBC", "bbc.com"),
        ("guardian", "The Guardian", "theguardian.com"),
        ("npr", "NPR", "npr.org"),
    ]),
    SourceSpec("web_news", NEWS, SourceKind.SEARXNG,
               SourceTier.GENERAL_WEB, License.UNKNOWN, label="Web",
               query_template="{query} news article report", max_queries=2),
]

# ---------- Newspapers ---------- #

NEWSPAPER_SOURCES: List[SourceSpec] = [
    SourceSpec("chronicling_america", PAPER, SourceKind.CHRONICLING_AMERICA,
               SourceTier.ARCHIVAL_PUBLIC_DOMAIN, License.PUBLIC_DOMAIN,
               label="Chronicling America", timeout_sec=30.0),
    SourceSpec("archive_org_newspapers", PAPER, SourceKind.ARCHIVE_ORG,
               SourceTier.ARCHIVAL_PUBLIC_DOMAIN, License.PUBLIC_DOMAIN,
               label="Internet Archive", max_queries=1, timeout_sec=30.0),
    SourceSpec("europeana_newspapers", PAPER, SourceKind.EUROPEANA,
               SourceTier.HISTORICAL_ARCHIVE, License.MIXED, label="Europeana",
               max_queries=1),
    *_sites(PAPER, SourceTier.HISTORICAL_ARCHIVE, License.MIXED, [
        ("trove", "Trove", "trove.nla.gov.au"),
    ]),
    *_sites(PAPER, SourceTier.COMMERCIAL_STOCK, License.COMMERCIAL, [
        ("newspapers_com", "Newspapers.com", "newspapers.com"),
        ("british_newspaper_archive", "British Newspaper Archive", "britishnewspaperarchive.co.uk"),
    ]),
]

SOURCE_CATALOG: List[SourceSpec] = [
    *VIDEO_SOURCES,
    *IMAGE_SOURCES,
    *NEWS_SOURCES,
    *NEWSPAPER_SOURCES,
]


def catalog_index(catalog: Iterable[SourceSpec] = SOURCE_CATALOG) -> Dict[str, SourceSpec]:
    """Source name -> spec. Duplicate names are a catalog bug."""
    index: Dict[str, SourceSpec] = {}
    for spec in catalog:
        if spec.name in index:
            raise ValueError(f"duplicate source name in catalog: {spec.name}")
        index[spec.name] = spec
    return index


@dataclass
class SourceClients:
    """Shared transport objects handed to adapters."""

    searxng: SearXNGClient
    archive: HttpClient
    loc: HttpClient
    europeana: HttpClient
    europeana_api_key: str = ""

    @classmethod
    def from_env(cls) -> "SourceClients":
        return cls(
            searxng=SearXNGClient(),
            archive=HttpClient(
                "archive_org",
                timeout_sec=config.ARCHIVE_ORG_TIMEOUT_SEC,
                calls_per_minute=300,
                burst=30,
            ),
            loc=HttpClient("chronicling_america", timeout_sec=30.0, calls_per_minute=60, burst=10),
            europeana=HttpClient("europeana", timeout_sec=30.0, calls_per_minute=60, burst=10),
            europeana_api_key=config.EUROPEANA_API_KEY,
        )

    async def close(self) -> None:
        await self.searxng.close()
        for http in (self.archive, self.loc, self.europeana):
            await http.close()


_FACTORIES: Dict[SourceKind, Callable[[SourceSpec, SourceClients], SourceAdapter]] = {
    SourceKind.SEARXNG: lambda spec, c: SearXNGCategoryAdapter(spec, c.searxng),
    SourceKind.SITE: lambda spec, c: SiteSearchAdapter(spec, c.searxng),
    SourceKind.ARCHIVE_ORG: lambda spec, c: ArchiveOrgAdapter(spec, c.archive),
    SourceKind.CHRONICLING_AMERICA: lambda spec, c: ChroniclingAmericaAdapter(spec, c.loc),
    SourceKind.EUROPEANA: lambda spec, c: EuropeanaAdapter(spec, c.europeana, c.europeana_api_key),
}


def build_source_adapters(
    clients: SourceClients,
    media_types: Optional[Iterable[MediaType]] = None,
    *,
    catalog: Sequence[SourceSpec] = SOURCE_CATALOG,
    disabled: Optional[Iterable[str]] = None,
) -> Mapping[MediaType, List[SourceAdapter]]:
    """Build adapters for the requested media types from the catalog."""
    wanted = set(media_types or MediaType)
    skip = set(disabled if disabled is not None else config.SOURCES_DISABLED)
    adapters: Dict[MediaType, List[SourceAdapter]] = {mt: [] for mt in wanted}

    for spec in catalog:
        if spec.media_type not in wanted:
            continue
        if spec.name in skip:
            logger.info("Source disabled by configuration", source=spec.name)
            continue
        if spec.kind == SourceKind.EUROPEANA and not clients.europeana_api_key:
            logger.info("Source skipped: missing API key", source=spec.name)
            continue
        adapters[spec.media_type].append(_FACTORIES[spec.kind](spec, clients))

    logger.info(
        "Source adapters built",
        counts={mt.value: len(a) for mt, a in adapters.items()},
    )
    return adapters
