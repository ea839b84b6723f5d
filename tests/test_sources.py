from datetime import datetime

import pytest

from mediamind.core.exceptions import CapabilityDegradedError, SourceError
from mediamind.models.base import License, MediaType, SourceTier
from mediamind.services.sources import (
    SOURCE_CATALOG,
    ArchiveOrgAdapter,
    ChroniclingAmericaAdapter,
    EuropeanaAdapter,
    SearXNGCategoryAdapter,
    SiteSearchAdapter,
    SourceClients,
    build_source_adapters,
    catalog_index,
)
from mediamind.services.sources.archive_org import pick_file
from mediamind.services.sources.base import SourceKind, parse_duration

from .conftest import make_spec


class FakeSearXNG:
    def __init__(self, results):
        self.results = results
        self.queries = []

    async def search(self, query, *, category="general", source=None):
        self.queries.append((query, category))
        return self.results


class FakeHttp:
    """Routes ``get_json`` by URL prefix; callables may raise."""

    def __init__(self, routes):
        self.routes = routes
        self.requests = []

    async def get_json(self, url, *, params=None, source=None):
        self.requests.append((url, params))
        for prefix, response in self.routes.items():
            if url.startswith(prefix):
                return response() if callable(response) else response
        return None


class TestSearXNGAdapters:
    @pytest.mark.asyncio
    async def test_video_results_are_mapped_and_filtered(self):
        client = FakeSearXNG(
            [
                {"url": "https://www.youtube.com/watch?v=abc", "title": "Blocked"},
                {"url": "https://example.com/article/moon", "title": "Not a video"},
                {"url": "not a url", "title": "Broken"},
                {
                    "url": "https://cdn.example.com/apollo.mp4",
                    "title": "<b>Apollo</b> 11",
                    "content": "Launch   day",
                    "thumbnail": "https://cdn.example.com/t.jpg",
                    "length": "1:02:03",
                    "publishedDate": "1969-07-16T13:32:00Z",
                },
            ]
        )
        spec = make_spec("searxng_video", category="videos", query_template="{query} footage")
        hits = await SearXNGCategoryAdapter(spec, client).search("moon landing", 10)

        assert client.queries == [("moon landing footage", "videos")]
        assert len(hits) == 1
        h = hits[0]
        assert h.url == "https://cdn.example.com/apollo.mp4"
        assert h.title == "Apollo 11"
        assert h.snippet == "Launch day"
        assert h.source_name == "searxng_video"
        assert h.duration_seconds == 3723
        assert h.published_date.year == 1969

    @pytest.mark.asyncio
    async def test_image_results_use_image_source_and_resolution(self):
        client = FakeSearXNG(
            [
                {
                    "url": "https://commons.wikimedia.org/wiki/File:Aldrin.jpg",
                    "img_src": "https://upload.wikimedia.org/Aldrin.jpg",
                    "thumbnail_src": "https://upload.wikimedia.org/thumb/Aldrin.jpg",
                    "resolution": "1024 x 768",
                    "title": "Aldrin on the Moon",
                }
            ]
        )
        spec = make_spec("searxng_images", MediaType.IMAGE, category="images")
        [h] = await SearXNGCategoryAdapter(spec, client).search("moon landing", 5)
        assert h.url == "https://upload.wikimedia.org/Aldrin.jpg"
        assert (h.width, h.height) == (1024, 768)
        assert h.media_type == MediaType.IMAGE

    @pytest.mark.asyncio
    async def test_limit_is_respected(self):
        client = FakeSearXNG([{"url": f"https://n.example/{i}", "title": str(i)} for i in range(10)])
        spec = make_spec("searxng_news", MediaType.NEWS)
        assert len(await SearXNGCategoryAdapter(spec, client).search("q", 3)) == 3

    @pytest.mark.asyncio
    async def test_site_search_scopes_query_and_drops_off_site_results(self):
        client = FakeSearXNG(
            [
                {"url": "https://www.britishpathe.com/asset/12345/", "title": "Moon landing 1969"},
                {"url": "https://mirror.example/britishpathe.com/asset/1.mp4", "title": "Mirror"},
            ]
        )
        spec = make_spec(
            "british_pathe",
            kind=SourceKind.SITE,
            site="britishpathe.com",
            category="videos",
        )
        hits = await SiteSearchAdapter(spec, client).search("moon landing", 10)
        assert client.queries == [("site:britishpathe.com moon landing", "videos")]
        assert [h.url for h in hits] == ["https://www.britishpathe.com/asset/12345/"]


class TestArchiveOrg:
    def test_pick_file_prefers_mp4_and_skips_thumbnails(self):
        files = [{"name": "a.ogv"}, {"name": "a.mp4"}, {"name": "a.webm"}]
        assert pick_file(files, MediaType.VIDEO)["name"] == "a.mp4"
        assert pick_file([{"name": "a_thumb.jpg"}, {"name": "a.png"}], MediaType.IMAGE)["name"] == "a.png"
        assert pick_file([{"name": "a.txt"}], MediaType.VIDEO) is None

    @pytest.mark.asyncio
    async def test_video_search_resolves_files_and_skips_failures(self):
        def broken():
            raise SourceError("archive_org_video", "connection reset")

        http = FakeHttp(
            {
                "https://archive.org/advancedsearch.php": {
                    "response": {
                        "docs": [
                            {
                                "identifier": "apollo11",
                                "title": "Apollo 11",
                                "description": ["Launch film"],
                                "date": "1969-07-16T00:00:00Z",
                            },
                            {"identifier": "broken"},
                            {"identifier": "nofiles"},
                        ]
                    }
                },
                "https://archive.org/metadata/apollo11": {
                    "files": [
                        {"name": "apollo11_thumb.jpg"},
                        {"name": "apollo11.mp4", "length": "125.5", "width": "640", "height": "480"},
                    ]
                },
                "https://archive.org/metadata/broken": broken,
                "https://archive.org/metadata/nofiles": {"files": [{"name": "notes.txt"}]},
            }
        )
        spec = make_spec(
            "archive_org_video",
            tier=SourceTier.ARCHIVAL_PUBLIC_DOMAIN,
            license=License.PUBLIC_DOMAIN,
            kind=SourceKind.ARCHIVE_ORG,
        )
        adapter = ArchiveOrgAdapter(spec, http, metadata_concurrency=2, metadata_delay_sec=0)
        hits = await adapter.search("moon landing", 5)

        assert len(hits) == 1
        h = hits[0]
        assert h.url == "https://archive.org/download/apollo11/apollo11.mp4"
        assert h.title == "Apollo 11"
        assert h.snippet == "Launch film"
        assert h.thumbnail_url == "https://archive.org/services/img/apollo11"
        assert h.duration_seconds == 125.5
        assert (h.width, h.height) == (640, 480)

        search_url, params = http.requests[0]
        assert params["q"] == "(moon landing) AND mediatype:movies"
        assert params["rows"] == "5"

    @pytest.mark.asyncio
    async def test_text_items_link_to_details_page(self):
        http = FakeHttp(
            {
                "https://archive.org/advancedsearch.php": {
                    "response": {"docs": [{"identifier": "nyt-1969-07-21", "title": ["Men Walk On Moon"]}]}
                }
            }
        )
        spec = make_spec("archive_org_newspapers", MediaType.NEWSPAPER, kind=SourceKind.ARCHIVE_ORG)
        [h] = await ArchiveOrgAdapter(spec, http).search("moon", 5)
        assert h.url == "https://archive.org/details/nyt-1969-07-21"
        assert h.title == "Men Walk On Moon"
        assert len(http.requests) == 1

    @pytest.mark.asyncio
    async def test_empty_or_error_response_is_no_results(self):
        spec = make_spec("archive_org_images", MediaType.IMAGE, kind=SourceKind.ARCHIVE_ORG)
        assert await ArchiveOrgAdapter(spec, FakeHttp({})).search("moon", 5) == []

    @pytest.mark.asyncio
    async def test_non_object_bodies_are_tolerated(self):
        http = FakeHttp(
            {
                "https://archive.org/advancedsearch.php": {
                    "response": {"docs": [{"identifier": "good"}, {"identifier": "listbody"}]}
                },
                "https://archive.org/metadata/good": {
                    "files": [{"name": "good.mp4", "width": float("inf"), "height": "n/a"}]
                },
                "https://archive.org/metadata/listbody": [],
            }
        )
        spec = make_spec("archive_org_video", kind=SourceKind.ARCHIVE_ORG)
        adapter = ArchiveOrgAdapter(spec, http, metadata_delay_sec=0)
        [h] = await adapter.search("moon", 5)
        assert h.url == "https://archive.org/download/good/good.mp4"
        assert (h.width, h.height) == (None, None)

        for body in (["not", "a", "dict"], "text", {"response": []}):
            listing = FakeHttp({"https://archive.org/advancedsearch.php": body})
            assert await ArchiveOrgAdapter(spec, listing).search("moon", 5) == []


class TestNewspapers:
    @pytest.mark.asyncio
    async def test_chronicling_america_page_mapping(self):
        api_url = "https://chroniclingamerica.loc.gov/lccn/sn83030214/1969-07-21/ed-1/seq-1.json"
        http = FakeHttp(
            {
                "https://chroniclingamerica.loc.gov/": {
                    "items": [
                        {
                            "url": api_url,
                            "title": "Evening Star",
                            "date": "19690721",
                            "ocr_eng": "MAN WALKS ON MOON " * 100,
                        },
                        {"title": "no url"},
                    ]
                }
            }
        )
        spec = make_spec(
            "chronicling_america",
            MediaType.NEWSPAPER,
            kind=SourceKind.CHRONICLING_AMERICA,
        )
        [h] = await ChroniclingAmericaAdapter(spec, http).search("moon landing", 10)
        assert h.url == "https://chroniclingamerica.loc.gov/lccn/sn83030214/1969-07-21/ed-1/seq-1/"
        assert h.thumbnail_url.endswith("/seq-1/thumbnail.jpg")
        assert h.title == "Evening Star (1969-07-21)"
        assert h.published_date == datetime(1969, 7, 21)
        assert len(h.snippet) <= 500
        assert http.requests[0][1]["andtext"] == "moon landing"

    @pytest.mark.asyncio
    async def test_europeana_without_key_is_degraded(self):
        spec = make_spec("europeana_newspapers", MediaType.NEWSPAPER, kind=SourceKind.EUROPEANA)
        with pytest.raises(CapabilityDegradedError):
            await EuropeanaAdapter(spec, FakeHttp({}), api_key="").search("moon", 5)

    @pytest.mark.asyncio
    async def test_europeana_mapping(self):
        http = FakeHttp(
            {
                "https://api.europeana.eu/": {
                    "items": [
                        {
                            "guid": "https://www.europeana.eu/item/9200338/1",
                            "title": ["Le Petit Journal"],
                            "edmPreview": ["https://api.europeana.eu/thumbnail/1.jpg"],
                            "year": ["1969"],
                        }
                    ]
                }
            }
        )
        spec = make_spec("europeana_newspapers", MediaType.NEWSPAPER, kind=SourceKind.EUROPEANA)
        [h] = await EuropeanaAdapter(spec, http, api_key="k").search("lune", 5)
        assert h.url == "https://www.europeana.eu/item/9200338/1"
        assert h.title == "Le Petit Journal"
        assert h.published_date.year == 1969
        assert http.requests[0][1]["qf"] == "TYPE:TEXT"

    @pytest.mark.asyncio
    async def test_malformed_newspaper_payloads_yield_no_hits(self):
        spec = make_spec("chronicling_america", MediaType.NEWSPAPER, kind=SourceKind.CHRONICLING_AMERICA)
        for body in ([], "oops", {"items": {"url": "x"}}):
            http = FakeHttp({"https://chroniclingamerica.loc.gov/": body})
            assert await ChroniclingAmericaAdapter(spec, http).search("moon", 5) == []

        http = FakeHttp(
            {
                "https://chroniclingamerica.loc.gov/": {
                    "items": [{"url": 42}, {"url": "https://chroniclingamerica.loc.gov/p.json", "date": 1969}]
                }
            }
        )
        [h] = await ChroniclingAmericaAdapter(spec, http).search("moon", 5)
        assert h.title == "Newspaper page (1969)"

    @pytest.mark.asyncio
    async def test_europeana_string_fields_are_not_split(self):
        http = FakeHttp(
            {
                "https://api.europeana.eu/": {
                    "items": [{"guid": "https://www.europeana.eu/item/1", "title": "Le Matin", "year": 1969}]
                }
            }
        )
        spec = make_spec("europeana_newspapers", MediaType.NEWSPAPER, kind=SourceKind.EUROPEANA)
        [h] = await EuropeanaAdapter(spec, http, api_key="k").search("lune", 5)
        assert h.title == "Le Matin"
        assert h.published_date.year == 1969


class TestCatalog:
    def test_names_unique_and_every_type_covered(self):
        index = catalog_index()
        assert len(index) == len(SOURCE_CATALOG)
        assert {s.media_type for s in SOURCE_CATALOG} == set(MediaType)

    def test_duplicate_names_rejected(self):
        spec = make_spec("dup")
        with pytest.raises(ValueError):
            catalog_index([spec, spec])

    def test_public_domain_archives_rank_first(self):
        index = catalog_index()
        assert index["archive_org_video"].tier == SourceTier.ARCHIVAL_PUBLIC_DOMAIN
        assert index["chronicling_america"].license == License.PUBLIC_DOMAIN

    def test_builder_skips_disabled_and_keyless_sources(self):
        clients = SourceClients(
            searxng=FakeSearXNG([]),
            archive=FakeHttp({}),
            loc=FakeHttp({}),
            europeana=FakeHttp({}),
            europeana_api_key="",
        )
        adapters = build_source_adapters(
            clients, [MediaType.NEWSPAPER], disabled=["archive_org_newspapers"]
        )
        names = [a.name for a in adapters[MediaType.NEWSPAPER]]
        assert set(adapters) == {MediaType.NEWSPAPER}
        assert names[0] == "chronicling_america"
        assert "archive_org_newspapers" not in names
        assert "europeana_newspapers" not in names

    def test_builder_uses_kind_specific_adapters(self):
        clients = SourceClients(
            searxng=FakeSearXNG([]),
            archive=FakeHttp({}),
            loc=FakeHttp({}),
            europeana=FakeHttp({}),
            europeana_api_key="key",
        )
        adapters = build_source_adapters(clients, disabled=[])
        by_name = {a.name: a for mt in adapters for a in adapters[mt]}
        assert isinstance(by_name["archive_org_video"], ArchiveOrgAdapter)
        assert isinstance(by_name["searxng_video"], SearXNGCategoryAdapter)
        assert isinstance(by_name["british_pathe"], SiteSearchAdapter)
        assert isinstance(by_name["europeana_newspapers"], EuropeanaAdapter)
        assert len(by_name) == len(SOURCE_CATALOG)


def test_parse_duration_formats():
    assert parse_duration("1:02:03") == 3723
    assert parse_duration("02:30") == 150
    assert parse_duration(42) == 42.0
    assert parse_duration("n/a") is None
