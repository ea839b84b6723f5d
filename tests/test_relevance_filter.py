import pytest

from mediamind.core.exceptions import ScoringError
from mediamind.models.base import License, MediaType, SourceTier
from mediamind.models.media import CanonicalRecord
from mediamind.services.relevance_filter import BlacklistFilter, RelevanceFilter
from mediamind.services.relevance_scoring import (
    RelevanceJudgment,
    RelevanceScorer,
    parse_judgments,
)


def record(title: str, n: int, media_type: MediaType = MediaType.VIDEO) -> CanonicalRecord:
    url = f"https://example.org/{n}"
    return CanonicalRecord(
        url=url,
        canonical_url=url,
        title=title,
        source_name="example",
        media_type=media_type,
        tier=SourceTier.GENERAL_WEB,
        license=License.UNKNOWN,
    )


class TableScorer(RelevanceScorer):
    """Scores by title lookup; optionally fails batches holding a given title."""

    def __init__(self, scores, fail_on=None, omit=()):
        self.scores = scores
        self.fail_on = fail_on
        self.omit = set(omit)
        self.batches = []

    async def score_batch(self, topic, candidates):
        self.batches.append([c.id for c in candidates])
        if self.fail_on and any(self.fail_on in c.text for c in candidates):
            raise ScoringError("scorer unavailable")
        out = []
        for c in candidates:
            title = c.text.split(". ")[0]
            if title in self.omit:
                continue
            relevant, score = self.scores.get(title, (True, 1.0))
            out.append(RelevanceJudgment(id=c.id, relevant=relevant, score=score))
        return out


class TestBlacklist:
    def test_rejects_listed_terms_case_insensitively(self):
        bl = BlacklistFilter()
        assert not bl.is_allowed("Moon Landing UNBOXING", "1969 moon landing")
        assert not bl.is_allowed("Apollo 11 reaction video", "1969 moon landing")
        assert bl.is_allowed("Apollo 11 launch footage", "1969 moon landing")

    def test_term_in_topic_is_exempt(self):
        bl = BlacklistFilter()
        assert not bl.is_allowed("Bitcoin price history", "Berlin Wall")
        assert bl.is_allowed("Bitcoin price history", "history of bitcoin")

    def test_extra_terms_from_environment(self, monkeypatch):
        monkeypatch.setenv("RELEVANCE_BLACKLIST_EXTRA", "Conspiracy, hoax ")
        bl = BlacklistFilter(terms=[])
        assert not bl.is_allowed("Moon landing hoax explained", "moon landing")
        assert bl.is_allowed("Moon landing footage", "moon landing")


class TestRelevanceFilter:
    @pytest.mark.asyncio
    async def test_blacklist_only_when_no_scorer(self):
        records = [record("Apollo 11 footage", 1), record("Moon prank", 2), record("Saturn V launch", 3)]
        report = await RelevanceFilter(None).apply("1969 moon landing", records)
        assert [r.title for r in report.kept] == ["Apollo 11 footage", "Saturn V launch"]
        assert report.rejected_blacklist == 1
        assert report.scored is False
        assert all(r.relevance_score is None for r in report.kept)

    @pytest.mark.asyncio
    async def test_threshold_boundary_is_inclusive(self):
        scorer = TableScorer({"edge": (True, 0.5), "below": (True, 0.49), "denied": (False, 0.9)})
        records = [record("edge", 1), record("below", 2), record("denied", 3)]
        report = await RelevanceFilter(scorer, threshold=0.5).apply("topic", records)
        assert [r.title for r in report.kept] == ["edge"]
        assert report.kept[0].relevance_score == 0.5
        assert report.rejected_scoring == 2

    @pytest.mark.asyncio
    async def test_failed_batch_rejects_only_that_batch(self):
        scorer = TableScorer({}, fail_on="poison")
        records = [record("a", 1), record("poison", 2), record("c", 3), record("d", 4)]
        report = await RelevanceFilter(scorer, batch_size=2).apply("topic", records)
        assert [r.title for r in report.kept] == ["c", "d"]
        assert report.scoring_failures == 2
        assert report.rejected_scoring == 2
        assert scorer.batches == [["0", "1"], ["2", "3"]]

    @pytest.mark.asyncio
    async def test_missing_judgment_counts_as_not_relevant(self):
        scorer = TableScorer({}, omit={"skipped"})
        report = await RelevanceFilter(scorer).apply("topic", [record("kept", 1), record("skipped", 2)])
        assert [r.title for r in report.kept] == ["kept"]

    @pytest.mark.asyncio
    async def test_output_preserves_input_order_across_batches(self):
        scorer = TableScorer({})
        records = [record(f"t{i}", i) for i in range(7)]
        report = await RelevanceFilter(scorer, batch_size=3).apply("topic", records)
        assert [r.title for r in report.kept] == [f"t{i}" for i in range(7)]
        assert len(scorer.batches) == 3

    @pytest.mark.asyncio
    async def test_unscored_media_types_pass_through(self):
        scorer = TableScorer({"clip": (False, 0.0)})
        records = [record("clip", 1), record("page", 2, MediaType.NEWSPAPER)]
        rf = RelevanceFilter(scorer, scoring_media_types=[MediaType.VIDEO])
        report = await rf.apply("topic", records)
        assert [r.title for r in report.kept] == ["page"]
        assert report.kept[0].relevance_score is None


class TestParseJudgments:
    def test_accepts_results_object_and_confidence_alias(self):
        out = parse_judgments(
            {
                "results": [
                    {"id": 0, "relevant": True, "confidence": 0.8},
                    {"id": "1", "relevant": "yes", "score": 2},
                    {"id": "2", "error": "image fetch failed"},
                    {"relevant": True, "score": 1},
                ]
            }
        )
        assert [(j.id, j.relevant, j.score) for j in out] == [("0", True, 0.8), ("1", False, 1.0)]

    def test_accepts_bare_list(self):
        assert parse_judgments([{"id": "a", "relevant": True, "score": 0.7}])[0].id == "a"

    def test_missing_results_raises(self):
        with pytest.raises(ScoringError):
            parse_judgments({"items": []})
