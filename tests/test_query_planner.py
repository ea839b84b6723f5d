import asyncio

import pytest

from mediamind.core.exceptions import PlannerError
from mediamind.models.base import MediaType
from mediamind.services.query_planning import PlannerConfig, QueryPlanner

ALL_TYPES = list(MediaType)


class FakeLLM:
    def __init__(self, response=None, error=None, delay=0.0):
        self.response = response
        self.error = error
        self.delay = delay
        self.prompts = []
        self.is_available = True

    async def generate_structured_output(self, prompt, schema, **kwargs):
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.response


def _planner(llm=None, **cfg):
    return QueryPlanner(llm=llm, config=PlannerConfig(**cfg))


class TestFallback:
    def test_templates_for_every_type(self):
        plan = _planner().fallback_plan("1969 moon landing", ALL_TYPES)
        assert plan.source == "fallback"
        assert plan.for_type(MediaType.VIDEO) == [
            "1969 moon landing documentary explaining",
            "1969 moon landing historical footage",
            "1969 moon landing news coverage report",
        ]
        assert plan.for_type(MediaType.IMAGE)[0] == "1969 moon landing historical photographs"
        assert plan.for_type(MediaType.NEWSPAPER) == ["1969 moon landing"]
        for mt in ALL_TYPES:
            assert plan.for_type(mt) and all(q.strip() for q in plan.for_type(mt))

    def test_total_for_blank_topic_and_missing_templates(self):
        planner = _planner(templates={})
        plan = planner.fallback_plan("   ", ALL_TYPES)
        for mt in ALL_TYPES:
            assert plan.for_type(mt) == ["history"]

    def test_respects_cap(self):
        plan = _planner(max_queries_per_type=1).fallback_plan("Berlin Wall", [MediaType.VIDEO])
        assert plan.for_type(MediaType.VIDEO) == ["Berlin Wall documentary explaining"]


class TestLLMPath:
    @pytest.mark.asyncio
    async def test_uses_llm_queries_and_fills_missing_types(self):
        llm = FakeLLM(
            {
                "topic_type": "historical_event",
                "video_queries": ["Apollo 11 launch footage", "apollo 11 LAUNCH footage", "Armstrong first step"],
                "image_queries": [],
            }
        )
        plan = await _planner(llm).plan("1969 moon landing", [MediaType.VIDEO, MediaType.IMAGE])
        assert plan.source == "mixed"
        assert plan.topic_type == "historical_event"
        assert plan.for_type(MediaType.VIDEO) == ["Apollo 11 launch footage", "Armstrong first step"]
        assert plan.for_type(MediaType.IMAGE)[0] == "1969 moon landing historical photographs"
        assert "1969 moon landing" in llm.prompts[0]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "llm",
        [
            FakeLLM(error=ValueError("Structured generation failed")),
            FakeLLM(error=RuntimeError("OPENAI_API_KEY is not set")),
            FakeLLM(response=["not", "an", "object"]),
            FakeLLM(response={"video_queries": [1, None, ""], "image_queries": "nope"}),
        ],
    )
    async def test_any_failure_falls_back_to_templates(self, llm):
        plan = await _planner(llm).plan("Chernobyl", ALL_TYPES)
        assert plan.source == "fallback"
        for mt in ALL_TYPES:
            assert plan.for_type(mt)

    @pytest.mark.asyncio
    async def test_timeout_falls_back(self):
        llm = FakeLLM(response={"video_queries": ["late"]}, delay=1.0)
        plan = await _planner(llm, timeout_sec=0.05).plan("Chernobyl", [MediaType.VIDEO])
        assert plan.source == "fallback"
        assert plan.for_type(MediaType.VIDEO)[0] == "Chernobyl documentary explaining"

    @pytest.mark.asyncio
    async def test_disabled_or_unavailable_llm_is_not_called(self):
        llm = FakeLLM(response={"video_queries": ["x"]})
        await _planner(llm, enable_llm=False).plan("Chernobyl", [MediaType.VIDEO])
        llm.is_available = False
        await _planner(llm).plan("Chernobyl", [MediaType.VIDEO])
        assert llm.prompts == []

    def test_unusable_output_raises_planner_error(self):
        planner = _planner()
        fallback = planner.fallback_plan("Chernobyl", [MediaType.VIDEO])
        with pytest.raises(PlannerError):
            planner._merge("free text", fallback, [MediaType.VIDEO])
        with pytest.raises(PlannerError):
            planner._merge({"video_queries": []}, fallback, [MediaType.VIDEO])
