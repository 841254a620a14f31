"""Tests for the analysis pipeline orchestrator."""
import copy
import json

import pytest

from conftest import RESEARCH_PAYLOAD, FakeLLM, fenced
from socialpulse.agents.orchestrator import AnalysisOrchestrator
from socialpulse.llm_client import LLMMode
from socialpulse.models.events import EventType
from socialpulse.models.schemas import AnalysisOptions, AnalysisRequest


def make_request(**options) -> AnalysisRequest:
    return AnalysisRequest(topic="Pricing", options=AnalysisOptions(**options))


async def collect(llm, request):
    orchestrator = AnalysisOrchestrator(llm=llm)
    orchestrator.first_frame_delay_ms = 0
    return [event async for event in orchestrator.analyze(request)]


def payloads(events):
    return [e.payload() for e in events]


class TestStageSelection:
    @pytest.mark.asyncio
    async def test_sentiment_only_stream_shape(self, fake_llm):
        events = await collect(fake_llm, make_request(sentiment=True))
        types = [e.type for e in events]

        results = [e for e in events if e.type is EventType.RESULT]
        assert [r.data["section"] for r in results] == ["sentiment"]
        assert types[-1] is EventType.DONE
        assert types.count(EventType.DONE) == 1
        assert all(t is EventType.PROGRESS for t in types[: types.index(EventType.RESULT)])
        assert fake_llm.complete.await_count == 1

    @pytest.mark.asyncio
    async def test_complaints_without_sentiment_still_runs_research(self, fake_llm):
        events = await collect(fake_llm, make_request(complaints=True))
        sections = [e.data["section"] for e in events if e.type is EventType.RESULT]
        assert sections == ["complaints"]
        assert [c.args[0] for c in fake_llm.complete.await_args_list] == [
            LLMMode.RESEARCH,
            LLMMode.RANKING,
        ]

    @pytest.mark.asyncio
    async def test_nothing_selected_emits_only_done(self, fake_llm):
        events = await collect(fake_llm, make_request())
        assert payloads(events) == [{"type": "done"}]
        fake_llm.complete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_all_sections_in_stage_order(self, fake_llm):
        events = await collect(fake_llm, make_request(sentiment=True, complaints=True, content=True))
        sections = [e.data["section"] for e in events if e.type is EventType.RESULT]
        assert sections == ["sentiment", "complaints", "content"]
        assert not [e for e in events if e.type is EventType.ERROR]


class TestResearchStage:
    @pytest.mark.asyncio
    async def test_research_uses_search_and_passes_values_through(self, fake_llm):
        events = await collect(fake_llm, make_request(sentiment=True))
        call = fake_llm.complete.await_args_list[0]
        assert call.kwargs["search"] is True
        assert "Pricing" in call.args[1]

        sentiment = next(e for e in events if e.type is EventType.RESULT).data["data"]
        assert (sentiment["positive"], sentiment["neutral"], sentiment["negative"]) == (40, 25, 35)
        assert sentiment["platforms"][0] == {"name": "Reddit", "count": 1}
        assert sentiment["themes"] == ["Pricing concerns", "Easy setup"]
        assert sentiment["trend"] == "Declining"
        assert sentiment["competitors"][0]["name"] == "Airbyte"
        assert sentiment["keyInsights"] == "Pricing dominates the conversation."

    @pytest.mark.asyncio
    async def test_progress_messages(self, fake_llm):
        events = await collect(fake_llm, make_request(sentiment=True))
        progress = [e.data for e in events if e.type is EventType.PROGRESS]
        assert [p["message"] for p in progress] == [
            "Searching Reddit & forums...",
            "Scanning X and tech blogs...",
            "Analyzing sentiment across 2 mentions...",
        ]
        assert [p["step"] for p in progress] == ["research", "research", "sentiment"]
        assert progress[2]["stepId"] == "research.sentiment"

    @pytest.mark.asyncio
    async def test_missing_summary_fields_get_defaults(self):
        llm = FakeLLM({LLMMode.RESEARCH: json.dumps({"mentions": [], "trend": None})})
        events = await collect(llm, make_request(sentiment=True))
        sentiment = next(e for e in events if e.type is EventType.RESULT).data["data"]
        assert sentiment["positive"] == 0
        assert sentiment["trend"] == "Stable"
        assert sentiment["painPoints"] == []
        assert sentiment["keyInsights"] == ""


class TestComplaintsStage:
    @pytest.mark.asyncio
    async def test_complaints_are_ranked_and_sanitized(self, fake_llm):
        events = await collect(fake_llm, make_request(complaints=True))
        complaints = next(e for e in events if e.type is EventType.RESULT).data["data"]

        assert [c["id"] for c in complaints] == [1, 2]
        top, bottom = complaints
        assert top["source"] == "Reddit"
        assert top["severity"] == "Critical"
        assert top["sourceUrl"] == ""  # subreddit root
        assert top["draftReply"] == "Sorry about the surprise bill."
        assert bottom["source"] == "Documentation"
        assert bottom["sourceUrl"] == "https://docs.example.com/connectors/postgres"
        assert bottom["draftReply"] == ""

    @pytest.mark.asyncio
    async def test_research_mentions_are_injected(self, fake_llm):
        await collect(fake_llm, make_request(complaints=True))
        prompt = fake_llm.prompt_for(LLMMode.RANKING)
        assert "Here are the research findings" in prompt
        assert "https://news.ycombinator.com/item?id=12345678" in prompt

    @pytest.mark.asyncio
    async def test_drafting_progress_counts_complaints(self, fake_llm):
        events = await collect(fake_llm, make_request(complaints=True))
        messages = [e.data["message"] for e in events if e.type is EventType.PROGRESS]
        assert "Ranking complaints by severity..." in messages
        assert "Drafting replies for 2 complaints..." in messages


class TestFailureIsolation:
    @pytest.mark.asyncio
    async def test_research_failure_degrades_complaints(self, failing_research_llm):
        events = await collect(failing_research_llm, make_request(complaints=True))
        kinds = [(e.type, e.data.get("step") or e.data.get("section")) for e in events]

        error_at = kinds.index((EventType.ERROR, "research"))
        result_at = kinds.index((EventType.RESULT, "complaints"))
        assert error_at < result_at
        assert kinds[-1] == (EventType.DONE, None)
        assert "overloaded_error" in events[error_at].data["message"]

        prompt = failing_research_llm.prompt_for(LLMMode.RANKING)
        assert "No prior research was provided" in prompt

    @pytest.mark.asyncio
    async def test_parse_failure_in_one_stage_does_not_stop_the_next(self):
        llm = FakeLLM({LLMMode.RANKING: "Sorry, I cannot help with that."})
        events = await collect(llm, make_request(complaints=True, content=True))
        errors = [e.data for e in events if e.type is EventType.ERROR]
        assert [e["step"] for e in errors] == ["complaints"]
        assert errors[0]["message"].startswith("Complaints analysis failed:")
        sections = [e.data["section"] for e in events if e.type is EventType.RESULT]
        assert sections == ["content"]

    @pytest.mark.asyncio
    async def test_every_stage_failing_still_ends_with_one_done(self):
        boom = RuntimeError("boom")
        llm = FakeLLM({LLMMode.RESEARCH: boom, LLMMode.RANKING: boom, LLMMode.DRAFTING: boom})
        events = await collect(llm, make_request(sentiment=True, complaints=True, content=True))
        assert [e.data.get("step") for e in events if e.type is EventType.ERROR] == [
            "research",
            "complaints",
            "content",
        ]
        assert [e.type for e in events].count(EventType.DONE) == 1
        assert events[-1].type is EventType.DONE


class TestContentStage:
    @pytest.mark.asyncio
    async def test_markdown_extracted_from_prose(self, fake_llm):
        events = await collect(fake_llm, make_request(content=True))
        content = next(e for e in events if e.type is EventType.RESULT).data["data"]
        assert content == {"markdown": "# Pricing, explained\n\nWe hear you."}

    @pytest.mark.asyncio
    async def test_missing_markdown_falls_back_to_raw_text(self):
        raw = fenced({"article": "# Title"})
        llm = FakeLLM({LLMMode.DRAFTING: raw})
        events = await collect(llm, make_request(content=True))
        content = next(e for e in events if e.type is EventType.RESULT).data["data"]
        assert content == {"markdown": raw}

    @pytest.mark.asyncio
    async def test_themes_and_samples_are_injected(self, fake_llm):
        await collect(fake_llm, make_request(content=True))
        prompt = fake_llm.prompt_for(LLMMode.DRAFTING)
        assert '["Pricing concerns", "Easy setup"]' in prompt
        assert "The MAR pricing surprised us" in prompt


def research_with(mutate) -> str:
    payload = copy.deepcopy(RESEARCH_PAYLOAD)
    mutate(payload)
    return json.dumps(payload)


def lookup(data, path):
    for part in path:
        data = data[part]
    return data


class TestModelOutputTolerance:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "mutate, path, expected",
        [
            pytest.param(
                lambda p: p["painPoints"][0].update(frequency=None),
                ("painPoints", 0, "frequency"),
                0,
                id="null-frequency",
            ),
            pytest.param(
                lambda p: p["competitors"][0].update(mentions="5+"),
                ("competitors", 0, "mentions"),
                "5+",
                id="string-mentions",
            ),
            pytest.param(
                lambda p: p["sentimentBreakdown"].update(positive="60%"),
                ("positive",),
                "60%",
                id="percent-string",
            ),
            pytest.param(
                lambda p: p.update(totalMentions=31.5),
                ("totalMentions",),
                31.5,
                id="fractional-total",
            ),
        ],
    )
    async def test_loose_summary_values_pass_through(self, mutate, path, expected):
        llm = FakeLLM({LLMMode.RESEARCH: research_with(mutate)})
        events = await collect(llm, make_request(sentiment=True, complaints=True))

        assert not [e for e in events if e.type is EventType.ERROR]
        sentiment = next(e for e in events if e.type is EventType.RESULT).data["data"]
        assert lookup(sentiment, path) == expected
        assert "Here are the research findings" in llm.prompt_for(LLMMode.RANKING)

    @pytest.mark.asyncio
    async def test_stray_list_entries_are_skipped(self):
        def mutate(p):
            p["painPoints"].append("not a record")
            p["platformBreakdown"] = {"Reddit": 1}
            p["keyThemes"].append(None)

        events = await collect(
            FakeLLM({LLMMode.RESEARCH: research_with(mutate)}), make_request(sentiment=True)
        )
        sentiment = next(e for e in events if e.type is EventType.RESULT).data["data"]
        assert len(sentiment["painPoints"]) == 1
        assert sentiment["platforms"] == []
        assert sentiment["themes"] == ["Pricing concerns", "Easy setup"]

    @pytest.mark.asyncio
    async def test_shape_mismatch_is_a_one_line_research_error(self):
        llm = FakeLLM(
            {LLMMode.RESEARCH: research_with(lambda p: p["painPoints"][0].update(title=["a", "b"]))}
        )
        events = await collect(llm, make_request(sentiment=True, complaints=True))

        error = next(e for e in events if e.type is EventType.ERROR)
        assert error.data["step"] == "research"
        assert "did not match the expected shape" in error.data["message"]
        assert "\n" not in error.data["message"]
        assert [e.data["section"] for e in events if e.type is EventType.RESULT] == ["complaints"]

    @pytest.mark.asyncio
    async def test_bare_array_from_ranking_gives_empty_complaints(self, fake_llm):
        fake_llm.responses[LLMMode.RANKING] = '[{"text": "orphan"}]'
        events = await collect(fake_llm, make_request(complaints=True))

        assert not [e for e in events if e.type is EventType.ERROR]
        complaints = next(e for e in events if e.type is EventType.RESULT).data
        assert complaints == {"section": "complaints", "data": []}

    @pytest.mark.asyncio
    async def test_bare_array_from_research_gives_default_summary(self, fake_llm):
        fake_llm.responses[LLMMode.RESEARCH] = "[]"
        events = await collect(fake_llm, make_request(sentiment=True))

        assert not [e for e in events if e.type is EventType.ERROR]
        sentiment = next(e for e in events if e.type is EventType.RESULT).data["data"]
        assert sentiment["totalMentions"] == 0
        assert sentiment["trend"] == "Stable"
