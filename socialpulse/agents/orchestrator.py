from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, AsyncGenerator
from uuid import uuid4

from pydantic import ValidationError

from socialpulse.config import settings
from socialpulse.errors import ParseFailure, UpstreamFailure
from socialpulse.llm_client import LLMClient, LLMMode, client as llm_client
from socialpulse.models import steps
from socialpulse.models.events import Section, StreamEvent
from socialpulse.models.schemas import AnalysisRequest, Mention, SentimentSummary
from socialpulse.services import logger as log_service
from socialpulse.services import streaming
from socialpulse.services.json_extract import parse_json, parse_json_fields
from socialpulse.services.prompt_store import render_prompt
from socialpulse.services.ranking import rank_complaints

RESEARCH_STEP = "research"
SENTIMENT_STEP = "sentiment"
COMPLAINTS_STEP = "complaints"
CONTENT_STEP = "content"


@dataclass
class ResearchFindings:
    """Stage 1 output shared read-only with the later stages."""

    mentions: list[Mention] = field(default_factory=list)
    themes: list[str] = field(default_factory=list)
    summary: SentimentSummary = field(default_factory=SentimentSummary)

    def mentions_json(self, limit: int | None = None) -> str:
        selected = self.mentions if limit is None else self.mentions[:limit]
        return json.dumps([m.model_dump(by_alias=True) for m in selected], indent=2)


class AnalysisOrchestrator:
    """Runs the analysis pipeline for one request.

    Flow:
      1. Research: search-augmented call, extract mentions and sentiment summary
      2. Complaints: rank negative/neutral mentions and draft replies
      3. Content: draft an article from the research themes

    Stages run one after another. Each stage is its own failure boundary: a
    failed stage yields an ``error`` event and later stages run with no
    research context. Exactly one ``done`` event closes the stream.
    """

    def __init__(self, llm: LLMClient | None = None, run_id: str | None = None):
        self.llm = llm
        self.run_id = run_id or uuid4().hex[:12]
        self.first_frame_delay_ms = max(int(settings.first_frame_delay_ms), 0)
        self.sample_mentions = max(int(settings.research_sample_mentions), 1)
        self._findings: ResearchFindings | None = None

    def _client(self) -> LLMClient:
        return self.llm or llm_client()

    async def _guarded(
        self,
        step: str,
        label: str,
        stage: AsyncGenerator[StreamEvent, None],
    ) -> AsyncGenerator[StreamEvent, None]:
        log_service.log_stage(self.run_id, step, "started")
        try:
            async for event in stage:
                yield event
        except (ParseFailure, UpstreamFailure) as e:
            log_service.log_stage(self.run_id, step, "failed", {"error": str(e)})
            yield streaming.error(step, f"{label} failed: {e}")
            return
        except ValidationError as e:
            log_service.log_stage(self.run_id, step, "failed", {"error": str(e)})
            shape = f"model output did not match the expected shape ({e.error_count()} errors)"
            yield streaming.error(step, f"{label} failed: {shape}")
            return
        except Exception as e:
            log_service.run_logger(self.run_id).exception("Unexpected error in {} stage", step)
            log_service.log_stage(self.run_id, step, "failed", {"error": str(e)})
            yield streaming.error(step, f"{label} failed: {e}")
            return
        log_service.log_stage(self.run_id, step, "completed")

    # ------------------------------------------------------------------
    # Stage 1: research & sentiment
    # ------------------------------------------------------------------

    @staticmethod
    def _build_findings(data: dict[str, Any]) -> ResearchFindings:
        raw_mentions = data.get("mentions") or []
        mentions = [
            Mention.model_validate(item)
            for item in (raw_mentions if isinstance(raw_mentions, list) else [])
            if isinstance(item, dict)
        ]
        breakdown = data.get("sentimentBreakdown")
        if not isinstance(breakdown, dict):
            breakdown = {}
        summary_fields = {
            "positive": breakdown.get("positive"),
            "neutral": breakdown.get("neutral"),
            "negative": breakdown.get("negative"),
            "totalMentions": data.get("totalMentions"),
            "estimatedAccounts": data.get("estimatedAccounts"),
            "platforms": data.get("platformBreakdown"),
            "themes": data.get("keyThemes"),
            "trend": data.get("trend"),
            "painPoints": data.get("painPoints"),
            "competitors": data.get("competitors"),
            "keyInsights": data.get("keyInsights"),
        }
        summary = SentimentSummary.model_validate(summary_fields)
        return ResearchFindings(mentions=mentions, themes=list(summary.themes), summary=summary)

    async def _research(self, request: AnalysisRequest) -> AsyncGenerator[StreamEvent, None]:
        yield streaming.progress(
            RESEARCH_STEP, steps.SEARCH_FORUMS.label, steps.SEARCH_FORUMS.key
        )
        # Lets the consumer paint the first frame before the long call starts.
        if self.first_frame_delay_ms:
            await asyncio.sleep(self.first_frame_delay_ms / 1000)
        yield streaming.progress(RESEARCH_STEP, steps.SCAN_SOCIAL.label, steps.SCAN_SOCIAL.key)

        text = await self._client().complete(
            LLMMode.RESEARCH,
            render_prompt("research.prompt", topic=request.topic),
            search=True,
        )
        findings = self._build_findings(parse_json_fields(text))
        self._findings = findings

        mention_count = findings.summary.total_mentions or len(findings.mentions)
        yield streaming.progress(
            SENTIMENT_STEP,
            f"Analyzing sentiment across {mention_count} mentions...",
            steps.ANALYZE_SENTIMENT.key,
        )
        if request.options.sentiment:
            yield streaming.result(
                Section.SENTIMENT, findings.summary.model_dump(by_alias=True)
            )

    # ------------------------------------------------------------------
    # Stage 2: complaint ranking & reply drafts
    # ------------------------------------------------------------------

    def _complaints_prompt(self, topic: str) -> str:
        if self._findings is not None:
            context = render_prompt(
                "complaints.with_research", mentions=self._findings.mentions_json()
            )
        else:
            context = render_prompt("complaints.without_research", topic=topic)
        return render_prompt("complaints.prompt", topic=topic, context=context)

    async def _complaints(self, request: AnalysisRequest) -> AsyncGenerator[StreamEvent, None]:
        yield streaming.progress(
            COMPLAINTS_STEP, steps.RANK_COMPLAINTS.label, steps.RANK_COMPLAINTS.key
        )
        text = await self._client().complete(
            LLMMode.RANKING, self._complaints_prompt(request.topic)
        )
        data = parse_json_fields(text)
        complaints = rank_complaints(data.get("complaints"))
        log_service.log_event(
            event_type="complaints_ranked",
            message="Complaints ranked",
            run_id=self.run_id,
            count=len(complaints),
            with_research=self._findings is not None,
        )

        yield streaming.progress(
            COMPLAINTS_STEP,
            f"Drafting replies for {len(complaints)} complaints...",
            steps.DRAFT_REPLIES.key,
        )
        yield streaming.result(
            Section.COMPLAINTS, [c.model_dump(by_alias=True) for c in complaints]
        )

    # ------------------------------------------------------------------
    # Stage 3: content drafting
    # ------------------------------------------------------------------

    def _content_prompt(self, topic: str) -> str:
        context = ""
        if self._findings is not None:
            context = render_prompt(
                "content.with_research",
                themes=json.dumps(self._findings.themes),
                mentions=self._findings.mentions_json(limit=self.sample_mentions),
            )
        return render_prompt("content.prompt", topic=topic, context=context)

    async def _content(self, request: AnalysisRequest) -> AsyncGenerator[StreamEvent, None]:
        yield streaming.progress(CONTENT_STEP, steps.WRITE_CONTENT.label, steps.WRITE_CONTENT.key)
        text = await self._client().complete(
            LLMMode.DRAFTING, self._content_prompt(request.topic)
        )
        data = parse_json(text)
        markdown = data.get("markdown") if isinstance(data, dict) else None
        if not isinstance(markdown, str) or not markdown.strip():
            markdown = text
        yield streaming.result(Section.CONTENT, {"markdown": markdown})

    # ------------------------------------------------------------------

    async def analyze(self, request: AnalysisRequest) -> AsyncGenerator[StreamEvent, None]:
        """Run every selected stage, yielding stream events as they happen."""
        options = request.options
        self._findings = None
        log_service.log_event(
            event_type="analysis_started",
            message="Analysis started",
            run_id=self.run_id,
            topic=request.topic[:100],
            options=options.model_dump(),
        )

        if options.research:
            async for event in self._guarded(RESEARCH_STEP, "Research", self._research(request)):
                yield event

        if options.complaints:
            async for event in self._guarded(
                COMPLAINTS_STEP, "Complaints analysis", self._complaints(request)
            ):
                yield event

        if options.content:
            async for event in self._guarded(
                CONTENT_STEP, "Content generation", self._content(request)
            ):
                yield event

        log_service.log_event(
            event_type="analysis_completed",
            message="Analysis completed",
            run_id=self.run_id,
        )
        yield streaming.done()
