import json
from unittest.mock import AsyncMock

import pytest

from socialpulse.errors import UpstreamFailure
from socialpulse.llm_client import LLMMode

RESEARCH_PAYLOAD = {
    "mentions": [
        {
            "platform": "Reddit",
            "url": "https://www.reddit.com/r/dataengineering/comments/abc123/pricing_is_insane/",
            "text": "The MAR pricing surprised us after a resync.",
            "sentiment": "negative",
            "engagement": "212 upvotes",
            "author": "etl_dev",
        },
        {
            "platform": "HackerNews",
            "url": "https://news.ycombinator.com/item?id=12345678",
            "text": "Setup took ten minutes, very smooth.",
            "sentiment": "positive",
            "engagement": "",
            "author": "",
        },
    ],
    "sentimentBreakdown": {"positive": 40, "neutral": 25, "negative": 35},
    "totalMentions": 2,
    "estimatedAccounts": 2,
    "platformBreakdown": [{"name": "Reddit", "count": 1}, {"name": "HackerNews", "count": 1}],
    "keyThemes": ["Pricing concerns", "Easy setup"],
    "trend": "Declining",
    "painPoints": [{"title": "Unpredictable Pricing", "description": "Bills spike.", "frequency": 1}],
    "competitors": [{"name": "Airbyte", "mentions": 1, "context": "Cheaper."}],
    "keyInsights": "Pricing dominates the conversation.",
}

COMPLAINTS_PAYLOAD = {
    "complaints": [
        {
            "id": 1,
            "text": "Docs are outdated.",
            "source": "Documentation",
            "sourceUrl": "https://docs.example.com/connectors/postgres",
            "severity": "Low",
            "funnelStage": "Consideration",
            "draftReply": "Thanks, we will update them.",
        },
        {
            "id": 2,
            "text": "The MAR pricing surprised us after a resync.",
            "source": "Reddit",
            "sourceUrl": "https://www.reddit.com/r/dataengineering/",
            "severity": "Critical",
            "funnelStage": "Decision",
            "draftReply": "Sorry about the surprise bill.",
        },
    ]
}

CONTENT_PAYLOAD = {"markdown": "# Pricing, explained\n\nWe hear you."}


def fenced(payload) -> str:
    return f"```json\n{json.dumps(payload)}\n```"


class FakeLLM:
    """Stands in for LLMClient; responses keyed by mode."""

    def __init__(self, responses=None):
        self.responses = {
            LLMMode.RESEARCH: fenced(RESEARCH_PAYLOAD),
            LLMMode.RANKING: json.dumps(COMPLAINTS_PAYLOAD),
            LLMMode.DRAFTING: "Here is the article: " + json.dumps(CONTENT_PAYLOAD),
            **(responses or {}),
        }
        self.complete = AsyncMock(side_effect=self._complete)

    async def _complete(self, mode, prompt, *, search=False):
        response = self.responses[mode]
        if isinstance(response, Exception):
            raise response
        return response

    def prompt_for(self, mode) -> str:
        for call in self.complete.await_args_list:
            if call.args[0] is mode:
                return call.args[1]
        raise AssertionError(f"no call for {mode}")


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def failing_research_llm():
    return FakeLLM({LLMMode.RESEARCH: UpstreamFailure("research", "overloaded_error")})
