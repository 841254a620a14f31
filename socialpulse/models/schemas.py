from __future__ import annotations

from typing import Any, Literal, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Requests ---


class AnalysisOptions(BaseModel):
    sentiment: bool = False
    complaints: bool = False
    content: bool = Field(default=False, validation_alias=AliasChoices("content", "blog"))

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @property
    def research(self) -> bool:
        """Research runs whenever any later stage needs its output."""
        return self.sentiment or self.complaints or self.content


class AnalysisRequest(BaseModel):
    topic: str
    options: AnalysisOptions = AnalysisOptions()

    model_config = ConfigDict(frozen=True)

    @field_validator("topic")
    @classmethod
    def topic_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("topic must not be empty")
        return value


class BrainstormRequest(CamelModel):
    pain_point: str
    description: str = ""
    topic: str


# --- Pipeline data ---


Sentiment = Literal["positive", "neutral", "negative"]
Severity = Literal["Critical", "High", "Medium", "Low"]
FunnelStage = Literal["Awareness", "Consideration", "Decision"]
Team = Literal["Engineering", "Product", "Marketing", "Sales"]


class Mention(CamelModel):
    platform: str = ""
    url: str = ""
    text: str = ""
    sentiment: Sentiment = "neutral"
    engagement: str = ""
    author: str = ""

    @field_validator("sentiment", mode="before")
    @classmethod
    def normalize_sentiment(cls, value: Any) -> str:
        label = str(value or "").strip().lower()
        return label if label in ("positive", "neutral", "negative") else "neutral"

    @field_validator("platform", "url", "text", "engagement", "author", mode="before")
    @classmethod
    def none_to_empty(cls, value: Any) -> str:
        return "" if value is None else str(value)


# Counts and percentages come from the model as written ("60%", "5+", 31.5).
Number = Union[int, float, str]


class PassThroughModel(CamelModel):
    """Model output kept as-is; ``null`` falls back to the field default."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


def _records(value: Any) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


class PainPoint(PassThroughModel):
    title: str = ""
    description: str = ""
    frequency: Number = 0


class Competitor(PassThroughModel):
    name: str = ""
    mentions: Number = 0
    context: str = ""


class PlatformCount(PassThroughModel):
    name: str = ""
    count: Number = 0


class SentimentSummary(PassThroughModel):
    """Values are passed through from the model; percentages are not re-normalized."""

    positive: Number = 0
    neutral: Number = 0
    negative: Number = 0
    total_mentions: Number = 0
    estimated_accounts: Number = 0
    platforms: list[PlatformCount] = []
    themes: list[str] = []
    trend: str = "Stable"
    pain_points: list[PainPoint] = []
    competitors: list[Competitor] = []
    key_insights: str = ""

    @field_validator("platforms", "pain_points", "competitors", mode="before")
    @classmethod
    def keep_records(cls, value: Any) -> list[dict[str, Any]]:
        return _records(value)

    @field_validator("themes", mode="before")
    @classmethod
    def theme_labels(cls, value: Any) -> list[str]:
        if not isinstance(value, list):
            return []
        return [str(item) for item in value if isinstance(item, (str, int, float))]


class Complaint(CamelModel):
    id: int
    text: str = ""
    source: str = ""
    source_url: str = ""
    severity: Severity = "Medium"
    funnel_stage: FunnelStage = "Awareness"
    draft_reply: str = ""


class ContentDraft(CamelModel):
    markdown: str


class Solution(CamelModel):
    team: Team
    idea: str = ""
    detail: str = ""


class BrainstormResponse(CamelModel):
    solutions: list[Solution]


class ErrorResponse(BaseModel):
    error: str
