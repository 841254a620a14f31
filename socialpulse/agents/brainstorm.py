from __future__ import annotations

from typing import Any, get_args

from socialpulse.llm_client import LLMClient, LLMMode, client as llm_client
from socialpulse.models.schemas import BrainstormRequest, Solution, Team
from socialpulse.services import logger as log_service
from socialpulse.services.json_extract import parse_json_fields
from socialpulse.services.prompt_store import render_prompt

MAX_SOLUTIONS = 3
TEAMS = frozenset(get_args(Team))


def _coerce_solutions(raw: Any) -> list[Solution]:
    if not isinstance(raw, list):
        return []
    solutions: list[Solution] = []
    for item in raw:
        if not isinstance(item, dict) or item.get("team") not in TEAMS:
            continue
        solutions.append(
            Solution(
                team=item["team"],
                idea=str(item.get("idea") or "").strip(),
                detail=str(item.get("detail") or "").strip(),
            )
        )
        if len(solutions) >= MAX_SOLUTIONS:
            break
    return solutions


async def brainstorm(request: BrainstormRequest, llm: LLMClient | None = None) -> list[Solution]:
    """Ask for team-owned solutions to one pain point.

    Raises UpstreamFailure or ParseFailure; the route maps them to error bodies.
    """
    prompt = render_prompt(
        "brainstorm.prompt",
        topic=request.topic,
        pain_point=request.pain_point,
        description=request.description,
    )
    text = await (llm or llm_client()).complete(LLMMode.BRAINSTORM, prompt)
    solutions = _coerce_solutions(parse_json_fields(text).get("solutions"))
    log_service.log_event(
        event_type="brainstorm_completed",
        message="Brainstorm completed",
        pain_point=request.pain_point[:100],
        solutions=len(solutions),
    )
    return solutions
