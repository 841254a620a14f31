from __future__ import annotations

from dataclasses import dataclass

from socialpulse.models.schemas import AnalysisOptions


@dataclass(frozen=True)
class StepDef:
    key: str
    label: str


SEARCH_FORUMS = StepDef("research.search_forums", "Searching Reddit & forums...")
SCAN_SOCIAL = StepDef("research.scan_social", "Scanning X and tech blogs...")
ANALYZE_SENTIMENT = StepDef("research.sentiment", "Analyzing sentiment...")
RANK_COMPLAINTS = StepDef("complaints.rank", "Ranking complaints by severity...")
DRAFT_REPLIES = StepDef("complaints.replies", "Drafting replies...")
WRITE_CONTENT = StepDef("content.write", "Writing blog article...")


def step_plan(options: AnalysisOptions) -> list[StepDef]:
    """Ordered steps a run with these options will report progress on."""
    steps: list[StepDef] = []
    if options.research:
        steps += [SEARCH_FORUMS, SCAN_SOCIAL, ANALYZE_SENTIMENT]
    if options.complaints:
        steps += [RANK_COMPLAINTS, DRAFT_REPLIES]
    if options.content:
        steps.append(WRITE_CONTENT)
    return steps
