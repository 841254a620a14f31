from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from socialpulse.models.events import EventType, StreamEvent
from socialpulse.models.schemas import AnalysisOptions
from socialpulse.models.steps import step_plan

_TRAILING_ELLIPSIS = re.compile(r"(\.{3}|…)$")
_DIGITS = re.compile(r"\d+")


class StepStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"


@dataclass
class PipelineStep:
    key: str
    label: str
    status: StepStatus = StepStatus.PENDING
    message: str | None = None

    @property
    def display(self) -> str:
        return self.message or self.label


def normalize_message(text: str) -> str:
    text = _TRAILING_ELLIPSIS.sub("", text.strip())
    text = _DIGITS.sub("", text)
    return " ".join(text.lower().split())


class StepTracker:
    """Client-side view of pipeline progress.

    The step list is fixed when the tracker is built and only statuses
    change afterwards. Progress is matched to steps by ``stepId`` when the
    server sends one, otherwise by fuzzy comparison of the message text.
    """

    def __init__(self, steps: list[PipelineStep]):
        self.steps = steps

    @classmethod
    def for_options(cls, options: AnalysisOptions) -> StepTracker:
        return cls([PipelineStep(key=s.key, label=s.label) for s in step_plan(options)])

    def start(self) -> None:
        if self.steps and self.steps[0].status is StepStatus.PENDING:
            self.steps[0].status = StepStatus.ACTIVE

    @property
    def finished(self) -> bool:
        return all(s.status is StepStatus.COMPLETED for s in self.steps)

    def _first_pending(self) -> int:
        for i, step in enumerate(self.steps):
            if step.status is StepStatus.PENDING:
                return i
        return -1

    def match_index(self, message: str, step_id: str | None = None) -> int:
        if step_id:
            for i, step in enumerate(self.steps):
                if step.key == step_id:
                    return i
        wanted = normalize_message(message)
        if wanted:
            for i, step in enumerate(self.steps):
                base = normalize_message(step.label)
                if base and (base in wanted or wanted in base):
                    return i
        return self._first_pending()

    def on_progress(self, message: str, step_id: str | None = None) -> None:
        idx = self.match_index(message, step_id)
        if idx < 0:
            return
        for step in self.steps[:idx]:
            step.status = StepStatus.COMPLETED
        target = self.steps[idx]
        target.message = message
        if target.status is not StepStatus.COMPLETED:
            target.status = StepStatus.ACTIVE

    def advance(self) -> None:
        """Close the active step(s) and open the next pending one."""
        for step in self.steps:
            if step.status is StepStatus.ACTIVE:
                step.status = StepStatus.COMPLETED
        idx = self._first_pending()
        if idx >= 0:
            self.steps[idx].status = StepStatus.ACTIVE

    def complete_all(self) -> None:
        for step in self.steps:
            step.status = StepStatus.COMPLETED

    def handle(self, event: StreamEvent) -> None:
        if event.type is EventType.PROGRESS:
            self.on_progress(str(event.data.get("message") or ""), event.data.get("stepId"))
        elif event.type in (EventType.RESULT, EventType.ERROR):
            self.advance()
        elif event.type is EventType.DONE:
            self.complete_all()
