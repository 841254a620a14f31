from __future__ import annotations

import json
from typing import Any

from socialpulse.models.events import EventType, Section, StreamEvent


def progress(step: str, message: str, step_id: str | None = None) -> StreamEvent:
    """Emit a progress event; ``step_id`` pins the message to a tracker step."""
    data: dict[str, Any] = {"step": step, "message": message}
    if step_id:
        data["stepId"] = step_id
    return StreamEvent(type=EventType.PROGRESS, data=data)


def result(section: Section | str, data: Any) -> StreamEvent:
    return StreamEvent(
        type=EventType.RESULT,
        data={"section": Section(section).value, "data": data},
    )


def error(step: str, message: str) -> StreamEvent:
    return StreamEvent(type=EventType.ERROR, data={"step": step, "message": message})


def done() -> StreamEvent:
    return StreamEvent(type=EventType.DONE)


def to_sse(event: StreamEvent) -> dict[str, str]:
    """Shape an event for ``EventSourceResponse``: a bare ``data:`` field."""
    return {"data": json.dumps(event.payload())}
