from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EventType(str, Enum):
    PROGRESS = "progress"
    RESULT = "result"
    ERROR = "error"
    DONE = "done"


class Section(str, Enum):
    SENTIMENT = "sentiment"
    COMPLAINTS = "complaints"
    CONTENT = "content"


@dataclass
class StreamEvent:
    """One frame of the analysis stream.

    The event type travels inside the JSON payload as ``type`` so that a
    frame is a single ``data:`` line.
    """

    type: EventType
    data: dict[str, Any] = field(default_factory=dict)

    def payload(self) -> dict[str, Any]:
        return {"type": self.type.value, **self.data}

    def format(self) -> str:
        return f"data: {json.dumps(self.payload())}\n\n"

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> StreamEvent:
        """Build an event from a decoded frame. Raises ValueError on unknown types."""
        data = dict(payload)
        event_type = EventType(data.pop("type", None))
        return cls(type=event_type, data=data)
