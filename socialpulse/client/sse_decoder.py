"""Incremental decoder for the ``data: <json>\\n\\n`` analysis stream.

Chunks from the transport are not aligned with frames. A ``data:`` line is
only parsed once a further line has been terminated after it; anything
shorter stays buffered for the next chunk.
"""
from __future__ import annotations

import codecs
import json

from loguru import logger

from socialpulse.models.events import StreamEvent

DATA_PREFIX = "data: "


class SSEDecoder:
    def __init__(self) -> None:
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    @property
    def pending(self) -> str:
        """Buffered text not yet turned into events."""
        return self._buffer

    def feed(self, chunk: bytes | str) -> list[StreamEvent]:
        text = self._utf8.decode(chunk) if isinstance(chunk, bytes) else chunk
        self._buffer += text

        *complete, tail = self._buffer.split("\n")
        held = ""
        events: list[StreamEvent] = []
        for i, raw in enumerate(complete):
            line = raw.rstrip("\r")
            if not line.startswith(DATA_PREFIX):
                # Blank separators, ": ping" comments and other fields.
                continue
            if i + 1 == len(complete):
                held = raw + "\n"
                continue
            event = self._parse(line[len(DATA_PREFIX):])
            if event is not None:
                events.append(event)

        self._buffer = held + tail
        return events

    def flush(self) -> list[StreamEvent]:
        """Parse whatever frame is left once the transport has ended."""
        self._buffer += self._utf8.decode(b"", final=True)
        events: list[StreamEvent] = []
        for raw in self._buffer.split("\n"):
            line = raw.rstrip("\r")
            if line.startswith(DATA_PREFIX):
                event = self._parse(line[len(DATA_PREFIX):])
                if event is not None:
                    events.append(event)
        self._buffer = ""
        return events

    @staticmethod
    def _parse(body: str) -> StreamEvent | None:
        try:
            payload = json.loads(body)
            if not isinstance(payload, dict):
                raise ValueError("frame payload is not an object")
            return StreamEvent.from_payload(payload)
        except ValueError as exc:
            # json.JSONDecodeError is a ValueError; so is an unknown event type.
            logger.debug(f"Dropping malformed frame: {exc}")
            return None
