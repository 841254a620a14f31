from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, AsyncIterable, AsyncIterator, Callable

import httpx

from socialpulse.client.sse_decoder import SSEDecoder
from socialpulse.client.step_tracker import StepTracker
from socialpulse.errors import TransportFailure
from socialpulse.models.events import EventType, StreamEvent
from socialpulse.models.schemas import AnalysisRequest

EventCallback = Callable[[StreamEvent, StepTracker, "AnalysisResults"], None]


@dataclass
class AnalysisResults:
    """Sections received so far; each is stored independently."""

    sentiment: dict[str, Any] | None = None
    complaints: list[dict[str, Any]] | None = None
    content: dict[str, Any] | None = None
    errors: dict[str, str] = field(default_factory=dict)
    done: bool = False

    def record(self, event: StreamEvent) -> None:
        if event.type is EventType.RESULT:
            section = event.data.get("section")
            data = event.data.get("data")
            if section == "sentiment":
                self.sentiment = data
            elif section == "complaints":
                self.complaints = data
            elif section in ("content", "blog"):
                self.content = data
        elif event.type is EventType.ERROR:
            step = str(event.data.get("step") or "unknown")
            self.errors[step] = str(event.data.get("message") or "")
        elif event.type is EventType.DONE:
            self.done = True


async def consume(
    events: AsyncIterable[StreamEvent],
    tracker: StepTracker,
    *,
    on_event: EventCallback | None = None,
) -> AnalysisResults:
    """Drive a tracker and a result store from an event stream.

    If the stream stops without ``done`` the tracker is left as it was.
    """
    results = AnalysisResults()
    tracker.start()
    async for event in events:
        tracker.handle(event)
        results.record(event)
        if on_event is not None:
            on_event(event, tracker, results)
    return results


class AnalysisStreamClient:
    """Reads the analysis stream from a running server."""

    def __init__(
        self,
        base_url: str,
        *,
        http_client: httpx.AsyncClient | None = None,
        path: str = "/api/analysis",
    ):
        self.base_url = base_url.rstrip("/")
        self.path = path
        self._http_client = http_client

    def _new_client(self) -> httpx.AsyncClient:
        # Stages can take minutes; only connecting is time-boxed.
        return httpx.AsyncClient(timeout=httpx.Timeout(None, connect=10.0))

    async def events(self, request: AnalysisRequest) -> AsyncIterator[StreamEvent]:
        owns_client = self._http_client is None
        http_client = self._http_client or self._new_client()
        decoder = SSEDecoder()
        try:
            async with http_client.stream(
                "POST",
                f"{self.base_url}{self.path}",
                json=request.model_dump(),
                headers={"Accept": "text/event-stream"},
            ) as response:
                if response.status_code >= 400:
                    await response.aread()
                    raise TransportFailure(
                        f"Server error: {response.status_code}",
                        status_code=response.status_code,
                    )
                async for chunk in response.aiter_bytes():
                    for event in decoder.feed(chunk):
                        yield event
            for event in decoder.flush():
                yield event
        except httpx.HTTPError as e:
            raise TransportFailure(str(e) or e.__class__.__name__) from e
        finally:
            if owns_client:
                await http_client.aclose()

    async def run(
        self,
        request: AnalysisRequest,
        *,
        tracker: StepTracker | None = None,
        on_event: EventCallback | None = None,
    ) -> AnalysisResults:
        tracker = tracker or StepTracker.for_options(request.options)
        return await consume(self.events(request), tracker, on_event=on_event)
