from __future__ import annotations

import asyncio

from fastapi import APIRouter
from sse_starlette.sse import EventSourceResponse

from socialpulse.agents.orchestrator import AnalysisOrchestrator
from socialpulse.config import settings
from socialpulse.models.events import EventType
from socialpulse.models.schemas import AnalysisRequest
from socialpulse.services import logger as log_service
from socialpulse.services import streaming

router = APIRouter(prefix="/api", tags=["analysis"])


@router.post("/analysis")
@router.post("/research", include_in_schema=False)
async def stream_analysis(request: AnalysisRequest):
    """Stream progress, per-section results and errors for one analysis run."""
    orchestrator = AnalysisOrchestrator()

    async def event_generator():
        done_sent = False
        try:
            async for event in orchestrator.analyze(request):
                done_sent = event.type is EventType.DONE
                yield streaming.to_sse(event)
        except asyncio.CancelledError:
            log_service.log_event(
                event_type="client_disconnected",
                message="Client went away; discarding the rest of the run",
                run_id=orchestrator.run_id,
            )
            raise
        except Exception as e:
            log_service.log_event(
                event_type="stream_error",
                message="Unhandled error in analysis stream",
                error=str(e),
                run_id=orchestrator.run_id,
            )
            yield streaming.to_sse(
                streaming.error("pipeline", "Analysis stream failed unexpectedly.")
            )
            if not done_sent:
                yield streaming.to_sse(streaming.done())

    return EventSourceResponse(
        event_generator(),
        sep="\n",
        ping=settings.stream_ping_seconds,
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
