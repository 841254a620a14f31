from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from socialpulse.agents.brainstorm import brainstorm
from socialpulse.errors import ParseFailure, UpstreamFailure
from socialpulse.models.schemas import BrainstormRequest, BrainstormResponse, ErrorResponse
from socialpulse.services import logger as log_service

router = APIRouter(prefix="/api/brainstorm", tags=["brainstorm"])


@router.post(
    "",
    response_model=BrainstormResponse,
    responses={500: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
async def create_brainstorm(request: BrainstormRequest):
    """Suggest up to three team-owned solutions for a pain point."""
    try:
        solutions = await brainstorm(request)
    except UpstreamFailure as e:
        log_service.log_event(event_type="brainstorm_error", message="LLM call failed", error=str(e))
        return JSONResponse(status_code=500, content={"error": str(e)})
    except ParseFailure as e:
        log_service.log_event(
            event_type="brainstorm_error", message="Unparseable model output", error=str(e)
        )
        return JSONResponse(status_code=502, content={"error": f"Could not parse model output: {e}"})
    return BrainstormResponse(solutions=solutions)
