from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from socialpulse.api.routes import analysis, brainstorm
from socialpulse.config import settings
from socialpulse.errors import SocialPulseError
from socialpulse.services.logger import configure_logging, logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    logger.info(
        "SocialPulse API starting (provider={}, brand={})", settings.llm_provider, settings.brand_name
    )
    yield
    logger.info("SocialPulse API stopped")


app = FastAPI(
    title="SocialPulse",
    description="Streams online sentiment, ranked complaints and drafted content for a topic",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(analysis.router)
app.include_router(brainstorm.router)


@app.exception_handler(SocialPulseError)
async def socialpulse_error_handler(request: Request, exc: SocialPulseError):
    logger.error("Unhandled {} on {}: {}", type(exc).__name__, request.url.path, exc)
    return JSONResponse(status_code=500, content={"error": str(exc)})


@app.get("/api/health")
async def health():
    return {"status": "ok", "service": "socialpulse", "provider": settings.llm_provider}
