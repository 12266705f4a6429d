import asyncio
import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api.routes.actions import router as actions_router
from src.api.routes.oauth import router as oauth_router
from src.api.routes.parse import router as parse_router
from src.api.routes.process import router as process_router
from src.api.routes.recordings import router as recordings_router
from src.config import settings
from src.errors import AppError
from src.extraction import llm

logger = logging.getLogger(__name__)

# Estimated per-unit costs in USD.
COSTS = {
    "whisperPerMinute": 0.006,
    "geminiPer1kTokens": 0.000075,
    "webSpeechAPI": 0,
}

app = FastAPI(
    title="VoiceToWork API",
    description="Turn spoken work notes into Jira issues and Confluence pages",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:8501",
    ],
    allow_origin_regex=r"http://localhost:\d+",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(parse_router)
app.include_router(process_router)
app.include_router(actions_router)
app.include_router(oauth_router)
app.include_router(recordings_router)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning("%s %s -> %d: %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.payload())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "message": str(exc)},
    )


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}


@app.get("/health/ai")
async def health_ai() -> JSONResponse:
    """Check that the configured generation model is reachable."""
    status = await asyncio.to_thread(llm.check_model)
    return JSONResponse(status_code=200 if status["ok"] else 503, content=status)


@app.get("/cost-info")
async def cost_info() -> dict[str, Any]:
    return {
        "optimization": {
            "maxFileSize": settings.max_upload_bytes,
            "maxDuration": settings.max_audio_duration_seconds,
            "webSpeechPreferred": True,
        },
        "estimatedCosts": COSTS,
    }
