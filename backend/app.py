"""
Quiz Video Backend - Application Entry Point
Serves the video job API and owns the background workers
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from services.jobs.app import job_not_found_handler, router as videos_router
from services.jobs.orchestrator import build_orchestrator
from services.jobs.retention import RetentionSweeper
from shared.config import config
from shared.exceptions import JobNotFoundError
from shared.logging_utils import setup_logging

logger = setup_logging("quiz-video-backend")


@asynccontextmanager
async def lifespan(app: FastAPI):
    orchestrator = build_orchestrator()
    sweeper = RetentionSweeper(
        orchestrator,
        interval_seconds=float(config.get("retention_sweep_interval", 3600)),
        max_age_hours=float(config.get("job_retention_hours", 24.0)),
    )
    app.state.orchestrator = orchestrator
    app.state.sweeper = sweeper
    sweeper.start()
    logger.info("Media root: %s", orchestrator.media_root)
    try:
        yield
    finally:
        await sweeper.stop()
        await orchestrator.shutdown()


app = FastAPI(
    title="Quiz Video Backend API",
    description="""
    Turns a quiz topic and question/answer pairs into a vertical short-form video.

    Submit a job, poll its status, then download the MP4.
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    openapi_tags=[
        {
            "name": "Health",
            "description": "Service health and status endpoints",
        },
        {
            "name": "Videos",
            "description": "Video generation jobs - mounted at /api/v1/videos",
        },
    ],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.get("allowed_origins", ["*"]),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(JobNotFoundError, job_not_found_handler)
app.include_router(videos_router)


@app.get("/", tags=["Health"])
async def root():
    """Root endpoint with service information and API navigation"""
    return {
        "service": "Quiz Video Backend API",
        "version": "1.0.0",
        "services": {
            "videos": {
                "base_url": "/api/v1/videos",
                "generate": "/api/v1/videos/generate",
                "status": "/api/v1/videos/status/{video_id}",
                "download": "/api/v1/videos/download/{video_id}",
                "progress_ws": "/api/v1/videos/ws/{video_id}",
            },
        },
        "documentation": {
            "swagger_ui": "/docs",
            "redoc": "/redoc",
            "openapi_json": "/openapi.json",
        },
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    orchestrator = getattr(app.state, "orchestrator", None)
    return {
        "status": "healthy",
        "services": {
            "api_gateway": "operational",
            "orchestrator": "operational" if orchestrator else "starting",
        },
    }


if __name__ == "__main__":
    import uvicorn

    logger.info("Starting Quiz Video Backend on http://0.0.0.0:8000")
    uvicorn.run("app:app", host="0.0.0.0", port=8000, reload=config.get("debug", False), log_level=config.get("log_level", "INFO").lower())
