"""Video job API endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Request, WebSocket, WebSocketDisconnect, status
from fastapi.responses import FileResponse, JSONResponse

from services.jobs.orchestrator import VideoJobOrchestrator
from shared.enums import JobStatus
from shared.exceptions import JobNotFoundError
from shared.logging_utils import setup_logging
from shared.models import VideoGenerationRequest, VideoGenerationResponse, VideoStatusResponse

logger = setup_logging("video-api")

API_PREFIX = "/api/v1/videos"

router = APIRouter(prefix=API_PREFIX, tags=["Videos"])


def get_orchestrator(request: Request) -> VideoJobOrchestrator:
    return request.app.state.orchestrator


@router.get("/health")
async def health_check(orchestrator: VideoJobOrchestrator = Depends(get_orchestrator)) -> dict:
    """Health check endpoint for the video service."""
    return {
        "status": "healthy",
        "service": "videos",
        "media_root": str(orchestrator.media_root),
        "jobs": len(orchestrator.store),
    }


@router.post("/generate", status_code=status.HTTP_202_ACCEPTED, response_model=VideoGenerationResponse)
async def generate_video(
    request: VideoGenerationRequest,
    orchestrator: VideoJobOrchestrator = Depends(get_orchestrator),
) -> VideoGenerationResponse:
    """Accept a quiz and start generating its video in the background.

    Returns the video ID immediately; poll ``/status/{video_id}`` for progress.
    """
    try:
        video_id = await orchestrator.submit(request.topic, request.questions)
        return VideoGenerationResponse(
            success=True,
            message="Video generation started",
            video_id=video_id,
        )
    except Exception as e:
        logger.error(f"Failed to start video generation: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to start generation: {e!s}") from e


@router.get("/status/{video_id}", response_model=VideoStatusResponse)
async def get_video_status(
    video_id: str,
    orchestrator: VideoJobOrchestrator = Depends(get_orchestrator),
) -> VideoStatusResponse:
    """Current status, step and progress of a video job."""
    try:
        job = orchestrator.get_job(video_id)
        if job is None:
            raise HTTPException(status_code=404, detail=f"Video {video_id} not found")

        video_url = None
        if job.status == JobStatus.COMPLETED:
            video_url = f"{API_PREFIX}/download/{video_id}"
        return VideoStatusResponse(
            video_id=job.id,
            status=job.status,
            step=job.current_step,
            progress=job.progress,
            video_url=video_url,
            error=job.error,
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to get status for {video_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to get video status") from e


@router.get("/download/{video_id}")
async def download_video(
    video_id: str,
    orchestrator: VideoJobOrchestrator = Depends(get_orchestrator),
) -> FileResponse:
    """Stream the rendered MP4. Byte ranges are honoured."""
    job = orchestrator.get_job(video_id)
    if job is None:
        raise HTTPException(status_code=404, detail=f"Video {video_id} not found")
    if job.status != JobStatus.COMPLETED:
        raise HTTPException(status_code=409, detail=f"Video {video_id} is not ready (status: {job.status.value})")

    file_path = orchestrator.get_video_file_path(video_id)
    if file_path is None:
        raise HTTPException(status_code=404, detail=f"Video file for {video_id} is missing")

    return FileResponse(file_path, media_type="video/mp4", filename=f"quiz-{video_id}.mp4")


@router.get("/assets/{video_id}/{filename}")
async def get_asset(
    video_id: str,
    filename: str,
    orchestrator: VideoJobOrchestrator = Depends(get_orchestrator),
) -> FileResponse:
    """Serve a generated background or narration clip of a job."""
    try:
        path = orchestrator.resolve_asset_path(video_id, filename)
    except JobNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail="Invalid asset path") from e

    if not path.is_file():
        raise HTTPException(status_code=404, detail=f"Asset {filename} not found")
    return FileResponse(path)


@router.delete("/{video_id}")
async def delete_video(
    video_id: str,
    orchestrator: VideoJobOrchestrator = Depends(get_orchestrator),
) -> dict:
    """Remove a job together with its files."""
    if not await orchestrator.delete_job(video_id):
        raise HTTPException(status_code=404, detail=f"Video {video_id} not found")
    return {"success": True, "message": f"Video {video_id} deleted"}


@router.post("/cancel/{video_id}")
async def cancel_video(
    video_id: str,
    orchestrator: VideoJobOrchestrator = Depends(get_orchestrator),
) -> dict:
    """Stop a job that is still generating."""
    if orchestrator.get_job(video_id) is None:
        raise HTTPException(status_code=404, detail=f"Video {video_id} not found")
    cancelled = await orchestrator.cancel_job(video_id)
    return {"video_id": video_id, "cancelled": cancelled}


@router.websocket("/ws/{video_id}")
async def video_progress(websocket: WebSocket, video_id: str):
    """Push progress events of one job until the client disconnects."""
    orchestrator: VideoJobOrchestrator = websocket.app.state.orchestrator
    broker = orchestrator.broker
    if broker is None or orchestrator.get_job(video_id) is None:
        await websocket.close(code=1008)
        return

    client_id = await broker.connect(websocket, websocket.query_params.get("client_id"))
    await broker.subscribe(client_id, video_id)
    try:
        while True:
            message = await websocket.receive_json()
            if message.get("action") == "ping":
                await websocket.send_json({"event": "pong"})
            else:
                await websocket.send_json({"event": "error", "message": f"Unknown action: {message.get('action')}"})
    except WebSocketDisconnect:
        await broker.disconnect(client_id)
    except Exception:
        await broker.disconnect(client_id)
        raise


async def job_not_found_handler(request: Request, exc: JobNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})
