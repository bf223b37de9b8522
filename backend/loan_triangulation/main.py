"""
FastAPI application for loan closing package triangulation.
"""
from fastapi import FastAPI, HTTPException, BackgroundTasks, File, UploadFile, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from datetime import datetime
from typing import Optional
import logging
import uuid
import json
import asyncio
import threading
import time

from pydantic import BaseModel

from loan_triangulation.config import Config
from loan_triangulation.routes.triangulation import router as triangulation_router
from loan_triangulation.services.errors import PipelineError
from loan_triangulation.services.job_poller import JobFailed, StatusUpdate
from loan_triangulation.services.orchestrator import ClosingPackagePipeline, PackageProcessed
from loan_triangulation.services.presentation import build_final_fields
from loan_triangulation.utils.translations import SUPPORTED_LANGUAGES

# Configure logging
logging.basicConfig(
    level=getattr(logging, Config.LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Loan Closing Package Triangulation API",
    description="Relays closing package processing jobs and triangulates loan fields",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=Config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(triangulation_router)

# Factory for the per-job facade; replaced in tests
pipeline_factory = ClosingPackagePipeline

# Store for SSE connections (relay_id -> list of messages)
# Background thread appends messages, SSE endpoint reads them
sse_messages: dict = {}
sse_message_locks: dict = {}
# relay_id -> monotonic time its background task ended
sse_finished_at: dict = {}

KEEPALIVE_SECONDS = 30.0
POLL_SECONDS = 0.5


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str
    timestamp: datetime


class PackageSubmitResponse(BaseModel):
    """Response model for a relayed package upload."""
    message: str
    relay_id: str


@app.on_event("startup")
async def startup_event():
    """Validate configuration on startup."""
    try:
        Config.validate()
        logger.info(f"Configuration validated successfully (backend: {Config.api_base_url()})")
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        raise


@app.get("/api/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now()
    )


@app.post("/api/packages", response_model=PackageSubmitResponse)
async def submit_package(
    background_tasks: BackgroundTasks,
    file: UploadFile = File(..., description="Closing package PDF"),
    language: Optional[str] = Query(None, description="en | tr")
):
    """
    Upload a closing package and relay its processing in the background.

    Progress, completion and failure are streamed from
    /api/packages/{relay_id}/stream.
    """
    language = language or Config.DEFAULT_LANGUAGE
    if language not in SUPPORTED_LANGUAGES:
        raise HTTPException(status_code=400, detail=f"Unsupported language: {language}")

    if not (file.filename or '').lower().endswith('.pdf'):
        raise HTTPException(status_code=400, detail="Only PDF files are supported")

    content = await file.read()
    if len(content) == 0:
        raise HTTPException(status_code=400, detail="Empty file uploaded")
    if not content.startswith(b'%PDF'):
        raise HTTPException(status_code=400, detail="Invalid PDF format")

    _sweep_finished_relays()

    relay_id = str(uuid.uuid4())

    # Initialize SSE message storage for this relay
    sse_messages[relay_id] = []
    sse_message_locks[relay_id] = threading.Lock()

    background_tasks.add_task(
        process_package,
        relay_id=relay_id,
        content=content,
        filename=file.filename,
        language=language
    )

    return PackageSubmitResponse(
        message="Processing initiated",
        relay_id=relay_id
    )


@app.get("/api/packages/{relay_id}/stream")
async def stream_package_progress(relay_id: str):
    """
    Server-Sent Events endpoint for package processing progress.

    A relay can be streamed any number of times until it is swept,
    RELAY_RETENTION_SECONDS after its background task ends.
    """
    if relay_id not in sse_messages:
        raise HTTPException(status_code=404, detail="Unknown relay id")

    async def event_generator():
        last_index = 0
        idle_seconds = 0.0

        try:
            while True:
                if relay_id not in sse_messages:
                    # swept after its retention window
                    return

                # Get new messages since last check
                with sse_message_locks.get(relay_id, threading.Lock()):
                    messages = sse_messages.get(relay_id, [])
                    new_messages = messages[last_index:]
                    last_index = len(messages)

                for message in new_messages:
                    yield message

                    if 'event: complete' in message or 'event: error' in message:
                        return

                if not new_messages:
                    await asyncio.sleep(POLL_SECONDS)
                    idle_seconds += POLL_SECONDS
                    if idle_seconds >= KEEPALIVE_SECONDS:
                        idle_seconds = 0.0
                        yield f"event: keepalive\ndata: {json.dumps({'timestamp': datetime.now().isoformat()})}\n\n"
                else:
                    idle_seconds = 0.0

        except Exception as e:
            logger.error(f"Error in SSE stream for relay {relay_id}: {e}")

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no"
        }
    )


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )


def _sweep_finished_relays(now: Optional[float] = None):
    """Drop relays whose background task ended more than RELAY_RETENTION_SECONDS ago."""
    now = time.monotonic() if now is None else now
    expired = [
        relay_id for relay_id, finished_at in list(sse_finished_at.items())
        if now - finished_at >= Config.RELAY_RETENTION_SECONDS
    ]
    for relay_id in expired:
        sse_finished_at.pop(relay_id, None)
        sse_messages.pop(relay_id, None)
        sse_message_locks.pop(relay_id, None)
    if expired:
        logger.info(f"Released {len(expired)} finished relay(s)")


def _send_sse_update(relay_id: str, event_type: str, data: dict):
    """Send SSE update to connected clients."""
    if relay_id in sse_messages:
        message = f"event: {event_type}\ndata: {json.dumps(data)}\n\n"
        with sse_message_locks.get(relay_id, threading.Lock()):
            if relay_id not in sse_messages:
                sse_messages[relay_id] = []
            sse_messages[relay_id].append(message)


def process_package(relay_id: str, content: bytes, filename: str, language: str):
    """
    Background task: submit the package upstream and relay every event.

    Args:
        relay_id: Relay identifier the SSE stream is keyed by
        content: PDF bytes
        filename: Original upload name
        language: Display language for results and messages
    """
    pipeline = pipeline_factory(language=language)
    try:
        try:
            config = pipeline.fetch_config()
        except PipelineError as e:
            logger.warning(f"Backend config unavailable, using defaults: {e}")
            config = None

        _send_sse_update(relay_id, 'start', {'relay_id': relay_id, 'filename': filename})

        for event in pipeline.stream(content, filename=filename, config=config):
            if isinstance(event, StatusUpdate):
                _send_sse_update(relay_id, 'status', {
                    'job_id': event.job_id,
                    'status': event.status,
                    'progress': event.progress,
                    'stage': event.stage.label,
                    'stage_index': event.stage.index,
                    'stage_total': event.stage.total,
                    'stage_drift': event.stage.drift,
                })
            elif isinstance(event, PackageProcessed):
                package = event.package
                _send_sse_update(relay_id, 'complete', {
                    'job_id': event.job_id,
                    'origin': 'backend' if package.has_backend_reconciliation else 'client',
                    'fields': [card.to_dict() for card in build_final_fields(package, language)],
                    'doc_groups': [group.model_dump() for group in package.doc_groups],
                    'page_count': len(package.pages),
                    'stage': event.stage.label if event.stage else None,
                    'stage_index': event.stage.index if event.stage else None,
                    'stage_total': event.stage.total if event.stage else None,
                })
            elif isinstance(event, JobFailed):
                _send_sse_update(relay_id, 'error', {
                    'job_id': event.job_id,
                    'kind': event.kind.value,
                    'message': event.message,
                })

    except Exception as e:
        logger.error(f"Error relaying package {relay_id}: {e}", exc_info=True)
        _send_sse_update(relay_id, 'error', {'kind': 'internal', 'message': str(e)})
    finally:
        pipeline.close()
        sse_finished_at[relay_id] = time.monotonic()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "loan_triangulation.main:app",
        host=Config.API_HOST,
        port=Config.API_PORT,
        reload=True
    )
