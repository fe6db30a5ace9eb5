"""
ARTEX FastAPI Application

API server for the legal article extraction engine.
Provides endpoints for:
  - Submitting extraction jobs
  - Tracking job progress
  - Cancelling running jobs
  - Fetching the extracted articles
"""

import logging
import os
import sys
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path

from fastapi import BackgroundTasks, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from api.job_manager import job_manager
from api.models import (
    ArticlesResponse,
    CancelResponse,
    ExtractRequest,
    ExtractResponse,
    JobStatus,
    JobStatusResponse,
)
from shared.errors import CancellationRequested, ExtractionError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("artex.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler"""
    logger.info("Starting ARTEX API server")
    yield
    logger.info("Shutting down ARTEX API server")


# Create FastAPI app
app = FastAPI(
    title="ARTEX API",
    description="Extraction of ordered articles from legal documents",
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS (configurable via environment)
cors_origins = os.environ.get("CORS_ORIGINS", "*").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Pipeline Execution
# ============================================================================

async def run_extraction(job_id: str):
    """Run the extraction pipeline for a job as a background task"""
    job = await job_manager.get_job(job_id)
    if job is None or job.is_finished:
        return

    try:
        # Import here to avoid circular imports and allow lazy loading
        from agents.orchestrator import ExtractionPipeline, RunContext

        logger.info(f"Starting extraction for job {job_id}")
        await job_manager.start(job_id)

        pipeline = ExtractionPipeline(job.dialect, document_name=job.name)
        context = RunContext(
            progress_callback=lambda percent: job_manager.update_progress(job_id, percent),
            is_cancelled=lambda: job_manager.is_cancelled(job_id),
        )
        result = await pipeline.run(job.text, headings=job.headings, context=context)

        await job_manager.set_result(job_id, {
            "name": job.name,
            "dialect": result.dialect.value,
            "total_segments": result.total_segments,
            "articles": [article.model_dump(mode="json") for article in result.articles],
            "_execution": {
                "job_id": job_id,
                "duration_ms": result.total_duration_ms,
                "trace_count": len(result.traces),
            },
        })

        logger.info(f"Extraction completed for job {job_id}")

    except CancellationRequested:
        await job_manager.set_cancelled(job_id)
    except ExtractionError as e:
        await job_manager.set_error(job_id, str(e))
    except Exception as e:
        logger.exception(f"Extraction failed for job {job_id}: {e}")
        await job_manager.set_error(job_id, str(e))


# ============================================================================
# API Endpoints
# ============================================================================

@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "name": "ARTEX API",
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.post("/api/extract", response_model=ExtractResponse, status_code=202)
async def extract(request: ExtractRequest, background_tasks: BackgroundTasks):
    """
    Extract the articles of a legal document.

    Starts an async job that cleans the text, cuts it at headings, validates
    every candidate article and merges fragments.

    Returns a job ID for tracking progress via GET /api/status/{job_id}
    """
    job_id = await job_manager.create_job(
        request.name,
        request.text,
        dialect=request.dialect,
        headings=request.headings,
    )

    background_tasks.add_task(run_extraction, job_id)

    return ExtractResponse(
        job_id=job_id,
        status=JobStatus.PENDING,
        message="Extraction job created. Poll /api/status/{job_id} for progress.",
    )


@app.get("/api/status/{job_id}", response_model=JobStatusResponse)
async def get_status(job_id: str):
    """
    Get the status of an extraction job.

    Returns status, progress percentage (0-100) and a status message.
    """
    job = await job_manager.get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail=f"Job {job_id} not found")

    return JobStatusResponse(
        job_id=job.job_id,
        status=job.status,
        phase=job.phase,
        progress=job.progress,
        message=job.message,
        created_at=job.created_at,
        updated_at=job.updated_at,
        completed_at=job.completed_at,
        error=job.error,
    )


@app.post("/api/cancel/{job_id}", response_model=CancelResponse)
async def cancel(job_id: str):
    """
    Cancel an extraction job.

    A running job stops before validating its next article.
    """
    job = await job_manager.get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail=f"Job {job_id} not found")

    if not await job_manager.cancel_job(job_id):
        raise HTTPException(
            status_code=409,
            detail=f"Job already finished. Current status: {job.status.value}"
        )

    return CancelResponse(
        job_id=job_id,
        status=job.status,
        message="Cancellation requested",
    )


@app.get("/api/articles/{job_id}", response_model=ArticlesResponse)
async def get_articles(job_id: str):
    """
    Get the extracted articles of a completed job, ordered by position.
    """
    job = await job_manager.get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail=f"Job {job_id} not found")

    if job.status != JobStatus.COMPLETED:
        raise HTTPException(
            status_code=400,
            detail=f"Job is not complete. Current status: {job.status.value}"
        )

    if not job.result:
        raise HTTPException(status_code=500, detail="Job completed but no result available")

    return ArticlesResponse(
        job_id=job_id,
        name=job.result["name"],
        dialect=job.result["dialect"],
        total_segments=job.result["total_segments"],
        articles=job.result["articles"],
    )


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "timestamp": datetime.now().isoformat()}


# ============================================================================
# Entry Point
# ============================================================================

def main():
    """Run the API server"""
    import uvicorn

    host = os.environ.get("ARTEX_HOST", "0.0.0.0")
    port = int(os.environ.get("ARTEX_PORT", "8000"))

    uvicorn.run(
        "api.main:app",
        host=host,
        port=port,
        reload=True,
        log_level="info",
    )


if __name__ == "__main__":
    main()
