"""
ARTEX Web API Package

FastAPI-based job interface for the article extraction engine.

Usage:
    # Start the server
    uvicorn api.main:app --reload

    # Or via entry point
    artex-api
"""

from api.main import app
from api.job_manager import Job, JobManager, job_manager
from api.models import (
    ArticlesResponse,
    CancelResponse,
    ExtractRequest,
    ExtractResponse,
    JobStatus,
    JobStatusResponse,
    ProcessingPhase,
)

__all__ = [
    "app",
    "job_manager",
    "Job",
    "JobManager",
    "ArticlesResponse",
    "CancelResponse",
    "ExtractRequest",
    "ExtractResponse",
    "JobStatus",
    "JobStatusResponse",
    "ProcessingPhase",
]
