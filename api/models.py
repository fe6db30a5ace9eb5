"""
API Request/Response Models

Pydantic models for the FastAPI endpoints.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from shared.models import DialectKind, FinalArticle


class ExtractRequest(BaseModel):
    """Request model for POST /api/extract"""

    name: str = Field(
        ...,
        min_length=1,
        max_length=500,
        description="Name of the legal document (e.g. 'Ley General de Salud')"
    )
    text: str = Field(
        ...,
        min_length=1,
        description="Plain text of the legal document"
    )
    dialect: DialectKind = Field(
        DialectKind.LAW,
        description="Document type: law, regulation or standard"
    )
    headings: Optional[list[str]] = Field(
        None,
        description="Ordered heading list from an upstream provider; derived from the text when omitted"
    )


class JobStatus(str, Enum):
    """Status of an extraction job"""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ProcessingPhase(str, Enum):
    """Current phase of the extraction pipeline"""
    QUEUED = "queued"
    EXTRACTION = "extraction"
    COMPLETE = "complete"


class JobStatusResponse(BaseModel):
    """Response model for GET /api/status/{job_id}"""

    job_id: str
    status: JobStatus
    phase: ProcessingPhase
    progress: int = Field(..., ge=0, le=100, description="Progress percentage 0-100")
    message: str = ""
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None
    error: Optional[str] = None


class ExtractResponse(BaseModel):
    """Response model for POST /api/extract"""

    job_id: str
    status: JobStatus
    message: str


class CancelResponse(BaseModel):
    """Response model for POST /api/cancel/{job_id}"""

    job_id: str
    status: JobStatus
    message: str


class ArticlesResponse(BaseModel):
    """Response model for GET /api/articles/{job_id}"""

    job_id: str
    name: str
    dialect: DialectKind
    total_segments: int
    articles: list[FinalArticle]
