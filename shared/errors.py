"""
Extraction Errors

Error kinds raised by the extraction engine:

  - SegmentationFailure: the document cannot be cut into segments (no
    headings, or the heading provider rejected the document). Fatal.
  - ClassificationError: one classifier call failed. Recovered per window by
    the merge fallback, never surfaced to the caller.
      - ClassificationTransportFailure: API/network error or exhausted
        rate-limit retries
      - ClassificationShapeFailure: response did not match the verdict shape
  - CancellationRequested: the enclosing job was cancelled. Fatal for the
    run, and distinct from processing errors.
"""

from __future__ import annotations

from typing import Optional


class ExtractionError(Exception):
    """Base class for all article extraction errors."""


class SegmentationFailure(ExtractionError):
    """The document could not be segmented into articles."""


class ClassificationError(ExtractionError):
    """A single classification call failed."""

    def __init__(self, message: str, order: Optional[int] = None):
        super().__init__(message)
        self.order = order


class ClassificationTransportFailure(ClassificationError):
    """The classifier could not be reached, or kept rate-limiting."""

    def __init__(
        self,
        message: str,
        order: Optional[int] = None,
        rate_limited: bool = False,
        attempts: int = 1,
    ):
        super().__init__(message, order)
        self.rate_limited = rate_limited
        self.attempts = attempts


class ClassificationShapeFailure(ClassificationError):
    """The classifier answered, but not with a valid verdict."""


class CancellationRequested(ExtractionError):
    """The job running this extraction was cancelled."""
