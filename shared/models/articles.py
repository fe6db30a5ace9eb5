"""
Pydantic Models for Article Extraction

This module defines the units that flow through the extraction engine:
  - HeadingSpec / HeadingMatch: heading strings and their located occurrences
  - Segment: raw text between two heading boundaries
  - Verdict / ReasonKind: the classifier's judgement of one segment
  - ContextWindow: previous + current + next segment sent for classification
  - PendingArticle: an article still being assembled from fragments
  - FinalArticle: the immutable output unit

Segments and windows are produced once from an immutable source text and are
never mutated. Only PendingArticle changes while the merge runs.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ReasonKind(str, Enum):
    """Why a segment was judged not to be a standalone provision."""

    INCOMPLETE = "IsIncomplete"
    CONTINUATION = "IsContinuation"
    OUT_OF_CONTEXT = "OutContext"
    OTHER = "Other"


class HeadingSpec(BaseModel):
    """
    A heading string exactly as it must occur in the source text.

    The same text may appear several times (e.g. "TRANSITORIOS"); each
    occurrence is a distinct boundary, so specs are positional.
    """

    model_config = ConfigDict(frozen=True)

    text: str = Field(min_length=1, description="Heading text as written in the document.")
    order: int = Field(default=0, ge=0, description="Order of appearance in the heading list.")


class HeadingMatch(BaseModel):
    """One occurrence of a heading located in the source text."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(description="Heading as it appears in the source (original casing).")
    offset: int = Field(ge=0, description="Character offset where the heading starts.")
    end: int = Field(ge=0, description="Character offset right after the heading.")


class Segment(BaseModel):
    """Text between one heading occurrence and the next, stripped."""

    model_config = ConfigDict(frozen=True)

    title: str
    start_offset: int = Field(ge=0)
    content: str = ""

    def with_heading(self) -> str:
        """Heading followed by its content, as shown to the classifier."""
        return f"{self.title} {self.content}".strip()


class Verdict(BaseModel):
    """
    Classifier judgement for one context window.

    `reason` is set if and only if the segment is invalid. The classifier
    speaks camelCase (`isValid`), so both spellings are accepted.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    is_valid: bool = Field(alias="isValid")
    reason: Optional[ReasonKind] = None

    @model_validator(mode="before")
    @classmethod
    def drop_reason_when_valid(cls, data: Any) -> Any:
        # Classifiers often echo an empty or "null" reason for valid segments
        if isinstance(data, dict):
            reason = data.get("reason")
            if isinstance(reason, str) and reason.strip().lower() in ("", "null", "none"):
                data = {**data, "reason": None}
        return data

    @model_validator(mode="after")
    def check_reason_matches_validity(self) -> Verdict:
        if self.is_valid and self.reason is not None:
            raise ValueError("a valid verdict cannot carry a reason")
        if not self.is_valid and self.reason is None:
            raise ValueError("an invalid verdict must carry a reason")
        return self

    @classmethod
    def valid(cls) -> Verdict:
        return cls(is_valid=True, reason=None)

    @classmethod
    def invalid(cls, reason: ReasonKind) -> Verdict:
        return cls(is_valid=False, reason=reason)

    def to_wire(self) -> dict[str, Any]:
        """Serialize the way the classifier expects to read it back."""
        return {"isValid": self.is_valid, "reason": self.reason.value if self.reason else None}


class PreviousSegment(BaseModel):
    """The segment before the current one, with the verdict it received."""

    model_config = ConfigDict(frozen=True)

    content: str = ""
    last_verdict: Verdict = Field(default_factory=Verdict.valid)


class ContextWindow(BaseModel):
    """
    The unit sent to the classifier.

    `order` is 1-based, strictly increasing across one document and is the
    canonical ordering key of the final output.
    """

    model_config = ConfigDict(frozen=True)

    title: str
    previous: PreviousSegment = Field(default_factory=PreviousSegment)
    current: str = ""
    next: str = ""
    order: int = Field(ge=1)

    def with_last_verdict(self, verdict: Verdict) -> ContextWindow:
        """Return a copy whose previous segment carries `verdict`."""
        previous = self.previous.model_copy(update={"last_verdict": verdict})
        return self.model_copy(update={"previous": previous})


class PendingArticle(BaseModel):
    """An article under construction from one or more fragments."""

    title: str
    content: str = ""
    order: int = Field(ge=1)

    @classmethod
    def open(cls, window: ContextWindow) -> PendingArticle:
        return cls(title=window.title, content=window.current, order=window.order)

    def append(self, fragment: str) -> None:
        if not fragment:
            return
        self.content = f"{self.content} {fragment}" if self.content else fragment

    def close(self) -> FinalArticle:
        return FinalArticle(title=self.title, content=self.content, order=self.order)


class FinalArticle(BaseModel):
    """One extracted article, chapter, section, annex or transitory provision."""

    model_config = ConfigDict(frozen=True)

    title: str = Field(description="Heading of the provision, e.g. 'ARTÍCULO 5'.")
    content: str = Field(default="", description="Body text of the provision.")
    order: int = Field(ge=1, description="Position of the provision in the document.")

    @classmethod
    def from_window(cls, window: ContextWindow) -> FinalArticle:
        return cls(title=window.title, content=window.current, order=window.order)
