"""
ARTEX Shared Pydantic Models

This package contains the models used across the extraction engine:

  - articles.py: headings, segments, context windows, verdicts, articles
  - dialects.py: per-dialect cleaning rules, heading vocabulary, merge policy

Usage:
    from shared.models import (
        ContextWindow, Verdict, ReasonKind,
        FinalArticle,
        DialectKind, get_dialect_policy,
    )
"""

from .articles import (
    ContextWindow,
    FinalArticle,
    HeadingMatch,
    HeadingSpec,
    PendingArticle,
    PreviousSegment,
    ReasonKind,
    Segment,
    Verdict,
)
from .dialects import (
    DIALECT_POLICIES,
    CleaningRule,
    DialectKind,
    DialectPolicy,
    OutOfContextPolicy,
    get_dialect_policy,
)

__all__ = [
    # Articles
    "ContextWindow",
    "FinalArticle",
    "HeadingMatch",
    "HeadingSpec",
    "PendingArticle",
    "PreviousSegment",
    "ReasonKind",
    "Segment",
    "Verdict",
    # Dialects
    "CleaningRule",
    "DIALECT_POLICIES",
    "DialectKind",
    "DialectPolicy",
    "OutOfContextPolicy",
    "get_dialect_policy",
]
