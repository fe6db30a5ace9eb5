"""
ARTEX Extraction Pipeline

This module runs the extraction engine end to end for one document:

  1. Cleaning - normalize the raw text with the dialect's rules
  2. Headings - use the supplied heading list, or derive one from the
     dialect's heading vocabulary
  3. Matching - locate every heading occurrence at line starts
  4. Segmentation - cut segments and build context windows
  5. Validation + Merge - classify windows one by one and fold fragments
     into final articles

PIPELINE FLOW:
  Raw text → Cleaning → Headings → Matching → Segmentation → [Validation ⇄ Merge] → Articles

Segmentation problems fail the document. Classifier problems only degrade
the affected window. Cancellation stops the run before the next window.
Independent documents can run concurrently on separate pipelines; nothing
in a run is shared.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterable, Optional, Union

from agents.base import AgentConfig, AgentTrace
from agents.validation import ArticleValidationAgent
from ingestion.structural.cleaning import clean_text
from ingestion.structural.headings import (
    HeadingMatcher,
    RuleBasedHeadingProvider,
    to_heading_specs,
)
from ingestion.structural.merger import merge_all
from ingestion.structural.splitter import segment
from shared.errors import CancellationRequested
from shared.models import DialectKind, FinalArticle, HeadingSpec, get_dialect_policy

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], Any]
CancelCheck = Callable[[], Any]


async def _maybe_await(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result


@dataclass
class RunContext:
    """
    Job state threaded through one document run.

    Both callbacks may be plain functions or coroutines.

    Attributes:
        progress_callback: receives integer percentages in [0, 100],
            never decreasing within the run
        is_cancelled: polled once per window; a truthy result stops the run
    """

    progress_callback: Optional[ProgressCallback] = None
    is_cancelled: Optional[CancelCheck] = None
    last_progress: int = field(default=0, init=False)

    async def check_cancelled(self) -> None:
        """Raise CancellationRequested if the job was cancelled."""
        if self.is_cancelled is not None and await _maybe_await(self.is_cancelled()):
            raise CancellationRequested("Job was cancelled")

    async def report_progress(self, percent: int) -> None:
        """Forward progress, clamped to [0, 100] and never decreasing."""
        percent = max(self.last_progress, min(100, max(0, int(percent))))
        if percent == self.last_progress and percent != 0:
            return
        self.last_progress = percent
        if self.progress_callback is None:
            return
        try:
            await _maybe_await(self.progress_callback(percent))
        except Exception as e:
            logger.warning(f"Progress callback error: {e}")


@dataclass
class PipelineResult:
    """Result of extracting articles from one document."""

    articles: list[FinalArticle]
    dialect: DialectKind
    total_segments: int = 0
    headings: list[HeadingSpec] = field(default_factory=list)
    traces: list[AgentTrace] = field(default_factory=list)
    total_duration_ms: float = 0.0


class ExtractionPipeline:
    """
    Article extraction for one document dialect.

    Usage:
        pipeline = ExtractionPipeline(DialectKind.LAW, document_name="Ley de Aguas")
        result = await pipeline.run(text)
        for article in result.articles:
            print(article.order, article.title)
    """

    def __init__(
        self,
        dialect: Union[DialectKind, str] = DialectKind.LAW,
        document_name: str = "",
        config: Optional[AgentConfig] = None,
        validation_agent: Optional[ArticleValidationAgent] = None,
    ):
        self.policy = get_dialect_policy(dialect)
        self.document_name = document_name
        self.config = config or AgentConfig.from_env()
        self.validation_agent = validation_agent or ArticleValidationAgent(
            self.config, document_name=document_name
        )
        self.logger = logging.getLogger("artex.pipeline")

    async def run(
        self,
        text: str,
        headings: Optional[Iterable[Union[HeadingSpec, str]]] = None,
        context: Optional[RunContext] = None,
    ) -> PipelineResult:
        """
        Extract the ordered article list from a document.

        Args:
            text: Plain text of the document
            headings: Heading list from an upstream provider; derived from
                the dialect vocabulary when omitted
            context: Progress and cancellation hooks of the enclosing job

        Returns:
            PipelineResult with articles ordered by `order`

        Raises:
            SegmentationFailure: no headings could be found or matched
            CancellationRequested: the job was cancelled mid-run
        """
        start_time = datetime.now()
        context = context or RunContext()
        self.logger.info(
            f"Extracting articles from '{self.document_name}' ({self.policy.display_name}, {len(text)} chars)"
        )

        await context.check_cancelled()
        cleaned = clean_text(text, self.policy)

        if headings is None:
            heading_list = RuleBasedHeadingProvider(self.policy).headings(cleaned)
        else:
            heading_list = to_heading_specs(headings)
        matches = HeadingMatcher(heading_list).find_all(cleaned)
        windows = segment(cleaned, matches)
        self.logger.info(f"Segmented into {len(windows)} candidate articles")

        articles = await merge_all(
            windows,
            self.validation_agent.classify,
            context=context,
            policy=self.policy,
        )
        await context.report_progress(100)

        duration_ms = (datetime.now() - start_time).total_seconds() * 1000
        self.logger.info(
            f"Extracted {len(articles)} articles from {len(windows)} segments in {duration_ms:.0f}ms"
        )
        return PipelineResult(
            articles=articles,
            dialect=self.policy.kind,
            total_segments=len(windows),
            headings=heading_list,
            traces=self.validation_agent.get_traces(),
            total_duration_ms=duration_ms,
        )
