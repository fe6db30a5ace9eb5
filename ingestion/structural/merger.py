"""
Article Merge State Machine

Folds classified segments back into final articles. Segments judged
Incomplete open (or extend) a pending article; Continuation segments extend
it when they follow an Incomplete segment or an ongoing concatenation;
everything else closes the pending article.

STATES:
  Idle          no pending article
  Accumulating  a pending article is being assembled

TRANSITIONS:
  Idle         --Incomplete-->                              Accumulating (open)
  Accumulating --Incomplete, previous Incomplete-->         Accumulating (append)
  Accumulating --Continuation, previous Incomplete or
                 concatenating Continuation-->              Accumulating (append)
  Accumulating --Continuation, otherwise-->                 Idle (flush, discard current)
  any          --Valid-->                                   Idle (flush, emit current)
  any          --OutOfContext/Other-->                      Idle (flush, discard current)
  any          --classifier failure-->                      Idle (flush, emit current)

The machine itself (ArticleMerger) is synchronous. merge_all() drives it with
an async classifier, one window at a time, because each decision depends on
the verdict of the previous window.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Iterable, Optional, Protocol

from shared.errors import ClassificationError
from shared.models.articles import (
    ContextWindow,
    FinalArticle,
    PendingArticle,
    ReasonKind,
    Verdict,
)
from shared.models.dialects import DialectPolicy, OutOfContextPolicy

logger = logging.getLogger(__name__)

Classify = Callable[[ContextWindow], Awaitable[Verdict]]


class MergeRunContext(Protocol):
    """What merge_all needs from the job running it."""

    async def check_cancelled(self) -> None: ...

    async def report_progress(self, percent: int) -> None: ...


class ArticleMerger:
    """
    Merge state for one document run.

    Usage:
        merger = ArticleMerger()
        for window in windows:
            merger.accept(window, verdict_for(window))
        articles = merger.finish()
    """

    def __init__(self, policy: Optional[DialectPolicy] = None):
        self.keep_out_of_context = (
            policy is not None and policy.out_of_context == OutOfContextPolicy.KEEP
        )
        self.merge_continuations = policy.merge_continuations if policy is not None else True

        self.last_verdict: Verdict = Verdict.valid()
        self.pending: Optional[PendingArticle] = None
        self.is_concatenating = False
        self.output: list[FinalArticle] = []
        self._last_order = 0
        self._finished = False

    @property
    def state(self) -> str:
        return "accumulating" if self.pending is not None else "idle"

    def _check_order(self, window: ContextWindow) -> None:
        if self._finished:
            raise RuntimeError("Merge already finished")
        if window.order <= self._last_order:
            raise ValueError(
                f"Windows must arrive in increasing order: got {window.order} after {self._last_order}"
            )
        self._last_order = window.order

    def _flush(self) -> None:
        if self.pending is not None:
            self.output.append(self.pending.close())
            self.pending = None

    def _emit(self, window: ContextWindow) -> None:
        self.output.append(FinalArticle.from_window(window))

    def accept_unclassified(self, window: ContextWindow) -> None:
        """Keep a window whose classification failed, unchanged."""
        self._check_order(window)
        self._flush()
        self._emit(window)
        self.is_concatenating = False

    def accept(self, window: ContextWindow, verdict: Verdict) -> None:
        """Apply one verdict to the merge state."""
        self._check_order(window)
        previous = self.last_verdict.reason

        if verdict.is_valid:
            self._flush()
            self._emit(window)
            self.is_concatenating = False

        elif verdict.reason == ReasonKind.INCOMPLETE:
            if self.pending is not None and previous == ReasonKind.INCOMPLETE:
                self.pending.append(window.current)
            else:
                if self.pending is not None:
                    logger.warning(
                        f"Closing pending article {self.pending.order} before opening {window.order}"
                    )
                    self._flush()
                self.pending = PendingArticle.open(window)
            self.is_concatenating = True

        elif verdict.reason == ReasonKind.CONTINUATION and self._continues(previous):
            if self.pending is not None:
                self.pending.append(window.current)
            else:
                logger.debug(f"Continuation {window.order} has no pending article, discarded")
            self.is_concatenating = True

        elif verdict.reason == ReasonKind.CONTINUATION:
            self._flush()
            logger.debug(f"Discarding continuation {window.order} ({window.title})")
            self.is_concatenating = False

        else:
            self._flush()
            if self.keep_out_of_context:
                self._emit(window)
            else:
                logger.debug(f"Discarding {verdict.reason.value} segment {window.order} ({window.title})")
            self.is_concatenating = False

        self.last_verdict = verdict

    def _continues(self, previous: Optional[ReasonKind]) -> bool:
        if not self.merge_continuations:
            return False
        return previous == ReasonKind.INCOMPLETE or (
            self.is_concatenating and previous == ReasonKind.CONTINUATION
        )

    def finish(self) -> list[FinalArticle]:
        """Flush any pending article and return the final article list."""
        if not self._finished:
            self._flush()
            self._finished = True
        return list(self.output)


async def merge_all(
    windows: Iterable[ContextWindow],
    classify: Classify,
    context: Optional[MergeRunContext] = None,
    policy: Optional[DialectPolicy] = None,
) -> list[FinalArticle]:
    """
    Classify windows in order and merge them into final articles.

    Args:
        windows: Context windows in increasing order
        classify: Async classifier returning a Verdict, raising
            ClassificationError on failure
        context: Optional run context for cancellation and progress
        policy: Dialect policy (default merge policy when omitted)

    Returns:
        Final articles ordered by `order`

    Raises:
        CancellationRequested: if the run context reports cancellation
    """
    windows = list(windows)
    merger = ArticleMerger(policy)
    total = len(windows)

    for done, window in enumerate(windows, start=1):
        if context is not None:
            await context.check_cancelled()

        window = window.with_last_verdict(merger.last_verdict)
        try:
            verdict = await classify(window)
        except ClassificationError as e:
            logger.warning(
                f"Classification failed for window {window.order} ({window.title}), keeping it as is: {e}"
            )
            merger.accept_unclassified(window)
        else:
            merger.accept(window, verdict)

        if context is not None:
            await context.report_progress(done * 100 // total)

    articles = merger.finish()
    logger.info(f"Merged {total} segments into {len(articles)} articles")
    return articles
