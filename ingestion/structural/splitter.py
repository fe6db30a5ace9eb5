"""
Deterministic Splitter for Legal Documents

This module cuts cleaned document text into segments at heading boundaries
and builds the context windows sent to the article classifier.

The splitter produces:
  1. One Segment per heading occurrence: the text after the heading up to
     the next heading (or the end of the document)
  2. One ContextWindow per segment: previous segment, current content and
     next segment, with a 1-based order

Key principles:
  - No LLM calls - pure slicing of the source text
  - No filtering - empty segments are kept; the classifier decides on them
  - Text before the first heading (preamble, publication data) is not part
    of any segment
"""

from __future__ import annotations

from typing import Sequence

from shared.errors import SegmentationFailure
from shared.models.articles import (
    ContextWindow,
    HeadingMatch,
    PreviousSegment,
    Segment,
    Verdict,
)


def _with_sentinel(text: str, matches: Sequence[HeadingMatch]) -> list[HeadingMatch]:
    """Sort boundaries and close them with a sentinel at the end of the text."""
    boundaries = sorted(matches, key=lambda m: m.offset)
    boundaries.append(HeadingMatch(text="", offset=len(text), end=len(text)))
    return boundaries


def split_segments(text: str, matches: Sequence[HeadingMatch]) -> list[Segment]:
    """
    Cut text into one segment per heading occurrence.

    Args:
        text: Cleaned document text the matches were found in
        matches: Heading occurrences (from HeadingMatcher.find_all)

    Returns:
        Segments in document order

    Raises:
        SegmentationFailure: if there are no matches

    Example:
        >>> text = "ARTÍCULO 1\\nUno.\\nARTÍCULO 2\\nDos."
        >>> matches = [
        ...     HeadingMatch(text="ARTÍCULO 1", offset=0, end=10),
        ...     HeadingMatch(text="ARTÍCULO 2", offset=16, end=26),
        ... ]
        >>> [s.content for s in split_segments(text, matches)]
        ['Uno.', 'Dos.']
    """
    if not matches:
        raise SegmentationFailure("Cannot segment a document without heading boundaries")

    boundaries = _with_sentinel(text, matches)
    segments: list[Segment] = []
    for current, following in zip(boundaries, boundaries[1:]):
        segments.append(
            Segment(
                title=current.text.strip(),
                start_offset=current.offset,
                content=text[current.end:following.offset].strip(),
            )
        )
    return segments


def build_windows(segments: Sequence[Segment]) -> list[ContextWindow]:
    """
    Build the classifier context window for every segment.

    The first window's previous content is empty and every window starts
    with a valid last verdict; the merge run replaces it with the verdict
    the previous window actually received.

    Args:
        segments: Segments in document order

    Returns:
        Windows with order 1..len(segments)
    """
    windows: list[ContextWindow] = []
    for index, segment in enumerate(segments):
        previous = segments[index - 1].with_heading() if index > 0 else ""
        following = segments[index + 1].with_heading() if index + 1 < len(segments) else ""
        windows.append(
            ContextWindow(
                title=segment.title,
                previous=PreviousSegment(content=previous, last_verdict=Verdict.valid()),
                current=segment.content,
                next=following,
                order=index + 1,
            )
        )
    return windows


def segment(text: str, matches: Sequence[HeadingMatch]) -> list[ContextWindow]:
    """
    Segment text at heading boundaries and return its context windows.

    Raises:
        SegmentationFailure: if there are no matches
    """
    return build_windows(split_segments(text, matches))
