"""
Heading Location for Legal Documents

Two pieces live here:

  1. HeadingMatcher - compiles an ordered heading list into one pattern and
     finds every occurrence of those headings at line starts.
  2. RuleBasedHeadingProvider - derives a heading list from cleaned text
     using a dialect's heading vocabulary, for callers that have no
     semantic heading provider.

Heading text is document-derived data, so it is always escaped before being
compiled. Matching is case-insensitive and non-overlapping; when two headings
could match at the same offset the one supplied first wins.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Union

from shared.errors import SegmentationFailure
from shared.models.articles import HeadingMatch, HeadingSpec
from shared.models.dialects import DialectPolicy

logger = logging.getLogger(__name__)

HeadingInput = Union[HeadingSpec, str]


def to_heading_specs(headings: Iterable[HeadingInput]) -> list[HeadingSpec]:
    """Normalize a heading list to HeadingSpecs, dropping blank strings."""
    specs: list[HeadingSpec] = []
    for heading in headings:
        if isinstance(heading, str):
            if not heading.strip():
                continue
            heading = HeadingSpec(text=heading, order=len(specs))
        specs.append(heading)
    return specs


def _heading_pattern(text: str) -> str:
    """Escaped pattern for one heading, tolerant to spacing differences."""
    tokens = text.split()
    pattern = r"[ \t]+".join(re.escape(token) for token in tokens)
    # "ARTÍCULO 1" must not match the start of "ARTÍCULO 10"
    if re.match(r"\w", tokens[-1][-1]):
        pattern += r"(?!\w)"
    return pattern


class HeadingMatcher:
    """
    Finds heading occurrences in a document.

    Usage:
        matcher = HeadingMatcher(["ARTÍCULO 1", "ARTÍCULO 2", "TRANSITORIOS"])
        matches = matcher.find_all(text)
    """

    def __init__(self, headings: Iterable[HeadingInput]):
        self.specs = to_heading_specs(headings)

        # Repeated headings are positional, one alternative is enough to find them all
        seen: set[str] = set()
        alternatives: list[str] = []
        for spec in self.specs:
            key = " ".join(spec.text.split()).casefold()
            if not key or key in seen:
                continue
            seen.add(key)
            alternatives.append(_heading_pattern(spec.text))

        if not alternatives:
            raise SegmentationFailure("No headings supplied for segmentation")

        self.pattern = re.compile(
            r"^[ \t]*(?P<heading>" + "|".join(alternatives) + ")",
            re.IGNORECASE | re.MULTILINE,
        )

    @classmethod
    def build(cls, headings: Iterable[HeadingInput]) -> HeadingMatcher:
        return cls(headings)

    def find_all(self, text: str) -> list[HeadingMatch]:
        """
        Locate every heading occurrence anchored at a line start.

        Args:
            text: Cleaned document text

        Returns:
            Matches ordered by offset, non-overlapping

        Raises:
            SegmentationFailure: if no heading occurs in the text
        """
        matches = [
            HeadingMatch(
                text=match.group("heading"),
                offset=match.start("heading"),
                end=match.end("heading"),
            )
            for match in self.pattern.finditer(text)
        ]
        if not matches:
            raise SegmentationFailure(
                f"None of the {len(self.specs)} headings were found in the document"
            )
        logger.debug(f"Matched {len(matches)} heading occurrences from {len(self.specs)} specs")
        return matches


class RuleBasedHeadingProvider:
    """
    Heading-list provider driven by a dialect's heading vocabulary.

    Scans cleaned text line by line and returns every line start recognised
    as a structural heading, in document order. Repeated headings are
    returned once per occurrence.
    """

    def __init__(self, policy: DialectPolicy):
        self.policy = policy

    def headings(self, text: str) -> list[HeadingSpec]:
        """
        Derive the heading list for `text`.

        Raises:
            SegmentationFailure: if the text contains no recognisable heading
                (the "invalid document" signal)
        """
        found: dict[int, str] = {}
        for pattern in self.policy.heading_vocabulary:
            for match in pattern.finditer(text):
                offset = match.start("heading")
                heading = match.group("heading").strip()
                # Earlier vocabulary entries take precedence at the same offset
                if heading and offset not in found:
                    found[offset] = heading

        if not found:
            raise SegmentationFailure(
                f"No {self.policy.display_name} headings found; the document is not valid"
            )

        return [
            HeadingSpec(text=found[offset], order=index)
            for index, offset in enumerate(sorted(found))
        ]
