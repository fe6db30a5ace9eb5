"""
Deterministic Text Cleaning

Plain text extracted from PDFs and Word documents is noisy: keywords arrive
letter-spaced ("A R T Í C U L O 5"), indexes repeat every heading with
leader dots, and line endings vary. This module normalizes the text so that
headings can be located reliably.

Key principles:
  - No LLM calls - regex rewrites only
  - Dialect-specific rules come from DialectPolicy.cleaning_rules
  - Cleaning never reorders text
"""

import re

from shared.models.dialects import DialectPolicy

_TRAILING_SPACE = re.compile(r"[ \t]+$", re.MULTILINE)
_BLANK_RUNS = re.compile(r"\n{3,}")


def normalize_newlines(text: str) -> str:
    """Convert CRLF/CR line endings to LF and drop form feeds."""
    return text.replace("\r\n", "\n").replace("\r", "\n").replace("\f", "\n")


def clean_text(text: str, policy: DialectPolicy) -> str:
    """
    Apply a dialect's cleaning rules to raw document text.

    Args:
        text: Raw plain text of the document
        policy: Dialect policy whose cleaning rules are applied in order

    Returns:
        Cleaned text, with trailing spaces removed and runs of blank lines
        collapsed to a single blank line.

    Example:
        >>> from shared.models.dialects import get_dialect_policy
        >>> clean_text("A R T I C U L O 1\\nTexto", get_dialect_policy("law"))
        'ARTÍCULO 1\\nTexto'
    """
    text = normalize_newlines(text)
    for rule in policy.cleaning_rules:
        text = rule.apply(text)
    text = _TRAILING_SPACE.sub("", text)
    return _BLANK_RUNS.sub("\n\n", text).strip()
