"""
Document Dialects

Laws, regulations and technical standards share one extraction engine but
differ in three places:
  - cleaning_rules: regex rewrites applied to the raw text before matching
  - heading_vocabulary: line-start patterns that recognise structural headings
  - merge policy: what happens to segments judged out of context

Each dialect is a DialectPolicy value selected by DialectKind. There is no
per-dialect subclassing of the engine.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Pattern


class DialectKind(str, Enum):
    """Type of legal document being processed."""

    LAW = "law"
    REGULATION = "regulation"
    STANDARD = "standard"


class OutOfContextPolicy(str, Enum):
    """Treatment of OutOfContext / Other verdicts."""

    DISCARD = "discard"
    KEEP = "keep"


@dataclass(frozen=True)
class CleaningRule:
    """One regex rewrite applied during text cleaning."""

    pattern: Pattern[str]
    replacement: str

    def apply(self, text: str) -> str:
        return self.pattern.sub(self.replacement, text)


@dataclass(frozen=True)
class DialectPolicy:
    """Everything that varies between document dialects."""

    kind: DialectKind
    display_name: str
    cleaning_rules: tuple[CleaningRule, ...] = ()
    heading_vocabulary: tuple[Pattern[str], ...] = ()
    out_of_context: OutOfContextPolicy = OutOfContextPolicy.DISCARD
    merge_continuations: bool = True


# =============================================================================
# Cleaning rules
# =============================================================================

_FLAGS = re.IGNORECASE | re.UNICODE

# Number after a keyword: arabic with optional letter suffix, or roman
_NUMBER = r"(\d+[A-Z]*|[IVXLCDM]+)"


def _spaced(word: str) -> str:
    """Pattern matching `word` with optional horizontal spaces between letters."""
    variants = {
        "A": "[AÁ]", "E": "[EÉ]", "I": "[IÍ]", "O": "[OÓ]", "U": "[UÚ]",
    }
    return r"[ \t]*".join(variants.get(ch, re.escape(ch)) for ch in word.upper())


def _keyword_rule(word: str, canonical: str, number_required: bool = True) -> CleaningRule:
    number = _NUMBER if number_required else f"{_NUMBER}?"
    pattern = re.compile(rf"\b{_spaced(word)}[ \t]*{number}\b", _FLAGS)
    return CleaningRule(pattern, rf"{canonical} \1")


ARTICLE_RULE = _keyword_rule("ARTICULO", "ARTÍCULO")
CHAPTER_RULE = _keyword_rule("CAPITULO", "CAPÍTULO")
SECTION_RULE = _keyword_rule("SECCION", "SECCIÓN")
TITLE_RULE = _keyword_rule("TITULO", "TÍTULO")
ANNEX_RULE = _keyword_rule("ANEXO", "ANEXO", number_required=False)
APPENDIX_RULE = _keyword_rule("APENDICE", "APÉNDICE", number_required=False)
CONTENT_RULE = _keyword_rule("CONTENIDO", "CONTENIDO", number_required=False)
INDEX_RULE = _keyword_rule("INDICE", "ÍNDICE", number_required=False)

# "ARTÍCULOS TRANSITORIOS", "T R A N S I T O R I O S" -> "TRANSITORIOS"
TRANSITORY_BLOCK_RULE = CleaningRule(
    re.compile(rf"^[ \t]*(?:\w+[ \t]+)?{_spaced('TRANSITORIOS')}\b", _FLAGS | re.MULTILINE),
    "TRANSITORIOS",
)

# "Transitorio 1", "TRANSITORIA II" -> "TRANSITORIO 1"
TRANSITORY_ITEM_RULE = CleaningRule(
    re.compile(rf"^[ \t]*(?:\w+[ \t]+)?TRANSITORI[AO]S?[ \t]*{_NUMBER}?\b", _FLAGS | re.MULTILINE),
    r"TRANSITORIO \1",
)

# Table-of-contents lines: leader dots followed by a page number ("Artículo 3 ........ 12")
INDEX_LINE_RULE = CleaningRule(
    re.compile(r"^[^\n]*?\.{3,}[ \t]*\d+[ \t]*$", re.MULTILINE),
    "",
)
ELLIPSIS_RULE = CleaningRule(re.compile(r"[ \t]*\.{3,}[ \t]*"), " ")

_COMMON_TAIL = (INDEX_LINE_RULE, ELLIPSIS_RULE)


# =============================================================================
# Heading vocabulary
# =============================================================================

def _heading(pattern: str) -> Pattern[str]:
    # Every heading starts a line
    return re.compile(rf"^[ \t]*(?P<heading>{pattern})", _FLAGS | re.MULTILINE)


_LAW_HEADINGS = (
    _heading(r"T[IÍ]TULO[ \t]+\S+"),
    _heading(r"CAP[IÍ]TULO[ \t]+\S+"),
    _heading(r"SECCI[OÓ]N[ \t]+\S+"),
    _heading(r"ART[IÍ]CULO[ \t]+\S+"),
    _heading(r"TRANSITORIOS"),
)

_REGULATION_HEADINGS = (
    _heading(r"T[IÍ]TULO[ \t]+\S+"),
    _heading(r"CAP[IÍ]TULO[ \t]+\S+"),
    _heading(r"SECCI[OÓ]N[ \t]+\S+"),
    _heading(r"ART[IÍ]CULO[ \t]+\S+"),
    _heading(r"TRANSITORI[OA]S?(?:[ \t]+\S+)?"),
    _heading(r"ANEXO(?:[ \t]+\S+)?"),
)

# Standards: whole centred heading lines and top-level numbered roots only
_STANDARD_HEADINGS = (
    _heading(r"(?:PREFACIO|CONSIDERANDO|CONTENIDO|[IÍ]NDICE|TRANSITORIOS?)(?:[ \t]+[^\n]+)?"),
    _heading(r"(?:T[IÍ]TULO|CAP[IÍ]TULO|SECCI[OÓ]N|AP[EÉ]NDICE|ANEXO)(?:[ \t]+[^\n]+)?"),
    _heading(r"\d+\.?[ \t]+[A-ZÁÉÍÓÚÑ][^\n]*"),
)


DIALECT_POLICIES: dict[DialectKind, DialectPolicy] = {
    DialectKind.LAW: DialectPolicy(
        kind=DialectKind.LAW,
        display_name="Ley",
        cleaning_rules=(
            ARTICLE_RULE,
            CHAPTER_RULE,
            SECTION_RULE,
            TITLE_RULE,
            TRANSITORY_BLOCK_RULE,
            *_COMMON_TAIL,
        ),
        heading_vocabulary=_LAW_HEADINGS,
    ),
    DialectKind.REGULATION: DialectPolicy(
        kind=DialectKind.REGULATION,
        display_name="Reglamento",
        cleaning_rules=(
            ARTICLE_RULE,
            CHAPTER_RULE,
            SECTION_RULE,
            TITLE_RULE,
            TRANSITORY_ITEM_RULE,
            ANNEX_RULE,
            *_COMMON_TAIL,
        ),
        heading_vocabulary=_REGULATION_HEADINGS,
    ),
    DialectKind.STANDARD: DialectPolicy(
        kind=DialectKind.STANDARD,
        display_name="Norma",
        cleaning_rules=(
            TITLE_RULE,
            SECTION_RULE,
            TRANSITORY_ITEM_RULE,
            ANNEX_RULE,
            APPENDIX_RULE,
            CONTENT_RULE,
            INDEX_RULE,
            *_COMMON_TAIL,
        ),
        heading_vocabulary=_STANDARD_HEADINGS,
    ),
}


def get_dialect_policy(kind: DialectKind | str) -> DialectPolicy:
    """
    Look up the policy for a dialect.

    Accepts the enum or its string value ("law", "regulation", "standard").

    Raises:
        ValueError: if the dialect is unknown
    """
    try:
        return DIALECT_POLICIES[DialectKind(kind)]
    except ValueError as e:
        raise ValueError(f"Unknown document dialect: {kind!r}") from e
