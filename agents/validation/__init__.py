"""
ARTEX Article Validation Agent

Classifies candidate articles as standalone provisions or fragments.
"""

from .agent import VERDICT_RESPONSE_FORMAT, ArticleValidationAgent

__all__ = ["ArticleValidationAgent", "VERDICT_RESPONSE_FORMAT"]
