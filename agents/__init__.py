"""
ARTEX Agents

This package contains the LLM-backed article validation agent and the
extraction pipeline built around it:

  - ArticleValidationAgent - classifies candidate articles as standalone
    provisions or fragments
  - ExtractionPipeline - cleaning → headings → segmentation →
    validation/merge for one document

Usage:
    from agents import ExtractionPipeline

    pipeline = ExtractionPipeline("regulation", document_name="Reglamento de Tránsito")
    result = await pipeline.run(text)
    print(len(result.articles))
"""

from .base import AgentConfig, AgentTrace, BaseAgent
from .validation import ArticleValidationAgent
from .orchestrator import ExtractionPipeline, PipelineResult, RunContext

__all__ = [
    # Base
    "AgentConfig",
    "AgentTrace",
    "BaseAgent",
    # Validation
    "ArticleValidationAgent",
    # Pipeline
    "ExtractionPipeline",
    "PipelineResult",
    "RunContext",
]
