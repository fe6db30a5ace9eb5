"""
ARTEX Base Agent Class

This module defines the base architecture for ARTEX's LLM-backed agents.

ARCHITECTURE:
  - Agents call the OpenAI chat completions API with structured output
  - Agent outputs are validated into Pydantic models for type safety
  - Every call is traced (start, finish, attempts, error) for auditing
  - Configuration is loaded from the environment (.env supported)

AGENTS:
  - ArticleValidationAgent - judges whether a segment is a standalone
    provision or a fragment (agents/validation)
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Generic, Optional, TypeVar

from dotenv import load_dotenv
from pydantic import BaseModel

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT", bound=BaseModel)


@dataclass
class AgentConfig:
    """Configuration for ARTEX agents."""

    # LLM settings
    model: str = "gpt-4o-mini"
    temperature: float = 0.0  # Classification must be deterministic
    max_tokens: int = 512
    timeout: float = 60.0

    # Retry settings (rate limits only)
    max_retries: int = 3
    retry_base: float = 2.0

    # Logging
    log_level: str = "INFO"
    trace_enabled: bool = True

    @classmethod
    def from_env(cls) -> AgentConfig:
        """Load configuration from environment variables."""
        return cls(
            model=os.getenv("ARTEX_MODEL", "gpt-4o-mini"),
            temperature=float(os.getenv("ARTEX_TEMPERATURE", "0.0")),
            max_tokens=int(os.getenv("ARTEX_MAX_TOKENS", "512")),
            timeout=float(os.getenv("ARTEX_TIMEOUT", "60")),
            max_retries=int(os.getenv("ARTEX_MAX_RETRIES", "3")),
            retry_base=float(os.getenv("ARTEX_RETRY_BASE", "2.0")),
            log_level=os.getenv("ARTEX_LOG_LEVEL", "INFO"),
            trace_enabled=os.getenv("ARTEX_TRACE_ENABLED", "true").lower() == "true",
        )


@dataclass
class AgentTrace:
    """Trace record of one agent call."""

    agent_name: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    input_summary: Optional[str] = None
    output_summary: Optional[str] = None
    llm_calls: list[dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None

    def duration_ms(self) -> Optional[float]:
        """Get duration in milliseconds."""
        if self.completed_at is None:
            return None
        delta = self.completed_at - self.started_at
        return delta.total_seconds() * 1000


class BaseAgent(ABC, Generic[InputT, OutputT]):
    """
    Base class for ARTEX agents.

    Each agent implements:
      - `name`: Agent identifier
      - `run()`: Main execution method
      - `_get_system_prompt()`: LLM system prompt for this agent

    The base class provides:
      - Logging and tracing via `self.logger` and the trace helpers
      - Configuration via `self.config`
    """

    def __init__(self, config: Optional[AgentConfig] = None):
        """
        Initialize the agent.

        Args:
            config: Agent configuration (loaded from the environment if not provided)
        """
        self.config = config or AgentConfig.from_env()
        self._current_trace: Optional[AgentTrace] = None
        self._traces: list[AgentTrace] = []

        self.logger = logging.getLogger(f"artex.agents.{self.name}")
        self.logger.setLevel(getattr(logging, self.config.log_level.upper(), logging.INFO))

    @property
    @abstractmethod
    def name(self) -> str:
        """Agent identifier (e.g., 'validation')."""
        pass

    @abstractmethod
    async def run(self, input_data: InputT) -> OutputT:
        """
        Execute the agent's main function.

        Args:
            input_data: Input data for this agent

        Returns:
            Output model for this agent
        """
        pass

    @abstractmethod
    def _get_system_prompt(self) -> str:
        """Get the system prompt for this agent's LLM calls."""
        pass

    def _start_trace(self, input_summary: Optional[str] = None) -> AgentTrace:
        """Start a new trace for this agent execution."""
        self._current_trace = AgentTrace(
            agent_name=self.name,
            started_at=datetime.now(),
            input_summary=input_summary,
        )
        self.logger.debug(f"Started trace for {self.name} agent")
        return self._current_trace

    def _record_llm_call(self, **details: Any) -> None:
        """Attach one LLM attempt to the current trace."""
        if self._current_trace is not None:
            self._current_trace.llm_calls.append({
                "timestamp": datetime.now().isoformat(),
                **details,
            })

    def _complete_trace(
        self,
        output_summary: Optional[str] = None,
        error: Optional[str] = None
    ) -> AgentTrace:
        """Complete the current trace."""
        if self._current_trace is None:
            raise RuntimeError("No active trace to complete")

        self._current_trace.completed_at = datetime.now()
        self._current_trace.output_summary = output_summary
        self._current_trace.error = error
        if self.config.trace_enabled:
            self._traces.append(self._current_trace)

        duration = self._current_trace.duration_ms()
        self.logger.debug(
            f"Completed {self.name} agent in {duration:.1f}ms "
            f"(LLM calls: {len(self._current_trace.llm_calls)})"
        )

        return self._current_trace

    def get_last_trace(self) -> Optional[AgentTrace]:
        """Get the last execution trace."""
        return self._current_trace

    def get_traces(self) -> list[AgentTrace]:
        """Get all completed traces (empty when tracing is disabled)."""
        return list(self._traces)
