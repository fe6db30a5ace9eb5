"""
ARTEX Article Validation Agent

This agent is the gateway to the semantic classifier. For one context window
it asks the LLM whether the current segment is a complete, standalone legal
provision or a fragment of a neighbouring one.

VERDICTS:
  - valid: the segment stands on its own
  - IsIncomplete: the segment is cut off and continues in the next one
  - IsContinuation: the segment continues the previous one
  - OutContext: the segment only references other provisions (index
    entries, repeated headers, footnotes)
  - Other: anything else that is not a provision

FAILURE POLICY:
  - Rate limit (HTTP 429): retried with exponential backoff
  - Any other API or network error: fails immediately
  - Response that is not a valid verdict: fails immediately
All failures raise ClassificationError; the merge decides what to do.
"""

from __future__ import annotations

import asyncio
import json
import os
from typing import Any, Awaitable, Callable, Optional

from openai import AsyncOpenAI, OpenAIError, RateLimitError
from pydantic import ValidationError

from agents.base import AgentConfig, BaseAgent
from shared.errors import ClassificationShapeFailure, ClassificationTransportFailure
from shared.models import ContextWindow, ReasonKind, Verdict

Sleep = Callable[[float], Awaitable[Any]]

VERDICT_RESPONSE_FORMAT: dict[str, Any] = {
    "type": "json_schema",
    "json_schema": {
        "name": "article_verification",
        "strict": True,
        "schema": {
            "type": "object",
            "properties": {
                "isValid": {
                    "description": "Whether the provision is complete and standalone",
                    "type": "boolean",
                },
                "reason": {
                    "description": "Why the provision is invalid; null when it is valid",
                    "type": ["string", "null"],
                    "enum": [kind.value for kind in ReasonKind] + [None],
                },
            },
            "required": ["isValid", "reason"],
            "additionalProperties": False,
        },
    },
}


class ArticleValidationAgent(BaseAgent[ContextWindow, Verdict]):
    """
    Classifier gateway for candidate articles.

    Usage:
        agent = ArticleValidationAgent(document_name="Ley General de Salud")
        verdict = await agent.classify(window)
    """

    def __init__(
        self,
        config: Optional[AgentConfig] = None,
        document_name: str = "",
        client: Optional[AsyncOpenAI] = None,
        sleep: Optional[Sleep] = None,
    ):
        super().__init__(config)
        if client is None:
            api_key = os.getenv("OPENAI_API_KEY")
            if not api_key:
                raise ValueError(
                    "OPENAI_API_KEY environment variable is required. "
                    "Please set it before initializing the ArticleValidationAgent."
                )
            client = AsyncOpenAI(api_key=api_key)
        self._client = client
        self._sleep: Sleep = sleep or asyncio.sleep
        self.document_name = document_name

    @property
    def name(self) -> str:
        return "validation"

    def _get_system_prompt(self) -> str:
        return (
            "You are a legal expert who confirms the validity of provisions extracted "
            "from Mexican legal documents (laws, regulations and official standards). "
            "Although your instructions are in English, the provisions are in Spanish."
        )

    def _build_prompt(self, window: ContextWindow) -> str:
        last = window.previous.last_verdict.to_wire()
        return f"""By default every provision is VALID unless it clearly meets one of the exceptions below.

### Context
- Legal document: "{self.document_name}"
- Previous provision: "{window.previous.content}"
  (Validation: {json.dumps(last)})
- Title: "{window.title}"
- Content: "{window.current}"
- Next provision: "{window.next}"

### Exceptions (mark as INVALID)
- IsIncomplete: the text is abruptly cut off or clearly unfinished and its idea
  continues in the next provision. An empty content is IsIncomplete.
- IsContinuation: the text continues the idea of the previous provision and does
  not stand alone. If the previous provision was IsIncomplete, a provision that
  completes it is IsContinuation.
- OutContext: the text only references other provisions (index entries,
  repeated page headers, footnotes) without stating a provision of its own.
- Other: the text is not a legal provision at all.

### Rules
1. If the provision is VALID, "isValid" is true and "reason" is null.
2. If the provision is INVALID, "isValid" is false and "reason" is one of
   "IsIncomplete", "IsContinuation", "OutContext", "Other".

Unless an exception is clearly met, classify the provision as VALID."""

    async def run(self, input_data: ContextWindow) -> Verdict:
        """
        Classify one context window.

        Args:
            input_data: Window to classify

        Returns:
            The classifier's Verdict

        Raises:
            ClassificationTransportFailure: API error, or rate limits persisted
                through every retry
            ClassificationShapeFailure: the response was not a valid verdict
        """
        window = input_data
        self._start_trace(input_summary=f"Window {window.order}: {window.title}")
        try:
            verdict = await self._request_verdict(window)
        except (ClassificationTransportFailure, ClassificationShapeFailure) as e:
            self._complete_trace(error=str(e))
            raise

        self._complete_trace(output_summary=json.dumps(verdict.to_wire()))
        return verdict

    async def classify(self, window: ContextWindow) -> Verdict:
        """Alias of run(), usable directly as the merge classifier."""
        return await self.run(window)

    async def _request_verdict(self, window: ContextWindow) -> Verdict:
        messages = [
            {"role": "system", "content": self._get_system_prompt()},
            {"role": "user", "content": self._build_prompt(window)},
        ]
        max_retries = self.config.max_retries

        for attempt in range(max_retries + 1):
            try:
                response = await self._client.chat.completions.create(
                    model=self.config.model,
                    temperature=self.config.temperature,
                    max_tokens=self.config.max_tokens,
                    messages=messages,
                    response_format=VERDICT_RESPONSE_FORMAT,
                    timeout=self.config.timeout,
                )
            except RateLimitError as e:
                self._record_llm_call(attempt=attempt, outcome="rate_limited")
                if attempt < max_retries:
                    delay = self.config.retry_base ** attempt
                    self.logger.warning(
                        f"Rate limited on window {window.order} "
                        f"(attempt {attempt + 1}/{max_retries + 1}), retrying in {delay:.0f}s"
                    )
                    await self._sleep(delay)
                    continue
                raise ClassificationTransportFailure(
                    f"Rate limit persisted after {attempt + 1} attempts",
                    order=window.order,
                    rate_limited=True,
                    attempts=attempt + 1,
                ) from e
            except OpenAIError as e:
                self._record_llm_call(attempt=attempt, outcome=type(e).__name__)
                raise ClassificationTransportFailure(
                    f"Classifier request failed: {e}",
                    order=window.order,
                    attempts=attempt + 1,
                ) from e

            self._record_llm_call(attempt=attempt, outcome="ok")
            return self._parse_verdict(response, window.order)

        # range() always ends in return or raise; kept for type checkers
        raise ClassificationTransportFailure("No classification attempt was made", order=window.order)

    def _parse_verdict(self, response: Any, order: int) -> Verdict:
        """Validate the raw completion against the Verdict shape."""
        if not response.choices or not response.choices[0].message.content:
            raise ClassificationShapeFailure("Classifier returned an empty response", order=order)
        content = response.choices[0].message.content
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise ClassificationShapeFailure(f"Classifier returned invalid JSON: {e}", order=order) from e
        if not isinstance(data, dict):
            raise ClassificationShapeFailure("Classifier returned a non-object verdict", order=order)
        try:
            return Verdict.model_validate(data)
        except ValidationError as e:
            raise ClassificationShapeFailure(f"Classifier returned an invalid verdict: {e}", order=order) from e
