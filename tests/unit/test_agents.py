"""
Unit Tests for ARTEX Agents

This module tests:
  1. AgentConfig / AgentTrace - configuration and tracing
  2. ArticleValidationAgent - the classifier gateway (retry and failure policy)
  3. ExtractionPipeline - the end-to-end run over a document

Tests use mocked LLM responses to ensure deterministic behavior.
"""

import json
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from agents.base import AgentConfig, AgentTrace
from agents.orchestrator import ExtractionPipeline, PipelineResult, RunContext
from agents.validation import VERDICT_RESPONSE_FORMAT, ArticleValidationAgent
from shared.errors import (
    CancellationRequested,
    ClassificationShapeFailure,
    ClassificationTransportFailure,
    SegmentationFailure,
)
from shared.models import (
    ContextWindow,
    DialectKind,
    PreviousSegment,
    ReasonKind,
    Verdict,
)

OPENAI_URL = "https://api.openai.com/v1/chat/completions"


# =============================================================================
# Fixtures
# =============================================================================

def _completion(content):
    """Mock chat completion carrying `content` as the first choice."""
    response = MagicMock()
    response.choices = [MagicMock(message=MagicMock(content=content))]
    return response


def _rate_limit_error():
    request = httpx.Request("POST", OPENAI_URL)
    return openai.RateLimitError(
        "Rate limit reached",
        response=httpx.Response(429, request=request),
        body=None,
    )


@pytest.fixture
def mock_client():
    """Mock AsyncOpenAI client with a patchable completions.create."""
    client = MagicMock()
    client.chat.completions.create = AsyncMock(
        return_value=_completion(json.dumps({"isValid": True, "reason": None}))
    )
    return client


@pytest.fixture
def mock_sleep():
    return AsyncMock()


@pytest.fixture
def validation_agent(agent_config, mock_client, mock_sleep):
    return ArticleValidationAgent(
        agent_config,
        document_name="Ley de Aguas del Estado",
        client=mock_client,
        sleep=mock_sleep,
    )


@pytest.fixture
def window():
    return ContextWindow(
        title="ARTÍCULO 2.",
        previous=PreviousSegment(
            content="ARTÍCULO 1. La presente Ley es de orden público.",
            last_verdict=Verdict.invalid(ReasonKind.INCOMPLETE),
        ),
        current="Son autoridades en materia de agua:",
        next="ARTÍCULO 3. La Comisión vigilará el cumplimiento de esta Ley.",
        order=2,
    )


# =============================================================================
# AgentConfig Tests
# =============================================================================

class TestAgentConfig:
    """Tests for AgentConfig."""

    def test_default_values(self):
        config = AgentConfig()
        assert config.model == "gpt-4o-mini"
        assert config.temperature == 0.0
        assert config.max_tokens == 512
        assert config.timeout == 60.0
        assert config.max_retries == 3
        assert config.retry_base == 2.0
        assert config.trace_enabled is True

    @patch.dict("os.environ", {
        "ARTEX_MODEL": "gpt-4o",
        "ARTEX_MAX_RETRIES": "5",
        "ARTEX_RETRY_BASE": "3",
        "ARTEX_TRACE_ENABLED": "false",
    })
    def test_from_env(self):
        config = AgentConfig.from_env()
        assert config.model == "gpt-4o"
        assert config.max_retries == 5
        assert config.retry_base == 3.0
        assert config.trace_enabled is False


# =============================================================================
# AgentTrace Tests
# =============================================================================

class TestAgentTrace:
    """Tests for AgentTrace."""

    def test_trace_creation(self):
        trace = AgentTrace(agent_name="validation", started_at=datetime.now())
        assert trace.completed_at is None
        assert trace.duration_ms() is None
        assert trace.llm_calls == []

    def test_duration_calculation(self):
        start = datetime(2024, 1, 1, 12, 0, 0)
        trace = AgentTrace(
            agent_name="validation",
            started_at=start,
            completed_at=start + timedelta(milliseconds=250),
        )
        assert trace.duration_ms() == pytest.approx(250.0)


# =============================================================================
# ArticleValidationAgent Tests
# =============================================================================

class TestArticleValidationAgent:
    """Tests for ArticleValidationAgent."""

    def test_agent_properties(self, validation_agent):
        assert validation_agent.name == "validation"
        assert "Spanish" in validation_agent._get_system_prompt()

    def test_requires_api_key(self, agent_config):
        with patch.dict("os.environ", {"OPENAI_API_KEY": ""}):
            with pytest.raises(ValueError, match="OPENAI_API_KEY"):
                ArticleValidationAgent(agent_config)

    def test_prompt_contains_window(self, validation_agent, window):
        prompt = validation_agent._build_prompt(window)
        assert "Ley de Aguas del Estado" in prompt
        assert window.title in prompt
        assert window.current in prompt
        assert window.next in prompt
        assert '{"isValid": false, "reason": "IsIncomplete"}' in prompt

    def test_response_format_is_strict(self):
        schema = VERDICT_RESPONSE_FORMAT["json_schema"]
        assert schema["strict"] is True
        assert schema["schema"]["required"] == ["isValid", "reason"]
        assert "IsContinuation" in schema["schema"]["properties"]["reason"]["enum"]

    @pytest.mark.asyncio
    async def test_classify_valid(self, validation_agent, mock_client, window):
        verdict = await validation_agent.classify(window)

        assert verdict == Verdict.valid()
        kwargs = mock_client.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["temperature"] == 0.0
        assert kwargs["response_format"] == VERDICT_RESPONSE_FORMAT
        assert kwargs["messages"][0]["role"] == "system"

    @pytest.mark.asyncio
    async def test_classify_invalid(self, validation_agent, mock_client, window):
        mock_client.chat.completions.create.return_value = _completion(
            json.dumps({"isValid": False, "reason": "IsContinuation"})
        )

        verdict = await validation_agent.classify(window)

        assert verdict == Verdict.invalid(ReasonKind.CONTINUATION)

    @pytest.mark.asyncio
    async def test_trace_recorded(self, validation_agent, window):
        await validation_agent.run(window)

        trace = validation_agent.get_last_trace()
        assert trace.agent_name == "validation"
        assert trace.error is None
        assert len(trace.llm_calls) == 1
        assert validation_agent.get_traces() == [trace]

    @pytest.mark.asyncio
    async def test_rate_limit_retried_then_succeeds(
        self, validation_agent, mock_client, mock_sleep, window
    ):
        mock_client.chat.completions.create.side_effect = [
            _rate_limit_error(),
            _completion(json.dumps({"isValid": True, "reason": None})),
        ]

        verdict = await validation_agent.classify(window)

        assert verdict.is_valid is True
        assert mock_client.chat.completions.create.await_count == 2
        mock_sleep.assert_awaited_once_with(1.0)

    @pytest.mark.asyncio
    async def test_rate_limit_exhausted(self, validation_agent, mock_client, mock_sleep, window):
        mock_client.chat.completions.create.side_effect = _rate_limit_error()

        with pytest.raises(ClassificationTransportFailure) as exc_info:
            await validation_agent.classify(window)

        assert exc_info.value.rate_limited is True
        assert exc_info.value.attempts == 4
        assert exc_info.value.order == 2
        assert mock_client.chat.completions.create.await_count == 4
        assert [c.args[0] for c in mock_sleep.await_args_list] == [1.0, 2.0, 4.0]
        assert validation_agent.get_last_trace().error is not None

    @pytest.mark.asyncio
    async def test_connection_error_not_retried(
        self, validation_agent, mock_client, mock_sleep, window
    ):
        mock_client.chat.completions.create.side_effect = openai.APIConnectionError(
            request=httpx.Request("POST", OPENAI_URL)
        )

        with pytest.raises(ClassificationTransportFailure) as exc_info:
            await validation_agent.classify(window)

        assert exc_info.value.rate_limited is False
        assert mock_client.chat.completions.create.await_count == 1
        mock_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", [
        None,
        "not json",
        "[true]",
        json.dumps({"isValid": False, "reason": None}),
        json.dumps({"isValid": False, "reason": "Unknown"}),
    ])
    async def test_shape_failures(self, validation_agent, mock_client, window, content):
        mock_client.chat.completions.create.return_value = _completion(content)

        with pytest.raises(ClassificationShapeFailure):
            await validation_agent.classify(window)

        assert mock_client.chat.completions.create.await_count == 1


# =============================================================================
# ExtractionPipeline Tests
# =============================================================================

@pytest.fixture
def mock_validation_agent():
    """Validation agent double whose classify() is scripted per test."""
    agent = MagicMock(spec=ArticleValidationAgent)
    agent.classify = AsyncMock(return_value=Verdict.valid())
    agent.get_traces.return_value = []
    return agent


class TestExtractionPipeline:
    """Tests for ExtractionPipeline."""

    def test_unknown_dialect(self, agent_config, mock_validation_agent):
        with pytest.raises(ValueError):
            ExtractionPipeline("decree", config=agent_config, validation_agent=mock_validation_agent)

    @pytest.mark.asyncio
    async def test_law_end_to_end(self, agent_config, mock_validation_agent, law_text):
        mock_validation_agent.classify.side_effect = [
            Verdict.invalid(ReasonKind.OUT_OF_CONTEXT),
            Verdict.valid(),
            Verdict.invalid(ReasonKind.INCOMPLETE),
            Verdict.invalid(ReasonKind.CONTINUATION),
            Verdict.valid(),
        ]
        pipeline = ExtractionPipeline(
            DialectKind.LAW,
            document_name="Ley de Aguas del Estado",
            config=agent_config,
            validation_agent=mock_validation_agent,
        )

        result = await pipeline.run(law_text)

        assert isinstance(result, PipelineResult)
        assert result.dialect == DialectKind.LAW
        assert result.total_segments == 5
        assert [a.title for a in result.articles] == ["ARTÍCULO 1.", "ARTÍCULO 2.", "TRANSITORIOS"]
        assert [a.order for a in result.articles] == [2, 3, 5]
        assert result.articles[1].content == (
            "Son autoridades en materia de agua:\nI. El Gobernador; "
            "La Comisión vigilará el cumplimiento de esta Ley."
        )

    @pytest.mark.asyncio
    async def test_supplied_headings(self, agent_config, mock_validation_agent):
        pipeline = ExtractionPipeline(
            "regulation", config=agent_config, validation_agent=mock_validation_agent
        )
        text = "Considerando\nARTÍCULO 1. Uno.\nNota al pie\nARTÍCULO 2. Dos."

        result = await pipeline.run(text, headings=["ARTÍCULO 1.", "Nota al pie", "ARTÍCULO 2."])

        assert [a.title for a in result.articles] == ["ARTÍCULO 1.", "Nota al pie", "ARTÍCULO 2."]
        assert [h.order for h in result.headings] == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_document_without_headings(self, agent_config, mock_validation_agent):
        pipeline = ExtractionPipeline(config=agent_config, validation_agent=mock_validation_agent)

        with pytest.raises(SegmentationFailure):
            await pipeline.run("Texto sin estructura alguna.")

        mock_validation_agent.classify.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_blank_supplied_headings_ignored(self, agent_config, mock_validation_agent):
        pipeline = ExtractionPipeline(config=agent_config, validation_agent=mock_validation_agent)

        result = await pipeline.run("ARTÍCULO 1\nUno", headings=["ARTÍCULO 1", ""])

        assert [h.text for h in result.headings] == ["ARTÍCULO 1"]
        assert [a.content for a in result.articles] == ["Uno"]

    @pytest.mark.asyncio
    async def test_only_blank_supplied_headings(self, agent_config, mock_validation_agent):
        pipeline = ExtractionPipeline(config=agent_config, validation_agent=mock_validation_agent)

        with pytest.raises(SegmentationFailure):
            await pipeline.run("ARTÍCULO 1\nUno", headings=["", " "])

    @pytest.mark.asyncio
    async def test_classifier_failures_degrade_gracefully(
        self, agent_config, mock_validation_agent, law_text
    ):
        mock_validation_agent.classify.side_effect = ClassificationTransportFailure("down")
        pipeline = ExtractionPipeline(config=agent_config, validation_agent=mock_validation_agent)

        result = await pipeline.run(law_text)

        assert len(result.articles) == 5

    @pytest.mark.asyncio
    async def test_progress_and_cancellation(self, agent_config, mock_validation_agent, law_text):
        reported = []
        pipeline = ExtractionPipeline(config=agent_config, validation_agent=mock_validation_agent)

        await pipeline.run(law_text, context=RunContext(progress_callback=reported.append))
        assert reported == sorted(reported)
        assert reported[-1] == 100

        with pytest.raises(CancellationRequested):
            await pipeline.run(law_text, context=RunContext(is_cancelled=lambda: True))


# =============================================================================
# RunContext Tests
# =============================================================================

class TestRunContext:
    """Tests for RunContext."""

    @pytest.mark.asyncio
    async def test_progress_never_decreases(self):
        reported = []
        context = RunContext(progress_callback=reported.append)

        for percent in (10, 50, 40, 50, 120):
            await context.report_progress(percent)

        assert reported == [10, 50, 100]

    @pytest.mark.asyncio
    async def test_async_callbacks(self):
        callback = AsyncMock()
        context = RunContext(progress_callback=callback, is_cancelled=AsyncMock(return_value=False))

        await context.check_cancelled()
        await context.report_progress(30)

        callback.assert_awaited_once_with(30)

    @pytest.mark.asyncio
    async def test_callback_errors_do_not_stop_run(self):
        context = RunContext(progress_callback=MagicMock(side_effect=RuntimeError("ui gone")))
        await context.report_progress(10)
        assert context.last_progress == 10
