"""
ARTEX Test Configuration

Shared pytest fixtures and configuration for all tests.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from agents.base import AgentConfig
from shared.models import ContextWindow, PreviousSegment, ReasonKind, Verdict


# =============================================================================
# Environment Configuration
# =============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test (requires OpenAI access)"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow (long-running)"
    )


@pytest.fixture(scope="session")
def project_root_path():
    """Return the project root path."""
    return project_root


# =============================================================================
# Fixtures: Agents
# =============================================================================

@pytest.fixture
def agent_config():
    """Deterministic test configuration for agents."""
    return AgentConfig(
        model="gpt-4o-mini",
        temperature=0.0,
        max_tokens=256,
        timeout=5.0,
        max_retries=3,
        retry_base=2.0,
        log_level="DEBUG",
        trace_enabled=True,
    )


# =============================================================================
# Fixtures: Windows and Verdicts
# =============================================================================

VALID = Verdict.valid()
INCOMPLETE = Verdict.invalid(ReasonKind.INCOMPLETE)
CONTINUATION = Verdict.invalid(ReasonKind.CONTINUATION)
OUT_OF_CONTEXT = Verdict.invalid(ReasonKind.OUT_OF_CONTEXT)
OTHER = Verdict.invalid(ReasonKind.OTHER)


def make_windows(*contents: str) -> list[ContextWindow]:
    """One window per content, titled 'ARTÍCULO n' with order n."""
    windows = []
    for index, content in enumerate(contents, start=1):
        windows.append(
            ContextWindow(
                title=f"ARTÍCULO {index}",
                previous=PreviousSegment(content=contents[index - 2] if index > 1 else ""),
                current=content,
                next=contents[index] if index < len(contents) else "",
                order=index,
            )
        )
    return windows


class ScriptedClassifier:
    """
    Async classifier returning pre-scripted results in call order.

    An Exception instance in the script is raised instead of returned.
    Every window it receives is recorded in `calls`.
    """

    def __init__(self, script):
        self.script = list(script)
        self.calls: list[ContextWindow] = []

    async def __call__(self, window: ContextWindow) -> Verdict:
        self.calls.append(window)
        result = self.script[len(self.calls) - 1]
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def scripted_classifier():
    """Factory for ScriptedClassifier instances."""
    return ScriptedClassifier


@pytest.fixture
def window_factory():
    """Factory building numbered windows from contents."""
    return make_windows


@pytest.fixture
def law_text():
    """A small law with chapters, articles, an index and a transitory block."""
    return (
        "LEY DE AGUAS DEL ESTADO\n"
        "Publicada en el Periódico Oficial\n"
        "\n"
        "ÍNDICE\n"
        "Artículo 1 .......... 1\n"
        "Artículo 2 .......... 2\n"
        "\n"
        "C A P Í T U L O I\n"
        "DISPOSICIONES GENERALES\n"
        "ARTÍCULO 1. La presente Ley es de orden público.\n"
        "ARTÍCULO 2. Son autoridades en materia de agua:\n"
        "I. El Gobernador;\n"
        "ARTÍCULO 3. La Comisión vigilará el cumplimiento de esta Ley.\n"
        "ARTÍCULOS TRANSITORIOS\n"
        "PRIMERO. Esta Ley entrará en vigor al día siguiente de su publicación.\n"
    )
