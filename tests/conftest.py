"""
Pytest configuration and shared fixtures
"""

import sys
from pathlib import Path
from typing import List, Optional

import pytest

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from cmdai.config import AIConfig
from cmdai.learning import LearningStore
from cmdai.models import CommandContext
from cmdai.providers import BaseProvider, ProviderError
from cmdai.services import build_services


class FakeProvider(BaseProvider):
    """Scripted provider recording how it was called."""

    def __init__(
        self,
        name: str,
        reply: Optional[str] = None,
        available: bool = True,
        error: Optional[Exception] = None,
        model_name: str = "fake-model",
    ) -> None:
        super().__init__(model_name)
        self.name = name
        self.reply = reply
        self.available = available
        self.error = error
        self.probes = 0
        self.calls: List[tuple] = []

    def is_available(self) -> bool:
        self.probes += 1
        return self.available

    def generate_command(self, tool, query, context=None):
        self.calls.append((tool, query, context))
        if self.error is not None:
            raise self.error
        if self.reply is None:
            raise ProviderError("no reply scripted")
        return self.reply


@pytest.fixture
def repo_context(tmp_path):
    """Context inside a Git repository"""
    return CommandContext(str(tmp_path), True, {})


@pytest.fixture
def plain_context(tmp_path):
    """Context outside any repository"""
    return CommandContext(str(tmp_path), False, {})


@pytest.fixture
def config():
    return AIConfig(providers=["ollama"], timeout_seconds=1)


@pytest.fixture
def memory_store():
    return LearningStore(path=None)


@pytest.fixture
def make_services(config, memory_store):
    """Factory building the pipeline around the given providers"""

    def _make(provider_list=None, **overrides):
        # keyword overrides are AIConfig fields, so ``providers`` sets the priority order
        for key, value in overrides.items():
            setattr(config, key, value)
        return build_services(config, providers=list(provider_list or []), learning=memory_store)

    return _make
