"""Construction of the resolution pipeline from configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from .config import AIConfig, load_config
from .learning import LearningStore
from .orchestrator import AICommandResolver
from .patterns import PatternResolverChain
from .providers import BaseProvider, build_providers
from .validator import CommandValidator


@dataclass
class Services:
    config: AIConfig
    validator: CommandValidator
    learning: LearningStore
    providers: List[BaseProvider]
    patterns: PatternResolverChain
    resolver: AICommandResolver


def build_services(
    config: Optional[AIConfig] = None,
    providers: Optional[List[BaseProvider]] = None,
    learning: Optional[LearningStore] = None,
) -> Services:
    """Wire up the pipeline.

    ``providers`` and ``learning`` default to the configured HTTP
    providers and the on-disk learning store; tests pass their own.
    """
    config = config or load_config()
    validator = CommandValidator()
    if learning is None:
        learning = LearningStore(config.resolved_learning_path(), config.learning_capacity)
    if providers is None:
        providers = build_providers(config)
    patterns = PatternResolverChain()
    resolver = AICommandResolver(providers, validator, learning, patterns, config)
    return Services(config, validator, learning, list(providers), patterns, resolver)
