"""Multi-provider AI command resolution.

:class:`AICommandResolver` is the entry point of the resolution
pipeline.  For each request it:

1. Orders the registered providers by the configured preference list.
2. Tries them one at a time.  A provider is skipped when its probe
   reports it unavailable, when it raises, when it returns nothing
   usable or when the validator rejects its command.  The first
   accepted command is returned and no further provider is contacted.
3. Falls back to the pattern chain when AI is disabled or every
   provider failed, if configuration allows it.

Provider failures never escape :meth:`AICommandResolver.resolve`.
Returning ``None`` means nothing could be resolved, which callers
report as "no command found".
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from .config import AIConfig
from .learning import LearningStore
from .models import CommandContext, CommandRequest, CommandResult
from .patterns import PatternResolverChain
from .prompts import build_context_text, extract_command
from .providers import BaseProvider
from .validator import CommandValidator

logger = logging.getLogger(__name__)

GENERATED_BY = "Generated by"
UNSAFE_MARKER = "⚠️ POTENTIALLY UNSAFE"
FALLBACK_NOTE = "(AI unavailable, using patterns)"


def order_providers(
    providers: Sequence[BaseProvider], preferred: Sequence[str]
) -> List[BaseProvider]:
    """Rank ``providers`` by the configured ``preferred`` names.

    Each preferred name picks the first provider whose ``name`` contains
    it, ignoring case.  Unknown names are skipped and a provider is
    never listed twice.  Providers nobody asked for keep their
    registration order at the end.
    """
    ordered: List[BaseProvider] = []
    for wanted in preferred:
        wanted = wanted.strip().lower()
        if not wanted:
            continue
        for provider in providers:
            if provider in ordered:
                continue
            if wanted in provider.name.lower():
                ordered.append(provider)
                break
    ordered.extend(p for p in providers if p not in ordered)
    return ordered


class AICommandResolver:
    def __init__(
        self,
        providers: Sequence[BaseProvider],
        validator: CommandValidator,
        learning: LearningStore,
        fallback: PatternResolverChain,
        config: AIConfig,
    ) -> None:
        self.providers = list(providers)
        self.validator = validator
        self.learning = learning
        self.fallback = fallback
        self.config = config

    def can_resolve(self, tool: str) -> bool:
        return True

    def ordered_providers(self) -> List[BaseProvider]:
        # Recomputed on every call so configuration edits apply immediately.
        return order_providers(self.providers, self.config.providers)

    def resolve(
        self, request: CommandRequest, context: CommandContext
    ) -> Optional[CommandResult]:
        result = None
        if self.config.enable_ai:
            result = self._resolve_with_providers(request, context)

        if (
            result is None
            and self.config.fallback_to_patterns
            and self.fallback.can_resolve(request.tool)
        ):
            result = self.fallback.resolve(request, context)
            if result is not None:
                logger.info("Resolved %r with patterns", request.query)
                result = result.with_note(FALLBACK_NOTE)

        if result is None:
            logger.info("No command found for %s %r", request.tool, request.query)
        return result

    def _resolve_with_providers(
        self, request: CommandRequest, context: CommandContext
    ) -> Optional[CommandResult]:
        for provider in self.ordered_providers():
            try:
                result = self._try_provider(provider, request, context)
            except Exception as exc:
                logger.warning("Provider %s failed: %s", provider.name, exc)
                continue
            if result is not None:
                logger.info("Resolved %r with %s (%s)", request.query, provider.name, provider.model_name)
                return result
        return None

    def _try_provider(
        self, provider: BaseProvider, request: CommandRequest, context: CommandContext
    ) -> Optional[CommandResult]:
        if not provider.is_available():
            logger.debug("Provider %s is unavailable", provider.name)
            return None

        examples = self.learning.relevant_examples(request.tool, request.query)
        ai_context = build_context_text(context, examples)
        raw = provider.generate_command(request.tool, request.query, ai_context)
        command = extract_command(raw or "")
        if not command:
            logger.debug("Provider %s returned an empty command", provider.name)
            return None

        validation = self.validator.validate(command, request.tool)
        if not validation.is_valid:
            logger.debug("Rejected %r from %s: %s", command, provider.name, validation.message)
            return None

        description = f"AI-generated {request.tool} command"
        result_context = f"{GENERATED_BY} {provider.model_name}"
        if not validation.is_safe:
            result_context += f" {UNSAFE_MARKER}"
            description += " (requires careful review)"
        if validation.warnings:
            result_context += f" | Warnings: {', '.join(validation.warnings)}"
        return CommandResult(command, description, True, result_context)
