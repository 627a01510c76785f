"""Deterministic pattern resolvers.

Each supported tool owns an ordered table of rules.  A rule pairs a
regular expression with a command template and a short description:

    pattern:     '\\b(add|stage)\\s+(.*)'
    command:     'git add $2'
    description: 'Add file contents to the index'

Tables live as YAML files in ``cmdai/data/patterns`` and are loaded
once when a :class:`PatternMatcher` is constructed.  Matching is
case-insensitive and runs against the lower-cased query.  The first
rule that matches wins; declaration order is the only tie-breaker,
which is why common intents are listed ahead of broad catch-alls.

:class:`PatternResolverChain` tries the per-tool matchers in a fixed
priority order and tags whatever it finds as pattern-derived.  Not
finding a match is a normal outcome and yields ``None``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

import yaml

from .models import CommandContext, CommandRequest, CommandResult

logger = logging.getLogger(__name__)

PATTERN_DIR = Path(__file__).parent / "data" / "patterns"

PATTERN_BASED_NOTE = "(Pattern-based)"
NOT_IN_REPOSITORY_WARNING = "Warning: Not in a Git repository"

_PLACEHOLDER = re.compile(r"\$(\d+)")


@dataclass(frozen=True)
class PatternRule:
    pattern: str
    command: str
    description: str
    regex: "re.Pattern[str]" = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "regex", re.compile(self.pattern, re.IGNORECASE))

    def match(self, query: str) -> Optional["re.Match[str]"]:
        return self.regex.search(query)

    def render(self, match: "re.Match[str]") -> str:
        """Substitute ``$N`` placeholders with trimmed capture groups.

        Groups that did not take part in the match substitute an empty
        string.  Placeholders past the last group are left untouched.
        """

        def _replace(placeholder: "re.Match[str]") -> str:
            index = int(placeholder.group(1))
            if index < 1 or index > (match.re.groups or 0):
                return placeholder.group(0)
            return (match.group(index) or "").strip()

        return _PLACEHOLDER.sub(_replace, self.command)


@dataclass(frozen=True)
class RuleTable:
    tools: Sequence[str]
    rules: Sequence[PatternRule]
    requires_repository: bool = False
    context: Optional[str] = None


def load_rule_table(name: str, directory: Path = PATTERN_DIR) -> RuleTable:
    """Load the rule table ``<name>.yaml`` from ``directory``.

    :raises FileNotFoundError: When the table does not exist.
    :raises ValueError: When the table is malformed.
    """
    path = directory / f"{name}.yaml"
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict) or not isinstance(data.get("rules"), list):
        raise ValueError(f"Pattern table {path} must define a list of rules")
    try:
        rules = [
            PatternRule(r["pattern"], r["command"], r["description"])
            for r in data["rules"]
        ]
    except (KeyError, TypeError) as exc:
        raise ValueError(f"Malformed rule in {path}: {exc}") from exc
    except re.error as exc:
        raise ValueError(f"Invalid regular expression in {path}: {exc}") from exc
    tools = [str(t).lower() for t in data.get("tools") or [name]]
    logger.debug("Loaded %d %s pattern rules", len(rules), name)
    return RuleTable(
        tools=tools,
        rules=rules,
        requires_repository=bool(data.get("requires_repository", False)),
        context=data.get("context"),
    )


class PatternMatcher:
    """Resolve requests for one tool from an ordered rule table."""

    def __init__(self, table: RuleTable) -> None:
        self.table = table

    @classmethod
    def from_data(cls, name: str) -> "PatternMatcher":
        return cls(load_rule_table(name))

    @property
    def tools(self) -> Sequence[str]:
        return self.table.tools

    def can_resolve(self, tool: str) -> bool:
        return tool.strip().lower() in self.table.tools

    def resolve(
        self, request: CommandRequest, context: CommandContext
    ) -> Optional[CommandResult]:
        if not self.can_resolve(request.tool):
            return None
        query = request.query.lower()
        for rule in self.table.rules:
            match = rule.match(query)
            if match is None:
                continue
            command = rule.render(match)
            note = self.table.context
            if self.table.requires_repository and not context.is_git_repository:
                note = NOT_IN_REPOSITORY_WARNING
            return CommandResult(command, rule.description, True, note)
        return None


class PatternResolverChain:
    """Try each registered matcher in priority order.

    The default chain consults Git first and the Azure CLI second.
    """

    def __init__(self, matchers: Optional[Iterable[PatternMatcher]] = None) -> None:
        if matchers is None:
            matchers = [PatternMatcher.from_data("git"), PatternMatcher.from_data("azure")]
        self.matchers: List[PatternMatcher] = list(matchers)

    def can_resolve(self, tool: str) -> bool:
        return any(m.can_resolve(tool) for m in self.matchers)

    def resolve(
        self, request: CommandRequest, context: CommandContext
    ) -> Optional[CommandResult]:
        for matcher in self.matchers:
            if not matcher.can_resolve(request.tool):
                continue
            result = matcher.resolve(request, context)
            if result is not None:
                logger.debug("Pattern match for %r: %s", request.query, result.command)
                return result.with_note(PATTERN_BASED_NOTE)
        return None
