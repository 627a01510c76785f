"""Value types shared by the resolution pipeline.

Every stage of command resolution passes around a small set of
immutable records: the user's request, the execution context the
request was made in, the resolved command, the outcome of validating
a candidate command and the feedback entries persisted by the
learning store.  They are plain frozen dataclasses so that results
can be annotated on their way through fallback layers without
mutating the value a previous layer produced.
"""

from __future__ import annotations

import dataclasses
import datetime as _datetime
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class CommandRequest:
    """A single natural language request about a target tool."""

    tool: str
    query: str
    is_direct_command: bool = False


@dataclass(frozen=True)
class CommandContext:
    """Where the request was made.  Read-only input to resolution."""

    working_directory: str
    is_git_repository: bool = False
    environment: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class CommandResult:
    """A resolved shell command.

    ``context`` is a free-form provenance annotation such as
    ``"Generated by codellama:7b"`` or ``"(Pattern-based)"``.
    """

    command: str
    description: str
    requires_confirmation: bool = True
    context: Optional[str] = None

    def with_note(self, note: str) -> "CommandResult":
        """Return a copy whose context has ``note`` appended."""
        context = f"{self.context} {note}" if self.context else note
        return dataclasses.replace(self, context=context)


@dataclass(frozen=True)
class CommandValidationResult:
    is_valid: bool
    is_safe: bool
    message: Optional[str] = None
    warnings: List[str] = field(default_factory=list)


def _utcnow() -> _datetime.datetime:
    return _datetime.datetime.now(_datetime.timezone.utc)


@dataclass(frozen=True)
class LearningEntry:
    """One piece of feedback about a resolved command.

    Entries are serialised to JSON by :mod:`cmdai.learning`; timestamps
    are stored as ISO-8601 strings in UTC.
    """

    tool: str
    query: str
    command: str
    timestamp: _datetime.datetime = field(default_factory=_utcnow)
    was_accepted: bool = False
    was_successful: bool = False
    confidence_score: float = 1.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tool": self.tool,
            "query": self.query,
            "command": self.command,
            "timestamp": self.timestamp.isoformat(),
            "was_accepted": self.was_accepted,
            "was_successful": self.was_successful,
            "confidence_score": self.confidence_score,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LearningEntry":
        """Build an entry from its JSON form.

        :raises KeyError: When a required field is missing.
        :raises ValueError: When the timestamp cannot be parsed.
        """
        timestamp = _datetime.datetime.fromisoformat(data["timestamp"])
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=_datetime.timezone.utc)
        score = float(data.get("confidence_score", 1.0))
        return cls(
            tool=str(data["tool"]),
            query=str(data["query"]),
            command=str(data["command"]),
            timestamp=timestamp,
            was_accepted=bool(data.get("was_accepted", False)),
            was_successful=bool(data.get("was_successful", False)),
            confidence_score=min(1.0, max(0.0, score)),
        )
