"""Feedback-driven learning store.

Every time a resolved command is shown to the user the CLI reports
back whether it was accepted and whether it ran successfully.  Those
reports are kept as :class:`~cmdai.models.LearningEntry` records in a
JSON file (``~/.cmdai/learning.json`` by default) and serve two
purposes:

* Accepted, successful entries whose query resembles a new request are
  handed to AI providers as examples (:meth:`LearningStore.relevant_examples`).
* :meth:`LearningStore.optimize` discards stale negative feedback and
  raises the confidence of commands that keep succeeding for a tool.

The store is bounded: once more than ``capacity`` entries exist the
oldest ones are dropped.  The whole entry list is rewritten after
every mutation.  A missing or corrupt file means starting empty and a
failed write is logged and otherwise ignored; learning data is never
worth failing a command over.

All reads and writes go through one re-entrant lock, so a single store
can be shared between threads (the HTTP server does this).
"""

from __future__ import annotations

import dataclasses
import datetime as _datetime
import json
import logging
import threading
from collections import defaultdict
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .models import CommandRequest, CommandResult, LearningEntry

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 1000
MAX_EXAMPLES = 5
MIN_OVERLAP = 0.3
STALE_AFTER = _datetime.timedelta(days=30)
MAX_BOOST = 0.2


def confidence_score(was_accepted: bool, was_successful: bool) -> float:
    if was_accepted and was_successful:
        return 1.0
    if was_accepted and not was_successful:
        return 0.7
    if not was_accepted:
        return 0.3
    return 0.5


def query_overlap(a: str, b: str) -> float:
    """Fraction of shared words between two queries.

    The size of the intersection of the lower-cased word sets divided
    by the size of the larger set.
    """
    words_a = set(a.lower().split())
    words_b = set(b.lower().split())
    largest = max(len(words_a), len(words_b))
    if largest == 0:
        return 0.0
    return len(words_a & words_b) / largest


def _utcnow() -> _datetime.datetime:
    return _datetime.datetime.now(_datetime.timezone.utc)


class LearningStore:
    """Bounded, JSON-persisted collection of learning entries.

    :param path: JSON file backing the store, or ``None`` to keep the
      entries in memory only.
    :param capacity: Maximum number of entries kept.
    :param clock: Callable returning the current UTC time.
    """

    def __init__(
        self,
        path: Optional[Path] = None,
        capacity: int = DEFAULT_CAPACITY,
        clock: Callable[[], _datetime.datetime] = _utcnow,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.path = Path(path) if path is not None else None
        self.capacity = capacity
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: List[LearningEntry] = self._load()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def entries(self) -> List[LearningEntry]:
        """Return a snapshot of all entries, oldest first."""
        with self._lock:
            return list(self._entries)

    def record_feedback(
        self,
        request: CommandRequest,
        result: CommandResult,
        was_accepted: bool,
        was_successful: bool,
    ) -> LearningEntry:
        entry = LearningEntry(
            tool=request.tool,
            query=request.query,
            command=result.command,
            timestamp=self._clock(),
            was_accepted=was_accepted,
            was_successful=was_successful,
            confidence_score=confidence_score(was_accepted, was_successful),
        )
        with self._lock:
            self._entries.append(entry)
            overflow = len(self._entries) - self.capacity
            if overflow > 0:
                del self._entries[:overflow]
            self._save()
        logger.debug("Recorded feedback for %s %r (confidence %.2f)", entry.tool, entry.query, entry.confidence_score)
        return entry

    def relevant_examples(self, tool: str, query: str) -> List[LearningEntry]:
        """Return up to five successful entries resembling ``query``.

        Only entries for the same tool (case-insensitive) that were both
        accepted and successful are considered, and their query must
        share at least 30% of its words with ``query``.  Results are
        ordered by confidence, then by recency.
        """
        tool_key = tool.lower()
        with self._lock:
            candidates = [
                e
                for e in self._entries
                if e.tool.lower() == tool_key
                and e.was_accepted
                and e.was_successful
                and query_overlap(e.query, query) >= MIN_OVERLAP
            ]
        candidates.sort(key=lambda e: (e.confidence_score, e.timestamp), reverse=True)
        return candidates[:MAX_EXAMPLES]

    def optimize(self) -> None:
        """Prune stale negative feedback and boost repeatedly successful commands."""
        with self._lock:
            cutoff = self._clock() - STALE_AFTER
            before = len(self._entries)
            self._entries = [
                e
                for e in self._entries
                if e.timestamp >= cutoff or (e.was_accepted and e.was_successful)
            ]
            pruned = before - len(self._entries)

            groups: Dict[Tuple[str, str], List[int]] = defaultdict(list)
            for index, entry in enumerate(self._entries):
                if entry.was_accepted and entry.was_successful:
                    groups[(entry.tool, entry.command)].append(index)

            boosted = 0
            for indices in groups.values():
                if len(indices) < 2:
                    continue
                members = [self._entries[i] for i in indices]
                success_rate = sum(1 for e in members if e.was_successful) / len(members)
                boost = min(MAX_BOOST, success_rate * 0.1)
                for index, entry in zip(indices, members):
                    score = min(1.0, max(0.0, entry.confidence_score + boost))
                    self._entries[index] = dataclasses.replace(entry, confidence_score=score)
                    boosted += 1
            self._save()
        logger.info("Learning store optimized: %d pruned, %d rescored", pruned, boosted)

    def _load(self) -> List[LearningEntry]:
        if self.path is None or not self.path.exists():
            return []
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, list):
                raise ValueError("expected a JSON list")
            entries = [LearningEntry.from_dict(item) for item in data]
        except (OSError, ValueError, KeyError, TypeError) as exc:
            # json.JSONDecodeError is a ValueError.
            logger.warning("Ignoring corrupt learning data in %s: %s", self.path, exc)
            return []
        return entries[-self.capacity:]

    def _save(self) -> None:
        if self.path is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("w", encoding="utf-8") as f:
                json.dump([e.to_dict() for e in self._entries], f, indent=2)
        except OSError as exc:
            logger.warning("Could not save learning data to %s: %s", self.path, exc)


def format_entries(entries: Sequence[LearningEntry]) -> List[str]:
    """Render entries as ``idx: command  ←  query`` lines for display."""
    lines = []
    for idx, entry in enumerate(entries, start=1):
        status = "ok" if entry.was_accepted and entry.was_successful else "--"
        lines.append(
            f"{idx}: [{entry.tool}] {entry.command}  ←  {entry.query}"
            f"  ({status}, {entry.confidence_score:.2f})"
        )
    return lines
