"""Command validation utilities.

Commands produced by an AI provider must be checked before they are
presented to the user.  :class:`CommandValidator` answers two
independent questions about a candidate command:

* Is it *valid*?  The command must not be blank and must start with
  the canonical invocation of the tool it was requested for (a
  ``git`` request must produce ``git ...``).  Tools without a known
  invocation are accepted as-is.
* Is it *safe*?  The command is scanned against a list of destructive
  or high-risk shell signatures such as ``rm -rf /``, ``mkfs``, piping
  a downloaded script into a shell or fork bombs.

A further per-tool scan flags risky variants of otherwise normal tool
commands (``git push --force``, ``kubectl delete --all``).  Those hits
are reported as warnings only and never change the safety verdict.

Callers must reject a command that is not valid and should surface an
unsafe command prominently without rejecting it outright.
"""

from __future__ import annotations

import re
from typing import Dict, List

from .models import CommandValidationResult

EMPTY_COMMAND_MESSAGE = "Command cannot be empty"
DANGEROUS_MESSAGE = "Command contains potentially dangerous patterns"
DANGEROUS_WARNING = "This command may be destructive or unsafe"

DANGEROUS_PATTERNS: List[str] = [
    # Destructive operations
    # recursive rm of an absolute path, a home path or a glob
    r"\brm\s+(?=(?:-\S+\s+)*-\S*[rR])(?:-\S+\s+)+(?:[^\s;&|]+\s+)*(/|~|[^\s;&|]*\*)",
    r"\bsudo\s+.*\brm\s+.*-\S*[rR]",  # privileged recursive remove
    r"\bmkfs(\.\w+)?\b",  # format filesystem
    r"\bdd\s+.*\bof=/dev/",  # write to raw device
    r">\s*/dev/(sd[a-z]|hd[a-z]|nvme\d|disk\d)",  # redirect onto a disk
    r"\bshred\b",  # secure delete
    r":\(\)\s*\{\s*:\s*\|\s*:\s*&\s*\}",  # fork bomb
    # Network and permission risks
    r"\b(curl|wget)\s+.*\|\s*(sudo\s+)?(ba|z|da)?sh\b",  # pipe download to shell
    r"\bchmod\s+(-R\s+)?0?777\b",  # open permissions
    r"\bchown\s+.*\broot\b",  # hand ownership to root
    # System state and credentials
    r"/etc/(passwd|shadow|sudoers)\b",
    r"\binit\s+0\b",
    r"\bshutdown\b",
    r"\breboot\b",
    r"\bhalt\b",
    r"\bpoweroff\b",
]

TOOL_DANGEROUS_PATTERNS: Dict[str, List[str]] = {
    "git": [
        r"\bgit\s+.*--force",
        r"\bgit\s+.*\s-f\b",
        r"\bgit\s+clean\s+.*-fd",
        r"\bgit\s+reset\s+.*--hard\s+HEAD~[5-9]",
    ],
    "az": [
        r"\baz\s+.*delete\s+.*--yes\s+.*--no-wait",
        r"\baz\s+group\s+delete\s+.*--yes",
        r"\baz\s+vm\s+delete\s+.*--yes",
    ],
    "docker": [
        r"\bdocker\s+.*--privileged",
        r"\bdocker\s+.*-v\s+/:/",
        r"\bdocker\s+system\s+prune\s+.*-a",
    ],
    "kubectl": [
        r"\bkubectl\s+delete\s+.*--all",
        r"\bkubectl\s+.*--force",
    ],
}
TOOL_DANGEROUS_PATTERNS["azure"] = TOOL_DANGEROUS_PATTERNS["az"]

# Canonical invocation token per tool, including the trailing space.
TOOL_PREFIXES: Dict[str, str] = {
    "git": "git ",
    "az": "az ",
    "azure": "az ",
    "docker": "docker ",
    "kubectl": "kubectl ",
}


class CommandValidator:
    """Classify candidate commands as valid and/or safe.

    The validator holds only compiled, read-only rule lists and can be
    shared freely between concurrent requests.
    """

    def __init__(self) -> None:
        self._dangerous = [re.compile(p, re.IGNORECASE) for p in DANGEROUS_PATTERNS]
        self._tool_dangerous = {
            tool: [re.compile(p, re.IGNORECASE) for p in patterns]
            for tool, patterns in TOOL_DANGEROUS_PATTERNS.items()
        }

    def validate(self, command: str, tool: str) -> CommandValidationResult:
        """Validate ``command`` generated for ``tool``.

        :param command: Candidate command string.
        :param tool: Name of the tool the command was requested for.
        :returns: A :class:`CommandValidationResult`.  A blank command
          is invalid but trivially safe and no other check runs.
        """
        if not command or not command.strip():
            return CommandValidationResult(False, True, EMPTY_COMMAND_MESSAGE)

        warnings: List[str] = []
        is_valid = True
        is_safe = True
        message = None

        if not self.is_safe(command):
            is_safe = False
            message = DANGEROUS_MESSAGE
            warnings.append(DANGEROUS_WARNING)

        tool_key = tool.strip().lower()
        for regex in self._tool_dangerous.get(tool_key, []):
            if regex.search(command):
                warnings.append(f"Command contains {tool}-specific risky operation")
                break

        if not self._has_valid_structure(command, tool_key):
            is_valid = False
            message = f"Command does not appear to be a valid {tool} command"

        return CommandValidationResult(is_valid, is_safe, message, warnings)

    def is_safe(self, command: str) -> bool:
        """Return ``False`` if any global danger signature matches."""
        return not any(regex.search(command) for regex in self._dangerous)

    def dangerous_patterns(self) -> List[str]:
        return list(DANGEROUS_PATTERNS)

    @staticmethod
    def _has_valid_structure(command: str, tool_key: str) -> bool:
        prefix = TOOL_PREFIXES.get(tool_key)
        if prefix is None:
            return True
        return command.strip().lower().startswith(prefix)
