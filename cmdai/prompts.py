"""Prompt construction and response clean-up for AI providers.

Every provider sends the same plain-text prompt: an instruction
preamble, a handful of curated examples for the target tool, the
execution context assembled by the orchestrator and finally the
user's request.  Models are asked to reply with the bare command, but
they frequently echo a shell prompt or add a sentence of
explanation, so :func:`extract_command` picks the first line that
looks like a command.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

from .models import CommandContext, LearningEntry

PREAMBLE = (
    "You are a CLI command generator. Convert natural language requests to precise CLI commands.\n"
    "IMPORTANT: Respond with ONLY the command, no explanations or additional text."
)

# (display name, [(request, command), ...]) keyed by tool name.
TOOL_EXAMPLES: Dict[str, Tuple[str, List[Tuple[str, str]]]] = {
    "git": (
        "Git",
        [
            ("check status", "git status"),
            ("add all files", "git add ."),
            ("commit with message", "git commit -m"),
            ("undo last commit", "git reset --soft HEAD~1"),
            ("delete untracked files", "git clean -fd"),
        ],
    ),
    "az": (
        "Azure CLI",
        [
            ("list subscriptions", "az account list --output table"),
            ("show current subscription", "az account show"),
            ("list resource groups", "az group list --output table"),
            ("list storage accounts", "az storage account list --output table"),
        ],
    ),
    "docker": (
        "Docker",
        [
            ("list containers", "docker ps"),
            ("list images", "docker images"),
            ("stop container", "docker stop"),
        ],
    ),
    "kubectl": (
        "Kubernetes kubectl",
        [
            ("list pods", "kubectl get pods"),
            ("describe pod", "kubectl describe pod"),
            ("get services", "kubectl get services"),
        ],
    ),
}
TOOL_EXAMPLES["azure"] = TOOL_EXAMPLES["az"]

ECHO_MARKERS = ("$", ">", "#")
PROSE_MARKERS = ("command is", "you can use", "this will")
MAX_PROMPT_EXAMPLES = 3


def build_prompt(tool: str, query: str, context: Optional[str] = None) -> str:
    lines = [PREAMBLE, ""]
    examples = TOOL_EXAMPLES.get(tool.strip().lower())
    if examples:
        display_name, pairs = examples
        lines.append(f"Tool: {display_name}")
        lines.append("Examples:")
        lines.extend(f"'{request}' → {command}" for request, command in pairs)
    if context:
        lines.append(f"Context: {context}")
    lines.append("")
    lines.append(f"Request: {query}")
    lines.append("Command:")
    return "\n".join(lines) + "\n"


def build_context_text(
    context: CommandContext, examples: Iterable[LearningEntry]
) -> str:
    """Summarise the execution context and learned examples for a prompt.

    At most :data:`MAX_PROMPT_EXAMPLES` examples are included.
    """
    parts: List[str] = []
    if context.working_directory:
        parts.append(f"Working directory: {context.working_directory}")
    if context.is_git_repository:
        parts.append("In a Git repository")
    examples = list(examples)[:MAX_PROMPT_EXAMPLES]
    if examples:
        parts.append("Similar successful commands:")
        parts.extend(f"'{e.query}' → {e.command}" for e in examples)
    return ". ".join(parts)


def extract_command(response: str) -> str:
    """Return the first line of ``response`` that looks like a command.

    Leading ``$``, ``>`` and ``#`` echo markers are stripped.  Lines that
    read like an explanation, or that are shorter than three
    characters, are skipped.  When no line survives the whole trimmed
    response is returned.
    """
    for line in response.splitlines():
        candidate = line.strip()
        if not candidate:
            continue
        if candidate.startswith(ECHO_MARKERS):
            candidate = candidate[1:].strip()
        if len(candidate) < 3 or any(m in candidate for m in PROSE_MARKERS):
            continue
        return candidate
    return response.strip()
