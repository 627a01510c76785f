"""Top-level package for cmdai.

cmdai turns a natural language request about a command-line tool,
such as ``cmdai git "undo last commit"``, into a concrete shell
command.  Requests are resolved by AI providers tried in priority
order (:mod:`cmdai.orchestrator`, :mod:`cmdai.providers`), with every
generated command checked by :mod:`cmdai.validator`.  When no provider
can help, built-in pattern tables (:mod:`cmdai.patterns`) are used
instead.  Feedback about executed commands is kept by
:mod:`cmdai.learning` and fed back into future prompts.

When this package is installed via pip you can invoke the CLI from
your shell using the ``cmdai`` entry point.  Alternatively you can run
``python -m cmdai.cli`` from this directory for local development.
"""

__version__ = "0.1.0"

__all__ = [
    "cli",
    "config",
    "context",
    "executor",
    "learning",
    "models",
    "orchestrator",
    "patterns",
    "prompts",
    "providers",
    "server",
    "services",
    "validator",
]
