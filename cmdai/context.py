"""Execution context detection.

Resolution needs to know where the user is: the working directory,
whether it sits inside a Git repository and the environment the
command will run with.  The context is captured once per invocation.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Optional

from .models import CommandContext


def is_git_repository(directory: Path) -> bool:
    """Return True if ``directory`` or any parent contains ``.git``."""
    try:
        current = directory.resolve()
    except OSError:
        return False
    for candidate in (current, *current.parents):
        if (candidate / ".git").exists():
            return True
    return False


def get_context(
    working_directory: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> CommandContext:
    directory = Path(working_directory) if working_directory else Path.cwd()
    environment = dict(os.environ if environ is None else environ)
    return CommandContext(str(directory), is_git_repository(directory), environment)
