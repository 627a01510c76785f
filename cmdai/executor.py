"""Running resolved commands.

Commands are handed to ``/bin/bash`` in the context's working
directory, with the context environment layered over the current
process environment.  Output is not captured: it streams straight to
the user's terminal.  Only the success flag is reported back so the
caller can record feedback.
"""

from __future__ import annotations

import logging
import os
import subprocess

from .models import CommandContext, CommandResult

logger = logging.getLogger(__name__)

SHELL = "/bin/bash"


def execute_command(result: CommandResult, context: CommandContext) -> bool:
    """Execute ``result.command`` and return True if it exited with 0."""
    env = dict(os.environ)
    env.update(context.environment)
    try:
        proc = subprocess.run(
            result.command,
            shell=True,
            executable=SHELL if os.path.exists(SHELL) else None,
            cwd=context.working_directory,
            env=env,
        )
    except OSError as exc:
        logger.error("Error executing %r: %s", result.command, exc)
        return False
    logger.debug("%r exited with %d", result.command, proc.returncode)
    return proc.returncode == 0
