"""
Context detection and command execution tests
"""

import shutil

import pytest

from cmdai.context import get_context, is_git_repository
from cmdai.executor import execute_command
from cmdai.models import CommandContext, CommandResult


def test_repository_detected_from_subdirectory(tmp_path):
    (tmp_path / ".git").mkdir()
    nested = tmp_path / "src" / "pkg"
    nested.mkdir(parents=True)
    assert is_git_repository(nested)


def test_plain_directory(tmp_path):
    assert not is_git_repository(tmp_path)


def test_get_context(tmp_path):
    (tmp_path / ".git").mkdir()
    context = get_context(str(tmp_path), environ={"A": "1"})
    assert context == CommandContext(str(tmp_path), True, {"A": "1"})


@pytest.mark.skipif(shutil.which("sh") is None, reason="needs a POSIX shell")
class TestExecute:
    def test_exit_status(self, tmp_path):
        context = CommandContext(str(tmp_path), False, {})
        assert execute_command(CommandResult("true", ""), context)
        assert not execute_command(CommandResult("false", ""), context)

    def test_runs_in_working_directory_with_environment(self, tmp_path):
        context = CommandContext(str(tmp_path), False, {"CMDAI_TEST_NAME": "marker"})
        execute_command(CommandResult('echo "$CMDAI_TEST_NAME" > out.txt', ""), context)
        assert (tmp_path / "out.txt").read_text().strip() == "marker"

    def test_missing_directory_reports_failure(self, tmp_path):
        context = CommandContext(str(tmp_path / "gone"), False, {})
        assert not execute_command(CommandResult("true", ""), context)
