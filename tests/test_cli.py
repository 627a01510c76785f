"""
Command line interface tests
"""

import pytest
import yaml
from click.testing import CliRunner

from conftest import FakeProvider
from cmdai import cli as cli_module
from cmdai.cli import cli


class ExecutionLog(list):
    """Commands passed to the executor, plus the outcome to report"""

    succeed = True


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def executed(monkeypatch, repo_context):
    """Record executed commands instead of running them"""
    calls = ExecutionLog()

    def fake_execute(result, context):
        calls.append(result.command)
        return calls.succeed

    monkeypatch.setattr(cli_module, "execute_command", fake_execute)
    monkeypatch.setattr(cli_module, "get_context", lambda: repo_context)
    return calls


def invoke(runner, services, args, input=None):
    return runner.invoke(cli, args, obj={"services": services}, input=input)


class TestRequestFlow:
    def test_nothing_found(self, runner, make_services, executed):
        result = invoke(runner, make_services([]), ["ask", "git", "asdkjasd"])
        assert result.exit_code == 0
        assert "Sorry, I couldn't find a command for 'asdkjasd' with git" in result.output
        assert executed == []

    def test_confirm_and_execute_records_feedback(self, runner, make_services, executed):
        services = make_services([])
        result = invoke(runner, services, ["git", "check", "status"], input="y\n")

        assert result.exit_code == 0
        assert "Suggested command: git status" in result.output
        assert "Context: (Pattern-based)" in result.output
        assert "Execute 'git status'?" in result.output
        assert "Command completed successfully." in result.output
        assert executed == ["git status"]
        entry = services.learning.entries()[0]
        assert (entry.tool, entry.query, entry.command) == ("git", "check status", "git status")
        assert entry.was_accepted and entry.was_successful

    def test_declined_command_is_not_run(self, runner, make_services, executed):
        services = make_services([])
        result = invoke(runner, services, ["ask", "git", "check", "status"], input="n\n")

        assert "Command execution cancelled." in result.output
        assert executed == []
        entry = services.learning.entries()[0]
        assert not entry.was_accepted
        assert entry.confidence_score == 0.3

    def test_failed_execution(self, runner, make_services, executed):
        executed.succeed = False
        services = make_services([])
        result = invoke(runner, services, ["git", "--yes", "check", "status"])

        assert "Command failed." in result.output
        assert not services.learning.entries()[0].was_successful

    def test_yes_skips_confirmation(self, runner, make_services, executed):
        provider = FakeProvider("ollama", reply="git log --oneline")
        result = invoke(runner, make_services([provider]), ["git", "--yes", "show", "log"])

        assert "Execute" not in result.output
        assert "Context: Generated by fake-model" in result.output
        assert executed == ["git log --oneline"]

    def test_unsafe_command_always_asks(self, runner, make_services, executed):
        provider = FakeProvider("ollama", reply="git clean -fdx && rm -rf /")
        result = invoke(runner, make_services([provider]), ["git", "--yes", "wipe", "it"], input="n\n")

        assert "POTENTIALLY UNSAFE" in result.output
        assert "Execute 'git clean -fdx && rm -rf /'?" in result.output
        assert executed == []

    def test_learning_disabled_records_nothing(self, runner, make_services, executed):
        services = make_services([], enable_learning=False)
        invoke(runner, services, ["git", "--yes", "check", "status"])
        assert len(services.learning) == 0

    def test_query_is_required(self, runner, make_services, executed):
        result = invoke(runner, make_services([]), ["docker"])
        assert result.exit_code != 0


class TestLearningCommands:
    def test_history_empty(self, runner, make_services):
        result = invoke(runner, make_services([]), ["history"])
        assert "No history available." in result.output

    def test_history_lists_entries(self, runner, make_services, executed):
        services = make_services([])
        invoke(runner, services, ["git", "--yes", "check", "status"])
        result = invoke(runner, services, ["history"])
        assert "1: [git] git status" in result.output
        assert "check status" in result.output

    def test_optimize_reports_counts(self, runner, make_services, executed):
        services = make_services([])
        invoke(runner, services, ["git", "--yes", "check", "status"])
        result = invoke(runner, services, ["optimize"])
        assert "Learning store optimized: 1 -> 1 entries." in result.output


class TestConfigure:
    @pytest.fixture
    def cfg_dir(self, tmp_path, monkeypatch):
        monkeypatch.setattr("cmdai.config.config_dir", lambda: tmp_path)
        return tmp_path

    def test_writes_config_file(self, runner, cfg_dir):
        result = runner.invoke(
            cli, ["configure", "--providers", "azure, ollama", "--model", "llama3", "--no-ai"], obj={}
        )

        assert result.exit_code == 0
        data = yaml.safe_load((cfg_dir / "config.yaml").read_text())
        assert data["ai"] == {"providers": ["azure", "ollama"], "enabled": False}
        assert data["ollama"] == {"model": "llama3"}

    def test_updates_keep_existing_values(self, runner, cfg_dir):
        (cfg_dir / "config.yaml").write_text("ollama:\n  model: llama3\n")
        runner.invoke(cli, ["configure", "--azure-model", "gpt-4o"], obj={})
        data = yaml.safe_load((cfg_dir / "config.yaml").read_text())
        assert data["ollama"]["model"] == "llama3"
        assert data["azure_openai"]["model"] == "gpt-4o"

    def test_nothing_to_change(self, runner, cfg_dir):
        result = runner.invoke(cli, ["configure"], obj={})
        assert "Nothing to change" in result.output
        assert not (cfg_dir / "config.yaml").exists()


class TestInformational:
    def test_version(self, runner):
        result = runner.invoke(cli, ["version"], obj={})
        assert result.exit_code == 0
        assert "cmdai v0.1.0" in result.output

    def test_diagnostics(self, runner, make_services, executed):
        providers = [
            FakeProvider("azure-openai", available=False, model_name="model-router"),
            FakeProvider("ollama", reply="git status", model_name="codellama:7b"),
        ]
        result = invoke(runner, make_services(providers), ["diagnostics"])

        assert result.exit_code == 0
        assert "1. ollama (codellama:7b): available" in result.output
        assert "2. azure-openai (model-router): unavailable" in result.output
        assert "Selected: Generated by codellama:7b" in result.output
        assert executed == []


class TestErrors:
    def test_malformed_config_section_is_reported(self, runner, tmp_path, monkeypatch, executed):
        monkeypatch.setattr("cmdai.config.config_dir", lambda: tmp_path)
        (tmp_path / "config.yaml").write_text("ai: foo\n")

        result = runner.invoke(cli, ["git", "check", "status"], obj={})

        assert result.exit_code == 1
        assert "Error: Invalid configuration: 'ai' section must be a mapping" in result.output
        assert executed == []

    def test_unexpected_failure_is_reported(self, runner, make_services, executed, monkeypatch):
        services = make_services([])

        def explode(request, context):
            raise RuntimeError("resolver exploded")

        monkeypatch.setattr(services.resolver, "resolve", explode)
        result = invoke(runner, services, ["git", "check", "status"])

        assert result.exit_code == 1
        assert "Error: resolver exploded" in result.output
        assert isinstance(result.exception, SystemExit)

    def test_dangerous_pattern_result_always_asks(self, runner, make_services, executed):
        services = make_services([])
        result = invoke(runner, services, ["git", "--yes", "add ; rm -rf /"], input="n\n")

        assert "Suggested command: git add ; rm -rf /" in result.output
        assert "Execute 'git add ; rm -rf /'?" in result.output
        assert "Command execution cancelled." in result.output
        assert executed == []
