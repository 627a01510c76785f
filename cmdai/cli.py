"""Command line interface for cmdai.

This module defines the ``cmdai`` command using the ``click`` library.
It exposes several subcommands:

``cmdai ask <tool> <query>``
    Resolve a natural language request for any tool, show the
    suggested command and run it after confirmation.  ``--yes`` skips
    the confirmation for commands that are not flagged as unsafe.

``cmdai git|az|azure|docker|kubectl|npm|yarn <query>``
    Shortcuts for ``cmdai ask <tool> <query>``.

``cmdai configure``
    Set the provider order, models and endpoints.  Writes
    ``~/.cmdai/config.yaml``.

``cmdai diagnostics``
    Show the effective configuration, provider availability and
    priority order, and which layer would answer a sample request.

``cmdai history``
    List the feedback stored by the learning store.

``cmdai optimize``
    Prune and re-score the learning store.

``cmdai serve``
    Launch the JSON API (see :mod:`cmdai.server`).

``cmdai version``
    Print the version.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

import click

from . import __version__
from .config import ConfigError, config_file, load_config_file, save_config
from .context import get_context
from .executor import execute_command
from .learning import format_entries
from .models import CommandRequest, CommandResult
from .orchestrator import GENERATED_BY, UNSAFE_MARKER
from .patterns import PATTERN_BASED_NOTE
from .services import Services, build_services

logger = logging.getLogger(__name__)

DIRECT_TOOLS = ["git", "az", "azure", "docker", "kubectl", "npm", "yarn"]


def _configure_logging(verbose: int) -> None:
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _services(ctx: click.Context) -> Services:
    """Return the pipeline stored on the context, building it on first use."""
    obj = ctx.ensure_object(dict)
    if "services" not in obj:
        try:
            obj["services"] = build_services()
        except (ConfigError, ValueError) as exc:
            raise click.ClickException(f"Invalid configuration: {exc}")
    return obj["services"]


def _has_provenance(result: CommandResult) -> bool:
    context = result.context or ""
    return GENERATED_BY in context or PATTERN_BASED_NOTE in context


def _handle_request(ctx: click.Context, request: CommandRequest, auto_yes: bool) -> None:
    """Resolve, confirm and run ``request``, reporting failures as ``Error: ...``."""
    try:
        _run_request(ctx, request, auto_yes)
    except (click.ClickException, click.Abort):
        raise
    except Exception as exc:
        logger.debug("Request failed", exc_info=True)
        raise click.ClickException(str(exc) or exc.__class__.__name__) from exc


def _run_request(ctx: click.Context, request: CommandRequest, auto_yes: bool) -> None:
    services = _services(ctx)
    context = get_context()
    result = services.resolver.resolve(request, context)
    if result is None:
        click.echo(f"Sorry, I couldn't find a command for '{request.query}' with {request.tool}")
        return

    click.echo(f"Suggested command: {result.command}")
    click.echo(f"Description: {result.description}")
    if result.context:
        click.echo(f"Context: {result.context}")

    # Pattern templates splice query text into the command.
    unsafe = UNSAFE_MARKER in (result.context or "") or not services.validator.is_safe(result.command)
    if unsafe:
        click.secho("Warning: this command may be destructive. Review it carefully.", fg="red", err=True)

    # Unsafe commands are always confirmed, even with --yes.
    if unsafe or (result.requires_confirmation and not auto_yes):
        accepted = click.confirm(f"Execute '{result.command}'?", default=False)
    else:
        accepted = True

    successful = False
    if accepted:
        successful = execute_command(result, context)
        click.echo()
        if successful:
            click.echo("Command completed successfully.")
        else:
            click.echo("Command failed.")
    else:
        click.echo("Command execution cancelled.")

    if services.config.enable_learning and _has_provenance(result):
        services.learning.record_feedback(request, result, accepted, successful)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-v", "--verbose", count=True, help="Increase log output (-v info, -vv debug).")
@click.pass_context
def cli(ctx: click.Context, verbose: int) -> None:
    """cmdai – translate natural language into CLI commands."""
    _configure_logging(verbose)
    ctx.ensure_object(dict)


@cli.command()
@click.argument("tool", type=str)
@click.argument("query", nargs=-1, required=True, type=str)
@click.option("--yes", "auto_yes", is_flag=True, help="Run the command without asking, unless it is flagged as unsafe.")
@click.pass_context
def ask(ctx: click.Context, tool: str, query: Tuple[str, ...], auto_yes: bool) -> None:
    """Ask for help with a specific tool."""
    query_text = " ".join(query).strip()
    if not query_text:
        raise click.UsageError("Please describe what you want to do, e.g. cmdai ask git \"undo last commit\"")
    _handle_request(ctx, CommandRequest(tool, query_text, is_direct_command=False), auto_yes)


def _make_direct_command(tool: str) -> click.Command:
    @click.command(name=tool, help=f"Direct {tool} command assistance.")
    @click.argument("query", nargs=-1, required=True, type=str)
    @click.option("--yes", "auto_yes", is_flag=True, help="Run the command without asking, unless it is flagged as unsafe.")
    @click.pass_context
    def direct(ctx: click.Context, query: Tuple[str, ...], auto_yes: bool) -> None:
        query_text = " ".join(query).strip()
        if not query_text:
            raise click.UsageError(f"Please describe the {tool} operation")
        _handle_request(ctx, CommandRequest(tool, query_text, is_direct_command=True), auto_yes)

    return direct


for _tool in DIRECT_TOOLS:
    cli.add_command(_make_direct_command(_tool))


@cli.command()
@click.option("--providers", type=str, default=None, help="Comma separated provider priority, e.g. azure,ollama")
@click.option("--model", type=str, default=None, help="Ollama model name (e.g. codellama:7b)")
@click.option("--ollama-endpoint", type=str, default=None, help="Ollama server URL")
@click.option("--azure-endpoint", type=str, default=None, help="Azure OpenAI chat completions URL")
@click.option("--azure-model", type=str, default=None, help="Azure OpenAI model or deployment name")
@click.option("--ai/--no-ai", "enable_ai", default=None, help="Enable or disable AI providers")
@click.option("--fallback/--no-fallback", default=None, help="Fall back to built-in patterns when AI fails")
@click.option("--learning/--no-learning", default=None, help="Record feedback in the learning store")
def configure(
    providers: Optional[str],
    model: Optional[str],
    ollama_endpoint: Optional[str],
    azure_endpoint: Optional[str],
    azure_model: Optional[str],
    enable_ai: Optional[bool],
    fallback: Optional[bool],
    learning: Optional[bool],
) -> None:
    """Configure providers, models and endpoints."""
    config = load_config_file()
    updates = [
        ("ai", "providers", [p.strip() for p in providers.split(",") if p.strip()] if providers else None),
        ("ai", "enabled", enable_ai),
        ("ai", "fallback_to_patterns", fallback),
        ("ollama", "model", model),
        ("ollama", "endpoint", ollama_endpoint),
        ("azure_openai", "endpoint", azure_endpoint),
        ("azure_openai", "model", azure_model),
        ("learning", "enabled", learning),
    ]
    changed = False
    for section, key, value in updates:
        if value is None:
            continue
        config.setdefault(section, {})
        config[section][key] = value
        changed = True
    if not changed:
        click.echo("Nothing to change. See 'cmdai configure --help'.")
        return
    path = save_config(config)
    click.echo(f"Configuration updated: {path}")
    click.echo("Set AZURE_OPENAI_API_KEY in your environment or ~/.env to use Azure OpenAI.")


@cli.command()
@click.pass_context
def diagnostics(ctx: click.Context) -> None:
    """Show configuration and provider status."""
    services = _services(ctx)
    config = services.config

    click.echo("=== cmdai diagnostics ===")
    click.echo()
    click.echo("Configuration:")
    click.echo(f"  Config file: {config_file()}")
    click.echo(f"  AI enabled: {config.enable_ai}")
    click.echo(f"  Configured providers: [{', '.join(config.providers)}]")
    click.echo(f"  Fallback to patterns: {config.fallback_to_patterns}")
    click.echo(f"  Timeout: {config.timeout_seconds}s")
    click.echo(f"  Learning enabled: {config.enable_learning}")
    click.echo(f"  Confidence threshold: {config.confidence_threshold}")
    click.echo()
    click.echo("Azure OpenAI:")
    click.echo(f"  Endpoint: {'Configured' if config.azure_openai_endpoint else 'Not configured'}")
    click.echo(f"  API key: {'Configured (***)' if config.azure_openai_api_key else 'Not configured'}")
    click.echo(f"  Model: {config.azure_openai_model_name}")
    click.echo()
    click.echo("Ollama:")
    click.echo(f"  Endpoint: {config.ollama_endpoint}")
    click.echo(f"  Model: {config.model_name}")
    click.echo()

    click.echo("Provider priority and availability:")
    for idx, provider in enumerate(services.resolver.ordered_providers(), start=1):
        available = provider.is_available()
        status = "available" if available else "unavailable"
        click.echo(f"  {idx}. {provider.name} ({provider.model_name}): {status}")
    click.echo()

    click.echo("Resolution test ('git show status'):")
    request = CommandRequest("git", "show status", is_direct_command=True)
    result = services.resolver.resolve(request, get_context())
    if result is None:
        click.echo("  No provider could resolve the command")
    else:
        click.echo(f"  Selected: {result.context}")
        click.echo(f"  Command: {result.command}")


@cli.command(name="history")
@click.option("--limit", type=int, default=20, show_default=True, help="Number of most recent entries to show")
@click.pass_context
def history_cmd(ctx: click.Context, limit: int) -> None:
    """Show feedback recorded by the learning store."""
    entries = _services(ctx).learning.entries()
    if not entries:
        click.echo("No history available.")
        return
    for line in format_entries(entries[-limit:]):
        click.echo(line)


@cli.command()
@click.pass_context
def optimize(ctx: click.Context) -> None:
    """Prune stale feedback and re-score successful commands."""
    learning = _services(ctx).learning
    before = len(learning)
    learning.optimize()
    click.echo(f"Learning store optimized: {before} -> {len(learning)} entries.")


@cli.command(name="serve")
@click.option("--host", default="127.0.0.1", show_default=True, help="Bind address for the API server")
@click.option("--port", default=5005, show_default=True, help="Port for the API server")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int) -> None:
    """Run the JSON API for resolving commands."""
    import uvicorn

    from .server import create_app

    app = create_app(_services(ctx))
    click.echo(f"cmdai API running on http://{host}:{port}")
    uvicorn.run(app, host=host, port=port)


@cli.command()
def version() -> None:
    """Show version information."""
    click.echo(f"cmdai v{__version__}")
    click.echo("AI-powered CLI assistant with Ollama and Azure OpenAI integration")


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
