"""CLI commands for compactbot."""

import asyncio
import signal
import sys
from pathlib import Path

import typer
from loguru import logger
from pydantic import ValidationError
from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.table import Table

from compactbot import __logo__, __version__
from compactbot.bus.events import Severity

app = typer.Typer(
    name="compactbot",
    help=f"{__logo__} compactbot - agentic conversation compaction",
    no_args_is_help=True,
)

console = Console()


class ConsoleNotifier:
    """Prints notifications to the terminal."""

    def __init__(self, console: Console):
        self.console = console

    def notify(self, message: str, severity: Severity = Severity.info) -> None:
        if severity == Severity.warning:
            self.console.print(f"[yellow]{escape(message)}[/yellow]")
        else:
            self.console.print(f"[dim]{escape(message)}[/dim]")


def _configure_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


def _parse_model(value: str | None):
    """Turn ``provider/id`` into a ModelDescriptor."""
    from compactbot.providers.registry import ModelDescriptor

    if not value:
        return None
    if "/" not in value:
        raise typer.BadParameter("Expected provider/model-id", param_hint="--session-model")
    provider, model_id = value.split("/", 1)
    return ModelDescriptor(provider=provider, id=model_id)


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} compactbot v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """compactbot - agentic conversation compaction."""
    pass


# ============================================================================
# Compaction
# ============================================================================


@app.command()
def compact(
    session: Path = typer.Argument(..., help="Session JSONL file or JSON message array"),
    note: str = typer.Option(None, "--note", "-n", help="Focus note, overrides any /compact note"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Config file"),
    session_model: str = typer.Option(
        None, "--session-model", help="Fallback model as provider/id"
    ),
    max_context_tokens: int = typer.Option(200_000, "--max-context-tokens"),
    apply: bool = typer.Option(False, "--apply", help="Record the compaction in the session file"),
    verbose: bool = typer.Option(False, "--verbose", help="Show debug logs"),
):
    """Summarize a session with the agentic compactor."""
    from compactbot.agent.compactor import Compactor, CompactionRequest
    from compactbot.auth.credentials import load_credentials
    from compactbot.config.loader import load_config
    from compactbot.providers.litellm_provider import LiteLLMProvider
    from compactbot.providers.registry import ProviderModelRegistry
    from compactbot.sandbox import SandboxError, create_sandbox
    from compactbot.session.manager import SessionError, SessionFile

    _configure_logging(verbose)
    config = load_config(config_path)

    try:
        session_file = SessionFile.load(session)
        prep = session_file.prepare_compaction(max_context_tokens)
    except (SessionError, ValidationError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    if prep is None:
        console.print("[yellow]Nothing to compact.[/yellow]")
        raise typer.Exit()

    try:
        executor = create_sandbox(
            config.sandbox_backend, config.sandbox_image, config.tool_timeout_seconds,
        )
    except SandboxError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    request = CompactionRequest(
        session_id=session_file.session_id,
        messages=prep.messages,
        first_kept_entry_id=prep.first_kept_entry_id,
        tokens_before=prep.tokens_before,
        previous_summary=prep.previous_summary,
        custom_instructions=note,
        session_model=_parse_model(session_model),
    )

    compactor = Compactor(
        provider=LiteLLMProvider(),
        registry=ProviderModelRegistry(load_credentials()),
        executor=executor,
        config=config,
        notifier=ConsoleNotifier(console),
    )
    compactor.recorder.enable_debug_log()

    async def run():
        cancel = asyncio.Event()
        try:
            asyncio.get_running_loop().add_signal_handler(signal.SIGINT, cancel.set)
        except NotImplementedError:
            pass
        return await compactor.compact(request, cancel)

    outcome = asyncio.run(run())
    compactor.recorder.disable_debug_log()

    if not outcome.ok:
        detail = f": {escape(outcome.error)}" if outcome.error else ""
        console.print(f"[yellow]Compaction skipped ({outcome.status.value}){detail}[/yellow]")
        raise typer.Exit(1)

    result = outcome.result
    console.print(Markdown(result.summary))
    console.print(
        f"\n[dim]First kept entry: {result.first_kept_entry_id} · "
        f"tokens before: {result.tokens_before}[/dim]"
    )

    if apply:
        try:
            session_file.append_compaction(
                result.summary, result.first_kept_entry_id, result.tokens_before,
            )
        except SessionError as e:
            console.print(f"[red]Error: {escape(str(e))}[/red]")
            raise typer.Exit(1)
        console.print(f"[green]✓[/green] Compaction recorded in {session}")


# ============================================================================
# Models & credentials
# ============================================================================


@app.command()
def models(
    config_path: Path = typer.Option(None, "--config", "-c", help="Config file"),
):
    """Show compaction model candidates and whether each is usable."""
    from compactbot.auth.credentials import load_credentials
    from compactbot.config.loader import load_config
    from compactbot.providers.registry import ProviderModelRegistry

    config = load_config(config_path)
    registry = ProviderModelRegistry(load_credentials())
    known = {(m.provider, m.id): m for m in registry.list_known()}

    table = Table(title="Compaction Models")
    table.add_column("#", style="dim")
    table.add_column("Model", style="cyan")
    table.add_column("Registered")
    table.add_column("Credential")
    table.add_column("Thinking")

    async def check():
        rows = []
        for i, candidate in enumerate(config.compaction_models, start=1):
            model = known.get((candidate.provider, candidate.id))
            has_key = bool(model and await registry.credential_for(model))
            rows.append((
                str(i),
                candidate.key,
                "[green]✓[/green]" if model else "[red]✗[/red]",
                "[green]✓[/green]" if has_key else "[dim]not set[/dim]",
                candidate.thinking_level or f"[dim]{config.thinking_level}[/dim]",
            ))
        return rows

    for row in asyncio.run(check()):
        table.add_row(*row)

    console.print(table)


@app.command()
def login(
    provider: str = typer.Argument(..., help="Provider id, e.g. anthropic"),
):
    """Store an API key for a provider."""
    from compactbot.auth.credentials import (
        ProviderCredentials,
        get_credentials_path,
        load_credentials,
        save_credentials,
    )
    from compactbot.config.providers import get_provider

    if get_provider(provider) is None:
        console.print(f"[red]Unknown provider: {provider}[/red]")
        raise typer.Exit(1)

    api_key = typer.prompt(f"{provider} API key", hide_input=True).strip()
    creds = load_credentials()
    setattr(creds.providers, provider, ProviderCredentials(api_key=api_key))
    save_credentials(creds)
    console.print(f"[green]✓[/green] Saved to {get_credentials_path()}")


if __name__ == "__main__":
    app()
