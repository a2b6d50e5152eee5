"""Main CLI application using Typer."""
import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import typer
from dotenv import load_dotenv
from rich.console import Console, Group
from rich.live import Live
from rich.logging import RichHandler
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..config import StreamingSpeed
from ..llm import ProviderTag
from ..orchestrator import ChatOrchestrator, GenerationOutcome, RequestState
from ..render import render
from ..sessions import Message, Role, SessionRepository, SessionStore
from .providers import get_key_value_store, get_registry

# Load environment variables
load_dotenv()

# Create Typer app
app = typer.Typer(
    name="chorus",
    help="Multi-provider streaming chat from the command line",
    no_args_is_help=True,
    add_completion=True,
)
sessions_app = typer.Typer(help="Manage saved chat sessions", no_args_is_help=True)
app.add_typer(sessions_app, name="sessions")

# Console for rich output
console = Console()
err_console = Console(stderr=True)

EXIT_WORDS = ("exit", "quit", "q")


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        "WARNING",
        "--log-level",
        "-l",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)"
    ),
):
    """Chat with Gemini, OpenAI, xAI and DeepSeek models."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, rich_tracebacks=True, show_path=False)],
        force=True,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def _engine(db: Path | None) -> AsyncIterator[tuple[SessionRepository, SessionStore, ChatOrchestrator]]:
    """Load persisted state, yield a ready orchestrator, save on exit."""
    kv_store = get_key_value_store(db)
    await kv_store.connect()
    registry = get_registry()
    repository = SessionRepository(kv_store)
    preferences = await repository.load_preferences()
    collection = await repository.load_collection()
    store = SessionStore(collection, preferences, registry.catalog)
    orchestrator = ChatOrchestrator(store, registry, preferences)
    try:
        yield repository, store, orchestrator
    finally:
        await orchestrator.aclose()
        await repository.save_collection(store.collection)
        await kv_store.disconnect()


def _reply_view(message: Message) -> Group:
    parts = []
    if message.auxiliary_content:
        parts.append(Panel(message.auxiliary_content, title="Reasoning", style="dim"))
    parts.append(Markdown(message.content) if message.content else Text("...", style="dim"))
    return Group(*parts)


async def _stream_reply(orchestrator: ChatOrchestrator, text: str) -> GenerationOutcome | None:
    """Send one message, rendering the reply live as the store changes."""
    store = orchestrator.store
    session_id = store.active_session_id

    with Live(Text("...", style="dim"), console=console, refresh_per_second=15) as live:
        def on_change(changed_id: str | None) -> None:
            if changed_id != session_id:
                return
            session = store.get_session(session_id)
            if session and session.messages and session.messages[-1].role == Role.ASSISTANT:
                live.update(_reply_view(session.messages[-1]))

        unsubscribe = store.subscribe(on_change)
        try:
            outcome = await orchestrator.send_message(text, session_id)
        finally:
            unsubscribe()

    if outcome is None:
        console.print("[yellow]Nothing sent.[/yellow]")
    elif outcome.state == RequestState.FAILED and outcome.error is not None:
        console.print(f"[red]{outcome.error.category}: {outcome.error.message}[/red]")
    elif outcome.usage:
        console.print(
            f"[dim]Tokens: {outcome.usage.get('prompt_tokens', 0):,} in, "
            f"{outcome.usage.get('completion_tokens', 0):,} out[/dim]"
        )
    return outcome


def _handle_slash_command(store: SessionStore, command: str) -> None:
    name, _, argument = command[1:].partition(" ")
    argument = argument.strip()

    if name == "new":
        session = store.create_session(seed_model=argument or None)
        console.print(f"[dim]New session {session.id} ({session.model_name})[/dim]")
    elif name == "model" and argument:
        if argument not in store.catalog:
            console.print(f"[red]Unknown model: {argument}[/red]")
            return
        store.set_session_model(store.active_session_id, argument)
        console.print(f"[dim]Model set to {argument}[/dim]")
    elif name == "system" and argument:
        store.set_session_system_prompt(store.active_session_id, argument)
        console.print("[dim]System prompt updated[/dim]")
    elif name == "clear":
        store.clear_session(store.active_session_id)
        console.print("[dim]Session cleared[/dim]")
    else:
        console.print("[dim]Commands: /new [model], /model <id>, /system <prompt>, /clear[/dim]")


@app.command()
def chat(
    message: str | None = typer.Argument(
        None,
        help="Message to send (omit for interactive mode)"
    ),
    model: str | None = typer.Option(
        None,
        "--model",
        "-m",
        help="Model id for a new session"
    ),
    session_id: str | None = typer.Option(
        None,
        "--session",
        "-s",
        help="Continue an existing session"
    ),
    new: bool = typer.Option(
        False,
        "--new",
        "-n",
        help="Start a new session"
    ),
    system: str | None = typer.Option(
        None,
        "--system",
        help="System prompt for a new session"
    ),
    no_stream: bool = typer.Option(
        False,
        "--no-stream",
        help="Show the reply only once it is complete"
    ),
    speed: str | None = typer.Option(
        None,
        "--speed",
        help="Render speed: slow, normal, fast, very_fast"
    ),
    db: Path | None = typer.Option(
        None,
        "--db",
        help="SQLite file for saved sessions"
    ),
):
    """Chat with a model. Sessions are saved between runs."""

    async def _chat():
        async with _engine(db) as (_, store, orchestrator):
            changes = {}
            if no_stream:
                changes["streaming_enabled"] = False
            if speed:
                changes["streaming_speed_ms"] = StreamingSpeed.from_string(speed)
            if changes:
                orchestrator.preferences = orchestrator.preferences.updated(**changes)

            if session_id and not orchestrator.select_session(session_id):
                console.print(f"[red]Session not found: {session_id}[/red]")
                raise typer.Exit(code=1)

            if new or model or system:
                if model and model not in store.catalog:
                    console.print(f"[red]Unknown model: {model}[/red]")
                    raise typer.Exit(code=1)
                store.create_session(seed_model=model, seed_system_prompt=system)

            active = store.active_session
            console.print(f"[dim]{active.title} ({active.model_name})[/dim]")

            if message:
                outcome = await _stream_reply(orchestrator, message)
                if outcome is None or outcome.state == RequestState.FAILED:
                    raise typer.Exit(code=1)
                return

            # Interactive mode
            console.print("[bold cyan]Chorus Chat[/bold cyan]")
            console.print("[dim]Type 'exit', 'quit', or 'q' to leave; '/help' for commands\n[/dim]")

            while True:
                try:
                    user_input = console.input("[bold yellow]You:[/bold yellow] ")
                except (KeyboardInterrupt, EOFError):
                    console.print("\n[dim]Goodbye![/dim]")
                    break

                if not user_input.strip():
                    continue
                if user_input.strip().lower() in EXIT_WORDS:
                    console.print("[dim]Goodbye![/dim]")
                    break
                if user_input.startswith("/"):
                    _handle_slash_command(store, user_input.strip())
                    continue

                console.print()
                await _stream_reply(orchestrator, user_input)
                console.print()

    asyncio.run(_chat())


@app.command()
def models(
    provider: ProviderTag | None = typer.Option(
        None,
        "--provider",
        "-p",
        help="Only list models of this provider"
    ),
):
    """List the model catalogue."""
    registry = get_registry()
    catalog = registry.catalog
    specs = catalog.models_for(provider) if provider else catalog.models

    table = Table(title="Models")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Provider", style="magenta")
    table.add_column("System prompt")
    table.add_column("Reasoning")
    table.add_column("Context", justify="right")

    for spec in specs:
        capabilities = catalog.resolve(spec.id)
        table.add_row(
            spec.id,
            spec.name,
            spec.provider.value,
            capabilities.system_prompt_mode.value,
            "yes" if capabilities.auxiliary_channel else "",
            f"{capabilities.max_context:,}",
        )

    console.print(table)


@app.command()
def probe(
    model_ids: list[str] | None = typer.Argument(
        None,
        help="Models to probe (default: the whole catalogue)"
    ),
):
    """Check which models answer with the configured API keys."""

    async def _probe():
        registry = get_registry()
        try:
            with console.status("[dim]Probing models...[/dim]"):
                results = await registry.probe_all(model_ids or None)
        finally:
            await registry.close()

        table = Table(title="Model availability")
        table.add_column("Model", style="cyan")
        table.add_column("Available")
        table.add_column("Streaming")
        table.add_column("Error", style="dim")

        for name, result in results.items():
            table.add_row(
                name,
                "[green]yes[/green]" if result.available else "[red]no[/red]",
                "yes" if result.supports_streaming else "no",
                result.error or "",
            )

        console.print(table)

    asyncio.run(_probe())


@sessions_app.command("list")
def sessions_list(
    db: Path | None = typer.Option(None, "--db", help="SQLite file for saved sessions"),
):
    """List saved sessions."""

    async def _list():
        async with _engine(db) as (_, store, _orchestrator):
            table = Table(title="Sessions")
            table.add_column("", width=1)
            table.add_column("ID", style="dim")
            table.add_column("Title", style="cyan")
            table.add_column("Model")
            table.add_column("Messages", justify="right")
            table.add_column("Updated")

            ordered = sorted(store.sessions, key=lambda s: s.updated_at, reverse=True)
            for session in ordered:
                table.add_row(
                    "*" if session.id == store.active_session_id else "",
                    session.id,
                    session.title,
                    session.model_name,
                    str(len(session.messages)),
                    session.updated_at.strftime("%Y-%m-%d %H:%M"),
                )
            console.print(table)

    asyncio.run(_list())


@sessions_app.command("show")
def sessions_show(
    session_id: str = typer.Argument(..., help="Session to show"),
    html: bool = typer.Option(False, "--html", help="Print replies as sanitized HTML"),
    db: Path | None = typer.Option(None, "--db", help="SQLite file for saved sessions"),
):
    """Print the messages of a session."""

    async def _show():
        async with _engine(db) as (_, store, _orchestrator):
            session = store.get_session(session_id)
            if session is None:
                console.print(f"[red]Session not found: {session_id}[/red]")
                raise typer.Exit(code=1)

            console.print(f"[bold cyan]{session.title}[/bold cyan] [dim]({session.model_name})[/dim]\n")
            for message in session.messages:
                label = "You" if message.role == Role.USER else (message.model_name or "Assistant")
                console.print(f"[bold yellow]{label}[/bold yellow] [dim]{message.id}[/dim]")
                if html and message.role == Role.ASSISTANT:
                    console.print(render(message.content), markup=False, highlight=False)
                else:
                    console.print(_reply_view(message))
                console.print()

    asyncio.run(_show())


@sessions_app.command("delete")
def sessions_delete(
    session_id: str = typer.Argument(..., help="Session to delete"),
    db: Path | None = typer.Option(None, "--db", help="SQLite file for saved sessions"),
):
    """Delete a session."""

    async def _delete():
        async with _engine(db) as (_, _store, orchestrator):
            if not orchestrator.delete_session(session_id):
                console.print(f"[red]Session not found: {session_id}[/red]")
                raise typer.Exit(code=1)
            console.print(f"[green]Deleted session {session_id}[/green]")

    asyncio.run(_delete())


@sessions_app.command("select")
def sessions_select(
    session_id: str = typer.Argument(..., help="Session to make active"),
    db: Path | None = typer.Option(None, "--db", help="SQLite file for saved sessions"),
):
    """Make a session the active one."""

    async def _select():
        async with _engine(db) as (_, _store, orchestrator):
            if not orchestrator.select_session(session_id):
                console.print(f"[red]Session not found: {session_id}[/red]")
                raise typer.Exit(code=1)
            console.print(f"[green]Active session: {session_id}[/green]")

    asyncio.run(_select())


@sessions_app.command("branch")
def sessions_branch(
    session_id: str = typer.Argument(..., help="Session to branch"),
    message_id: str = typer.Argument(..., help="Message before which the branch is cut"),
    db: Path | None = typer.Option(None, "--db", help="SQLite file for saved sessions"),
):
    """Copy a session's history up to a message into a new session."""

    async def _branch():
        async with _engine(db) as (_, _store, orchestrator):
            branch = orchestrator.branch_from_message(session_id, message_id)
            if branch is None:
                console.print("[red]Session or message not found[/red]")
                raise typer.Exit(code=1)
            console.print(f"[green]Created {branch.title!r} ({branch.id})[/green]")

    asyncio.run(_branch())


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
