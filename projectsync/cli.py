"""Command line interface for projectsync.

Example:
    projectsync sync ~/code/my-project
    projectsync ask "Where is the retry policy configured?" ~/code/my-project
    projectsync status ~/code/my-project
"""

import asyncio
import logging
from pathlib import Path
from typing import Annotated, NoReturn, Optional

import cyclopts
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.text import Text

from projectsync.cache import LocalCacheStore
from projectsync.config import SyncConfig, WorkspaceSettings
from projectsync.providers import AIProvider, ProviderError, create_provider
from projectsync.sync import SyncResult
from projectsync.workspace import open_assistant, open_vector_store, sync_workspace

app = cyclopts.App(
    name="projectsync", help="Keep a remote vector store in sync with a project"
)


def _get_console() -> Console:
    """Get a Rich console for output."""
    return Console()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _fail(console: Console, error: Exception) -> NoReturn:
    console.print(f"[red]Error: {error}[/red]")
    raise SystemExit(1)


def _load_config(provider: Optional[str], console: Console) -> SyncConfig:
    try:
        config = SyncConfig.from_env()
    except ValueError as e:
        _fail(console, e)
    if provider:
        config.provider = provider.lower()
    return config


def _create_backend(config: SyncConfig, console: Console) -> AIProvider:
    cache = LocalCacheStore(config.cache_dir)
    try:
        return create_provider(config.provider, cache, config)
    except (ProviderError, ValueError) as e:
        _fail(console, e)


def _render_result(console: Console, result: SyncResult) -> None:
    table = Table(title="Sync Summary", show_header=True)
    table.add_column("Outcome", style="cyan")
    table.add_column("Files", justify="right")
    table.add_row("Uploaded", str(len(result.uploaded)), style="green")
    table.add_row("Unchanged", str(len(result.skipped)))
    table.add_row("Deleted", str(len(result.deleted)), style="yellow")
    table.add_row(
        "Failed", str(len(result.failed)), style="red" if result.failed else None
    )
    console.print(table)

    for path in result.failed:
        console.print(f"[red]✗ {path}[/red]", soft_wrap=True)

    console.print(f"[dim]Completed in {result.duration:.1f}s[/dim]")


@app.command
def sync(
    workspace: Annotated[
        Path, cyclopts.Parameter(help="Workspace directory to sync")
    ] = Path("."),
    *,
    provider: Annotated[
        Optional[str], cyclopts.Parameter(help="Backend to use (openai, anthropic)")
    ] = None,
    verbose: Annotated[bool, cyclopts.Parameter(help="Enable verbose logging")] = False,
):
    """Synchronize a workspace with its remote vector store.

    Uploads new and modified files, deletes files that disappeared, and
    skips everything unchanged since the last sync.
    """
    _setup_logging(verbose)
    console = _get_console()
    config = _load_config(provider, console)
    backend = _create_backend(config, console)

    progress_bar = Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
        console=console,
    )

    with progress_bar:
        task_id = progress_bar.add_task("[cyan]Syncing files...", total=100)
        try:
            result = asyncio.run(
                sync_workspace(
                    workspace,
                    backend,
                    config,
                    progress=lambda percent: progress_bar.update(
                        task_id, completed=percent
                    ),
                )
            )
        except ProviderError as e:
            _fail(console, e)

    _render_result(console, result)

    if not result.success:
        raise SystemExit(1)


async def _ask(
    question: str,
    workspace: Path,
    backend: AIProvider,
    config: SyncConfig,
    console: Console,
) -> None:
    settings = WorkspaceSettings(workspace).load()

    vector_store = await open_vector_store(backend, config.provider, settings)
    assistant = await open_assistant(backend, config.provider, settings, vector_store)

    await assistant.send_message(
        question,
        on_delta=lambda text: console.print(
            text, end="", markup=False, highlight=False, soft_wrap=True
        ),
    )
    console.print()


@app.command
def ask(
    question: Annotated[str, cyclopts.Parameter(help="Question about the project")],
    workspace: Annotated[
        Path, cyclopts.Parameter(help="Workspace directory")
    ] = Path("."),
    *,
    provider: Annotated[
        Optional[str], cyclopts.Parameter(help="Backend to use (openai, anthropic)")
    ] = None,
    verbose: Annotated[bool, cyclopts.Parameter(help="Enable verbose logging")] = False,
):
    """Ask the workspace assistant a question and stream the answer."""
    _setup_logging(verbose)
    console = _get_console()
    config = _load_config(provider, console)
    backend = _create_backend(config, console)

    try:
        asyncio.run(_ask(question, workspace, backend, config, console))
    except ProviderError as e:
        _fail(console, e)


@app.command
def status(
    workspace: Annotated[
        Path, cyclopts.Parameter(help="Workspace directory")
    ] = Path("."),
    *,
    provider: Annotated[
        Optional[str], cyclopts.Parameter(help="Backend to use (openai, anthropic)")
    ] = None,
):
    """Show which files of a workspace are held by its vector store."""
    console = _get_console()
    config = _load_config(provider, console)
    settings = WorkspaceSettings(workspace).load()

    store_id = settings.vector_store_id(config.provider)
    if not store_id:
        console.print(
            f"[yellow]Workspace {settings.name} has not been synced with "
            f"{config.provider} yet. Run 'projectsync sync' first.[/yellow]"
        )
        return

    backend = _create_backend(config, console)

    try:
        vector_store = asyncio.run(backend.retrieve_vector_store(store_id))
    except ProviderError as e:
        _fail(console, e)

    identity_map = vector_store.engine.load_identity_map()

    console.print(
        Panel(
            Text.assemble(
                ("Workspace: ", "cyan"),
                (settings.name, "white"),
                ("\n"),
                ("Vector store: ", "cyan"),
                (vector_store.id, "white"),
                ("\n"),
                ("Files: ", "cyan"),
                (str(len(identity_map)), "white"),
            ),
            title="Sync Status",
            border_style="blue",
        )
    )

    if not identity_map:
        return

    table = Table(show_header=True)
    table.add_column("Path", style="cyan")
    table.add_column("Remote File")
    table.add_column("Uploaded Version", style="dim")
    for path, record in identity_map.items():
        table.add_row(path, record.file_id, record.created_at.isoformat())
    console.print(table)


def main():
    load_dotenv()
    app()


if __name__ == "__main__":
    main()
