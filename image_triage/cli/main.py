"""Main CLI interface for the Image Triage System."""

import click
import logging
from pathlib import Path
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from ..core.engine import CategorizationEngine
from ..core.catalog import FileCatalog
from ..core.models import DispatchResult, EngineState, OperationKind
from ..core.exceptions import (
    ImageTriageError, FileSystemError, PermissionDeniedError, PathNotFoundError,
    CollisionError, ConfigurationError, NothingToUndoError, CatalogExhaustedError,
    ValidationError
)

console = Console()

LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR']


@click.group()
@click.version_option(version="0.1.0")
@click.option('--config', '-c', type=click.Path(path_type=Path),
              help='Configuration file path')
@click.option('--log-level', type=click.Choice(LOG_LEVELS),
              help='Set logging level (overrides config)')
@click.option('--log-file', type=click.Path(path_type=Path),
              help='Log file path (overrides config)')
@click.pass_context
def cli(ctx, config, log_level, log_file):
    """Image Triage - sort a folder of images into category folders."""
    from ..core.config import setup_config, LoggingConfig
    from ..core.logging_config import setup_logging

    config_manager = setup_config(config)
    app_config = config_manager.get_config()

    if log_level or log_file:
        logging_config = LoggingConfig(
            level=log_level or app_config.logging.level,
            file_path=log_file or app_config.logging.file_path,
            file_enabled=app_config.logging.file_enabled or bool(log_file),
            console_enabled=app_config.logging.console_enabled,
            format=app_config.logging.format,
            file_max_size_mb=app_config.logging.file_max_size_mb,
            file_backup_count=app_config.logging.file_backup_count
        )
    else:
        logging_config = app_config.logging

    logging_manager = setup_logging(logging_config)
    if logging_config.file_enabled:
        logging_manager.create_audit_logger()

    ctx.ensure_object(dict)
    ctx.obj['config'] = app_config
    ctx.obj['config_manager'] = config_manager
    ctx.obj['logging_manager'] = logging_manager


def _build_engine(ctx) -> CategorizationEngine:
    """Validate the configured folders and catalog the input folder."""
    config_manager = ctx.obj['config_manager']
    app_config = ctx.obj['config']

    folders = config_manager.build_folder_set()
    catalog = FileCatalog.build(
        folders.input_dir,
        extensions=app_config.catalog.extensions,
        include_hidden=app_config.catalog.include_hidden,
    )
    return CategorizationEngine(folders, catalog)


@cli.command()
@click.option("--open/--no-open", "open_viewer", default=False,
              help="Open each image in the system viewer")
@click.pass_context
def triage(ctx, open_viewer: bool):
    """Interactively sort the images of the input folder."""
    try:
        engine = _build_engine(ctx)
    except ImageTriageError as e:
        handle_cli_error(e, "session start")
        raise click.Abort()

    labels = engine.folders.labels
    keys = {str(i): label for i, label in enumerate(labels, 1)}

    console.print(f"[bold blue]Triaging {engine.remaining_count()} image(s) "
                  f"from {engine.folders.input_dir}[/bold blue]")
    _print_key_help(keys)

    shown = None
    while True:
        entry = engine.current_entry()
        if entry is None:
            console.print("\n[bold green]✓ All images triaged[/bold green]")
            if not engine.can_undo():
                break
            console.print("[dim]Press u to undo the last action or q to quit[/dim]")
        elif entry != shown:
            console.print(f"\n[bold cyan]{entry.file_name}[/bold cyan] "
                          f"[dim]({engine.remaining_count()} remaining)[/dim]")
            if open_viewer:
                click.launch(str(entry.path))
            shown = entry

        choice = click.prompt(">", default="", show_default=False).strip().lower()

        if choice in ("q", "quit"):
            break
        if choice in ("", "?", "h", "help"):
            _print_key_help(keys)
            continue

        action = "triage"
        try:
            if choice in keys:
                action = "assign"
                _report(engine.assign(keys[choice]))
            elif choice == "d":
                action = "discard"
                _report(engine.discard())
            elif choice == "u":
                action = "undo"
                _report(engine.undo())
                shown = None
            elif choice == "s":
                action = "skip"
                skipped = engine.skip_missing()
                console.print(f"[yellow]Skipped missing file {skipped.file_name}[/yellow]")
            else:
                console.print(f"[yellow]Unknown key: {choice}[/yellow]")
        except ImageTriageError as e:
            handle_cli_error(e, action)

    console.print(f"\nSession summary: [bold]{len(engine.history())}[/bold] action(s), "
                  f"[bold]{engine.remaining_count()}[/bold] image(s) left")


@cli.command()
@click.pass_context
def status(ctx):
    """Show the configured folders and how many images are waiting."""
    try:
        engine = _build_engine(ctx)
    except ImageTriageError as e:
        handle_cli_error(e, "status")
        raise click.Abort()

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Key", justify="center")
    table.add_column("Label", style="cyan")
    table.add_column("Folder", style="dim", no_wrap=False)

    table.add_row("", "input", str(engine.folders.input_dir))
    table.add_row("d", "trash", str(engine.folders.trash_dir))
    for i, label in enumerate(engine.folders.labels, 1):
        table.add_row(str(i), label, str(engine.folders.category(label).directory))

    console.print(table)
    console.print(f"Images waiting: [bold cyan]{engine.remaining_count()}[/bold cyan]")


@cli.command()
@click.option("--port", "-p", type=int, help="Port to run the web server on (default from config)")
@click.option("--host", "-h", help="Host to bind the web server to (default from config)")
@click.option("--debug", is_flag=True, help="Enable debug mode")
@click.pass_context
def web(ctx, port: int, host: str, debug: bool):
    """Start the web interface."""
    from ..web.app import create_app

    app_config = ctx.obj['config']
    host = host or app_config.web.host
    port = port or app_config.web.port
    debug = debug or app_config.web.debug

    try:
        engine = _build_engine(ctx)
    except ImageTriageError as e:
        handle_cli_error(e, "web server start")
        raise click.Abort()

    console.print("[bold blue]Starting Image Triage web interface...[/bold blue]")
    console.print(f"Server: http://{host}:{port}")
    console.print(f"Debug mode: {'enabled' if debug else 'disabled'}")
    console.print("\n[bold green]Press Ctrl+C to stop the server[/bold green]\n")

    if debug:
        ctx.obj['logging_manager'].enable_debug_logging()

    app = create_app(engine, {'DEBUG': debug})

    try:
        # One request at a time: the engine is not thread safe
        app.run(host=host, port=port, debug=debug, threaded=False, use_reloader=False)
    except KeyboardInterrupt:
        console.print("\n[bold yellow]Server stopped by user[/bold yellow]")
    except OSError as e:
        console.print(f"[bold red]Error starting web server: {e}[/bold red]")
        raise click.Abort()


@cli.group()
def config():
    """Configuration management commands."""
    pass


@config.command('show')
@click.pass_context
def show_config(ctx):
    """Show current configuration."""
    app_config = ctx.obj['config']

    console.print("[bold blue]Current Configuration:[/bold blue]\n")

    console.print("[bold]Folders:[/bold]")
    console.print(f"  Input: {app_config.folders.input_folder or '[dim]not set[/dim]'}")
    console.print(f"  Trash: {app_config.folders.trash_folder or '[dim]not set[/dim]'}")
    console.print(f"  Create missing: {app_config.folders.create_missing}")

    console.print("\n[bold]Categories:[/bold]")
    if not app_config.folders.categories:
        console.print("  [dim]none[/dim]")
    for label, path in app_config.folders.categories.items():
        console.print(f"  {label}: {path}")

    console.print("\n[bold]Catalog:[/bold]")
    console.print(f"  Extensions: {', '.join(app_config.catalog.extensions)}")
    console.print(f"  Include hidden: {app_config.catalog.include_hidden}")

    console.print("\n[bold]Web:[/bold]")
    console.print(f"  Host: {app_config.web.host}")
    console.print(f"  Port: {app_config.web.port}")
    console.print(f"  Debug: {app_config.web.debug}")

    console.print("\n[bold]Logging:[/bold]")
    console.print(f"  Level: {app_config.logging.level}")
    console.print(f"  File enabled: {app_config.logging.file_enabled}")
    console.print(f"  File path: {app_config.logging.file_path}")
    console.print(f"  File max size: {app_config.logging.file_max_size_mb}MB")
    console.print(f"  File backup count: {app_config.logging.file_backup_count}")
    console.print(f"  Console enabled: {app_config.logging.console_enabled}")


@config.command('set')
@click.argument('key')
@click.argument('value')
@click.pass_context
def set_config(ctx, key, value):
    """Set a configuration value. Use dot notation (e.g., folders.input_folder)."""
    config_manager = ctx.obj['config_manager']

    try:
        config_manager.set_value(key, value)
        console.print(f"[green]✓[/green] Set {key} = {value}")
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise click.Abort()


@config.command('add-category')
@click.argument('label')
@click.argument('path', type=click.Path(path_type=Path))
@click.pass_context
def add_category(ctx, label, path):
    """Add a category folder under LABEL."""
    config_manager = ctx.obj['config_manager']

    try:
        config_manager.add_category(label, path.expanduser().resolve())
        console.print(f"[green]✓[/green] Added category {label} -> {path}")
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise click.Abort()


@config.command('remove-category')
@click.argument('label')
@click.pass_context
def remove_category(ctx, label):
    """Remove the category folder labeled LABEL."""
    config_manager = ctx.obj['config_manager']

    try:
        config_manager.remove_category(label)
        console.print(f"[green]✓[/green] Removed category {label}")
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise click.Abort()


@config.command('reset')
@click.confirmation_option(prompt='Are you sure you want to reset all configuration to defaults?')
@click.pass_context
def reset_config(ctx):
    """Reset configuration to default values."""
    config_manager = ctx.obj['config_manager']

    try:
        config_manager.reset_to_defaults()
        console.print("[green]✓ Configuration reset to defaults[/green]")
    except ConfigurationError as e:
        console.print(f"[red]Error resetting configuration:[/red] {e}")
        raise click.Abort()


@config.command('export')
@click.argument('file_path', type=click.Path(path_type=Path))
@click.pass_context
def export_config(ctx, file_path):
    """Export configuration to JSON file."""
    config_manager = ctx.obj['config_manager']

    try:
        config_manager.export_to_json(file_path)
        console.print(f"[green]✓ Configuration exported to {file_path}[/green]")
    except ConfigurationError as e:
        console.print(f"[red]Error exporting configuration:[/red] {e}")
        raise click.Abort()


def _print_key_help(keys):
    """Print the key bindings of the triage session."""
    lines = [f"[bold]{key}[/bold]  {label}" for key, label in keys.items()]
    lines += [
        "[bold]d[/bold]  discard (move to trash)",
        "[bold]u[/bold]  undo last action",
        "[bold]s[/bold]  skip a file that has vanished",
        "[bold]q[/bold]  quit",
    ]
    console.print(Panel("\n".join(lines), title="Keys", expand=False))


def _report(result: DispatchResult):
    """Print the outcome of one engine call."""
    operation = result.operation
    if result.reversed:
        console.print(f"[blue]↶ Restored {operation.entry.file_name}[/blue]")
    elif operation.kind is OperationKind.MOVE:
        console.print(f"[green]✓ {operation.entry.file_name} → {operation.category}[/green]")
    else:
        console.print(f"[red]✗ {operation.entry.file_name} → trash[/red]")

    if result.state is EngineState.EXHAUSTED:
        console.print("[dim]No images left[/dim]")


def handle_cli_error(error: Exception, operation: str = "operation") -> None:
    """
    Handle CLI errors with appropriate user feedback.

    Args:
        error: The exception that occurred
        operation: Description of the operation that failed
    """
    if isinstance(error, CollisionError):
        console.print(f"[bold red]Collision:[/bold red] {error}")
        console.print("[yellow]Rename or move the existing file, then try again.[/yellow]")
    elif isinstance(error, NothingToUndoError):
        console.print("[yellow]Nothing to undo.[/yellow]")
    elif isinstance(error, CatalogExhaustedError):
        console.print("[yellow]No images left to triage.[/yellow]")
    elif isinstance(error, ConfigurationError):
        console.print(f"[bold red]Configuration Error:[/bold red] {error}")
        console.print("[yellow]Check the folders with 'image-triage config show'.[/yellow]")
    elif isinstance(error, ValidationError):
        console.print(f"[bold red]Error:[/bold red] {error}")
    elif isinstance(error, PathNotFoundError):
        console.print(f"[bold red]Error:[/bold red] {error}")
        if operation in ("assign", "discard"):
            console.print("[yellow]The file was moved or deleted outside this session; press s to skip it.[/yellow]")
        else:
            console.print("[yellow]The file was moved or deleted outside this session.[/yellow]")
    elif isinstance(error, PermissionDeniedError):
        console.print(f"[bold red]Permission Error:[/bold red] {error}")
        console.print("[yellow]Please check file/directory permissions.[/yellow]")
    elif isinstance(error, FileSystemError):
        console.print(f"[bold red]File System Error:[/bold red] {error}")
        console.print("[yellow]Please check file system permissions and available space.[/yellow]")
    elif isinstance(error, ImageTriageError):
        console.print(f"[bold red]Error:[/bold red] {error}")
    else:
        console.print(f"[bold red]Unexpected Error:[/bold red] {error}")
        console.print("[yellow]An unexpected error occurred. Please check the logs for more details.[/yellow]")

    logging.getLogger(__name__).error(f"CLI error in {operation}: {error}")


if __name__ == "__main__":
    cli()
