"""Thin CLI wrapper for docset_manager.

This module provides the command-line interface using Typer.
All business logic is delegated to DocsetLifecycleController.
"""

import json
import logging
from typing import TYPE_CHECKING, Annotated

import typer
from rich.console import Console

from docset_manager import __version__
from docset_manager.config import configure_logging, get_settings, print_settings_json

if TYPE_CHECKING:
    from docset_manager.catalog.models import Docset
    from docset_manager.controller import DocsetLifecycleController

app = typer.Typer(
    name="docsets",
    help="Docset Manager - install, remove and index offline documentation sets",
    no_args_is_help=True,
)
console = Console()
logger = logging.getLogger(__name__)


def _print_json(rendered: str) -> None:
    """Print JSON verbatim, without wrapping or markup."""
    console.print(rendered, soft_wrap=True, markup=False, highlight=False)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"docset-manager version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Docset Manager - install, remove and index offline documentation sets."""
    configure_logging()


def _open_controller() -> "DocsetLifecycleController":
    """Create a controller and load the catalog, exiting on failure."""
    from docset_manager.controller import DocsetLifecycleController

    controller = DocsetLifecycleController(get_settings())
    errors: list[str] = []
    controller.events.error.connect(errors.append)
    if not controller.refresh_catalog():
        controller.close()
        console.print(f"[red]{errors[-1] if errors else 'Catalog unavailable'}[/red]")
        raise typer.Exit(code=1)
    return controller


@app.command()
def config(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show effective configuration."""
    settings = get_settings()
    if json_output:
        _print_json(print_settings_json(settings))
    else:
        console.print("[bold]Effective Configuration:[/bold]")
        console.print()
        console.print("[bold]Paths:[/bold]")
        console.print(f"  Data directory:      {settings.data_dir}")
        console.print(f"  Docsets directory:   {settings.docsets_dir}")
        console.print(f"  Icons directory:     {settings.icons_dir}")
        console.print(f"  Catalog cache:       {settings.catalog_cache_path}")
        console.print()
        console.print("[bold]Remote:[/bold]")
        console.print(f"  Catalog URL:         {settings.catalog_url}")
        console.print(f"  Feed base URL:       {settings.feed_base_url}")
        console.print()
        console.print("[bold]Operational:[/bold]")
        console.print(f"  Offline mode:        {settings.offline}")
        console.print(f"  Log level:           {settings.log_level}")
        console.print()
        console.print("[bold]Timeouts (seconds):[/bold]")
        console.print(f"  Catalog timeout:     {settings.catalog_timeout}")
        console.print(f"  Download timeout:    {settings.download_timeout}")


@app.command("list")
def list_docsets(
    installed: Annotated[
        bool,
        typer.Option("--installed", "-i", help="Only show installed docsets"),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """List docsets in the catalog."""
    with _open_controller() as controller:
        docsets = controller.docsets()
        if installed:
            docsets = [d for d in docsets if d.is_installed]

        if json_output:
            _print_json(json.dumps([d.to_dict() for d in docsets], indent=2))
            return

        if not docsets:
            console.print("[yellow]No docsets found[/yellow]")
            return

        console.print(f"[bold]Found {len(docsets)} docset(s):[/bold]")
        for d in docsets:
            marker = "[green]✓[/green]" if d.is_installed else " "
            console.print(f"  {marker} {d.name:<24} {d.title}")


@app.command()
def install(
    name: Annotated[str, typer.Argument(help="Docset name")],
) -> None:
    """Download and install a docset."""
    from docset_manager.controller import DocsetNotFoundError
    from docset_manager.download.manager import NoActiveDownloadError
    from docset_manager.types import DownloadStatus

    with _open_controller() as controller:
        docset = controller.catalog.find(name)
        if docset is not None and docset.is_installed:
            console.print(f"[yellow]Docset '{name}' is already installed[/yellow]")
            console.print(f"  Path: {docset.path}")
            return

        try:
            controller.download_docset(name)
        except DocsetNotFoundError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(code=1) from None

        console.print(f"[blue]Installing docset {name}...[/blue]")
        try:
            with console.status("Downloading...") as status:
                controller.events.status.connect(status.update)
                controller.wait_for_download()
        except KeyboardInterrupt:
            try:
                controller.cancel_download()
            except NoActiveDownloadError:
                logger.debug("Download finished before it could be cancelled")
            controller.wait_for_download()

        state = controller.download_state()
        if state["status"] == DownloadStatus.SUCCEEDED.value:
            controller.wait_for_index()
            console.print(f"[green]✓ Docset ready: {name}[/green]")
            console.print(f"  Path: {controller.get_docset(name).path}")
        elif state["status"] == DownloadStatus.CANCELLED.value:
            console.print("[yellow]Download cancelled[/yellow]")
            raise typer.Exit(code=1)
        else:
            console.print(f"[red]Failed to install docset: {state['message']}[/red]")
            raise typer.Exit(code=1)


@app.command()
def remove(
    name: Annotated[str, typer.Argument(help="Docset name")],
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Do not ask for confirmation"),
    ] = False,
) -> None:
    """Remove an installed docset."""
    from docset_manager.controller import (
        DocsetNotFoundError,
        DocsetNotInstalledError,
        RemovalError,
    )

    def confirm(docset: "Docset") -> bool:
        return yes or typer.confirm(f"Remove docset '{docset.title}'?")

    with _open_controller() as controller:
        try:
            removed = controller.remove_docset(name, confirm=confirm)
        except (DocsetNotFoundError, DocsetNotInstalledError, RemovalError) as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(code=1) from None

        if removed:
            console.print(f"[green]✓ Docset removed: {name}[/green]")
        else:
            console.print("[yellow]Removal cancelled[/yellow]")


@app.command()
def entries(
    docset: Annotated[
        str | None,
        typer.Option("--docset", "-d", help="Only show entries of this docset"),
    ] = None,
    filter_text: Annotated[
        str | None,
        typer.Option("--filter", "-f", help="Only show entries containing this text"),
    ] = None,
    limit: Annotated[
        int,
        typer.Option("--limit", "-n", help="Maximum number of entries"),
    ] = 50,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """List index entries of installed docsets."""
    with _open_controller() as controller:
        controller.wait_for_index()
        items = list(controller.index_items())
        if docset:
            items = [i for i in items if i.docset_name == docset]
        if filter_text:
            needle = filter_text.lower()
            items = [i for i in items if needle in i.text.lower()]
        items = items[:limit]

        if json_output:
            _print_json(json.dumps([i.to_dict() for i in items], indent=2))
            return

        if not items:
            console.print("[yellow]No entries found[/yellow]")
            return

        for item in items:
            console.print(f"  {item.text}  [dim]{item.subtext}[/dim]")


@app.command("open")
def open_entry(
    item_id: Annotated[str, typer.Argument(help="Index item id (docset + entry name)")],
) -> None:
    """Open an index entry in the browser."""
    with _open_controller() as controller:
        controller.wait_for_index()
        for item in controller.index_items():
            if item.id == item_id:
                console.print(f"Opening {item.url}")
                typer.launch(item.url)
                return
        console.print(f"[red]Entry not found: {item_id}[/red]")
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
