"""Consumption-side commands: ``list``, ``path``, ``attribution``, ``fetch``."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from dyadartifacts.accessors import locate_file, read_attribution
from dyadartifacts.config import get_settings
from dyadartifacts.core.downloader import HttpDownloader
from dyadartifacts.core.resolver import ArtifactResolver
from dyadartifacts.errors import ArtifactError

console = Console()


def _resolver(manifest: Path | None) -> ArtifactResolver:
    settings = get_settings()
    return ArtifactResolver(
        manifest or settings.manifest_path,
        settings.artifacts_dir,
        downloader=HttpDownloader(timeout=settings.download_timeout),
        verify_tree=settings.verify_tree,
    )


_MANIFEST_OPTION = typer.Option(None, "--manifest", "-m", help="Artifacts.toml to read.")


def list_cmd(manifest: Path = _MANIFEST_OPTION) -> None:
    """List bound artifacts with their hash, laziness and install state."""
    resolver = _resolver(manifest)
    try:
        names = resolver.manifest.names()
        if not names:
            console.print(f"[dim]No artifacts bound in {resolver.manifest.path}.[/dim]")
            return

        table = Table(title="Artifacts")
        table.add_column("Name", style="cyan", no_wrap=True)
        table.add_column("git-tree-sha1", style="green", overflow="fold")
        table.add_column("Lazy", justify="center")
        table.add_column("Installed", justify="center")
        for name in names:
            entry = resolver.find_entry(name)
            if entry is None:
                table.add_row(name, "[dim]no variant for this host[/dim]", "-", "-")
                continue
            lazy = "[yellow]Yes[/yellow]" if entry.lazy else "No"
            installed = "[green]Yes[/green]" if resolver.is_installed(name) else "[dim]No[/dim]"
            table.add_row(name, entry.git_tree_sha1, lazy, installed)
        console.print(table)
    except ArtifactError as exc:
        console.print(f"[bold red]Manifest error:[/bold red] {exc}")
        raise typer.Exit(code=1)


def path_cmd(
    name: str = typer.Argument(..., help="Artifact name."),
    relative_path: str = typer.Argument("", help="File inside the artifact."),
    manifest: Path = _MANIFEST_OPTION,
) -> None:
    """Print the local path of an artifact, or of a file inside it."""
    try:
        path = locate_file(name, relative_path, _resolver(manifest))
    except ArtifactError as exc:
        console.print(f"[bold red]Cannot resolve {name}:[/bold red] {exc}")
        raise typer.Exit(code=1)
    # Plain output for scripting
    typer.echo(str(path))


def attribution_cmd(
    name: str = typer.Argument(..., help="Artifact name."),
    manifest: Path = _MANIFEST_OPTION,
) -> None:
    """Show the artifact's ATTRIBUTION.md."""
    try:
        text = read_attribution(name, _resolver(manifest))
    except ArtifactError as exc:
        console.print(f"[bold red]Cannot resolve {name}:[/bold red] {exc}")
        raise typer.Exit(code=1)
    console.print(Markdown(text))


def fetch_cmd(
    include_lazy: bool = typer.Option(
        False, "--include-lazy", help="Also fetch artifacts marked lazy."
    ),
    manifest: Path = _MANIFEST_OPTION,
) -> None:
    """Download and install every artifact this host needs."""
    resolver = _resolver(manifest)
    try:
        paths = resolver.ensure_installed(include_lazy=include_lazy)
    except ArtifactError as exc:
        console.print(f"[bold red]Fetch failed:[/bold red] {exc}")
        raise typer.Exit(code=1)
    for path in paths:
        console.print(f"[green]OK[/green] {path}")
    console.print(f"[bold]{len(paths)} artifact(s) installed in {resolver.artifacts_dir}[/bold]")
