"""``dyadartifacts bundle-cli`` / ``snapshot`` — publish-time pipelines.

Each clones the source repository at REVISION, stages the payload, writes
``ATTRIBUTION.md``, archives it into the release directory, and binds it in
the manifest. Uploading the archive to the printed URL is a separate step.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel

from dyadartifacts.accessors import DYAD_CLI_ARTIFACT
from dyadartifacts.config import get_settings
from dyadartifacts.errors import ArtifactError
from dyadartifacts.models.config import PipelineConfig, PipelineResult
from dyadartifacts.pipelines import CliBundlePipeline, RepoSnapshotPipeline
from dyadartifacts.pipelines.base import ArtifactPipeline
from dyadartifacts.pipelines.cli_bundle import CLI_BUNDLE_FILE

console = Console()

SNAPSHOT_ARTIFACT = "dyad-lang-source"


def _build_config(
    artifact_name: str,
    revision: str | None,
    lazy: bool,
    force: bool,
    manifest: Path | None,
    keep_scratch: bool,
) -> PipelineConfig:
    settings = get_settings()
    return PipelineConfig(
        artifact_name=artifact_name,
        source_repo=settings.source_repo,
        revision=revision or settings.default_revision,
        manifest_path=manifest or settings.manifest_path,
        release_dir=settings.release_dir,
        project_file=settings.project_file,
        keep_scratch=keep_scratch,
        lazy=lazy,
        force=force,
    )


def _run(pipeline: ArtifactPipeline) -> PipelineResult:
    cfg = pipeline.config
    console.print(f"[bold cyan]Processing {cfg.artifact_name} artifact[/bold cyan]")
    console.print(f"   Revision: {cfg.revision}")
    try:
        result = pipeline.run()
    except ArtifactError as exc:
        console.print(f"[bold red]Failed to create {cfg.artifact_name}:[/bold red] {exc}")
        raise typer.Exit(code=1)
    return result


def _print_result(result: PipelineResult, manifest_path: Path, accessor_hint: str) -> None:
    lines = [
        f"[bold green]Successfully created artifact: {result.artifact_name}[/bold green]",
        "",
        f"[bold]Commit:[/bold]        {result.commit}",
        f"[bold]git-tree-sha1:[/bold] {result.git_tree_sha1}",
        f"[bold]sha256:[/bold]        {result.sha256}",
        f"[bold]Tarball:[/bold]       {result.archive_path}",
        f"[bold]Manifest:[/bold]      {manifest_path}",
    ]
    if result.lazy:
        lines.append("[bold]Lazy:[/bold]          yes")
    lines += [
        "",
        "[bold]Next steps:[/bold]",
        f"  1. Upload {result.archive_path.name} to {result.download_url}",
        f"  2. Access it with: {accessor_hint}",
    ]
    console.print()
    console.print(
        Panel(
            "\n".join(lines),
            title="[bold]dyadartifacts[/bold]",
            border_style="green",
            padding=(1, 2),
        )
    )


def bundle_cli_cmd(
    revision: str = typer.Argument(
        None,
        help="Commit, branch or tag of dyad-lang to bundle (default: next).",
    ),
    lazy: bool = typer.Option(False, "--lazy", help="Register as a lazy artifact."),
    force: bool = typer.Option(
        True,
        "--force/--no-force",
        help="Replace an existing manifest entry with the same name.",
    ),
    manifest: Path = typer.Option(None, "--manifest", "-m", help="Artifacts.toml to update."),
    keep_scratch: bool = typer.Option(False, "--keep-scratch", help="Keep the scratch directory."),
) -> None:
    """Bundle the Dyad CLI with esbuild and register it as ``dyad-cli``."""
    config = _build_config(DYAD_CLI_ARTIFACT, revision, lazy, force, manifest, keep_scratch)
    result = _run(CliBundlePipeline(config))
    _print_result(
        result,
        config.manifest_path,
        f"dyadartifacts.dyad_cli_js()  # -> .../{CLI_BUNDLE_FILE}",
    )


def snapshot_cmd(
    revision: str = typer.Argument(
        None,
        help="Commit, branch or tag of dyad-lang to snapshot (default: next).",
    ),
    name: str = typer.Option(SNAPSHOT_ARTIFACT, "--name", "-n", help="Artifact name to bind."),
    lazy: bool = typer.Option(False, "--lazy", help="Register as a lazy artifact."),
    force: bool = typer.Option(
        True,
        "--force/--no-force",
        help="Replace an existing manifest entry with the same name.",
    ),
    manifest: Path = typer.Option(None, "--manifest", "-m", help="Artifacts.toml to update."),
    keep_scratch: bool = typer.Option(False, "--keep-scratch", help="Keep the scratch directory."),
) -> None:
    """Snapshot the dyad-lang repository tree and register it."""
    config = _build_config(name, revision, lazy, force, manifest, keep_scratch)
    result = _run(RepoSnapshotPipeline(config))
    _print_result(result, config.manifest_path, f'dyadartifacts.artifact_dir("{name}")')
