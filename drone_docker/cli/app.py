"""Main CLI application."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from typing_extensions import Annotated

from .. import __version__
from ..build.executor import Plugin
from ..config.resolver import resolve_config
from ..core.errors import PluginError
from ..settings import load_settings
from .parsers import parse_image

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="drone-docker",
    help="Build a Docker image and push it to the configured registries.",
    add_completion=False,
)


def _print_version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.command()
def run(
    host: Annotated[
        Optional[str],
        typer.Option("--host", help="Docker daemon endpoint.", metavar="URL"),
    ] = None,
    docker_api_version: Annotated[
        Optional[str],
        typer.Option("--docker-api-version", help="Docker API version (default: 1.40)."),
    ] = None,
    dockerfile: Annotated[
        Optional[str],
        typer.Option("--dockerfile", help="Dockerfile path (default: Dockerfile)."),
    ] = None,
    context: Annotated[
        Optional[str],
        typer.Option("--context", help="Build context directory (default: .)."),
    ] = None,
    registry_envs: Annotated[
        Optional[list[str]],
        typer.Option(
            "--registry-env",
            help="Environment variable holding an auths JSON document. Repeatable.",
            metavar="NAME",
        ),
    ] = None,
    registry: Annotated[
        Optional[str],
        typer.Option("--registry", help="Registry JSON file.", metavar="FILE"),
    ] = None,
    registries: Annotated[
        Optional[str],
        typer.Option(
            "--registries",
            help="Inline registry JSON (auths object or array of records).",
            metavar="JSON",
        ),
    ] = None,
    images: Annotated[
        Optional[list[str]],
        typer.Option(
            "--image",
            help='Output image: NAME or {"registry":"...","name":"..."}. Repeatable.',
            metavar="IMAGE",
        ),
    ] = None,
    tags: Annotated[
        Optional[list[str]],
        typer.Option("--tag", help="Image tag. Repeatable.", metavar="TAG"),
    ] = None,
    tagfile: Annotated[
        Optional[str],
        typer.Option("--tagfile", help="File with one tag per line (default: .tags)."),
    ] = None,
    tag_latest: Annotated[
        Optional[bool],
        typer.Option("--tag-latest/--no-tag-latest", help="Also tag 'latest'."),
    ] = None,
    dry_run: Annotated[
        Optional[bool],
        typer.Option("--dry-run/--no-dry-run", help="Build only, skip pushes."),
    ] = None,
    env_file: Annotated[
        Optional[Path],
        typer.Option(
            "--env-file",
            envvar="PLUGIN_ENV_FILE",
            help="Dotenv file loaded before settings are read.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose logging."),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_print_version,
            is_eager=True,
            help="Show the version and exit.",
        ),
    ] = False,
) -> None:
    """Build, tag and push a Docker image. Flags override PLUGIN_* variables."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
    )

    if env_file is not None and env_file.exists():
        load_dotenv(env_file, override=False)
        logger.debug(f"Loaded environment from {env_file}")

    try:
        settings = load_settings(
            host=host,
            docker_api_version=docker_api_version,
            dockerfile=dockerfile,
            context=context,
            registry_envs=registry_envs or None,
            registry=registry,
            registries=registries,
            images=[parse_image(image) for image in images] if images else None,
            tags=tags or None,
            tagfile=tagfile,
            tag_latest=tag_latest,
            dry_run=dry_run,
        )
        config = resolve_config(settings)
        Plugin(config).exec()
    except PluginError as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(code=1) from e


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
