"""Merge settings into an immutable :class:`PluginConfig`."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping

from ..core.models import PluginConfig
from ..settings import Settings
from .registries import collect_registries
from .tags import resolve_tags

logger = logging.getLogger(__name__)


def resolve_config(
    settings: Settings, environ: Mapping[str, str] | None = None
) -> PluginConfig:
    """Resolve paths, registries and tags.

    Args:
        settings: Values read from flags and ``PLUGIN_*`` variables
        environ: Environment used to look up ``registry_envs`` (default: os.environ)

    Returns:
        Configuration owned by the executor for the rest of the run
    """
    context = Path(settings.context).resolve()
    logger.info("docker build context: %s", context)
    dockerfile = Path(settings.dockerfile).resolve()
    logger.info("dockerfile: %s", dockerfile)

    registries = collect_registries(
        env_names=settings.registry_envs,
        file_path=settings.registry,
        inline=settings.registries,
        environ=os.environ if environ is None else environ,
    )

    tag_file = Path(settings.tagfile) if settings.tagfile else None
    tags = resolve_tags(settings.tags, tag_file, settings.tag_latest)

    return PluginConfig(
        context=context,
        dockerfile=dockerfile,
        host=settings.host.strip(),
        api_version=settings.docker_api_version,
        images=tuple(settings.images),
        tags=tuple(tags),
        registries=registries,
        dry_run=settings.dry_run,
    )
