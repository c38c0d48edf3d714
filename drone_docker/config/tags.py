"""Tag resolution: explicit tags, tag file fallback, optional ``latest``."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from ..core.errors import ConfigError

logger = logging.getLogger(__name__)

LATEST = "latest"


def read_tag_file(path: Path) -> list[str]:
    """Read one tag per line, skipping blank lines.

    A missing file yields no tags; any other read failure raises ConfigError.
    """
    try:
        with path.open(encoding="utf-8") as handle:
            return [line.strip() for line in handle if line.strip()]
    except FileNotFoundError:
        logger.debug("Tag file %s not found, no tags read", path)
        return []
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Cannot read tag file {path}: {e}") from e


def resolve_tags(
    tags: Iterable[str], tag_file: Path | None, tag_latest: bool
) -> list[str]:
    resolved = [tag for tag in tags if tag]
    if not resolved and tag_file is not None:
        resolved = read_tag_file(tag_file)
    if tag_latest and LATEST not in resolved:
        resolved.append(LATEST)
    return resolved
