"""Build context packaging.

The context archive holds every entry directly under the context directory
(recursively, with permissions and mtimes preserved) plus the configured
Dockerfile stored under the canonical name ``Dockerfile``.
"""

from __future__ import annotations

import logging
import os
import tarfile
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from ..core.errors import BuildContextError

logger = logging.getLogger(__name__)

CANONICAL_DOCKERFILE = "Dockerfile"


def _write_archive(tar_path: Path, context_dir: Path, dockerfile: Path) -> None:
    # The archive itself may live under the context (e.g. context "/").
    try:
        own_name = tar_path.resolve().relative_to(context_dir.resolve()).as_posix()
    except ValueError:
        own_name = None

    def skip_archive(info: tarfile.TarInfo) -> tarfile.TarInfo | None:
        return None if info.name == own_name else info

    with tarfile.open(tar_path, "w") as tar:
        for entry in sorted(context_dir.iterdir()):
            if entry.name == CANONICAL_DOCKERFILE:
                continue
            tar.add(str(entry), arcname=entry.name, recursive=True, filter=skip_archive)
        tar.add(str(dockerfile), arcname=CANONICAL_DOCKERFILE, recursive=False)


def create_build_context(
    context_dir: Path, dockerfile: Path, tmp_dir: Path | None = None
) -> Path:
    """Write the context archive and return its path.

    Args:
        context_dir: Directory whose contents become the build context
        dockerfile: Dockerfile to store as ``Dockerfile``
        tmp_dir: Directory for the archive (default: the system temp dir)

    Raises:
        BuildContextError: when the context, the Dockerfile or the archive
            cannot be read or written
    """
    if not context_dir.is_dir():
        raise BuildContextError(f"Build context not found: {context_dir}")
    if not dockerfile.is_file():
        raise BuildContextError(f"Dockerfile not found: {dockerfile}")

    try:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f"build-{os.getpid()}-", suffix=".tar", dir=tmp_dir
        )
    except OSError as e:
        raise BuildContextError(f"Cannot create build context archive: {e}") from e
    os.close(fd)

    tar_path = Path(tmp_name)
    try:
        _write_archive(tar_path, context_dir, dockerfile)
    except (OSError, tarfile.TarError) as e:
        tar_path.unlink(missing_ok=True)
        raise BuildContextError(f"Cannot write build context archive: {e}") from e

    logger.debug("Build context archive written to %s", tar_path)
    return tar_path


@contextmanager
def build_context_archive(
    context_dir: Path, dockerfile: Path, tmp_dir: Path | None = None
) -> Iterator[Path]:
    """Yield the archive path; the archive is deleted on every exit path."""
    tar_path = create_build_context(context_dir, dockerfile, tmp_dir)
    try:
        yield tar_path
    finally:
        tar_path.unlink(missing_ok=True)
