"""Build/push workflow against a single Docker daemon."""

from __future__ import annotations

import logging
from contextlib import ExitStack
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

import docker
from docker.errors import DockerException, NotFound
from docker.utils import parse_repository_tag

from ..core.errors import BuildError, NoImagesError, PushError
from ..core.models import PluginConfig, PushEntity
from ..daemon.connector import ClientFactory, daemon_client, new_api_client
from ..daemon.logs import display_log
from .context import CANONICAL_DOCKERFILE, build_context_archive
from .references import resolve_push_entities

logger = logging.getLogger(__name__)


@dataclass
class CleanupReport:
    """Outcome of best-effort image removal after a run."""

    removed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


def remove_images(client: docker.APIClient, references: Sequence[str]) -> CleanupReport:
    """Force-remove every reference; failures are recorded, never raised."""
    report = CleanupReport()
    for reference in references:
        try:
            client.remove_image(reference, force=True)
        except NotFound:
            logger.debug("Image %s not present, nothing to remove", reference)
            report.failed.append(reference)
        except (DockerException, OSError) as e:
            logger.warning("Can not remove image %s: %s", reference, e)
            report.failed.append(reference)
        else:
            report.removed.append(reference)
    return report


class Plugin:
    """Runs one build and the pushes that follow it."""

    def __init__(
        self,
        config: PluginConfig,
        client_factory: ClientFactory = new_api_client,
        tmp_dir: Path | None = None,
    ) -> None:
        self.config = config
        self.client_factory = client_factory
        self.tmp_dir = tmp_dir
        self.cleanup_report: CleanupReport | None = None

    def exec(self) -> None:
        """Build, tag and push every configured reference.

        Raises:
            NoImagesError: before any daemon contact when nothing is configured
            DaemonConnectionError: when no endpoint answers
            BuildContextError: when the context archive cannot be written
            BuildError: when the daemon reports a build failure
            PushError: on the first failing push; later pushes are skipped
        """
        config = self.config
        entities = resolve_push_entities(config.images, config.tags, config.registries)
        if not entities:
            raise NoImagesError()
        references = [entity.reference for entity in entities]

        with ExitStack() as stack:
            client = stack.enter_context(
                daemon_client(
                    config.candidate_hosts(), config.api_version, self.client_factory
                )
            )
            archive = stack.enter_context(
                build_context_archive(config.context, config.dockerfile, self.tmp_dir)
            )
            stack.callback(self._cleanup, client, references)

            self._login(client)
            self._build(client, archive, references)

            if config.dry_run:
                logger.info("Dry run, skipping push of %d image(s)", len(entities))
                return

            for entity in entities:
                self._push(client, entity)

    def _cleanup(self, client: docker.APIClient, references: Sequence[str]) -> None:
        self.cleanup_report = remove_images(client, references)

    def _login(self, client: docker.APIClient) -> None:
        # APIClient.build takes no auth argument; login stores the credentials on
        # the client, which sends them as X-Registry-Config for base-image pulls.
        for address, credential in self.config.registries.items():
            if not credential.username and not credential.password:
                continue
            try:
                client.login(
                    username=credential.username,
                    password=credential.password,
                    registry=address,
                )
            except (DockerException, OSError) as e:
                logger.warning("Login to registry %s failed: %s", address, e)

    def _build(
        self, client: docker.APIClient, archive: Path, references: Sequence[str]
    ) -> None:
        primary = references[0]
        logger.info("Building %s", primary)
        try:
            with archive.open("rb") as fileobj:
                stream = client.build(
                    fileobj=fileobj,
                    custom_context=True,
                    tag=primary,
                    dockerfile=CANONICAL_DOCKERFILE,
                    nocache=True,
                    rm=True,
                    forcerm=True,
                    pull=True,
                    decode=True,
                )
                display_log(stream, error_cls=BuildError)
        except (DockerException, OSError) as e:
            raise BuildError(str(e)) from e

        for reference in references[1:]:
            if reference == primary:
                continue
            repository, tag = parse_repository_tag(reference)
            try:
                tagged = client.tag(primary, repository, tag)
            except (DockerException, OSError) as e:
                raise BuildError(f"can not tag {reference}: {e}") from e
            if not tagged:
                raise BuildError(f"can not tag {reference}")

    def _push(self, client: docker.APIClient, entity: PushEntity) -> None:
        repository, tag = parse_repository_tag(entity.reference)
        logger.info("Pushing %s", entity.reference)
        try:
            stream = client.push(
                repository,
                tag=tag,
                stream=True,
                decode=True,
                auth_config=entity.auth_config(),
            )
            display_log(stream, error_cls=PushError)
        except (DockerException, OSError) as e:
            raise PushError(str(e)) from e
