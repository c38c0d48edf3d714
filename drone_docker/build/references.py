"""Image reference resolution."""

from __future__ import annotations

import logging
from typing import Mapping, Sequence

from ..core.models import ImageEntry, PushEntity, RegistryCredential

logger = logging.getLogger(__name__)


def match_registry(
    image: ImageEntry, registries: Mapping[str, RegistryCredential]
) -> RegistryCredential | None:
    """Find credentials whose address equals the image's registry host."""
    host = image.registry_host()
    if host is None:
        return None
    return registries.get(host)


def resolve_push_entities(
    images: Sequence[ImageEntry],
    tags: Sequence[str],
    registries: Mapping[str, RegistryCredential],
) -> list[PushEntity]:
    """Cross images with tags, pairing every reference with its credentials.

    References are not deduplicated. Images without a matching registry are
    pushed unauthenticated.
    """
    entities: list[PushEntity] = []
    for image in images:
        credential = match_registry(image, registries)
        if credential is None:
            logger.debug("No registry credentials for image %s", image.name)
        repository = image.repository()
        for tag in tags:
            reference = f"{repository}:{tag}"
            logger.info("image: %s", reference)
            entities.append(
                PushEntity(
                    reference=reference,
                    username=credential.username if credential else "",
                    password=credential.password if credential else "",
                )
            )
    return entities
