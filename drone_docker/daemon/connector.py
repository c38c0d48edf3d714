"""Daemon endpoint discovery.

Candidate endpoints are probed once, in order: a client is constructed for
the endpoint and API version and asked for ``info``. The first endpoint that
answers is kept for the whole run; when every candidate fails the last error
is raised as :class:`DaemonConnectionError`.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, Iterator, Sequence

import docker
from docker.errors import DockerException

from ..core.errors import DaemonConnectionError

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str, str], docker.APIClient]


def new_api_client(base_url: str, version: str) -> docker.APIClient:
    return docker.APIClient(base_url=base_url, version=version)


def connect(
    hosts: Sequence[str],
    version: str,
    factory: ClientFactory = new_api_client,
) -> docker.APIClient:
    """Return a client bound to the first endpoint that answers ``info``."""
    last_error: Exception | None = None
    for host in hosts:
        logger.debug("Probing docker host %s (api %s)", host, version)
        try:
            client = factory(host, version)
        except (DockerException, OSError, ValueError) as e:
            logger.debug("Cannot create client for %s: %s", host, e)
            last_error = e
            continue

        try:
            client.info()
        except (DockerException, OSError) as e:
            logger.debug("Docker host %s did not answer: %s", host, e)
            client.close()
            last_error = e
            continue

        logger.info("Connected to docker host %s", host)
        return client

    raise DaemonConnectionError(
        f"connect docker host error: {last_error}"
    ) from last_error


@contextmanager
def daemon_client(
    hosts: Sequence[str],
    version: str,
    factory: ClientFactory = new_api_client,
) -> Iterator[docker.APIClient]:
    client = connect(hosts, version, factory)
    try:
        yield client
    finally:
        client.close()
