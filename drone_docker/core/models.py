"""Domain models for plugin configuration, registries and image references."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_DOCKER_UNIX_SOCK = "unix:///var/run/docker.sock"
DEFAULT_DOCKER_TCP_SOCK = "tcp://127.0.0.1:2375"


class RegistryCredential(BaseModel):
    """Credentials for one registry address."""

    model_config = ConfigDict(frozen=True)

    address: str = Field(..., min_length=1, description="Registry address or name")
    username: str = Field(default="", description="Registry user")
    password: str = Field(default="", repr=False, description="Registry password")


class ImageEntry(BaseModel):
    """A configured output image, optionally bound to a registry."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Image name")
    registry: str | None = Field(default=None, description="Registry address")

    def registry_host(self) -> str | None:
        """Return the registry this image is pushed to, if one can be named.

        An explicit ``registry`` field wins. Otherwise the first path component
        of ``name`` is used when it looks like a host (``localhost``, or
        contains ``.`` or ``:``), the same rule the docker CLI applies.
        """
        if self.registry:
            return self.registry
        head, sep, _ = self.name.partition("/")
        if sep and (head == "localhost" or "." in head or ":" in head):
            return head
        return None

    def repository(self) -> str:
        if self.registry and not self.name.startswith(f"{self.registry}/"):
            return f"{self.registry}/{self.name}"
        return self.name


class PushEntity(BaseModel):
    """An image reference paired with the credentials used to push it."""

    model_config = ConfigDict(frozen=True)

    reference: str
    username: str = ""
    password: str = Field(default="", repr=False)

    def auth_config(self) -> dict[str, str]:
        return {"username": self.username, "password": self.password}


class PluginConfig(BaseModel):
    """Fully resolved plugin configuration, immutable for the run."""

    model_config = ConfigDict(frozen=True)

    context: Path = Field(..., description="Absolute build context directory")
    dockerfile: Path = Field(..., description="Absolute Dockerfile path")
    host: str = Field(default="", description="Explicit daemon endpoint")
    api_version: str = Field(default="1.40", description="Daemon API version")
    images: tuple[ImageEntry, ...] = ()
    tags: tuple[str, ...] = ()
    registries: dict[str, RegistryCredential] = Field(default_factory=dict)
    dry_run: bool = False

    def candidate_hosts(self) -> list[str]:
        """Endpoints to probe, in order."""
        if self.host:
            return [self.host]
        return [DEFAULT_DOCKER_UNIX_SOCK, DEFAULT_DOCKER_TCP_SOCK]
