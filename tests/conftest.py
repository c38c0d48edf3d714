"""Shared fixtures: an in-memory stand-in for the docker APIClient."""

from __future__ import annotations

import tarfile
from pathlib import Path
from typing import Any, Iterable

import pytest
from docker.errors import APIError, DockerException

OK_BUILD = [
    {"stream": "Step 1/1 : FROM scratch\n"},
    {"stream": "\n"},
    {"stream": "Successfully built abc123\n"},
]
OK_PUSH = [{"status": "Pushed", "id": "abc123"}]


class FakeDockerClient:
    """Records every daemon call made by the plugin."""

    def __init__(
        self,
        *,
        build_stream: Iterable[Any] = OK_BUILD,
        push_streams: dict[str, list[Any]] | None = None,
        fail_info: bool = False,
        remove_errors: Iterable[str] = (),
        build_error: Exception | None = None,
        push_error: Exception | None = None,
        login_error: Exception | None = None,
    ) -> None:
        self.build_stream = list(build_stream)
        self.push_streams = push_streams or {}
        self.fail_info = fail_info
        self.remove_errors = set(remove_errors)
        self.build_error = build_error
        self.push_error = push_error
        self.login_error = login_error
        self.build_kwargs: dict[str, Any] | None = None
        self.archive_names: list[str] = []
        self.tagged: list[tuple[str, str, str]] = []
        self.pushed: list[tuple[str, str, dict[str, str]]] = []
        self.removed: list[str] = []
        self.logins: list[dict[str, str]] = []
        self.closed = False

    def info(self) -> dict[str, Any]:
        if self.fail_info:
            raise DockerException("daemon unreachable")
        return {"ServerVersion": "24.0.0"}

    def close(self) -> None:
        self.closed = True

    def login(self, username: str, password: str, registry: str) -> dict[str, str]:
        if self.login_error is not None:
            raise self.login_error
        self.logins.append(
            {"username": username, "password": password, "registry": registry}
        )
        return {"Status": "Login Succeeded"}

    def build(self, **kwargs: Any) -> Iterable[Any]:
        self.build_kwargs = kwargs
        with tarfile.open(fileobj=kwargs["fileobj"], mode="r") as tar:
            self.archive_names = tar.getnames()
        if self.build_error is not None:
            raise self.build_error
        return iter(self.build_stream)

    def tag(self, image: str, repository: str, tag: str) -> bool:
        self.tagged.append((image, repository, tag))
        return True

    def push(
        self,
        repository: str,
        tag: str,
        stream: bool,
        decode: bool,
        auth_config: dict[str, str],
    ) -> Iterable[Any]:
        self.pushed.append((repository, tag, auth_config))
        if self.push_error is not None:
            raise self.push_error
        return iter(self.push_streams.get(f"{repository}:{tag}", OK_PUSH))

    def remove_image(self, image: str, force: bool = False) -> None:
        self.removed.append(image)
        if image in self.remove_errors:
            raise APIError("conflict: unable to remove image")


@pytest.fixture
def fake_client() -> FakeDockerClient:
    return FakeDockerClient()


@pytest.fixture
def build_dir(tmp_path: Path) -> Path:
    """A small build context with a nested directory and a separate Dockerfile."""
    context = tmp_path / "src"
    (context / "app").mkdir(parents=True)
    (context / "main.py").write_text("print('hi')\n")
    (context / "app" / "run.sh").write_text("#!/bin/sh\n")
    (context / "app" / "run.sh").chmod(0o755)
    docker_dir = tmp_path / "docker"
    docker_dir.mkdir()
    (docker_dir / "app.Dockerfile").write_text("FROM scratch\n")
    return tmp_path
