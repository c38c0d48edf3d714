"""End-to-end tests of the build/push workflow against a fake daemon."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
from docker.errors import APIError
import requests

from drone_docker.build.executor import Plugin
from drone_docker.core.errors import (
    BuildError,
    DaemonConnectionError,
    NoImagesError,
    PushError,
)
from drone_docker.core.models import ImageEntry, PluginConfig, RegistryCredential

from .conftest import FakeDockerClient


def make_config(build_dir: Path, **overrides: object) -> PluginConfig:
    values: dict[str, object] = {
        "context": build_dir / "src",
        "dockerfile": build_dir / "docker" / "app.Dockerfile",
        "images": (ImageEntry(registry="ghcr.io", name="org/app"),),
        "tags": ("1.0", "latest"),
        "registries": {
            "ghcr.io": RegistryCredential(address="ghcr.io", username="bot", password="token")
        },
    }
    values.update(overrides)
    return PluginConfig(**values)


def make_plugin(
    build_dir: Path, client: FakeDockerClient, **overrides: object
) -> tuple[Plugin, Path]:
    out = build_dir / "out"
    out.mkdir(exist_ok=True)
    plugin = Plugin(make_config(build_dir, **overrides), lambda h, v: client, tmp_dir=out)
    return plugin, out


def test_build_tag_push_and_cleanup(build_dir: Path, fake_client: FakeDockerClient) -> None:
    plugin, out = make_plugin(build_dir, fake_client)

    plugin.exec()

    kwargs = fake_client.build_kwargs
    assert kwargs is not None
    assert kwargs["tag"] == "ghcr.io/org/app:1.0"
    assert kwargs["dockerfile"] == "Dockerfile"
    assert kwargs["nocache"] is True
    assert kwargs["rm"] is True
    assert kwargs["forcerm"] is True
    assert kwargs["pull"] is True
    assert kwargs["custom_context"] is True
    assert "Dockerfile" in fake_client.archive_names
    assert "main.py" in fake_client.archive_names

    assert fake_client.tagged == [("ghcr.io/org/app:1.0", "ghcr.io/org/app", "latest")]
    assert fake_client.logins == [
        {"username": "bot", "password": "token", "registry": "ghcr.io"}
    ]
    assert fake_client.pushed == [
        ("ghcr.io/org/app", "1.0", {"username": "bot", "password": "token"}),
        ("ghcr.io/org/app", "latest", {"username": "bot", "password": "token"}),
    ]
    assert fake_client.removed == ["ghcr.io/org/app:1.0", "ghcr.io/org/app:latest"]
    assert plugin.cleanup_report is not None
    assert plugin.cleanup_report.failed == []
    assert fake_client.closed is True
    assert list(out.iterdir()) == []


def test_no_images_fails_before_daemon_contact(build_dir: Path) -> None:
    calls: list[str] = []

    def factory(host: str, version: str) -> FakeDockerClient:
        calls.append(host)
        return FakeDockerClient()

    plugin = Plugin(make_config(build_dir, images=()), factory)

    with pytest.raises(NoImagesError, match="no such image is configured"):
        plugin.exec()
    assert calls == []


def test_connection_failure_creates_no_archive(build_dir: Path) -> None:
    plugin, out = make_plugin(build_dir, FakeDockerClient(fail_info=True))
    with pytest.raises(DaemonConnectionError):
        plugin.exec()
    assert list(out.iterdir()) == []


def test_build_error_aborts_before_push(build_dir: Path) -> None:
    client = FakeDockerClient(
        build_stream=[{"stream": "Step 1/1\n"}, {"errorDetail": {"message": "boom"}}]
    )
    plugin, out = make_plugin(build_dir, client)

    with pytest.raises(BuildError, match="boom"):
        plugin.exec()

    assert client.pushed == []
    assert client.tagged == []
    assert client.removed == ["ghcr.io/org/app:1.0", "ghcr.io/org/app:latest"]
    assert list(out.iterdir()) == []
    assert client.closed is True


def test_push_error_stops_remaining_pushes(build_dir: Path) -> None:
    client = FakeDockerClient(
        push_streams={
            "ghcr.io/org/app:1.0": [{"error": "denied: requested access is denied"}]
        }
    )
    plugin, out = make_plugin(build_dir, client)

    with pytest.raises(PushError, match="denied"):
        plugin.exec()

    assert [p[1] for p in client.pushed] == ["1.0"]
    assert len(client.removed) == 2
    assert list(out.iterdir()) == []


def test_unauthenticated_push_sends_empty_credentials(build_dir: Path) -> None:
    client = FakeDockerClient()
    plugin, _ = make_plugin(
        build_dir, client, images=(ImageEntry(name="org/app"),), tags=("1.0",)
    )

    plugin.exec()

    assert client.pushed == [("org/app", "1.0", {"username": "", "password": ""})]


def test_dry_run_builds_without_pushing(build_dir: Path) -> None:
    client = FakeDockerClient()
    plugin, out = make_plugin(build_dir, client, dry_run=True)

    plugin.exec()

    assert client.build_kwargs is not None
    assert client.pushed == []
    assert len(client.removed) == 2
    assert list(out.iterdir()) == []


def test_cleanup_failures_are_reported_not_raised(build_dir: Path) -> None:
    client = FakeDockerClient(remove_errors={"ghcr.io/org/app:latest"})
    plugin, _ = make_plugin(build_dir, client)

    plugin.exec()

    assert plugin.cleanup_report is not None
    assert plugin.cleanup_report.removed == ["ghcr.io/org/app:1.0"]
    assert plugin.cleanup_report.failed == ["ghcr.io/org/app:latest"]


def test_dropped_connection_during_build_is_a_build_error(build_dir: Path) -> None:
    client = FakeDockerClient(
        build_error=requests.exceptions.ConnectionError("daemon went away")
    )
    plugin, out = make_plugin(build_dir, client)

    with pytest.raises(BuildError, match="daemon went away"):
        plugin.exec()

    assert client.pushed == []
    assert list(out.iterdir()) == []


def test_dropped_connection_during_push_is_a_push_error(build_dir: Path) -> None:
    client = FakeDockerClient(
        push_error=requests.exceptions.ChunkedEncodingError("connection broken")
    )
    plugin, _ = make_plugin(build_dir, client)

    with pytest.raises(PushError, match="connection broken"):
        plugin.exec()

    assert len(client.pushed) == 1


def test_failed_login_warns_and_build_continues(
    build_dir: Path, caplog: pytest.LogCaptureFixture
) -> None:
    client = FakeDockerClient(login_error=APIError("unauthorized"))
    plugin, _ = make_plugin(build_dir, client)

    with caplog.at_level(logging.WARNING):
        plugin.exec()

    assert "Login to registry ghcr.io failed" in caplog.text
    assert client.build_kwargs is not None
    assert len(client.pushed) == 2
