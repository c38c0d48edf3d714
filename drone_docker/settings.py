"""Environment-driven plugin settings (``PLUGIN_*`` variables)."""

from __future__ import annotations

import json
from typing import Any

from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from typing_extensions import Annotated

from .core.errors import ConfigError
from .core.models import ImageEntry


def split_list(value: Any) -> Any:
    """Accept a JSON array or a comma-separated string for list options."""
    if not isinstance(value, str):
        return value
    raw = value.strip()
    if not raw:
        return []
    if raw.startswith("["):
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValueError(f"invalid JSON list: {e}") from e
    return [item.strip() for item in raw.split(",") if item.strip()]


def _image_item(item: Any) -> Any:
    if isinstance(item, str):
        text = item.strip()
        if text.startswith("{"):
            try:
                return json.loads(text)
            except json.JSONDecodeError as e:
                raise ValueError(f"invalid JSON image entry: {e}") from e
        return {"name": text}
    return item


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="PLUGIN_", case_sensitive=False)

    host: str = ""
    docker_api_version: str = "1.40"
    dockerfile: str = "Dockerfile"
    context: str = "."
    registry_envs: Annotated[list[str], NoDecode] = []
    registry: str = ""
    registries: str = ""
    images: Annotated[list[ImageEntry], NoDecode] = []
    tags: Annotated[list[str], NoDecode] = []
    tagfile: str = ".tags"
    tag_latest: bool = False
    dry_run: bool = False

    @field_validator("registry_envs", "tags", mode="before")
    @classmethod
    def _split_strings(cls, value: Any) -> Any:
        return split_list(value)

    @field_validator("images", mode="before")
    @classmethod
    def _split_images(cls, value: Any) -> Any:
        items = split_list(value)
        if isinstance(items, list):
            return [_image_item(item) for item in items]
        return items


def load_settings(**overrides: Any) -> Settings:
    """Read settings from the environment; non-None keyword overrides win.

    Raises:
        ConfigError: when an option fails validation
    """
    explicit = {key: value for key, value in overrides.items() if value is not None}
    try:
        return Settings(**explicit)
    except ValidationError as e:
        raise ConfigError(f"invalid plugin settings: {e}") from e
