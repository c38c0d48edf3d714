"""CLI argument parsers and validators."""

from __future__ import annotations

import json
from typing import Any

import typer


def parse_image(value: str) -> Any:
    """Parse an ``--image`` value: a plain name or a JSON object."""
    text = value.strip()
    if not text.startswith("{"):
        return text
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise typer.BadParameter(f"Invalid JSON: {e}") from e
    if not isinstance(data, dict) or "name" not in data:
        raise typer.BadParameter(f"Image object must have a 'name' field, got: {value!r}")
    return data

