"""Registry credential decoding.

Registry credentials arrive in one of two JSON shapes:

* a docker ``config.json``-style document,
  ``{"auths": {"<address>": {"username": ..., "password": ..., "auth": ...}}}``
* a flat array of ``{"address": ..., "username": ..., "password": ...}`` records

Both are decoded into a mapping of address to :class:`RegistryCredential`.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping

from pydantic import ValidationError

from ..core.errors import ConfigError
from ..core.models import RegistryCredential

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DecodedAuth:
    """Result of decoding a base64 ``user:password`` blob.

    ``ok`` is False when the blob was not valid base64; the credentials are
    then empty and the run continues unauthenticated for that registry.
    """

    username: str = ""
    password: str = ""
    ok: bool = True


def decode_auth(value: str) -> DecodedAuth:
    """Decode a base64 ``username:password`` string.

    Args:
        value: Base64 payload from an ``auth`` field

    Returns:
        Decoded credentials, or empty credentials with ``ok=False``
    """
    try:
        raw = base64.b64decode(value.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        logger.warning("Could not decode registry auth, using empty credentials: %s", e)
        return DecodedAuth(ok=False)
    username, _, password = raw.partition(":")
    return DecodedAuth(username=username, password=password)


def _credential_from_auths_entry(address: str, entry: Any) -> RegistryCredential:
    if not isinstance(entry, dict):
        raise ConfigError(f"Registry entry for {address!r} must be an object")

    username = str(entry.get("username") or "")
    password = str(entry.get("password") or "")
    auth = str(entry.get("auth") or "").strip()
    if auth and not username and not password:
        decoded = decode_auth(auth)
        username, password = decoded.username, decoded.password
    return RegistryCredential(address=address, username=username, password=password)


def parse_registry_document(data: Any) -> dict[str, RegistryCredential]:
    """Decode a parsed registry JSON document of either supported shape."""
    registries: dict[str, RegistryCredential] = {}

    if isinstance(data, dict):
        auths = data.get("auths") or {}
        if not isinstance(auths, dict):
            raise ConfigError("'auths' must be an object keyed by registry address")
        for address, entry in auths.items():
            registries[address] = _credential_from_auths_entry(address, entry)
        return registries

    if isinstance(data, list):
        for record in data:
            try:
                credential = RegistryCredential.model_validate(record)
            except ValidationError as e:
                raise ConfigError(f"Invalid registry record: {e}") from e
            registries[credential.address] = credential
        return registries

    raise ConfigError("Registry document must be a JSON object or array")


def parse_registry_json(text: str, source: str) -> dict[str, RegistryCredential]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Malformed registry JSON in {source}: {e}") from e
    return parse_registry_document(data)


def load_registry_envs(
    names: Iterable[str], environ: Mapping[str, str] | None = None
) -> dict[str, RegistryCredential]:
    """Read ``auths`` documents from the named environment variables."""
    env = os.environ if environ is None else environ
    registries: dict[str, RegistryCredential] = {}
    for name in names:
        raw = env.get(name, "").strip()
        if not raw:
            raise ConfigError(f"Registry environment variable {name} is empty or unset")
        registries.update(parse_registry_json(raw, f"${name}"))
    return registries


def load_registry_file(path: Path) -> dict[str, RegistryCredential]:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Cannot read registry file {path}: {e}") from e
    return parse_registry_json(text, str(path))


def collect_registries(
    *,
    env_names: Iterable[str] = (),
    file_path: str = "",
    inline: str = "",
    environ: Mapping[str, str] | None = None,
) -> dict[str, RegistryCredential]:
    """Merge every configured registry source; later sources win per address.

    Order: environment variables, then the registry file, then inline JSON.
    """
    registries = load_registry_envs(env_names, environ)

    if file_path.strip():
        registries.update(load_registry_file(Path(file_path.strip())))

    if inline.strip():
        registries.update(parse_registry_json(inline, "inline registries"))

    for address in registries:
        logger.info("add registry %s", address)

    return registries
