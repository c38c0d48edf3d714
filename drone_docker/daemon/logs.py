"""Decoding of daemon JSON progress streams."""

from __future__ import annotations

import codecs
import json
import logging
from typing import Any, Callable, Iterable, Iterator, Union

from ..core.errors import DaemonStreamError

logger = logging.getLogger(__name__)

Record = Union[dict, str, bytes]
StreamHandler = Callable[[str], None]


def _parse_line(line: str) -> Iterator[dict[str, Any]]:
    if not line.strip():
        return
    try:
        yield json.loads(line)
    except json.JSONDecodeError as e:
        raise DaemonStreamError(f"can not read docker log: {e}") from e


def _records(stream: Iterable[Record]) -> Iterator[dict[str, Any]]:
    # Raw chunks are not line aligned; partial lines and split UTF-8
    # sequences are carried over to the next chunk.
    decoder = codecs.getincrementaldecoder("utf-8")()
    pending = ""
    for chunk in stream:
        if isinstance(chunk, dict):
            yield chunk
            continue
        try:
            pending += decoder.decode(chunk) if isinstance(chunk, bytes) else chunk
        except UnicodeDecodeError as e:
            raise DaemonStreamError(f"can not read docker log: {e}") from e
        *lines, pending = pending.split("\n")
        for line in lines:
            yield from _parse_line(line)
    try:
        pending += decoder.decode(b"", final=True)
    except UnicodeDecodeError as e:
        raise DaemonStreamError(f"can not read docker log: {e}") from e
    yield from _parse_line(pending)


def _error_message(record: dict[str, Any]) -> str | None:
    detail = record.get("errorDetail")
    if isinstance(detail, dict) and detail.get("message"):
        return str(detail["message"])
    if record.get("error"):
        return str(record["error"])
    return None


def display_log(
    stream: Iterable[Record],
    emit: StreamHandler | None = None,
    error_cls: type[DaemonStreamError] = DaemonStreamError,
) -> None:
    """Print ``stream`` fragments until the stream ends or reports an error.

    Args:
        stream: Decoded records or raw newline-delimited JSON chunks
        emit: Receives each non-blank stream line (default: logger.info)
        error_cls: Exception raised for an embedded daemon error

    Raises:
        DaemonStreamError: the first embedded error, with the daemon's message
    """
    write = emit or logger.info
    for record in _records(stream):
        message = _error_message(record)
        if message is not None:
            raise error_cls(message)

        text = record.get("stream")
        if isinstance(text, str) and text.strip():
            write(text.rstrip("\n"))
            continue

        status = record.get("status")
        if status:
            prefix = f"{record['id']}: " if record.get("id") else ""
            logger.debug("%s%s", prefix, status)
