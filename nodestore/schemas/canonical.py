"""
Schemas & Canonicalization
File: canonical.py

Purpose: Canonical JSON text for node table snapshots, so that two equal
stores always produce byte-identical snapshots.

Canonical form:
- object keys sorted, no insignificant whitespace, UTF-8 kept as-is
- bytes written as lowercase 0x-prefixed hex, the same form digests take
  in error details
- None-valued object fields omitted
- floats rejected; node tables only hold digests, strings and integers
"""

import json
from typing import Any, Mapping

from pydantic import BaseModel

from .errors import DeserializationException, NodeStoreException

# Canonical JSON separators - no whitespace
CANONICAL_JSON_SEPARATORS: tuple[str, str] = (",", ":")


def canonicalize_value(value: Any, path: str = "") -> Any:
    """
    Convert ``value`` into plain JSON data in canonical form.

    Args:
        value: Snapshot model, mapping, sequence or scalar.
        path: Location inside the top-level value, for error details.

    Raises:
        NodeStoreException: If ``value`` holds a float or a type with no
            canonical form.
    """
    if value is None or isinstance(value, (bool, int, str)):
        return value

    if isinstance(value, (bytes, bytearray, memoryview)):
        return "0x" + bytes(value).hex()

    if isinstance(value, BaseModel):
        return canonicalize_value(
            value.model_dump(mode="json", by_alias=True, exclude_none=True), path
        )

    if isinstance(value, Mapping):
        out = {}
        for key, item in value.items():
            if item is None:
                continue
            out[str(key)] = canonicalize_value(item, f"{path}.{key}" if path else str(key))
        return out

    if isinstance(value, (list, tuple)):
        return [canonicalize_value(item, f"{path}[{i}]") for i, item in enumerate(value)]

    raise NodeStoreException(
        message=f"No canonical form for {type(value).__name__} at '{path or '<root>'}'",
        details={"path": path, "type": type(value).__name__},
    )


def dumps_canonical(obj: Any) -> str:
    """
    Canonical JSON text for ``obj``.

    Example:
        >>> dumps_canonical({"b": 2, "a": b"\\x01"})
        '{"a":"0x01","b":2}'
    """
    return json.dumps(
        canonicalize_value(obj),
        sort_keys=True,
        separators=CANONICAL_JSON_SEPARATORS,
        ensure_ascii=False,
    )


def loads_canonical(json_str: str) -> Any:
    """
    Parse JSON text produced by ``dumps_canonical``.

    Raises:
        DeserializationException: If the text is not valid JSON.
    """
    try:
        return json.loads(json_str)
    except json.JSONDecodeError as e:
        raise DeserializationException(
            message=f"Invalid JSON at line {e.lineno} column {e.colno}: {e.msg}",
            details={"position": e.pos},
        ) from e
