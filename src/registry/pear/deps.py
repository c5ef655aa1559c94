"""PEAR dependency descriptors.

Channels publish release dependencies as PHP ``serialize()`` output, either as
``deps.{version}.txt`` files or inline in ``packagesinfo.xml``. This module
decodes that format with a small parser that only ever produces ``None``,
bools, numbers, strings and dicts, and turns the result into ``require`` and
``suggest`` mappings.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from errors import DescriptorSecurityError

logger = logging.getLogger(__name__)

# O:<length>:"<class name>" marks a serialized object
OBJECT_MARKER = re.compile(rb'O:(\d+):"([^"]+)"')
IGNORED_REQUIRED_KEYS = ("pearinstaller",)


class SerializedFormatError(ValueError):
    """Raised when a blob is not valid PHP serialize() output."""


class _Reader:
    """Cursor over the raw bytes of a serialized value."""

    def __init__(self, data: bytes):
        self.data = data
        self.pos = 0

    def expect(self, token: bytes) -> None:
        end = self.pos + len(token)
        if self.data[self.pos:end] != token:
            raise SerializedFormatError(
                f"Expected {token!r} at offset {self.pos}, found {self.data[self.pos:end]!r}"
            )
        self.pos = end

    def read_until(self, delimiter: bytes) -> bytes:
        end = self.data.find(delimiter, self.pos)
        if end < 0:
            raise SerializedFormatError(f"Unterminated token at offset {self.pos}")
        chunk = self.data[self.pos:end]
        self.pos = end + len(delimiter)
        return chunk

    def read_bytes(self, length: int) -> bytes:
        end = self.pos + length
        if end > len(self.data):
            raise SerializedFormatError(f"String of length {length} overruns the input")
        chunk = self.data[self.pos:end]
        self.pos = end
        return chunk

    def read_int(self, delimiter: bytes) -> int:
        raw = self.read_until(delimiter)
        try:
            return int(raw)
        except ValueError as exc:
            raise SerializedFormatError(f"Invalid integer {raw!r}") from exc


def _read_value(reader: _Reader) -> Any:
    kind = reader.data[reader.pos:reader.pos + 1]
    if kind in (b"O", b"C", b"E"):
        raise DescriptorSecurityError(
            "Invalid dependency data, it contains serialized objects."
        )
    if kind == b"N":
        reader.expect(b"N;")
        return None
    reader.pos += 1
    reader.expect(b":")
    if kind == b"b":
        raw = reader.read_until(b";")
        if raw not in (b"0", b"1"):
            raise SerializedFormatError(f"Invalid boolean {raw!r}")
        return raw == b"1"
    if kind == b"i":
        return reader.read_int(b";")
    if kind == b"d":
        raw = reader.read_until(b";").decode("ascii", "replace")
        try:
            return float(raw)
        except ValueError as exc:
            raise SerializedFormatError(f"Invalid float {raw!r}") from exc
    if kind == b"s":
        length = reader.read_int(b":")
        reader.expect(b'"')
        raw = reader.read_bytes(length)
        reader.expect(b'";')
        return raw.decode("utf-8", "replace")
    if kind == b"a":
        count = reader.read_int(b":")
        reader.expect(b"{")
        items: Dict[Union[int, str], Any] = {}
        for _ in range(count):
            key = _read_value(reader)
            if not isinstance(key, (int, str)) or isinstance(key, bool):
                raise SerializedFormatError(f"Invalid array key {key!r}")
            items[key] = _read_value(reader)
        reader.expect(b"}")
        return items
    raise SerializedFormatError(f"Unsupported type {kind!r} at offset {reader.pos - 1}")


def unserialize(blob: Union[str, bytes]) -> Any:
    """Decode PHP ``serialize()`` output into plain Python values.

    Arrays always decode to dicts keyed by int or str, in source order.

    Raises:
        DescriptorSecurityError: the blob encodes an object.
        SerializedFormatError: the blob is malformed.
    """
    data = blob.encode("utf-8") if isinstance(blob, str) else blob
    reader = _Reader(data.strip())
    value = _read_value(reader)
    if reader.pos != len(reader.data):
        raise SerializedFormatError(f"Trailing data at offset {reader.pos}")
    return value


def check_for_objects(blob: Union[str, bytes]) -> None:
    """Reject blobs carrying a well-formed object marker anywhere in them."""
    data = blob.encode("utf-8") if isinstance(blob, str) else blob
    for match in OBJECT_MARKER.finditer(data):
        if len(match.group(2)) == int(match.group(1)):
            raise DescriptorSecurityError(
                "Invalid dependency data, it contains serialized objects."
            )


def build_constraint(bounds: Mapping[str, Any]) -> str:
    """Turn ``min``/``max`` bounds into a comparator string.

    >>> build_constraint({"min": "5.3"})
    '>=5.3'
    >>> build_constraint({})
    '*'
    """
    versions = []
    minimum = bounds.get("min")
    maximum = bounds.get("max")
    if minimum not in (None, ""):
        versions.append(f">={minimum}")
    if maximum not in (None, ""):
        versions.append(f"<={maximum}")
    return ",".join(versions) or "*"


def _is_list_like(value: Mapping) -> bool:
    return all(isinstance(k, int) and not isinstance(k, bool) for k in value)


def _as_entries(options: Any) -> List[Any]:
    """Normalize one dependency kind to a list of entries."""
    if isinstance(options, list):
        return options
    if isinstance(options, Mapping):
        if "name" in options or not _is_list_like(options):
            return [options]
        return [options[k] for k in sorted(options)]
    return []


def parse_dependency_options(
    options_by_kind: Mapping[str, Any],
    resolve_shorthand: Callable[[Optional[str]], str],
    prefix: str = "pear",
) -> Dict[str, str]:
    """Classify one ``required``/``optional`` section into link constraints.

    Args:
        options_by_kind: Decoded section, keyed by dependency kind.
        resolve_shorthand: Maps a channel name to its alias.
        prefix: Name prefix of packages coming from PEAR channels.

    Returns:
        dict: Requirement name to comparator string.
    """
    data: Dict[str, str] = {}
    for kind, options in options_by_kind.items():
        entries = _as_entries(options)
        if kind == "php":
            first = entries[0] if entries and isinstance(entries[0], Mapping) else {}
            data["php"] = build_constraint(first)
        elif kind == "package":
            for entry in entries:
                if not isinstance(entry, Mapping) or not entry.get("name"):
                    continue
                name = str(entry["name"])
                if "/" not in name:
                    name = f"{resolve_shorthand(entry.get('channel'))}/{name}"
                data[f"{prefix}-{name}"] = build_constraint(entry)
        elif kind == "extension":
            for entry in entries:
                if not isinstance(entry, Mapping) or not entry.get("name"):
                    continue
                data[f"ext-{entry['name']}"] = build_constraint(entry)
        else:
            logger.debug("Ignoring dependency kind %s", kind)
    return data


def parse_dependencies(
    blob: Optional[Union[str, bytes]],
    resolve_shorthand: Callable[[Optional[str]], str],
    prefix: str = "pear",
) -> Dict[str, Dict[str, str]]:
    """Decode a dependency descriptor into ``require``/``suggest`` mappings.

    Pass the raw bytes as served when available: string lengths in the
    format count bytes, not characters.

    A malformed descriptor yields no dependencies. Empty sections are left out
    of the result.

    Raises:
        DescriptorSecurityError: the descriptor contains serialized objects.
    """
    if not blob:
        return {}
    check_for_objects(blob)
    try:
        deps = unserialize(blob)
    except SerializedFormatError as exc:
        logger.debug("Ignoring malformed dependency data: %s", exc)
        return {}
    if not isinstance(deps, Mapping):
        return {}

    required = deps.get("required")
    if isinstance(required, Mapping):
        required = {k: v for k, v in required.items() if k not in IGNORED_REQUIRED_KEYS}
    optional = deps.get("optional")

    result: Dict[str, Dict[str, str]] = {}
    if isinstance(required, Mapping) and required:
        result["require"] = parse_dependency_options(required, resolve_shorthand, prefix)
    if isinstance(optional, Mapping) and optional:
        result["suggest"] = parse_dependency_options(optional, resolve_shorthand, prefix)
    return result
