"""PEAR channel package.

This package provides PEAR channel support:
- channel.py: channel descriptors, REST XML helpers and the channel alias cache
- deps.py: safe decoding and classification of dependency descriptors
- client.py: ingestion of a channel (packages.json, REST 1.3, REST 1.0)

Public API is preserved at registry.pear without shims.
"""

# Patch point exposed for tests (e.g., monkeypatch in tests)
from common.http_client import fetch  # noqa: F401

# Public API re-exports
from .channel import Channel, ChannelAliasCache, read_channel, resolve_shorthand  # noqa: F401
from .deps import build_constraint, parse_dependencies, unserialize  # noqa: F401
from .client import PearIngestor, ingest_channel, normalize_channel_url  # noqa: F401

__all__ = [
    # Channel
    "Channel",
    "ChannelAliasCache",
    "read_channel",
    "resolve_shorthand",
    # Dependency descriptors
    "build_constraint",
    "parse_dependencies",
    "unserialize",
    # Client
    "PearIngestor",
    "ingest_channel",
    "normalize_channel_url",
    # Patch point for tests
    "fetch",
]
