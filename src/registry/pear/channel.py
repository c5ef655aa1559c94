"""PEAR channel descriptors, REST XML helpers and the channel alias cache."""
from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional

from constants import Constants
from common.http_client import FetchResult
from common.logging_utils import extra_context, is_debug_enabled, safe_url
from errors import ChannelError, PearlinkError

import registry.pear as pear_pkg

logger = logging.getLogger(__name__)

XLINK_HREF = "{http://www.w3.org/1999/xlink}href"


def local_name(tag: object) -> str:
    """Tag name without its ``{namespace}`` part."""
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def elements(parent: ET.Element, name: str) -> List[ET.Element]:
    """All descendants of ``parent`` named ``name``, ignoring namespaces."""
    found = []
    for node in parent.iter():
        if node is not parent and local_name(node.tag) == name:
            found.append(node)
    return found


def first_text(parent: ET.Element, name: str) -> Optional[str]:
    """Text content of the first descendant named ``name``, or None."""
    nodes = elements(parent, name)
    if not nodes:
        return None
    return "".join(nodes[0].itertext()).strip()


def href(node: ET.Element) -> str:
    return node.get(XLINK_HREF) or node.get("xlink:href") or node.get("href") or ""


def parse_xml(result: FetchResult) -> ET.Element:
    """Parse the body of a successful answer.

    Raises:
        NotFoundError / TransportError: the answer is not 2xx.
        ChannelError: the body is empty or not XML.
    """
    result.raise_for_status()
    body = result.body.strip()
    if not body:
        raise ChannelError(f"The PEAR channel at {result.url} did not respond.")
    try:
        # the XML declaration decides the encoding
        return ET.fromstring(body)
    except ET.ParseError as exc:
        raise ChannelError(f"The PEAR channel at {result.url} returned invalid XML: {exc}") from exc


def request_xml(url: str) -> ET.Element:
    """GET ``url`` and parse it, for endpoints without a not-found fallback."""
    return parse_xml(pear_pkg.fetch(url, context="pear"))


@dataclass
class Channel:
    """A PEAR channel as described by its ``channel.xml``."""
    name: str
    alias: str
    url: str


def read_channel(url: str, alias: Optional[str] = None) -> Channel:
    """Fetch ``{url}/channel.xml`` and work out the channel alias.

    The alias is ``alias`` when given, else ``suggestedalias``, else the
    canonical name.
    """
    root = request_xml(f"{url}/{Constants.CHANNEL_FILE}")
    name = first_text(root, "name")
    if not name:
        raise ChannelError(f"The PEAR channel at {url} does not declare a name.")
    resolved = alias or first_text(root, "suggestedalias") or name
    if is_debug_enabled(logger):
        logger.debug(
            "Channel descriptor read",
            extra=extra_context(
                event="channel", component="pear", action="read_channel",
                target=safe_url(url), channel=name, alias=resolved,
            ),
        )
    return Channel(name=name, alias=resolved, url=url)


class ChannelAliasCache:
    """Canonical channel name to alias, filled lazily during ingestion.

    Entries are never replaced once recorded, so one cache may be shared by
    several ingestors.
    """

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._aliases: Dict[str, str] = dict(initial or {})

    def get(self, name: str) -> Optional[str]:
        return self._aliases.get(name)

    def remember(self, name: str, alias: str) -> str:
        """Record ``alias`` for ``name`` unless known; returns the stored alias."""
        return self._aliases.setdefault(name, alias)

    def __contains__(self, name: object) -> bool:
        return name in self._aliases

    def __iter__(self) -> Iterator[str]:
        return iter(self._aliases)

    def __len__(self) -> int:
        return len(self._aliases)


def resolve_shorthand(channel_name: str, cache: ChannelAliasCache) -> str:
    """Alias used to prefix packages of a foreign channel.

    Unknown channels are looked up at ``http://{channel_name}/channel.xml``.
    When that fails the host name up to its first dot is used, and cached
    like a real alias.
    """
    cached = cache.get(channel_name)
    if cached is not None:
        return cached
    try:
        alias = read_channel(f"http://{channel_name}").alias
    except PearlinkError as exc:
        alias = channel_name.split(".", 1)[0]
        logger.debug(
            "Could not read channel %s (%s), using %s as its alias",
            channel_name, exc, alias,
        )
    return cache.remember(channel_name, alias)
