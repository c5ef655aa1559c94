"""PEAR channel client: load every release of a channel into a repository.

Two generations of the REST protocol are supported, plus the
``packages.json`` manifest some channels publish:

- ``packages.json``: a manifest of package data, loaded directly when present.
- ``packagesinfo.xml`` (REST 1.3): one document per category with packages,
  releases and inline dependency descriptors.
- ``packages.xml`` + ``allreleases2.xml`` + ``deps.{version}.txt`` (REST 1.0):
  one request per package and one more per release.
"""
from __future__ import annotations

import json
import logging
import xml.etree.ElementTree as ET
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional
from urllib.parse import urlparse

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, safe_url
from errors import ConfigurationError, PackageValidationError, TransportError
from package_loader import load_package
from repository.package import Package

import registry.pear as pear_pkg
from .channel import (
    ChannelAliasCache,
    elements,
    first_text,
    href,
    parse_xml,
    read_channel,
    request_xml,
    resolve_shorthand,
)
from .deps import parse_dependencies

logger = logging.getLogger(__name__)


def normalize_channel_url(url: str) -> str:
    """Add a scheme when missing and drop the trailing slash.

    Raises:
        ConfigurationError: the URL has no host.
    """
    url = (url or "").strip()
    if not url.lower().startswith(("http://", "https://")):
        url = "http://" + url
    parsed = urlparse(url)
    if not parsed.netloc or not parsed.hostname:
        raise ConfigurationError(f"Invalid url given for PEAR repository: {url}")
    return url.rstrip("/")


class PearIngestor:
    """Reads one PEAR channel and adds its releases to a repository.

    Args:
        url: Channel root, e.g. ``http://pear.example.org``.
        alias: Alias to use instead of the one the channel suggests.
        alias_cache: Shared channel alias cache; a private one by default.
        loader: Builds a ``Package`` from raw data, raising
            ``PackageValidationError`` on rejection.
    """

    def __init__(
        self,
        url: str,
        alias: Optional[str] = None,
        alias_cache: Optional[ChannelAliasCache] = None,
        loader: Callable[[Mapping[str, Any]], Package] = load_package,
    ):
        self.url = normalize_channel_url(url)
        self.alias = alias or None
        self.alias_cache = alias_cache if alias_cache is not None else ChannelAliasCache()
        self.loader = loader
        self.channel_name: Optional[str] = None
        self._repository = None
        self._added = 0

    @property
    def prefix(self) -> str:
        return f"{Constants.PACKAGE_PREFIX}-{self.alias}/"

    def ingest(self, repository) -> int:
        """Load the channel into ``repository``.

        Returns:
            int: number of packages added.
        """
        self._repository = repository
        self._added = 0
        logger.info("Initializing PEAR repository %s", self.url)
        self._initialize_channel()
        logger.info("Package names will be prefixed with: %s", self.prefix)

        if not self._load_manifest():
            self._fetch_from_server()
        logger.info("Loaded %d packages from %s", self._added, self.url)
        return self._added

    def _initialize_channel(self) -> None:
        channel = read_channel(self.url, self.alias)
        self.alias = channel.alias
        self.channel_name = channel.name
        self.alias_cache.remember(channel.name, channel.alias)

    def _shorthand(self, channel_name: Optional[str]) -> str:
        if not channel_name:
            return self.alias or ""
        return resolve_shorthand(channel_name, self.alias_cache)

    def _add(self, data: Dict[str, Any]) -> bool:
        """Validate ``data`` and add it; a rejected release is logged and skipped."""
        try:
            package = self.loader(data)
        except PackageValidationError as exc:
            logger.debug("Could not load %s %s: %s", data.get("name"), data.get("version"), exc)
            return False
        if self._repository.add_package(package) is not False:
            self._added += 1
        logger.debug("Loaded %s %s", package.pretty_name, package.pretty_version)
        return True

    # ---------- packages.json ----------

    def _load_manifest(self) -> bool:
        """Load ``packages.json`` if the channel publishes one."""
        url = f"{self.url}/{Constants.MANIFEST_FILE}"
        try:
            result = pear_pkg.fetch(url, context="pear")
        except TransportError as exc:
            logger.debug("Could not fetch %s: %s", safe_url(url), exc)
            return False
        if not result.ok:
            return False
        try:
            manifest = json.loads(result.body)
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.debug("Ignoring unparseable %s", safe_url(url))
            return False
        if not isinstance(manifest, Mapping):
            return False

        logger.debug("Repository is Composer-compatible, loading via packages.json instead of PEAR protocol")
        for name, entry in manifest.items():
            versions = entry.get("versions", []) if isinstance(entry, Mapping) else entry
            if not isinstance(versions, list):
                logger.debug("Skipping %s: no version list in packages.json", name)
                continue
            for version in versions:
                if not isinstance(version, Mapping):
                    continue
                data = dict(version)
                data["name"] = self.prefix + str(data.get("name") or name)
                self._add(data)
        return True

    # ---------- REST protocol ----------

    def _fetch_from_server(self) -> None:
        categories = request_xml(self.url + Constants.CATEGORIES_PATH)
        for category in elements(categories, "c"):
            link = "/" + href(category).lstrip("/")
            info_url = self.url + link.replace("info.xml", "packagesinfo.xml")
            result = pear_pkg.fetch(info_url, context="pear")
            if result.not_found:
                self._fetch_pear_packages(self.url + link.replace("info.xml", "packages.xml"))
            else:
                self._fetch_pear2_packages(parse_xml(result))

    def _base_data(self, name: str) -> Dict[str, Any]:
        return {
            "name": self.prefix + name,
            "type": Constants.DEFAULT_PACKAGE_TYPE,
            "autoload": {k: list(v) for k, v in Constants.DEFAULT_AUTOLOAD.items()},
        }

    def _dist(self, name: str, version: str) -> Dict[str, str]:
        return {"type": Constants.DIST_TYPE, "url": f"{self.url}/get/{name}-{version}.tgz"}

    def _fetch_pear_packages(self, category_url: str) -> None:
        """REST 1.0: list of package names, then releases and deps per release."""
        packages = request_xml(category_url)
        for package in elements(packages, "p"):
            name = "".join(package.itertext()).strip()
            package_link = "/" + href(package).lstrip("/")
            release_link = self.url + package_link.replace("/rest/p/", "/rest/r/").rstrip("/")

            result = pear_pkg.fetch(f"{release_link}/{Constants.ALL_RELEASES_FILE}", context="pear")
            if result.not_found:
                logger.debug("No releases published for %s, skipping", name)
                continue
            releases = parse_xml(result)

            for version in self._release_versions(releases):
                deps = pear_pkg.fetch(f"{release_link}/deps.{version}.txt", context="pear")
                if deps.not_found:
                    logger.debug("No dependency file for %s %s, skipping release", name, version)
                    continue
                deps.raise_for_status()

                data = self._base_data(name)
                data["dist"] = self._dist(name, version)
                data["version"] = version
                # serialize() string lengths count bytes
                data.update(parse_dependencies(deps.body, self._shorthand, Constants.PACKAGE_PREFIX))
                self._add(data)

    def _fetch_pear2_packages(self, document: ET.Element) -> None:
        """REST 1.3: package info, releases and deps inline per category."""
        for info in elements(document, "pi"):
            package_nodes = elements(info, "p")
            if not package_nodes:
                continue
            package = package_nodes[0]
            name = first_text(package, "n")
            if not name:
                continue

            base = self._base_data(name)
            for tag, key in (("l", "license"), ("d", "description")):
                value = first_text(package, tag)
                if value:
                    base[key] = value

            deps_by_version: Dict[str, Dict[str, Dict[str, str]]] = {}
            for deps_node in elements(info, "deps"):
                deps_version = first_text(deps_node, "v")
                if deps_version is None:
                    continue
                deps_by_version[deps_version] = parse_dependencies(
                    first_text(deps_node, "d"), self._shorthand, Constants.PACKAGE_PREFIX
                )

            release_lists = elements(info, "a")
            if not release_lists:
                if is_debug_enabled(logger):
                    logger.debug(
                        "Package has no releases",
                        extra=extra_context(event="skip", component="pear", package=name),
                    )
                continue

            for version in self._release_versions(release_lists[0]):
                data = dict(base)
                data["dist"] = self._dist(name, version)
                data["version"] = version
                data.update(deps_by_version.get(version, {}))
                self._add(data)

    @staticmethod
    def _release_versions(releases: ET.Element) -> Iterator[str]:
        for release in elements(releases, "r"):
            version = first_text(release, "v")
            if version:
                yield version


def ingest_channel(
    url: str,
    repository,
    alias: Optional[str] = None,
    alias_cache: Optional[ChannelAliasCache] = None,
) -> List[Package]:
    """Ingest ``url`` into ``repository`` and return the repository content."""
    PearIngestor(url, alias=alias, alias_cache=alias_cache).ingest(repository)
    return repository.get_packages()
