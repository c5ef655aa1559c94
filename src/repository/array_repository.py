"""In-memory package repository."""
from __future__ import annotations

import logging
from typing import Dict, Iterator, List, Optional

from repository.package import Package

logger = logging.getLogger(__name__)


class ArrayRepository:
    """Ordered store of packages keyed by ``Package.unique_name``.

    Adding a package whose name and version are already present is a no-op,
    so repeated ingestion of the same channel never duplicates entries.
    """

    def __init__(self, packages: Optional[List[Package]] = None):
        self._packages: Dict[str, Package] = {}
        for package in packages or []:
            self.add_package(package)

    def add_package(self, package: Package) -> bool:
        """Add ``package``; returns False when an equal entry already exists."""
        key = package.unique_name
        if key in self._packages:
            logger.debug("Package %s already present, not added again", key)
            return False
        self._packages[key] = package
        return True

    def has_package(self, package: Package) -> bool:
        return package.unique_name in self._packages

    def remove_package(self, package: Package) -> bool:
        """Remove ``package``; returns False when it was not present."""
        return self._packages.pop(package.unique_name, None) is not None

    def find_package(self, name: str, version: Optional[str] = None) -> Optional[Package]:
        """Return the first package named ``name`` (optionally at ``version``)."""
        name = name.lower()
        for package in self._packages.values():
            if package.name != name:
                continue
            if version is None or version in (package.version, package.pretty_version):
                return package
        return None

    def find_packages(self, name: str) -> List[Package]:
        name = name.lower()
        return [p for p in self._packages.values() if p.name == name]

    def get_packages(self) -> List[Package]:
        return list(self._packages.values())

    def __iter__(self) -> Iterator[Package]:
        return iter(self.get_packages())

    def __len__(self) -> int:
        return len(self._packages)
