"""Installed-package repository persisted as a JSON file."""
from __future__ import annotations

import json
import logging
import os
from typing import Optional

from errors import ConfigurationError
from package_loader import dump_package, load_package
from repository.array_repository import ArrayRepository

logger = logging.getLogger(__name__)


class FilesystemRepository(ArrayRepository):
    """Array repository backed by a JSON list of package entries.

    Mutations stay in memory until ``write()`` is called.
    """

    def __init__(self, path: str):
        super().__init__()
        self.path = path
        self.reload()

    def reload(self) -> None:
        """Replace the in-memory state with the file content, if any."""
        self._packages.clear()
        if not os.path.isfile(self.path):
            return
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                entries = json.load(fh)
        except (OSError, json.JSONDecodeError) as exc:
            raise ConfigurationError(f"Could not read installed repository {self.path}: {exc}") from exc
        if not isinstance(entries, list):
            raise ConfigurationError(f"Installed repository {self.path} must contain a list")
        for entry in entries:
            self.add_package(load_package(entry))
        logger.debug("Loaded %d installed packages from %s", len(self), self.path)

    def write(self, path: Optional[str] = None) -> None:
        target = path or self.path
        directory = os.path.dirname(os.path.abspath(target))
        os.makedirs(directory, exist_ok=True)
        with open(target, "w", encoding="utf-8") as fh:
            json.dump([dump_package(p) for p in self.get_packages()], fh, indent=4)
            fh.write("\n")
