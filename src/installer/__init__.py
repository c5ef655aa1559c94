"""Installation of packages into a store root and exposure of their binaries."""

from .downloader import ArchiveDownloader  # noqa: F401
from .library import LibraryInstaller  # noqa: F401

__all__ = ["ArchiveDownloader", "LibraryInstaller"]
