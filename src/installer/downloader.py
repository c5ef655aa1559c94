"""Archive downloader used as the installer's download collaborator."""
from __future__ import annotations

import logging
import os
import shutil
import tarfile
import tempfile
import zipfile

from common import http_client
from errors import PearlinkError
from repository.package import Package

logger = logging.getLogger(__name__)

# PEAR archives carry their manifest next to the source directory
ARCHIVE_MANIFESTS = ("package.xml", "package2.xml")

# extraction filters exist from 3.9.17/3.10.12/3.11.4 on
TAR_FILTERS = hasattr(tarfile, "data_filter")


class ArchiveDownloader:
    """Fetches a package ``dist`` archive and unpacks it at the install path.

    ``.tgz``/``.tar.gz``/``.tar`` and ``.zip`` archives are supported. When the
    archive holds a single top-level directory (besides PEAR manifests), its
    content is moved up so the install path holds the package sources.
    """

    def download(self, package: Package, path: str) -> None:
        if package.dist is None:
            raise PearlinkError(f"Package {package} has no dist to download")
        logger.info("Installing %s", package)
        with tempfile.TemporaryDirectory(prefix="pearlink-") as workdir:
            archive = os.path.join(workdir, os.path.basename(package.dist.url.split("?", 1)[0]) or "dist")
            http_client.download_file(package.dist.url, archive, context="download")
            extract_dir = os.path.join(workdir, "extract")
            extract_archive(archive, extract_dir)
            source = _package_root(extract_dir)
            if os.path.isdir(path):
                shutil.rmtree(path)
            os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
            shutil.move(source, path)

    def update(self, initial: Package, target: Package, path: str) -> None:
        logger.info("Updating %s to %s", initial, target)
        self.remove(initial, path)
        self.download(target, path)

    def remove(self, package: Package, path: str) -> None:
        logger.info("Removing %s", package)
        if os.path.isdir(path) and not os.path.islink(path):
            shutil.rmtree(path)
        elif os.path.lexists(path):
            os.unlink(path)


def extract_archive(archive: str, dest: str) -> None:
    """Unpack ``archive`` into ``dest``, refusing members outside of it."""
    os.makedirs(dest, exist_ok=True)
    if zipfile.is_zipfile(archive):
        with zipfile.ZipFile(archive) as zf:
            for member in zf.namelist():
                _check_member(dest, member)
            zf.extractall(dest)
        return
    try:
        with tarfile.open(archive, "r:*") as tf:
            for member in tf.getmembers():
                _check_member(dest, member.name)
                if member.issym():
                    _check_member(dest, os.path.join(os.path.dirname(member.name), member.linkname))
                elif member.islnk():
                    _check_member(dest, member.linkname)
            if TAR_FILTERS:
                tf.extractall(dest, filter="data")
            else:
                tf.extractall(dest)
    except tarfile.TarError as exc:
        raise PearlinkError(f"Could not extract {archive}: {exc}") from exc


def _check_member(dest: str, name: str) -> None:
    root = os.path.realpath(dest)
    target = os.path.realpath(os.path.join(dest, name))
    if target != root and not target.startswith(root + os.sep):
        raise PearlinkError(f"Archive member {name} would be extracted outside of {dest}")


def _package_root(extract_dir: str) -> str:
    entries = [e for e in os.listdir(extract_dir) if e not in ARCHIVE_MANIFESTS]
    if len(entries) == 1 and os.path.isdir(os.path.join(extract_dir, entries[0])):
        return os.path.join(extract_dir, entries[0])
    return extract_dir
