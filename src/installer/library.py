"""Library installer: package files in the store root, binaries in the bin root."""
from __future__ import annotations

import copy
import logging
import os
from typing import List, Optional

from constants import Constants, Platform
from errors import InvalidStateError
from repository.package import Package

from .launchers import generate_batch_launcher, generate_shell_shim, write_launcher

logger = logging.getLogger(__name__)


class LibraryInstaller:
    """Installs, updates and removes packages of one type.

    Args:
        store_root: Directory receiving one sub directory per package.
        bin_root: Directory receiving links/launchers for package binaries.
        download_manager: Object with ``download(package, path)``,
            ``update(initial, target, path)`` and ``remove(package, path)``.
        repository: Installed-package repository (``has_package``,
            ``add_package``, ``remove_package``).
        package_type: Package type handled; None handles every type.
        platform: Launcher convention for binaries.
    """

    def __init__(
        self,
        store_root: str,
        bin_root: str,
        download_manager,
        repository,
        package_type: Optional[str] = Constants.DEFAULT_PACKAGE_TYPE,
        platform: Platform = Platform.POSIX,
    ):
        self.store_root = store_root.rstrip("/\\") if store_root else ""
        self.bin_root = bin_root.rstrip("/\\")
        self.download_manager = download_manager
        self.repository = repository
        self.type = package_type
        self.platform = Platform.resolve(platform)

    def supports(self, package_type: str) -> bool:
        return self.type is None or package_type == self.type

    def is_installed(self, package: Package) -> bool:
        """True when the repository lists ``package`` and its files are readable."""
        return self.repository.has_package(package) and os.access(
            self.get_install_path(package), os.R_OK
        )

    def get_install_path(self, package: Package) -> str:
        parts = [package.pretty_name]
        if package.target_dir:
            parts.append(package.target_dir)
        if self.store_root:
            parts.insert(0, self.store_root)
        return "/".join(parts)

    def install(self, package: Package) -> None:
        self._initialize_store_root()
        download_path = self.get_install_path(package)

        # package files are gone but the repository still lists the package
        if not os.access(download_path, os.R_OK) and self.repository.has_package(package):
            logger.info("Files of %s are missing, removing its binaries before reinstalling", package)
            self.remove_binaries(package)

        self.download_manager.download(package, download_path)
        self.install_binaries(package)
        if not self.repository.has_package(package):
            self.repository.add_package(copy.deepcopy(package))

    def update(self, initial: Package, target: Package) -> None:
        if not self.repository.has_package(initial):
            raise InvalidStateError(f"Package is not installed: {initial}")

        self._initialize_store_root()
        download_path = self.get_install_path(initial)

        self.remove_binaries(initial)
        self.download_manager.update(initial, target, download_path)
        self.install_binaries(target)
        self.repository.remove_package(initial)
        if not self.repository.has_package(target):
            self.repository.add_package(copy.deepcopy(target))

    def uninstall(self, package: Package) -> None:
        if not self.repository.has_package(package):
            # TODO raise InvalidStateError here once update no longer goes
            # through uninstall+install for packages changing name
            logger.debug("Package %s is not installed, nothing to uninstall", package)
            return

        download_path = self.get_install_path(package)

        self.download_manager.remove(package, download_path)
        self.remove_binaries(package)
        self.repository.remove_package(package)

    def install_binaries(self, package: Package) -> List[str]:
        """Expose the binaries of ``package`` in the bin root.

        Returns:
            list: paths of the links/launchers created.
        """
        created: List[str] = []
        if not package.binaries:
            return created
        self._initialize_bin_root()
        for binary in package.binaries:
            link = os.path.join(self.bin_root, os.path.basename(binary))
            if os.path.lexists(link):
                if os.path.islink(link):
                    # likely a leftover of a previous install, make sure the
                    # target is still executable
                    if os.path.exists(link):
                        os.chmod(link, Constants.EXECUTABLE_MODE)
                    logger.debug("Kept existing link %s for package %s", link, package.name)
                else:
                    logger.warning(
                        "Skipped installation of %s for package %s, name conflicts with an existing file",
                        binary,
                        package.name,
                    )
                continue

            bin_path = os.path.join(self.get_install_path(package), binary)
            if self.platform is Platform.WINDOWS:
                created.extend(self._install_windows_launchers(bin_path, link))
            else:
                created.append(self._install_posix_link(bin_path, link))
        return created

    def _install_posix_link(self, bin_path: str, link: str) -> str:
        try:
            # symlinks are not supported everywhere, e.g. smbfs mounts
            os.symlink(os.path.abspath(bin_path), link)
        except (OSError, NotImplementedError) as exc:
            logger.debug("Could not symlink %s (%s), writing a shell proxy instead", link, exc)
            write_launcher(link, generate_shell_shim(bin_path, link))
            return link
        if os.path.exists(link):
            os.chmod(link, Constants.EXECUTABLE_MODE)
        return link

    def _install_windows_launchers(self, bin_path: str, link: str) -> List[str]:
        created = []
        if not bin_path.lower().endswith(".bat"):
            # unixy proxy for cygwin and similar environments
            write_launcher(link, generate_shell_shim(bin_path, link))
            created.append(link)
            link += ".bat"
        write_launcher(link, generate_batch_launcher(bin_path, link))
        created.append(link)
        return created

    def remove_binaries(self, package: Package) -> None:
        if not package.binaries:
            return
        for binary in package.binaries:
            link = os.path.join(self.bin_root, os.path.basename(binary))
            candidates = [link]
            if self.platform is Platform.WINDOWS and not binary.lower().endswith(".bat"):
                candidates.append(link + ".bat")
            for candidate in candidates:
                if os.path.lexists(candidate):
                    os.unlink(candidate)

    def _initialize_store_root(self) -> None:
        if not self.store_root:
            return
        os.makedirs(self.store_root, exist_ok=True)
        self.store_root = os.path.realpath(self.store_root)

    def _initialize_bin_root(self) -> None:
        os.makedirs(self.bin_root, exist_ok=True)
        self.bin_root = os.path.realpath(self.bin_root)
