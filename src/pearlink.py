"""pearlink - PEAR channel ingestion and package installation

    Returns:
        int: Exit code
"""
import csv
import json
import logging
import os
import sys

from constants import Constants, ExitCodes, Platform
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from args import parse_args
from cli_config import apply_cli_overrides, apply_config, load_config
from errors import (
    ChannelError,
    DescriptorSecurityError,
    InvalidStateError,
    PearlinkError,
    TransportError,
)
from installer import ArchiveDownloader, LibraryInstaller
from package_loader import dump_package, version_sort_key
from registry.pear import PearIngestor
from repository import ArrayRepository
from repository.filesystem import FilesystemRepository

logger = logging.getLogger(__name__)

CSV_HEADERS = ["Package Name", "Version", "Type", "Dist URL", "Require", "Suggest", "License"]


def export_csv(packages, path):
    """Exports the ingested packages to a CSV file.

    Args:
        packages (list): Packages to export.
        path (str): File path to export the CSV.
    """
    rows = [CSV_HEADERS]
    for package in packages:
        rows.append([
            package.pretty_name,
            package.pretty_version,
            package.type,
            package.dist.url if package.dist else "",
            ";".join(f"{k} {v}" for k, v in package.requires.items()),
            ";".join(f"{k} {v}" for k, v in package.suggests.items()),
            ";".join(package.license),
        ])
    try:
        with open(path, "w", newline="", encoding="utf-8") as file:
            writer = csv.writer(file, dialect="excel")
            writer.writerows(rows)
        logging.info("CSV file has been successfully exported at: %s", path)
    except (OSError, csv.Error) as e:
        logging.error("CSV file couldn't be written to disk: %s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)


def export_json(packages, path):
    """Exports the ingested packages to a JSON file, or stdout when path is None."""
    payload = json.dumps([dump_package(p) for p in packages], indent=2)
    if path is None:
        print(payload)
        return
    try:
        with open(path, "w", encoding="utf-8") as file:
            file.write(payload + "\n")
        logging.info("JSON file has been successfully exported at: %s", path)
    except OSError as e:
        logging.error("JSON file couldn't be written to disk: %s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)


def _output_format(args):
    if getattr(args, "OUTPUT_FORMAT", None):
        return args.OUTPUT_FORMAT
    output = getattr(args, "OUTPUT", None)
    if output and output.lower().endswith(".csv"):
        return "csv"
    return "json"


def build_installer(repository):
    """LibraryInstaller configured from ``Constants``."""
    return LibraryInstaller(
        Constants.STORE_ROOT,
        Constants.BIN_ROOT,
        ArchiveDownloader(),
        repository,
        package_type=Constants.DEFAULT_PACKAGE_TYPE,
        platform=Platform.resolve(Constants.PLATFORM),
    )


def installed_repository():
    return FilesystemRepository(os.path.join(Constants.STORE_ROOT, Constants.INSTALLED_FILE))


def select_package(repository, name, version=None):
    """Pick ``name`` from ``repository``: the given version or the highest one."""
    candidates = repository.find_packages(name)
    if version is not None:
        candidates = [p for p in candidates if version in (p.version, p.pretty_version)]
    if not candidates:
        return None
    return max(candidates, key=lambda p: version_sort_key(p.version))


def run_ingest(args):
    repository = ArrayRepository()
    PearIngestor(args.URL, alias=args.ALIAS).ingest(repository)
    packages = repository.get_packages()
    if _output_format(args) == "csv":
        export_csv(packages, args.OUTPUT or "packages.csv")
    else:
        export_json(packages, args.OUTPUT)
    return ExitCodes.SUCCESS.value


def run_install(args):
    available = ArrayRepository()
    ingestor = PearIngestor(args.URL, alias=args.ALIAS)
    ingestor.ingest(available)

    name = args.PACKAGE
    if "/" not in name:
        name = ingestor.prefix + name
    package = select_package(available, name, args.VERSION)
    if package is None:
        logging.error("Package %s %s not found in %s", name, args.VERSION or "", ingestor.url)
        return ExitCodes.FILE_ERROR.value

    installed = installed_repository()
    installer = build_installer(installed)
    if not installer.supports(package.type):
        logging.error("Package type %s is not supported", package.type)
        return ExitCodes.FILE_ERROR.value

    current = installed.find_package(package.name)
    if current is not None and current.version != package.version:
        installer.update(current, package)
    else:
        installer.install(package)
    installed.write()
    logging.info("Installed %s into %s", package, installer.get_install_path(package))
    return ExitCodes.SUCCESS.value


def run_uninstall(args):
    installed = installed_repository()
    installer = build_installer(installed)
    package = installed.find_package(args.PACKAGE)
    if package is None:
        logging.info("Package %s is not installed", args.PACKAGE)
        return ExitCodes.SUCCESS.value
    installer.uninstall(package)
    installed.write()
    logging.info("Removed %s", package)
    return ExitCodes.SUCCESS.value


COMMANDS = {
    "ingest": run_ingest,
    "install": run_install,
    "uninstall": run_uninstall,
}


def _setup_logging(args):
    configure_logging(getattr(args, "LOG_LEVEL", None))
    if getattr(args, "QUIET", False):
        logging.getLogger().setLevel(logging.ERROR)
    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setFormatter(logging.Formatter(Constants.LOG_FORMAT))
        logging.getLogger().addHandler(handler)


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    _setup_logging(args)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action=args.COMMAND),
        )

    try:
        apply_config(load_config(getattr(args, "CONFIG", None)))
        apply_cli_overrides(args)
        return COMMANDS[args.COMMAND](args)
    except (TransportError, ChannelError) as e:
        logging.error("%s", e)
        return ExitCodes.CONNECTION_ERROR.value
    except DescriptorSecurityError as e:
        logging.error("%s", e)
        return ExitCodes.SECURITY_ERROR.value
    except InvalidStateError as e:
        logging.error("%s", e)
        return ExitCodes.STATE_ERROR.value
    except (PearlinkError, OSError) as e:
        logging.error("%s", e)
        return ExitCodes.FILE_ERROR.value


if __name__ == "__main__":
    sys.exit(main())
