"""Argument parsing functionality for pearlink."""

import argparse

from constants import Platform


def _add_common(parser):
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store",
                        type=str)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level (default: $PEARLINK_LOG_LEVEL or INFO)",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'])
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-q", "--quiet",
                        dest="QUIET",
                        help="Do not output to console.",
                        action="store_true")


def _add_install_roots(parser):
    parser.add_argument("--store-root",
                        dest="STORE_ROOT",
                        help="Directory receiving installed packages (default: vendor)",
                        action="store",
                        type=str)
    parser.add_argument("--bin-root",
                        dest="BIN_ROOT",
                        help="Directory receiving package binaries (default: vendor/bin)",
                        action="store",
                        type=str)
    parser.add_argument("--platform",
                        dest="PLATFORM",
                        help="Launcher convention for binaries (default: auto)",
                        action="store",
                        type=str.lower,
                        choices=[p.value for p in Platform])


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="pearlink",
        description="pearlink - PEAR channel ingestion and package installation",
        add_help=True,
    )
    subparsers = parser.add_subparsers(dest="COMMAND", required=True)

    ingest = subparsers.add_parser("ingest", help="List every package of a PEAR channel")
    ingest.add_argument("URL", help="Channel root URL, e.g. pear.example.org")
    ingest.add_argument("--alias",
                        dest="ALIAS",
                        help="Channel alias used to prefix package names",
                        action="store",
                        type=str)
    ingest.add_argument("-o", "--output",
                        dest="OUTPUT",
                        help="Path to output file (JSON or CSV)",
                        action="store",
                        type=str)
    ingest.add_argument("-f", "--format",
                        dest="OUTPUT_FORMAT",
                        help="Output format (json or csv). If not specified, inferred from --output extension; defaults to json.",
                        action="store",
                        type=str.lower,
                        choices=['json', 'csv'])
    _add_common(ingest)

    install = subparsers.add_parser("install", help="Install a package from a PEAR channel")
    install.add_argument("URL", help="Channel root URL")
    install.add_argument("PACKAGE", help="Package name, with or without the pear-<alias>/ prefix")
    install.add_argument("--version",
                         dest="VERSION",
                         help="Version to install (default: highest available)",
                         action="store",
                         type=str)
    install.add_argument("--alias",
                         dest="ALIAS",
                         help="Channel alias used to prefix package names",
                         action="store",
                         type=str)
    _add_install_roots(install)
    _add_common(install)

    uninstall = subparsers.add_parser("uninstall", help="Remove an installed package")
    uninstall.add_argument("PACKAGE", help="Full package name, e.g. pear-foo/bar")
    _add_install_roots(uninstall)
    _add_common(uninstall)

    return parser.parse_args(argv)
