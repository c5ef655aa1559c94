"""Launcher scripts exposing package binaries from the bin directory.

Shell shims are used where a symlink cannot be created and next to batch
launchers on Windows so that POSIX shells (cygwin, msys) can run the binary.
"""
from __future__ import annotations

import logging
import os
import re
import shlex
from typing import Optional

from constants import Constants

logger = logging.getLogger(__name__)

SHEBANG_PATTERN = re.compile(r"^#!/(?:usr/bin/env )?(?:[^/]+/)*(.+)$", re.MULTILINE)


def find_shortest_path(from_path: str, to_path: str) -> str:
    """Shortest path from the directory holding ``from_path`` to ``to_path``.

    Falls back to the absolute ``to_path`` when the two have no common root
    (e.g. different Windows drives).
    """
    from_path = os.path.abspath(from_path)
    to_path = os.path.abspath(to_path)
    try:
        return os.path.relpath(to_path, os.path.dirname(from_path))
    except ValueError:
        return to_path


def _split(path: str):
    directory, name = os.path.split(path)
    return directory or ".", name


def generate_shell_shim(bin_path: str, link: str) -> str:
    """POSIX ``sh`` script that runs ``bin_path`` from the location ``link``."""
    directory, name = _split(find_shortest_path(link, bin_path))
    return (
        "#!/usr/bin/env sh\n"
        "SRC_DIR=`pwd`\n"
        'cd `dirname "$0"`\n'
        f"cd {shlex.quote(directory)}\n"
        f"BIN_TARGET=`pwd`/{name}\n"
        "cd $SRC_DIR\n"
        '$BIN_TARGET "$@"\n'
    )


def detect_interpreter(bin_path: str) -> str:
    """Command a batch launcher uses to run ``bin_path``.

    ``call`` for batch files, otherwise the interpreter named on the shebang
    line, otherwise ``Constants.DEFAULT_INTERPRETER``.
    """
    if bin_path.lower().endswith(".bat"):
        return "call"
    first_line = _read_first_line(bin_path)
    match = SHEBANG_PATTERN.match(first_line) if first_line else None
    if match:
        return match.group(1).strip()
    return Constants.DEFAULT_INTERPRETER


def _read_first_line(path: str) -> Optional[str]:
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as fh:
            return fh.readline().rstrip("\r\n")
    except OSError as exc:
        logger.debug("Could not read %s to detect its interpreter: %s", path, exc)
        return None


def generate_batch_launcher(bin_path: str, link: str) -> str:
    """Windows batch file that runs ``bin_path`` from the location ``link``."""
    directory, name = _split(find_shortest_path(link, bin_path))
    directory = directory.replace("/", "\\")
    caller = detect_interpreter(bin_path)
    return (
        "@echo off\r\n"
        "pushd .\r\n"
        "cd %~dp0\r\n"
        f'cd "{directory}"\r\n'
        f"set BIN_TARGET=%CD%\\{name}\r\n"
        "popd\r\n"
        f"{caller} %BIN_TARGET% %*\r\n"
    )


def write_launcher(path: str, content: str) -> None:
    """Write a launcher script and mark it executable."""
    with open(path, "w", encoding="utf-8", newline="") as fh:
        fh.write(content)
    os.chmod(path, Constants.EXECUTABLE_MODE)
