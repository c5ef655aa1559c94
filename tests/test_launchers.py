"""Tests for binary launcher generation."""

import os

import pytest

from constants import Constants
from installer.launchers import (
    detect_interpreter,
    find_shortest_path,
    generate_batch_launcher,
    generate_shell_shim,
    write_launcher,
)


def test_find_shortest_path_is_relative_to_link_directory():
    """Test the path is relative to the link's directory."""
    assert find_shortest_path("/srv/vendor/bin/tool", "/srv/vendor/pear-foo/bar/bin/tool") == \
        "../pear-foo/bar/bin/tool"


def test_find_shortest_path_same_directory():
    """Test siblings resolve to the bare name."""
    assert find_shortest_path("/srv/bin/a", "/srv/bin/b") == "b"


def test_shell_shim_runs_binary_from_its_directory():
    """Test the shell proxy template."""
    shim = generate_shell_shim("/srv/vendor/pear-foo/bar/bin/tool", "/srv/vendor/bin/tool")

    assert shim.splitlines() == [
        "#!/usr/bin/env sh",
        "SRC_DIR=`pwd`",
        'cd `dirname "$0"`',
        "cd ../pear-foo/bar/bin",
        "BIN_TARGET=`pwd`/tool",
        "cd $SRC_DIR",
        '$BIN_TARGET "$@"',
    ]


def test_shell_shim_quotes_unusual_directories():
    """Test directories with spaces are quoted."""
    shim = generate_shell_shim("/srv/my pkg/bin/tool", "/srv/bin/tool")
    assert "cd '../my pkg/bin'\n" in shim


class TestDetectInterpreter:
    """Interpreter used by batch launchers."""

    def test_batch_files_are_called(self):
        """Test .bat binaries run through call."""
        assert detect_interpreter("C:/pkg/bin/tool.BAT") == "call"

    @pytest.mark.parametrize("first_line,expected", [
        ("#!/usr/bin/env php", "php"),
        ("#!/usr/bin/php", "php"),
        ("#!/usr/local/bin/python3", "python3"),
    ])
    def test_shebang(self, tmp_path, first_line, expected):
        """Test the interpreter comes from the shebang."""
        script = tmp_path / "tool"
        script.write_text(first_line + "\nbody\n", encoding="utf-8")
        assert detect_interpreter(str(script)) == expected

    def test_default_without_shebang(self, tmp_path):
        """Test the default interpreter without shebang."""
        script = tmp_path / "tool"
        script.write_text("<?php echo 1;\n", encoding="utf-8")
        assert detect_interpreter(str(script)) == Constants.DEFAULT_INTERPRETER

    def test_default_for_unreadable_file(self, tmp_path):
        """Test the default interpreter for a missing file."""
        assert detect_interpreter(str(tmp_path / "missing")) == Constants.DEFAULT_INTERPRETER


def test_batch_launcher_uses_crlf_and_backslashes(tmp_path):
    """Test the batch launcher template."""
    package_bin = tmp_path / "vendor" / "pear-foo" / "bar" / "bin"
    package_bin.mkdir(parents=True)
    (package_bin / "tool").write_text("#!/usr/bin/env php\n", encoding="utf-8")

    batch = generate_batch_launcher(str(package_bin / "tool"), str(tmp_path / "vendor" / "bin" / "tool.bat"))

    assert batch.split("\r\n") == [
        "@echo off",
        "pushd .",
        "cd %~dp0",
        'cd "..\\pear-foo\\bar\\bin"',
        "set BIN_TARGET=%CD%\\tool",
        "popd",
        "php %BIN_TARGET% %*",
        "",
    ]


def test_write_launcher_marks_executable(tmp_path):
    """Test launchers are written verbatim and executable."""
    path = str(tmp_path / "tool")

    write_launcher(path, "@echo off\r\n")

    assert os.stat(path).st_mode & 0o777 == Constants.EXECUTABLE_MODE
    with open(path, encoding="utf-8", newline="") as fh:
        assert fh.read() == "@echo off\r\n"
