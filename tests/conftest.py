"""Shared fixtures: a fake PEAR channel behind the HTTP patch point."""

import os
import shutil
from unittest.mock import patch

import pytest

from common.http_client import FetchResult


def php_serialize(value):
    """Minimal PHP serialize() used to build dependency descriptors in tests."""
    if value is None:
        return "N;"
    if isinstance(value, bool):
        return f"b:{int(value)};"
    if isinstance(value, int):
        return f"i:{value};"
    if isinstance(value, str):
        return f's:{len(value.encode("utf-8"))}:"{value}";'
    if isinstance(value, list):
        value = dict(enumerate(value))
    if isinstance(value, dict):
        body = "".join(php_serialize(k) + php_serialize(v) for k, v in value.items())
        return f"a:{len(value)}:{{{body}}}"
    raise TypeError(value)


class FakeRemote:
    """URL -> (status, body) table standing in for the channel server.

    Unknown URLs answer 404. A registered exception is raised instead of
    answering. Bytes bodies get the ISO-8859-1 ``text`` requests produces
    for ``text/plain`` answers without a charset.
    """

    def __init__(self):
        self.responses = {}
        self.calls = []

    def add(self, url, body, status=200):
        self.responses[url] = (status, body)

    def fail(self, url, exc):
        self.responses[url] = exc

    def fetch(self, url, *, context, headers=None, **kwargs):
        self.calls.append(url)
        answer = self.responses.get(url)
        if isinstance(answer, Exception):
            raise answer
        if answer is None:
            return FetchResult(url=url, status_code=404, text="Not Found")
        status, body = answer
        if isinstance(body, bytes):
            return FetchResult(url=url, status_code=status, text=body.decode("iso-8859-1"), content=body)
        return FetchResult(url=url, status_code=status, text=body, content=body.encode("utf-8"))


@pytest.fixture
def remote():
    fake = FakeRemote()
    with patch("registry.pear.fetch", side_effect=fake.fetch):
        yield fake


class FakeDownloadManager:
    """Download collaborator writing ``files`` (relative path -> content)."""

    def __init__(self, files=None):
        self.files = files or {}
        self.calls = []

    def download(self, package, path):
        self.calls.append(("download", package.unique_name, path))
        for relative, content in self.files.items():
            target = os.path.join(path, relative)
            os.makedirs(os.path.dirname(target), exist_ok=True)
            with open(target, "w", encoding="utf-8") as fh:
                fh.write(content)
        os.makedirs(path, exist_ok=True)

    def update(self, initial, target, path):
        self.calls.append(("update", initial.unique_name, target.unique_name, path))
        shutil.rmtree(path, ignore_errors=True)
        self.download(target, path)
        self.calls.pop()

    def remove(self, package, path):
        self.calls.append(("remove", package.unique_name, path))
        shutil.rmtree(path, ignore_errors=True)
