"""Packaged export output: the files one build hands back to the caller.

A build never writes to disk by itself. It returns a list of package
items (glTF JSON, binary buffers, property container JSON) that the caller
can inspect or write with write_package().
"""

import logging
import os

_log = logging.getLogger("gltfbim.package")


class PackageItem:
    """One output file, addressed by its relative uri."""

    def __init__(self, uri, data):
        self.uri = uri
        self.data = data

    def __repr__(self):
        return f"{type(self).__name__}({self.uri!r}, {len(self.data)} bytes)"

    def write(self, directory):
        """Write this item under ``directory`` and return the full path."""
        path = os.path.join(directory, self.uri)
        with open(path, self._mode, **self._open_kwargs) as f:
            f.write(self.data)
        _log.info("Wrote %s", path)
        return path


class PackageJsonItem(PackageItem):
    """JSON document stored as text."""

    _mode = "w"
    _open_kwargs = {"encoding": "utf-8"}


class PackageBinaryItem(PackageItem):
    """Raw binary buffer."""

    _mode = "wb"
    _open_kwargs = {}


def write_package(items, directory):
    """Write every item into ``directory`` (created if missing).

    Returns:
        list of written file paths, in item order
    """
    os.makedirs(directory, exist_ok=True)
    return [item.write(directory) for item in items]
