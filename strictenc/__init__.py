"""strictenc - Canonical binary encoding for structs and tagged unions."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("strictenc")
except PackageNotFoundError:
    __version__ = "(local)"
