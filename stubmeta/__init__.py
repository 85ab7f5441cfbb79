"""stubmeta - Stub descriptor compiler for exposed Rust declarations."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("stubmeta")
except PackageNotFoundError:
    __version__ = "(local)"
