"""sbpgen - Message binding generator for binary wire protocols."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("sbpgen")
except PackageNotFoundError:
    __version__ = "(local)"
