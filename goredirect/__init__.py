"""go-import-redirector: serve `go-import` meta tags for a custom import domain.

Exposes the installed distribution version as __version__.
"""
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("go-import-redirector")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"
