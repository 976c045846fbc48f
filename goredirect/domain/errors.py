from __future__ import annotations

__all__ = [
    "RedirectorError",
    "ConfigurationError",
    "UrlParseError",
    "ListenError",
    "ServeError",
    "ShutdownError",
    "RenderError",
    "NotFound",
]


class RedirectorError(Exception):
    """Base class for redirector errors.

    The `code` attribute is a stable machine code used in log events.
    """

    code: str = "redirector_error"


# ------------------------
# Startup (fatal)
# ------------------------
class ConfigurationError(RedirectorError):
    """An import/repo pair cannot be turned into a redirect rule."""

    code = "configuration_error"


class UrlParseError(ConfigurationError):
    code = "url_parse_error"


class ListenError(RedirectorError):
    code = "listen_error"


# ------------------------
# Runtime (fatal)
# ------------------------
class ServeError(RedirectorError):
    code = "serve_error"


class ShutdownError(RedirectorError):
    code = "shutdown_error"


# ------------------------
# Per request (recovered)
# ------------------------
class RenderError(RedirectorError):
    code = "render_error"


class NotFound(RedirectorError):
    code = "not_found"
