from __future__ import annotations

import posixpath

__all__ = [
    "join_path",
    "split_host_port",
    "request_path",
]


def join_path(*elems: str) -> str:
    """Join slash-separated path elements and clean the result.

    Empty elements are ignored; an all-empty input yields an empty string.
    The result is cleaned lexically: duplicate slashes collapse, `.` and `..`
    are resolved and no trailing slash survives.

        >>> join_path("rsc.io", "x86")
        'rsc.io/x86'
        >>> join_path("/rsc/", "x86")
        '/rsc/x86'
    """
    parts = [e for e in elems if e]
    if not parts:
        return ""
    cleaned = posixpath.normpath("/".join(parts))
    # normpath keeps a leading "//" (POSIX allows it); collapse it like any other.
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


def split_host_port(host: str) -> str:
    """Strip a trailing `:port` from an HTTP Host value.

    Bracketed IPv6 literals keep their brackets: `[::1]:9001` -> `[::1]`.
    """
    name, sep, port = host.rpartition(":")
    if not sep or not port.isdigit():
        return host
    if name.startswith("[") and not name.endswith("]"):
        # "[::1" would mean we split inside the literal.
        return host
    return name


def request_path(host: str, path: str) -> str:
    """Return the effective request path: host (sans port) + URL path.

    At most one trailing slash is removed, so `rsc.io/` becomes `rsc.io`.
    """
    return (split_host_port(host) + path).removesuffix("/")
