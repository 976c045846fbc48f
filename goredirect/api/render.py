"""HTML document served to `go get` and to browsers.

The go-import tag must come before the refresh tag; `go get` reads the first
and browsers follow the second to the documentation viewer.
"""
from __future__ import annotations

from html import escape

from ..domain.errors import RenderError
from ..domain.rules import ResolvedRedirect

__all__ = ["docs_url", "render_page"]

_PAGE = """<!DOCTYPE html>
<html>
<head>
<meta http-equiv="Content-Type" content="text/html; charset=utf-8"/>
<meta name="go-import" content="{import_root} {vcs} {vcs_root}">
<meta http-equiv="refresh" content="0; url={docs_url}">
</head>
<body>
Redirecting to docs at <a href="{docs_url}">{docs_label}</a>...
</body>
</html>
"""


def docs_url(docs_base: str, path: str) -> str:
    """Join the documentation base URL and a package path with a single slash."""
    return docs_base.rstrip("/") + "/" + path.lstrip("/")


def _label(url: str) -> str:
    _, sep, rest = url.partition("://")
    return rest if sep else url


def render_page(resolved: ResolvedRedirect, docs_base: str) -> bytes:
    """Render the metadata page for a resolved redirect as UTF-8 bytes.

    Raises:
        RenderError: if the document cannot be built or encoded.
    """
    target = docs_url(docs_base, resolved.docs_path)
    try:
        page = _PAGE.format(
            import_root=escape(resolved.import_root),
            vcs=escape(resolved.vcs),
            vcs_root=escape(resolved.vcs_root),
            docs_url=escape(target),
            docs_label=escape(_label(target)),
        )
        return page.encode("utf-8")
    except (UnicodeError, ValueError) as e:
        raise RenderError(str(e)) from e
