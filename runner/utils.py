from __future__ import annotations

from html.parser import HTMLParser

from runner.types import GoImport, MetaNotFoundError


class _MetaCollector(HTMLParser):
    def __init__(self) -> None:
        super().__init__()
        self.go_import: str | None = None
        self.refresh: str | None = None

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag != "meta":
            return
        a = dict(attrs)
        if a.get("name") == "go-import" and self.go_import is None:
            self.go_import = a.get("content")
        elif (a.get("http-equiv") or "").lower() == "refresh" and self.refresh is None:
            self.refresh = a.get("content")


def split_import_path(import_path: str) -> tuple[str, str]:
    """Split `rsc.io/x86/x86asm` into host `rsc.io` and path `/x86/x86asm`."""
    host, sep, rest = import_path.strip("/").partition("/")
    return host, sep + rest


def parse_go_import(import_path: str, html: str) -> GoImport:
    """Read the go-import and refresh meta tags from a redirector page.

    Raises MetaNotFoundError if there is no well-formed go-import tag.
    """
    collector = _MetaCollector()
    collector.feed(html)
    collector.close()

    fields = (collector.go_import or "").split()
    if len(fields) != 3:
        raise MetaNotFoundError(f"no go-import meta tag for {import_path}")

    docs_url = None
    if collector.refresh:
        _, sep, url = collector.refresh.partition("url=")
        docs_url = url.strip() if sep else None

    import_root, vcs, repo_root = fields
    return GoImport(
        import_path=import_path,
        import_root=import_root,
        vcs=vcs,
        repo_root=repo_root,
        docs_url=docs_url,
    )


def summarize(import_paths: list[str], results: list[GoImport | BaseException]) -> tuple[dict, int]:
    """Compute a summary dict and an exit code from probe results."""
    resolved: list[dict] = []
    failures: list[dict] = []
    for path, res in zip(import_paths, results):
        if isinstance(res, BaseException):
            failures.append({"import_path": path, "error": str(res), "error_type": type(res).__name__})
            continue
        resolved.append(
            {
                "import_path": path,
                "import_root": res.import_root,
                "vcs": res.vcs,
                "repo_root": res.repo_root,
                "docs_url": res.docs_url,
            }
        )
    summary = {
        "component": "runner",
        "event": "summary",
        "probed": len(import_paths),
        "resolved_count": len(resolved),
        "failed_count": len(failures),
        "resolved": resolved,
        "failures": failures,
    }
    exit_code = 0 if import_paths and not failures else 1
    return summary, exit_code
