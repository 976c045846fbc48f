"""Redirect rules: construction from configured patterns and per-request resolution.

A rule maps one import-path prefix to one repository URL. A wildcard rule,
configured as `rsc.io/*` -> `https://github.com/rsc/*`, takes the first path
element after the prefix and substitutes it into both roots:

    rsc.io/x86/x86asm  ->  import root rsc.io/x86
                           repo root   https://github.com/rsc/x86
                           suffix      /x86asm
"""
from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import SplitResult, urlsplit

from pydantic import BaseModel, ConfigDict

from .errors import ConfigurationError, NotFound, UrlParseError
from .paths import join_path

__all__ = [
    "DEFAULT_VCS",
    "WILDCARD",
    "RedirectRule",
    "ResolvedRedirect",
    "RootRedirect",
    "new_redirect",
]

DEFAULT_VCS = "git"
WILDCARD = "/*"


class ResolvedRedirect(BaseModel):
    """Metadata for one matched request; built per request and discarded."""

    model_config = ConfigDict(frozen=True)

    import_root: str
    vcs: str
    vcs_root: str
    suffix: str = ""

    @property
    def docs_path(self) -> str:
        """Path of the documentation page, relative to the docs base."""
        return self.import_root + self.suffix


class RootRedirect(BaseModel):
    """Exact hit on a wildcard rule's prefix: answered with a plain 302."""

    model_config = ConfigDict(frozen=True)

    import_root: str


@dataclass(frozen=True)
class RedirectRule:
    wildcard: bool
    import_prefix: str
    repo_url: SplitResult
    vcs: str

    @property
    def root(self) -> str:
        return self.import_prefix + "/"

    @property
    def repo_root(self) -> str:
        return self.repo_url.geturl()

    def matches(self, req_path: str) -> bool:
        return req_path == self.import_prefix or req_path.startswith(self.root)

    def resolve(self, req_path: str) -> ResolvedRedirect | RootRedirect:
        """Resolve an effective request path (host + path, no trailing slash).

        Raises:
            NotFound: if the path is neither the prefix nor below it.
        """
        if not self.matches(req_path):
            raise NotFound(req_path)

        if not self.wildcard:
            return ResolvedRedirect(
                import_root=self.import_prefix,
                vcs=self.vcs,
                vcs_root=self.repo_root,
                suffix=req_path[len(self.import_prefix):],
            )

        if req_path == self.import_prefix:
            return RootRedirect(import_root=self.import_prefix)

        # Exactly one element is consumed; the remainder passes through.
        elem, sep, rest = req_path[len(self.root):].partition("/")
        suffix = sep + rest
        repo = self.repo_url._replace(path=join_path(self.repo_url.path, elem))
        return ResolvedRedirect(
            import_root=join_path(self.import_prefix, elem),
            vcs=self.vcs,
            vcs_root=repo.geturl(),
            suffix=suffix,
        )


def _parse_repo_url(repo_pattern: str) -> SplitResult:
    try:
        parsed = urlsplit(repo_pattern)
        parsed.port  # noqa: B018  urlsplit only validates the port on access
    except ValueError as e:
        raise UrlParseError(f"parse {repo_pattern!r}: {e}") from e
    return parsed


def new_redirect(import_pattern: str, repo_pattern: str, *, default_vcs: str = DEFAULT_VCS) -> RedirectRule:
    """Build a redirect rule from an import pattern and a repository URL pattern.

    A `<vcs>+<scheme>` repository scheme overrides `default_vcs` for this rule,
    e.g. `hg+https://example.org/*` serves `hg` with an `https` URL.

    Raises:
        ConfigurationError: if the repo pattern is not a full URL, or only one
            of the two patterns ends in `/*`.
        UrlParseError: if the repo pattern cannot be parsed as a URL.
    """
    if "://" not in repo_pattern:
        raise ConfigurationError("repo path must be full URL")

    wildcard = import_pattern.endswith(WILDCARD)
    if wildcard != repo_pattern.endswith(WILDCARD):
        raise ConfigurationError("either both import and repo must have /* or neither")
    if wildcard:
        import_pattern = import_pattern.removesuffix(WILDCARD)
        repo_pattern = repo_pattern.removesuffix(WILDCARD)

    import_pattern = import_pattern.removesuffix("/")
    repo = _parse_repo_url(repo_pattern)

    vcs = default_vcs
    kind, plus, scheme = repo.scheme.partition("+")
    if plus:
        vcs = kind
        repo = repo._replace(scheme=scheme)

    return RedirectRule(
        wildcard=wildcard,
        import_prefix=import_pattern,
        repo_url=repo,
        vcs=vcs,
    )
