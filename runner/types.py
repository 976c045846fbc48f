from __future__ import annotations

from dataclasses import dataclass


@dataclass
class GoImport:
    """A go-import declaration read back from a redirector response."""

    import_path: str
    import_root: str
    vcs: str
    repo_root: str
    docs_url: str | None = None


class SmokeError(RuntimeError):
    """Raised when the smoke flow cannot proceed."""


class ProbeError(SmokeError):
    """Raised when fetching an import path fails after retries."""


class MetaNotFoundError(SmokeError):
    """Raised when a response carries no go-import meta tag."""
