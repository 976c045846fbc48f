from __future__ import annotations

from collections.abc import Iterable

from .errors import ConfigurationError
from .rules import RedirectRule

__all__ = ["RouteTable"]


class RouteTable:
    """Ordered, read-only set of redirect rules.

    Lookup is longest-prefix-wins: with rules for `a` and `a/b`, a request for
    `a/b/c` goes to `a/b` and `a/c` goes to `a`. Two rules with the same
    import prefix are a configuration error.
    """

    def __init__(self, rules: Iterable[RedirectRule]) -> None:
        seen: set[str] = set()
        ordered: list[RedirectRule] = []
        for rule in rules:
            if rule.import_prefix in seen:
                raise ConfigurationError(f"multiple registrations for {rule.root}")
            seen.add(rule.import_prefix)
            ordered.append(rule)
        self._rules = tuple(ordered)

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self):
        return iter(self._rules)

    def roots(self) -> list[str]:
        return [r.root for r in self._rules]

    def lookup(self, req_path: str) -> RedirectRule | None:
        best: RedirectRule | None = None
        for rule in self._rules:
            if not rule.matches(req_path):
                continue
            if best is None or len(rule.import_prefix) > len(best.import_prefix):
                best = rule
        return best
