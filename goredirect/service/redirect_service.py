from __future__ import annotations

from collections.abc import Iterable

from ..domain.errors import NotFound
from ..domain.paths import request_path
from ..domain.routes import RouteTable
from ..domain.rules import DEFAULT_VCS, ResolvedRedirect, RootRedirect, new_redirect
from ..logging_conf import get_logger

logger = get_logger("service.redirect")


# ------------------------
# Use-cases
# ------------------------

def build_route_table(
    pairs: Iterable[tuple[str, str]], *, default_vcs: str = DEFAULT_VCS
) -> RouteTable:
    """Build the route table from configured (import, repo) pairs.

    Raises ConfigurationError (or UrlParseError) on the first bad pair.
    """
    rules = []
    for import_pattern, repo_pattern in pairs:
        rule = new_redirect(import_pattern, repo_pattern, default_vcs=default_vcs)
        logger.info(
            "rule.registered",
            extra={
                "event": "rule_registered",
                "root": rule.root,
                "repo": rule.repo_root,
                "vcs": rule.vcs,
                "wildcard": rule.wildcard,
            },
        )
        rules.append(rule)
    return RouteTable(rules)


def resolve_request(table: RouteTable, *, host: str, path: str) -> ResolvedRedirect | RootRedirect:
    """Resolve one request against the table.

    Raises NotFound if no registered import root covers host + path.
    """
    req_path = request_path(host, path)
    rule = table.lookup(req_path)
    if rule is None:
        raise NotFound(req_path)
    result = rule.resolve(req_path)
    logger.debug(
        "request.resolved",
        extra={"event": "request_resolved", "req_path": req_path, "import_root": result.import_root},
    )
    return result
