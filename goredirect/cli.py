from __future__ import annotations

import argparse
import re
import sys

from .config import (
    DEFAULT_DOCS_BASE,
    DEFAULT_GRACE,
    DEFAULT_LISTEN,
    ListenAddress,
    Settings,
    env_default,
)
from .domain.errors import ConfigurationError
from .domain.rules import DEFAULT_VCS

PROG = "go-import-redirector"

EXAMPLES = f"""\
examples:
\t{PROG} rsc.io/* https://github.com/rsc/*
\t{PROG} 9fans.net/go https://github.com/9fans/go
"""

_DURATION_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(value: str) -> float:
    """Parse a duration such as `5s`, `250ms`, `1m30s` or a bare `2.5` into seconds."""
    raw = value.strip()
    sign = -1.0 if raw.startswith("-") else 1.0
    body = raw.lstrip("+-")
    try:
        return sign * float(body)
    except ValueError:
        pass
    pos, total = 0, 0.0
    for m in _DURATION_RE.finditer(body):
        if m.start() != pos:
            break
        total += float(m.group(1)) * _UNIT_SECONDS[m.group(2)]
        pos = m.end()
    if not body or pos != len(body):
        raise argparse.ArgumentTypeError(f"invalid duration {value!r}")
    return sign * total


def _listen_address(value: str) -> ListenAddress:
    try:
        return ListenAddress.parse(value)
    except ConfigurationError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG,
        usage=f"{PROG} [options] <import> <repo> ...",
        description="Serve go-import meta tags and documentation redirects for custom import paths.",
        epilog=EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-listen",
        "--listen",
        metavar="address",
        type=_listen_address,
        default=env_default("REDIRECTOR_LISTEN", DEFAULT_LISTEN),
        help="serve http on address; a unix: prefix selects a unix socket (default %(default)s)",
    )
    parser.add_argument(
        "-vcs",
        "--vcs",
        metavar="system",
        default=env_default("REDIRECTOR_VCS", DEFAULT_VCS),
        help="set default version control system (default %(default)s)",
    )
    parser.add_argument(
        "-grace",
        "--grace",
        metavar="period",
        type=parse_duration,
        default=env_default("REDIRECTOR_GRACE", str(DEFAULT_GRACE)),
        help="grace period for HTTP shutdowns (default %(default)s seconds)",
    )
    parser.add_argument(
        "-docs",
        "--docs",
        metavar="url",
        default=env_default("REDIRECTOR_DOCS_BASE", DEFAULT_DOCS_BASE),
        help="documentation viewer base URL (default %(default)s)",
    )
    parser.add_argument(
        "-log-level",
        "--log-level",
        metavar="level",
        default=env_default("LOG_LEVEL", "INFO"),
        help="log level (default %(default)s)",
    )
    parser.add_argument("paths", nargs="*", metavar="<import> <repo>")
    return parser


def usage_exit(parser: argparse.ArgumentParser, message: str | None = None) -> None:
    """Print usage with examples to stderr and exit with status 2."""
    parser.print_help(sys.stderr)
    if message:
        print(f"\n{PROG}: error: {message}", file=sys.stderr)
    raise SystemExit(2)


def parse_args(argv: list[str]) -> tuple[Settings, list[tuple[str, str]]]:
    """Parse CLI arguments into settings and (import, repo) pairs.

    Exits with status 2 when the pairs are missing or unbalanced.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    narg = len(args.paths)
    if narg < 2 or narg % 2 != 0:
        usage_exit(parser, "expected one or more <import> <repo> pairs")

    # argparse applies `type` to string defaults, so these are already parsed.
    settings = Settings(
        listen=args.listen,
        vcs=args.vcs,
        grace=args.grace,
        docs_base=args.docs.rstrip("/"),
        log_level=args.log_level,
    )
    pairs = [(args.paths[i], args.paths[i + 1]) for i in range(0, narg, 2)]
    return settings, pairs
