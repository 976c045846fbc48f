#!/usr/bin/env python3
"""Smoke runner: ask a live redirector about a few import paths.

Steps:
- probe every import path concurrently (tolerates per-path failures)
- log one summary event with the resolved go-import triples
- exit 0 only if every path resolved
"""
from __future__ import annotations

import asyncio
import sys

from goredirect.logging_conf import get_logger, setup_logging
from runner.cli import parse_args
from runner.client import probe_all
from runner.utils import summarize

setup_logging()
logger = get_logger("runner")


async def run_smoke(*, base_url: str, import_paths: list[str], timeout_s: float = 10.0) -> int:
    results = await probe_all(base_url, import_paths, timeout_s=timeout_s)
    summary, exit_code = summarize(import_paths, results)
    logger.info("runner.summary", extra=summary)
    return exit_code


def main(argv: list[str] | None = None) -> None:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    code = asyncio.run(
        run_smoke(base_url=args.base_url, import_paths=args.import_paths, timeout_s=args.timeout)
    )
    raise SystemExit(code)


if __name__ == "__main__":
    main()
