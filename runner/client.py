from __future__ import annotations

import httpx

from goredirect.logging_conf import get_logger
from runner.types import GoImport, ProbeError
from runner.utils import parse_go_import, split_import_path

logger = get_logger("runner.client")


async def probe(
    client: httpx.AsyncClient, import_path: str, *, retries: int = 3
) -> GoImport:
    """Fetch one import path the way `go get` does and parse the answer.

    - Sends `?go-get=1` with the Host header set to the import path's host
    - Retries transport errors and 5xx responses up to `retries` times
    - A 4xx answer is final: the redirector does not serve that path
    """
    host, path = split_import_path(import_path)
    last_err: Exception | None = None
    for attempt in range(retries):
        try:
            r = await client.get(path or "/", params={"go-get": "1"}, headers={"Host": host})
        except httpx.TransportError as e:
            last_err = e
        else:
            if r.status_code < 500:
                if r.status_code != 200:
                    raise ProbeError(f"{import_path}: HTTP {r.status_code}")
                found = parse_go_import(import_path, r.text)
                logger.info(
                    "probe.ok",
                    extra={
                        "event": "probe_ok",
                        "import_path": import_path,
                        "import_root": found.import_root,
                        "attempt": attempt + 1,
                    },
                )
                return found
            last_err = ProbeError(f"{import_path}: HTTP {r.status_code}")
        logger.warning(
            "probe.retry",
            extra={
                "event": "probe_retry",
                "import_path": import_path,
                "attempt": attempt + 1,
                "error": str(last_err),
            },
        )
    raise ProbeError(f"probe failed for {import_path}: {last_err}")


async def probe_all(
    base_url: str, import_paths: list[str], *, timeout_s: float = 10.0, transport: httpx.AsyncBaseTransport | None = None
) -> list[GoImport | BaseException]:
    """Probe import paths concurrently; failures are returned, not raised."""
    import asyncio

    async with httpx.AsyncClient(base_url=base_url, timeout=timeout_s, transport=transport) as client:
        tasks = [probe(client, p) for p in import_paths]
        return await asyncio.gather(*tasks, return_exceptions=True)
