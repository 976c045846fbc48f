"""Listener setup, serving and bounded graceful shutdown.

Shutdown has one trigger, `RedirectorServer.request_shutdown()`. SIGINT and
SIGTERM call it through uvicorn's signal capture; callers embedding the server
can pass an `asyncio.Event` to `serve()` instead. With a positive grace period
in-flight requests get that long to finish before their tasks are cancelled;
with zero or less, open connections are closed and their request tasks
cancelled at once.
"""
from __future__ import annotations

import asyncio
import os
import signal
import socket
from types import FrameType

import uvicorn

from .config import UNIX_PREFIX, ListenAddress, Settings
from .domain.errors import ListenError, ServeError, ShutdownError
from .logging_conf import get_logger

__all__ = ["RedirectorServer", "bind_listener", "serve"]

logger = get_logger("lifecycle")

DEFAULT_BACKLOG = 2048


def bind_listener(address: ListenAddress, *, backlog: int = DEFAULT_BACKLOG) -> socket.socket:
    """Bind and listen on a TCP address or a unix-domain socket path.

    Raises:
        ListenError: if the socket cannot be bound (address in use, permissions).
    """
    if address.is_unix:
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        target: str | tuple[str, int] = address.path  # type: ignore[assignment]
    else:
        family = socket.AF_INET6 if ":" in address.host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        target = (address.host, address.port)
    try:
        if not address.is_unix:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind(target)
        sock.listen(backlog)
    except OSError as e:
        sock.close()
        raise ListenError(f"listen {address}: {e}") from e
    return sock


class RedirectorServer(uvicorn.Server):
    """uvicorn server with a single, idempotent shutdown request."""

    def __init__(self, config: uvicorn.Config, *, grace_period: float) -> None:
        super().__init__(config)
        self.grace_period = grace_period

    def request_shutdown(self) -> None:
        if self.should_exit:
            return
        logger.info(
            "shutdown.begin",
            extra={"event": "shutdown_begin", "grace_s": self.grace_period},
        )
        self.should_exit = True

    def handle_exit(self, sig: int, frame: FrameType | None) -> None:
        # A repeated signal has no extra effect, and the signal is not
        # re-raised once the server has stopped.
        if not self.should_exit:
            logger.info(
                "signal.received",
                extra={"event": "signal_received", "signal": signal.Signals(sig).name},
            )
        self.request_shutdown()

    def _force_close(self) -> None:
        # Drop open connections and cancel request tasks; force_exit stays
        # unset so uvicorn still runs the lifespan shutdown.
        for conn in list(self.server_state.connections):
            conn.transport.close()
        for task in list(self.server_state.tasks):
            task.cancel()

    async def shutdown(self, sockets: list[socket.socket] | None = None) -> None:
        try:
            if self.grace_period <= 0:
                self._force_close()
            await super().shutdown(sockets=sockets)
        except Exception as e:
            logger.exception("shutdown.error", extra={"event": "shutdown_error"})
            raise ShutdownError(str(e)) from e


async def _watch_stop(stop: asyncio.Event, server: RedirectorServer) -> None:
    await stop.wait()
    server.request_shutdown()


async def serve(
    app,
    settings: Settings,
    *,
    listener: socket.socket | None = None,
    stop: asyncio.Event | None = None,
) -> None:
    """Serve `app` until shutdown is requested.

    Binds `settings.listen` unless an already listening socket is given. A set
    `stop` event requests shutdown just like SIGINT/SIGTERM.

    Raises:
        ListenError: if binding fails.
        ServeError: if the server fails before or while serving.
        ShutdownError: if the drain/close phase fails.
    """
    owns_socket = listener is None
    sock = bind_listener(settings.listen) if listener is None else listener

    if sock.family == socket.AF_UNIX:
        where: dict = {"uds": sock.getsockname()}
        address = UNIX_PREFIX + sock.getsockname()
    else:
        host, port = sock.getsockname()[:2]
        where = {"host": host, "port": port}
        address = f"{host}:{port}"

    # host/port/uds only feed uvicorn's startup message; it serves `sock`.
    config = uvicorn.Config(
        app,
        **where,
        lifespan="on",
        log_config=None,
        timeout_graceful_shutdown=settings.grace if settings.grace > 0 else None,
    )
    server = RedirectorServer(config, grace_period=settings.grace)
    watcher = asyncio.create_task(_watch_stop(stop, server)) if stop is not None else None

    logger.info(
        "server.listening",
        extra={"event": "server_listening", "address": address},
    )
    try:
        await server.serve(sockets=[sock])
    except ShutdownError:
        raise
    except Exception as e:
        raise ServeError(str(e)) from e
    finally:
        if watcher is not None:
            watcher.cancel()
        sock.close()
        if owns_socket and settings.listen.is_unix:
            try:
                os.unlink(settings.listen.path)
            except FileNotFoundError:
                pass

    if not server.started:
        raise ServeError("server failed to start")
    logger.info("server.stopped", extra={"event": "server_stopped"})
