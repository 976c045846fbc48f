"""Tests for listener binding and bounded graceful shutdown.

The serving tests run the real uvicorn server on a background thread and use
the `stop` event as the shutdown trigger, the same path a signal takes.
"""
from __future__ import annotations

import asyncio
import logging
import os
import signal
import socket
import subprocess
import sys
import threading
import time
from pathlib import Path

import httpx
import pytest
import uvicorn

from goredirect.config import ListenAddress, Settings
from goredirect.domain.errors import ListenError
from goredirect.lifecycle import RedirectorServer, bind_listener, serve
from goredirect.main import create_app
from goredirect.service.redirect_service import build_route_table

from .slow_redirector import make_slow_app

# --- Helpers ---


def slow_app(started: threading.Event, delay: float):
    return make_slow_app(started.set, delay)


class ServerThread(threading.Thread):
    def __init__(self, app, settings: Settings, listener: socket.socket | None = None) -> None:
        super().__init__(daemon=True)
        self.app = app
        self.settings = settings
        self.listener = listener
        self.ready = threading.Event()
        self.error: BaseException | None = None

    def run(self) -> None:
        try:
            asyncio.run(self._main())
        except BaseException as e:  # surfaced to the test via .error
            self.error = e

    async def _main(self) -> None:
        self.loop = asyncio.get_running_loop()
        self.stop = asyncio.Event()
        self.ready.set()
        await serve(self.app, self.settings, listener=self.listener, stop=self.stop)

    def request_stop(self) -> None:
        self.loop.call_soon_threadsafe(self.stop.set)


def send_request(port: int, path: str = "/slow") -> socket.socket:
    client = socket.create_connection(("127.0.0.1", port), timeout=10)
    client.sendall(f"GET {path} HTTP/1.1\r\nHost: example.com\r\n\r\n".encode("ascii"))
    return client


def read_all(client: socket.socket) -> bytes:
    chunks = []
    while True:
        try:
            chunk = client.recv(4096)
        except (ConnectionResetError, TimeoutError):
            break
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks)


def local_listener() -> socket.socket:
    return bind_listener(ListenAddress(host="127.0.0.1", port=0))


# --- bind_listener ---


class TestBindListener:
    def test_tcp_ephemeral_port(self) -> None:
        sock = local_listener()
        try:
            assert sock.getsockname()[1] > 0
        finally:
            sock.close()

    def test_address_in_use(self) -> None:
        first = local_listener()
        try:
            port = first.getsockname()[1]
            with pytest.raises(ListenError, match="listen 127.0.0.1"):
                bind_listener(ListenAddress(host="127.0.0.1", port=port))
        finally:
            first.close()

    def test_unix_socket(self, tmp_path: Path) -> None:
        path = tmp_path / "r.sock"
        sock = bind_listener(ListenAddress.parse(f"unix:{path}"))
        try:
            assert path.exists()
            with pytest.raises(ListenError):
                bind_listener(ListenAddress.parse(f"unix:{path}"))
        finally:
            sock.close()


# --- RedirectorServer ---


class TestRequestShutdown:
    def _server(self, grace: float) -> RedirectorServer:
        return RedirectorServer(uvicorn.Config(slow_app(threading.Event(), 0), log_config=None), grace_period=grace)

    def test_positive_grace_drains(self) -> None:
        server = self._server(5.0)
        server.request_shutdown()
        assert server.should_exit is True
        assert server.force_exit is False

    @pytest.mark.parametrize("grace", [0.0, -1.0])
    def test_non_positive_grace_keeps_lifespan_shutdown(self, grace: float) -> None:
        server = self._server(grace)
        server.request_shutdown()
        assert server.should_exit is True
        # force_exit would make uvicorn skip the lifespan shutdown.
        assert server.force_exit is False

    def test_repeated_signal_has_no_extra_effect(self) -> None:
        server = self._server(5.0)
        server.handle_exit(signal.SIGINT, None)
        server.handle_exit(signal.SIGINT, None)
        server.handle_exit(signal.SIGTERM, None)
        assert server.should_exit is True
        assert server.force_exit is False


# --- serve ---


class TestServe:
    def test_grace_zero_does_not_wait_for_inflight_request(self) -> None:
        started = threading.Event()
        listener = local_listener()
        port = listener.getsockname()[1]
        thread = ServerThread(slow_app(started, delay=30), Settings(grace=0), listener)
        thread.start()
        assert thread.ready.wait(5)

        client = send_request(port)
        try:
            assert started.wait(5)
            t0 = time.monotonic()
            thread.request_stop()
            thread.join(timeout=5)
            assert not thread.is_alive()
            assert time.monotonic() - t0 < 3
            assert thread.error is None
            assert b"done" not in read_all(client)
        finally:
            client.close()

    def test_grace_period_lets_inflight_request_finish(self) -> None:
        started = threading.Event()
        listener = local_listener()
        port = listener.getsockname()[1]
        thread = ServerThread(slow_app(started, delay=0.5), Settings(grace=5), listener)
        thread.start()
        assert thread.ready.wait(5)

        client = send_request(port)
        try:
            assert started.wait(5)
            thread.request_stop()
            body = read_all(client)
            thread.join(timeout=10)
            assert not thread.is_alive()
            assert thread.error is None
            assert body.startswith(b"HTTP/1.1 200")
            assert body.endswith(b"done")
        finally:
            client.close()

    def test_unix_socket_serves_and_is_removed(self, tmp_path: Path) -> None:
        path = tmp_path / "redirector.sock"
        settings = Settings(listen=ListenAddress.parse(f"unix:{path}"), grace=1)
        app = create_app(build_route_table([("rsc.io/*", "https://github.com/rsc/*")]), settings)
        thread = ServerThread(app, settings)
        thread.start()
        assert thread.ready.wait(5)

        deadline = time.monotonic() + 5
        while not path.exists() and time.monotonic() < deadline:
            time.sleep(0.02)

        with httpx.Client(transport=httpx.HTTPTransport(uds=str(path)), timeout=5) as client:
            r = client.get("http://rsc.io/x86/x86asm")
        assert r.status_code == 200
        assert '<meta name="go-import" content="rsc.io/x86 git https://github.com/rsc/x86">' in r.text

        thread.request_stop()
        thread.join(timeout=5)
        assert not thread.is_alive()
        assert thread.error is None
        assert not path.exists()

    def test_listen_error_propagates(self) -> None:
        first = local_listener()
        try:
            port = first.getsockname()[1]
            settings = Settings(listen=ListenAddress(host="127.0.0.1", port=port))
            with pytest.raises(ListenError):
                asyncio.run(serve(slow_app(threading.Event(), 0), settings))
        finally:
            first.close()

    def test_grace_zero_stop_logs_no_errors(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.INFO)
        listener = local_listener()
        port = listener.getsockname()[1]
        app = create_app(build_route_table([("rsc.io/*", "https://github.com/rsc/*")]), Settings(grace=0))
        thread = ServerThread(app, Settings(grace=0), listener)
        thread.start()
        assert thread.ready.wait(5)

        r = httpx.get(f"http://127.0.0.1:{port}/x86", headers={"Host": "rsc.io"}, timeout=5)
        assert r.status_code == 200

        thread.request_stop()
        thread.join(timeout=5)
        assert not thread.is_alive()
        assert thread.error is None
        assert [rec for rec in caplog.records if rec.levelno >= logging.ERROR] == []
        # lifespan shutdown still ran
        assert any(rec.getMessage() == "Application shutdown complete." for rec in caplog.records)


# --- signal-driven stop of the real entrypoint ---


def free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def wait_for_port(port: int, timeout: float = 10.0) -> None:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        try:
            socket.create_connection(("127.0.0.1", port), timeout=0.5).close()
            return
        except OSError:
            time.sleep(0.05)
    raise AssertionError(f"nothing listening on port {port}")


@pytest.mark.skipif(sys.platform == "win32", reason="needs SIGTERM")
class TestSignalStop:
    def test_sigterm_with_grace_zero_exits_0_without_draining(self, tmp_path: Path) -> None:
        root = Path(__file__).resolve().parents[2]
        started = tmp_path / "started"
        port = free_port()
        env = {
            **os.environ,
            "SLOW_APP_STARTED": str(started),
            "PYTHONPATH": os.pathsep.join(filter(None, [str(root), os.environ.get("PYTHONPATH")])),
        }
        proc = subprocess.Popen(
            [
                sys.executable, "-m", "tests.unit.slow_redirector",
                "-grace", "0",
                "-listen", f"127.0.0.1:{port}",
                "rsc.io/*", "https://github.com/rsc/*",
                "9fans.net/go", "https://github.com/9fans/go",
            ],
            cwd=root,
            env=env,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
        try:
            wait_for_port(port)
            client = send_request(port)
            try:
                deadline = time.monotonic() + 5
                while not started.exists() and time.monotonic() < deadline:
                    time.sleep(0.02)
                assert started.exists()

                t0 = time.monotonic()
                proc.send_signal(signal.SIGTERM)
                assert proc.wait(timeout=5) == 0
                assert time.monotonic() - t0 < 3
                assert b"done" not in read_all(client)
            finally:
                client.close()
        finally:
            if proc.poll() is None:
                proc.kill()
                proc.wait()
