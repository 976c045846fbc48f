"""Runtime settings.

Settings are built once at startup (command line first, then environment,
then defaults) and passed explicitly to the app factory and the lifecycle
controller. Nothing reads them from a global afterwards.
"""
from __future__ import annotations

import os

from pydantic import BaseModel, ConfigDict, Field

from .domain.errors import ConfigurationError
from .domain.rules import DEFAULT_VCS

__all__ = [
    "UNIX_PREFIX",
    "DEFAULT_LISTEN",
    "DEFAULT_GRACE",
    "DEFAULT_DOCS_BASE",
    "ListenAddress",
    "Settings",
    "env_default",
]

UNIX_PREFIX = "unix:"
DEFAULT_LISTEN = ":9001"
DEFAULT_GRACE = 5.0
DEFAULT_DOCS_BASE = "https://godoc.org"


def env_default(name: str, fallback: str) -> str:
    """Return the environment override for a setting, or the fallback."""
    return os.getenv(name, fallback)


class ListenAddress(BaseModel):
    """Where to accept connections: a TCP host/port or a unix-domain socket path."""

    model_config = ConfigDict(frozen=True)

    host: str = ""
    port: int = 0
    path: str | None = None

    @property
    def is_unix(self) -> bool:
        return self.path is not None

    @classmethod
    def parse(cls, value: str) -> ListenAddress:
        """Parse `host:port`, `:port`, `[v6]:port` or `unix:/path/to.sock`."""
        if value.startswith(UNIX_PREFIX):
            path = value[len(UNIX_PREFIX):]
            if not path:
                raise ConfigurationError("unix listen address needs a socket path")
            return cls(path=path)

        host, sep, port = value.rpartition(":")
        if not sep:
            raise ConfigurationError(f"listen address {value!r}: missing port")
        if host.startswith("[") and host.endswith("]"):
            host = host[1:-1]
        try:
            num = int(port, 10)
        except ValueError as e:
            raise ConfigurationError(f"listen address {value!r}: invalid port") from e
        if not 0 <= num <= 65535:
            raise ConfigurationError(f"listen address {value!r}: port out of range")
        return cls(host=host, port=num)

    def __str__(self) -> str:
        if self.path is not None:
            return UNIX_PREFIX + self.path
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{host}:{self.port}"


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    listen: ListenAddress = Field(default_factory=lambda: ListenAddress.parse(DEFAULT_LISTEN))
    vcs: str = DEFAULT_VCS
    grace: float = DEFAULT_GRACE  # seconds; <= 0 means close immediately
    docs_base: str = DEFAULT_DOCS_BASE
    log_level: str = "INFO"
