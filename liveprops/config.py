"""Connection settings for a liveprops client."""

from __future__ import annotations

import ipaddress
import os
from dataclasses import dataclass, fields
from typing import Mapping, Optional

from .codecs import Codecs

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 9001
DEFAULT_TIMEOUT_SEC = 5.0
ENV_PREFIX = "LIVEPROPS_"


@dataclass(kw_only=True)
class ClientConfig:
    """Endpoint of the host plus client-side knobs."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    bind_host: str = "0.0.0.0"
    bind_port: int = 0
    timeout: float = DEFAULT_TIMEOUT_SEC
    codec: str = "json"

    def __post_init__(self) -> None:
        self._validate_network()
        if self.timeout <= 0:
            raise ValueError("timeout must be positive.")
        if self.codec not in Codecs.names():
            raise ValueError(f"codec must be one of {Codecs.names()}, got {self.codec!r}.")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "ClientConfig":
        """Build a config from LIVEPROPS_* variables; explicit overrides win."""
        env = os.environ if environ is None else environ
        values: dict = {}
        for f in fields(cls):
            raw = env.get(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            if f.name in ("port", "bind_port"):
                values[f.name] = int(raw)
            elif f.name == "timeout":
                values[f.name] = float(raw)
            else:
                values[f.name] = raw
        values.update(overrides)
        return cls(**values)

    def _validate_network(self) -> None:
        for label, port in (("port", self.port), ("bind_port", self.bind_port)):
            if not 0 <= port <= 65535:
                raise ValueError(f"{label} must be within [0, 65535], got {port}.")
        if self.port == 0:
            raise ValueError("port must be non-zero.")
        for label, host in (("host", self.host), ("bind_host", self.bind_host)):
            if not host:
                raise ValueError(f"{label} must not be empty.")
            try:
                ipaddress.ip_address(host)
            except ValueError:
                # Hostnames are accepted; only reject obviously malformed ones.
                if any(ch.isspace() for ch in host):
                    raise ValueError(f"{label} {host!r} is not a valid address.") from None
