# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Plain HTTP or TLS listening with uvicorn.

The socket is bound here, before uvicorn starts, so that bind failures reach
the caller as :class:`ListenerError` instead of ending the process from
inside the server. Handshake errors only close the offending connection.
"""

from __future__ import annotations

import logging
import socket
import ssl
from dataclasses import dataclass
from typing import Any, Optional

import uvicorn

logger = logging.getLogger(__name__)

MIN_TLS_VERSION = ssl.TLSVersion.TLSv1
MAX_TLS_VERSION = ssl.TLSVersion.TLSv1_3

TLS_VERSIONS = {
    "tls10": ssl.TLSVersion.TLSv1,
    "tls11": ssl.TLSVersion.TLSv1_1,
    "tls12": ssl.TLSVersion.TLSv1_2,
    "tls13": ssl.TLSVersion.TLSv1_3,
}


class ListenerError(RuntimeError):
    pass


def parse_tls_version(value: str) -> ssl.TLSVersion:
    """Map ``tls10``..``tls13`` (case-insensitive); empty means the floor."""
    if not value:
        return MIN_TLS_VERSION
    try:
        return TLS_VERSIONS[value.strip().lower()]
    except KeyError:
        raise ValueError(f"unknown value for TLS_MIN_VERS: {value}") from None


def clamp_tls_version(version: int) -> ssl.TLSVersion:
    v = int(version)
    if v < MIN_TLS_VERSION:
        return MIN_TLS_VERSION
    if v > MAX_TLS_VERSION:
        return MAX_TLS_VERSION
    return ssl.TLSVersion(v)


def bind_socket(host: str, port: int) -> socket.socket:
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    try:
        return socket.create_server((host, port), family=family)
    except OSError as exc:
        raise ListenerError(f"cannot listen on '{host}:{port}': {exc}") from exc


class TLSConfig(uvicorn.Config):
    """uvicorn config whose SSL context enforces a minimum protocol version."""

    def __init__(self, *args: Any, min_tls_version: ssl.TLSVersion = MIN_TLS_VERSION, **kwargs: Any) -> None:
        self.min_tls_version = clamp_tls_version(min_tls_version)
        super().__init__(*args, **kwargs)

    def load(self) -> None:
        super().load()
        if self.ssl is not None:
            self.ssl.minimum_version = self.min_tls_version


class Listener:
    scheme = "http"

    def make_config(self, app: Any, host: str, port: int, log_level: str) -> uvicorn.Config:
        return uvicorn.Config(app, host=host, port=port, log_level=log_level)

    def serve(self, app: Any, host: str, port: int, *, log_level: str = "info") -> None:
        """Block serving ``app`` until the process is stopped."""
        sock = bind_socket(host, port)
        config = self.make_config(app, host, port, log_level)
        logger.info("Serving on %s://%s:%d", self.scheme, host or "0.0.0.0", port)
        try:
            uvicorn.Server(config).run(sockets=[sock])
        finally:
            sock.close()


class PlainListener(Listener):
    pass


@dataclass(frozen=True)
class TLSListener(Listener):
    cert: str
    key: str
    min_version: ssl.TLSVersion = MIN_TLS_VERSION

    scheme = "https"

    def make_config(self, app: Any, host: str, port: int, log_level: str) -> uvicorn.Config:
        return TLSConfig(
            app,
            host=host,
            port=port,
            log_level=log_level,
            ssl_certfile=self.cert,
            ssl_keyfile=self.key,
            min_tls_version=self.min_version,
        )


def select_listener(
    tls_cert: str = "",
    tls_key: str = "",
    min_version: Optional[ssl.TLSVersion] = None,
) -> Listener:
    if tls_cert:
        return TLSListener(tls_cert, tls_key, clamp_tls_version(min_version or MIN_TLS_VERSION))
    return PlainListener()
