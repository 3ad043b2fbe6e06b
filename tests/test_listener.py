import socket
import ssl

import pytest

from sfs import listener
from sfs.listener import (
    ListenerError,
    PlainListener,
    TLSConfig,
    TLSListener,
    bind_socket,
    clamp_tls_version,
    parse_tls_version,
    select_listener,
)


def test_parse_tls_version():
    assert parse_tls_version("") == ssl.TLSVersion.TLSv1
    assert parse_tls_version("tls10") == ssl.TLSVersion.TLSv1
    assert parse_tls_version("TLS11") == ssl.TLSVersion.TLSv1_1
    assert parse_tls_version("tls12") == ssl.TLSVersion.TLSv1_2
    assert parse_tls_version("tls13") == ssl.TLSVersion.TLSv1_3
    with pytest.raises(ValueError):
        parse_tls_version("ssl3")


@pytest.mark.parametrize(
    "value,expected",
    [
        (0x0300, ssl.TLSVersion.TLSv1),
        (ssl.TLSVersion.MINIMUM_SUPPORTED, ssl.TLSVersion.TLSv1),
        (ssl.TLSVersion.TLSv1_2, ssl.TLSVersion.TLSv1_2),
        (0x0305, ssl.TLSVersion.TLSv1_3),
    ],
)
def test_clamp_tls_version(value, expected):
    assert clamp_tls_version(value) == expected


def test_select_listener():
    assert isinstance(select_listener(), PlainListener)

    tls = select_listener("cert.pem", "key.pem", ssl.TLSVersion.TLSv1_2)
    assert isinstance(tls, TLSListener)
    assert (tls.cert, tls.key, tls.min_version) == ("cert.pem", "key.pem", ssl.TLSVersion.TLSv1_2)
    assert select_listener("cert.pem", "key.pem").min_version == ssl.TLSVersion.TLSv1


def test_tls_config_carries_minimum_version():
    config = TLSListener("cert.pem", "key.pem", ssl.TLSVersion.TLSv1_3).make_config(
        object(), "127.0.0.1", 8443, "info"
    )
    assert isinstance(config, TLSConfig)
    assert config.min_tls_version == ssl.TLSVersion.TLSv1_3
    assert config.ssl_certfile == "cert.pem"
    assert config.ssl_keyfile == "key.pem"


def test_bind_failure_is_raised(monkeypatch):
    busy = socket.create_server(("127.0.0.1", 0))
    port = busy.getsockname()[1]

    def unexpected(config):
        raise AssertionError("uvicorn must not start")

    monkeypatch.setattr(listener.uvicorn, "Server", unexpected)
    try:
        with pytest.raises(ListenerError):
            bind_socket("127.0.0.1", port)
        with pytest.raises(ListenerError):
            PlainListener().serve(object(), "127.0.0.1", port)
    finally:
        busy.close()


def test_serve_hands_bound_socket_to_uvicorn(monkeypatch):
    seen = {}

    class FakeServer:
        def __init__(self, config):
            seen["config"] = config

        def run(self, sockets=None):
            seen["sockets"] = sockets
            seen["fileno"] = sockets[0].fileno()

    monkeypatch.setattr(listener.uvicorn, "Server", FakeServer)
    PlainListener().serve(object(), "127.0.0.1", 0)

    assert seen["config"].host == "127.0.0.1"
    assert seen["fileno"] != -1
    # closed once serving returns
    assert seen["sockets"][0].fileno() == -1
