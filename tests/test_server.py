import socket
import threading
import time
import urllib.error
import urllib.request

import pytest

from cablerelay import server as server_module
from cablerelay.server import (
    HEALTH_MSG,
    HTTPServer,
    Response,
    SSLConfig,
    for_port,
    health_handler,
)


def _free_port() -> int:
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def _wait_for(port: int) -> None:
    deadline = time.monotonic() + 5
    while time.monotonic() < deadline:
        try:
            with socket.create_connection(("127.0.0.1", port), timeout=0.2):
                return
        except OSError:
            time.sleep(0.02)
    raise AssertionError("server did not start")


@pytest.fixture
def running_server():
    port = _free_port()
    srv = HTTPServer("127.0.0.1", port, None, 0)
    srv.setup_handler("/health", health_handler)
    thread = threading.Thread(target=srv.start, daemon=True)
    thread.start()
    _wait_for(port)
    yield srv, port
    srv.shutdown()
    thread.join(timeout=5)


def test_health_handler():
    response = health_handler("GET", {}, b"")
    assert response.status == 200
    assert response.body == HEALTH_MSG


def test_ssl_available():
    config = SSLConfig()
    assert config.available() is False

    config.cert_path = "secret.cert"
    assert config.available() is False

    config.key_path = "secret.key"
    assert config.available() is True


def test_address_plain():
    srv = HTTPServer("localhost", "8080", None, 0)
    assert srv.address() == "http://localhost:8080"
    assert srv.running() is False
    assert srv.stopped() is False


def test_address_ipv6_host():
    srv = HTTPServer("::1", "8080", None, 0)
    assert srv.address() == "http://[::1]:8080"


def test_missing_certificate_raises(tmp_path):
    config = SSLConfig(str(tmp_path / "missing.cert"), str(tmp_path / "missing.key"))
    with pytest.raises(ValueError, match="Failed to load SSL certificate"):
        HTTPServer("localhost", "8443", config, 0)


def test_for_port_reuses_server():
    port = str(_free_port())
    first = for_port(port)
    assert for_port(port) is first
    assert first.address() == f"http://{server_module.HOST}:{port}"


def test_serves_health_endpoint(running_server):
    srv, port = running_server
    with urllib.request.urlopen(f"http://127.0.0.1:{port}/health", timeout=5) as resp:
        assert resp.status == 200
        assert resp.read() == HEALTH_MSG
    assert srv.running() is True


def test_unknown_path_is_404(running_server):
    _srv, port = running_server
    with pytest.raises(urllib.error.HTTPError) as info:
        urllib.request.urlopen(f"http://127.0.0.1:{port}/nope", timeout=5)
    assert info.value.code == 404


def test_handler_receives_method_and_body(running_server):
    srv, port = running_server
    seen = {}

    def handler(method, headers, body):
        seen["method"] = method
        seen["body"] = body
        seen["auth"] = headers.get("authorization")
        return 201

    srv.setup_handler("/_broadcast", handler)
    request = urllib.request.Request(
        f"http://127.0.0.1:{port}/_broadcast",
        data=b'{"stream":"s"}',
        method="POST",
        headers={"Authorization": "Bearer token"},
    )
    with urllib.request.urlopen(request, timeout=5) as resp:
        assert resp.status == 201
    assert seen == {"method": "POST", "body": b'{"stream":"s"}', "auth": "Bearer token"}


def test_handler_may_return_response(running_server):
    srv, port = running_server
    srv.setup_handler("/custom", lambda m, h, b: Response(202, b"ok"))
    with urllib.request.urlopen(f"http://127.0.0.1:{port}/custom", timeout=5) as resp:
        assert resp.status == 202
        assert resp.read() == b"ok"


def test_start_and_announce_when_running_returns(running_server):
    srv, _port = running_server
    srv.start_and_announce("test server")
    assert srv.running() is True


def test_shutdown_is_idempotent(running_server):
    srv, _port = running_server
    srv.shutdown()
    srv.shutdown()
    assert srv.stopped() is True


def test_shutdown_before_start_prevents_serving():
    srv = HTTPServer("127.0.0.1", _free_port(), None, 0)
    srv.shutdown()
    srv.start()
    assert srv.stopped() is True
    assert srv.running() is False