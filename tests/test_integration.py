"""Socket-level integration tests for the Client Hints server."""

import json
import socket
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from client_hints import ACCEPT_CH, CRITICAL_CH, PERMISSIONS_POLICY
from config import MAX_BODY_BYTES
from server import ClientHintsServer


def _start_server(public_dir: Path) -> tuple[ClientHintsServer, threading.Thread]:
    server = ClientHintsServer(host="127.0.0.1", port=0, public_dir=str(public_dir))
    thread = threading.Thread(target=server.start, daemon=True)
    thread.start()

    deadline = time.time() + 3
    while server.port == 0 and time.time() < deadline:
        time.sleep(0.01)

    if server.port == 0:
        raise RuntimeError("Server did not bind to a port")

    return server, thread


def _stop_server(server: ClientHintsServer, thread: threading.Thread) -> None:
    server.stop()
    thread.join(timeout=3.0)


def _send_raw(host: str, port: int, payload: bytes) -> bytes:
    with socket.create_connection((host, port), timeout=2.0) as client:
        client.sendall(payload)
        chunks = []
        while True:
            chunk = client.recv(8192)
            if not chunk:
                break
            chunks.append(chunk)
        return b"".join(chunks)


def _split(raw: bytes) -> tuple[int, dict[str, str], bytes]:
    head, body = raw.split(b"\r\n\r\n", 1)
    lines = head.decode("iso-8859-1").split("\r\n")
    status_code = int(lines[0].split(" ")[1])
    headers = {}
    for line in lines[1:]:
        name, value = line.split(":", 1)
        headers[name.strip().lower()] = value.strip()
    return status_code, headers, body


def _get(target: str, extra_headers: str = "") -> bytes:
    return (
        f"GET {target} HTTP/1.1\r\n"
        "Host: localhost\r\n"
        "Connection: close\r\n"
        f"{extra_headers}"
        "\r\n"
    ).encode("iso-8859-1")


@pytest.fixture()
def running_server(tmp_path: Path):
    public_dir = tmp_path / "public"
    public_dir.mkdir()
    (public_dir / "index.html").write_bytes(b"<!DOCTYPE html><title>hints</title>\n")
    (tmp_path / "server.py").write_text("SECRET = 1\n")

    server, thread = _start_server(public_dir)
    yield server, public_dir
    _stop_server(server, thread)


def test_api_returns_json_with_negotiation_headers(running_server) -> None:
    server, _public_dir = running_server

    raw = _send_raw(
        server.host,
        server.port,
        _get(
            "/api/client-hints",
            'Sec-CH-UA-Platform: "Windows"\r\nSec-CH-UA-Mobile: ?0\r\n',
        ),
    )
    status_code, headers, body = _split(raw)

    assert status_code == 200
    assert headers["content-type"] == "application/json"
    assert headers["accept-ch"] == ACCEPT_CH
    assert headers["permissions-policy"] == PERMISSIONS_POLICY
    assert headers["critical-ch"] == CRITICAL_CH
    payload = json.loads(body)
    assert payload["clientHints"]["platform"] == "Windows"
    assert payload["detectedOS"] == "Windows"
    assert payload["isMobile"] is False


def test_api_accepts_any_method(running_server) -> None:
    server, _public_dir = running_server

    raw = _send_raw(
        server.host,
        server.port,
        b"POST /api/client-hints HTTP/1.1\r\nHost: localhost\r\nConnection: close\r\n"
        b"Content-Length: 0\r\n\r\n",
    )

    assert raw.startswith(b"HTTP/1.1 200 OK")


def test_api_path_with_query_string_reaches_api(running_server) -> None:
    server, _public_dir = running_server

    status_code, headers, body = _split(
        _send_raw(server.host, server.port, _get("/api/client-hints?x=1"))
    )

    assert status_code == 200
    assert headers["content-type"] == "application/json"
    assert headers["critical-ch"] == CRITICAL_CH
    assert json.loads(body)["success"] is True


def test_api_path_with_extra_segment_is_a_static_404(running_server) -> None:
    server, _public_dir = running_server

    status_code, headers, body = _split(
        _send_raw(server.host, server.port, _get("/api/client-hints/extra"))
    )

    assert status_code == 404
    assert headers["content-type"] == "text/html"
    assert "critical-ch" not in headers
    assert b"/api/client-hints/extra" in body


def test_double_slash_url_serves_nested_file(running_server) -> None:
    server, public_dir = running_server
    (public_dir / "assets").mkdir()
    (public_dir / "assets" / "a.css").write_bytes(b"h1 { color: red; }\n")

    status_code, headers, body = _split(
        _send_raw(server.host, server.port, _get("//assets/a.css"))
    )

    assert status_code == 200
    assert headers["content-type"] == "text/css"
    assert body == b"h1 { color: red; }\n"


def test_root_serves_index_bytes(running_server) -> None:
    server, public_dir = running_server

    status_code, headers, body = _split(_send_raw(server.host, server.port, _get("/")))

    assert status_code == 200
    assert headers["content-type"] == "text/html"
    assert headers["accept-ch"] == ACCEPT_CH
    assert "critical-ch" not in headers
    assert body == (public_dir / "index.html").read_bytes()


def test_missing_file_returns_404_with_path(running_server) -> None:
    server, _public_dir = running_server

    status_code, _headers, body = _split(
        _send_raw(server.host, server.port, _get("/does-not-exist.xyz"))
    )

    assert status_code == 404
    assert b"/does-not-exist.xyz" in body


def test_traversal_returns_403(running_server) -> None:
    server, _public_dir = running_server

    status_code, _headers, body = _split(
        _send_raw(server.host, server.port, _get("/../server.py"))
    )

    assert status_code == 403
    assert b"SECRET" not in body


def test_head_request_omits_body(running_server) -> None:
    server, public_dir = running_server

    raw = _send_raw(
        server.host,
        server.port,
        b"HEAD / HTTP/1.1\r\nHost: localhost\r\nConnection: close\r\n\r\n",
    )
    status_code, headers, body = _split(raw)

    assert status_code == 200
    assert headers["content-length"] == str(len((public_dir / "index.html").read_bytes()))
    assert body == b""


def test_keep_alive_serves_multiple_requests(running_server) -> None:
    server, _public_dir = running_server

    payload = (
        b"GET /api/client-hints HTTP/1.1\r\nHost: localhost\r\n\r\n"
        b"GET /api/client-hints HTTP/1.1\r\nHost: localhost\r\nConnection: close\r\n\r\n"
    )
    raw = _send_raw(server.host, server.port, payload)

    assert raw.count(b"HTTP/1.1 200 OK") == 2
    assert b"Connection: keep-alive" in raw


def test_concurrent_requests(running_server) -> None:
    server, _public_dir = running_server

    with ThreadPoolExecutor(max_workers=20) as executor:
        futures = [
            executor.submit(_send_raw, server.host, server.port, _get("/api/client-hints"))
            for _ in range(20)
        ]
        responses = [future.result() for future in futures]

    assert len(responses) == 20
    assert all(response.startswith(b"HTTP/1.1 200 OK") for response in responses)


def test_malformed_request_returns_400(running_server) -> None:
    server, _public_dir = running_server

    response = _send_raw(server.host, server.port, b"BROKEN\r\n\r\n")

    assert response.startswith(b"HTTP/1.1 400 Bad Request")


def test_oversized_body_returns_413(running_server) -> None:
    server, _public_dir = running_server

    payload = (
        b"POST /api/client-hints HTTP/1.1\r\n"
        b"Host: localhost\r\n"
        + f"Content-Length: {MAX_BODY_BYTES + 1}\r\n".encode("ascii")
        + b"\r\n"
    )

    response = _send_raw(server.host, server.port, payload)

    assert response.startswith(b"HTTP/1.1 413 Payload Too Large")


def test_server_keeps_running_after_errors(running_server) -> None:
    server, _public_dir = running_server

    _send_raw(server.host, server.port, b"BROKEN\r\n\r\n")
    _send_raw(server.host, server.port, _get("/../server.py"))
    response = _send_raw(server.host, server.port, _get("/api/client-hints"))

    assert response.startswith(b"HTTP/1.1 200 OK")


def test_startup_logs_port_and_api_path(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level("INFO", logger="server")
    server, thread = _start_server(tmp_path)
    try:
        deadline = time.time() + 2
        while "API endpoint" not in caplog.text and time.time() < deadline:
            time.sleep(0.01)
    finally:
        _stop_server(server, thread)

    assert f"Server running at http://localhost:{server.port}/" in caplog.text
    assert f"API endpoint: http://localhost:{server.port}/api/client-hints" in caplog.text
