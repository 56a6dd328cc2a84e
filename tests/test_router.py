"""Unit tests for exact-path router behavior."""

from request import HTTPRequest
from response import HTTPResponse
from router import Router
from server import ClientHintsServer


def _handler_ok(_request: HTTPRequest) -> HTTPResponse:
    return HTTPResponse(status_code=200, body="ok")


def _handler_fallback(_request: HTTPRequest) -> HTTPResponse:
    return HTTPResponse(status_code=200, body="fallback")


def _build_router() -> Router:
    router = Router()
    router.add_route("/api/client-hints", _handler_ok)
    router.set_fallback(_handler_fallback)
    return router


def test_router_resolves_exact_path() -> None:
    assert _build_router().resolve("/api/client-hints") is _handler_ok


def test_router_does_not_match_prefixes() -> None:
    router = _build_router()

    assert router.resolve("/api/client-hints/extra") is _handler_fallback
    assert router.resolve("/api/client-hint") is _handler_fallback
    assert router.resolve("/API/client-hints") is _handler_fallback


def test_router_without_fallback_returns_none_for_unknown_path() -> None:
    router = Router()
    router.add_route("/", _handler_ok)

    assert router.resolve("/missing") is None


def test_server_answers_404_when_router_has_no_fallback() -> None:
    router = Router()
    router.add_route("/", _handler_ok)
    server = ClientHintsServer(port=0, router=router)
    request = HTTPRequest(
        method="GET",
        path="/missing",
        raw_target="/missing",
        http_version="HTTP/1.1",
        headers={"host": "localhost"},
    )

    response = server._dispatch(request)

    assert response.status_code == 404


def test_default_router_sends_unknown_paths_to_static_files(tmp_path) -> None:
    server = ClientHintsServer(port=0, public_dir=str(tmp_path))
    request = HTTPRequest(
        method="GET",
        path="/nothing-here.txt",
        raw_target="/nothing-here.txt",
        http_version="HTTP/1.1",
        headers={"host": "localhost"},
    )

    response = server._dispatch(request)

    assert response.status_code == 404
    assert response.headers["Content-Type"] == "text/html"


def test_router_rejects_invalid_path() -> None:
    router = Router()

    try:
        router.add_route("missing-slash", _handler_ok)
    except ValueError as exc:
        assert "path must start" in str(exc)
    else:
        raise AssertionError("Expected ValueError for invalid route path")
