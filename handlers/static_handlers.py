"""Static file handler for the public directory."""

import html
import logging

from client_hints import negotiation_headers
from config import PUBLIC_DIR
from request import HTTPRequest
from response import HTTPResponse
from utils import get_content_type, resolve_public_path

logger = logging.getLogger(__name__)

FORBIDDEN_BODY = "403 Forbidden: Access outside public directory is not allowed."
SERVER_ERROR_BODY = "500 Internal Server Error"


def _not_found(raw_target: str) -> HTTPResponse:
    return HTTPResponse(
        status_code=404,
        headers={"Content-Type": "text/html"},
        body=(
            "<h1>404 Not Found</h1>"
            f"<p>The requested URL {html.escape(raw_target)} was not found on this server.</p>"
        ),
    )


def _server_error() -> HTTPResponse:
    return HTTPResponse(
        status_code=500,
        headers={"Content-Type": "text/plain"},
        body=SERVER_ERROR_BODY,
    )


def serve_static(request: HTTPRequest, public_dir: str = PUBLIC_DIR) -> HTTPResponse:
    try:
        file_path = resolve_public_path(request.path, public_dir)
    except ValueError as exc:
        logger.error("Error resolving path %r: %s", request.path, exc)
        return _server_error()

    if file_path is None:
        return HTTPResponse(
            status_code=403,
            headers={"Content-Type": "text/plain"},
            body=FORBIDDEN_BODY,
        )

    try:
        data = file_path.read_bytes()
    except FileNotFoundError:
        return _not_found(request.raw_target)
    except OSError as exc:
        logger.error("Error reading file %s: %s", file_path, exc)
        return _server_error()

    headers = {"Content-Type": get_content_type(file_path)}
    headers.update(negotiation_headers())
    return HTTPResponse(status_code=200, headers=headers, body=data)
