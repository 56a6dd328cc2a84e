"""HTTP request model and parser."""

from dataclasses import dataclass, field
from urllib.parse import urlsplit

from config import MAX_BODY_BYTES, MAX_TARGET_LENGTH

ALLOWED_HTTP_VERSIONS = {"HTTP/1.1", "HTTP/1.0"}
KNOWN_METHODS = {
    "GET",
    "HEAD",
    "POST",
    "PUT",
    "DELETE",
    "OPTIONS",
    "PATCH",
    "TRACE",
    "CONNECT",
}


class HTTPRequestParseError(ValueError):
    """Request parse error carrying an HTTP status code."""

    def __init__(self, message: str, *, status_code: int = 400) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(slots=True)
class HTTPRequest:
    method: str
    path: str
    http_version: str
    raw_target: str = "/"
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    keep_alive: bool = False

    @classmethod
    def from_bytes(cls, raw: bytes) -> "HTTPRequest":
        """Parse raw HTTP request bytes into a structured request object."""
        try:
            header_bytes, body = raw.split(b"\r\n\r\n", 1)
        except ValueError as exc:
            raise HTTPRequestParseError("Missing CRLF CRLF request separator") from exc

        lines = header_bytes.decode("iso-8859-1").split("\r\n")
        if not lines or not lines[0]:
            raise HTTPRequestParseError("Missing request line")

        method, target, http_version = _parse_request_line(lines[0])

        path = _target_path(target)

        headers = _parse_headers(lines[1:])

        if http_version == "HTTP/1.1" and "host" not in headers:
            raise HTTPRequestParseError("Host header required for HTTP/1.1")

        if "chunked" in headers.get("transfer-encoding", "").lower():
            raise HTTPRequestParseError("Chunked request bodies are not supported", status_code=501)

        if "content-length" in headers:
            try:
                expected_body_length = int(headers["content-length"])
            except ValueError as exc:
                raise HTTPRequestParseError("Invalid Content-Length") from exc
            if expected_body_length < 0:
                raise HTTPRequestParseError("Negative Content-Length is invalid")
            if len(body) != expected_body_length:
                raise HTTPRequestParseError("Body length does not match Content-Length")
        elif body:
            raise HTTPRequestParseError("Body sent without Content-Length")

        if len(body) > MAX_BODY_BYTES:
            raise HTTPRequestParseError("Body exceeded MAX_BODY_BYTES", status_code=413)

        return cls(
            method=method,
            path=path,
            raw_target=target,
            http_version=http_version,
            headers=headers,
            body=body,
            keep_alive=_is_keep_alive(http_version, headers.get("connection", "")),
        )


def _parse_request_line(line: str) -> tuple[str, str, str]:
    parts = line.split(" ")
    if len(parts) != 3:
        raise HTTPRequestParseError("Invalid request line")

    method, target, http_version = parts
    if not method or not target or not http_version:
        raise HTTPRequestParseError("Request line contains empty tokens")

    method = method.upper()
    if method not in KNOWN_METHODS:
        raise HTTPRequestParseError("Method not implemented", status_code=501)
    if http_version not in ALLOWED_HTTP_VERSIONS:
        raise HTTPRequestParseError("Unsupported HTTP version", status_code=505)
    if len(target) > MAX_TARGET_LENGTH:
        raise HTTPRequestParseError("Request target too long", status_code=414)

    return method, target, http_version


def _target_path(target: str) -> str:
    """Return the path of a request target without its query string."""
    if target.startswith("/"):
        # Origin form; "//a/b" is a path here, not a network location.
        return target.partition("?")[0]
    return urlsplit(target).path or "/"


def _parse_headers(lines: list[str]) -> dict[str, str]:
    # Repeated fields are folded into one comma-separated value.
    headers: dict[str, str] = {}
    for line in lines:
        if not line:
            continue
        if ":" not in line:
            raise HTTPRequestParseError("Malformed header line")
        name, value = line.split(":", 1)
        header_name = name.strip().lower()
        if not header_name:
            raise HTTPRequestParseError("Header name cannot be empty")
        header_value = value.strip()
        if header_name in headers:
            headers[header_name] = f"{headers[header_name]}, {header_value}"
        else:
            headers[header_name] = header_value
    return headers


def _is_keep_alive(http_version: str, connection_header: str) -> bool:
    token = connection_header.lower()
    if http_version == "HTTP/1.1":
        return "close" not in token
    if http_version == "HTTP/1.0":
        return "keep-alive" in token
    return False
