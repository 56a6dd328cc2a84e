"""HTTP response model and serializer."""

from dataclasses import dataclass, field
from email.utils import formatdate

from config import SERVER_NAME

REASON_PHRASES: dict[int, str] = {
    200: "OK",
    400: "Bad Request",
    403: "Forbidden",
    404: "Not Found",
    408: "Request Timeout",
    413: "Payload Too Large",
    414: "URI Too Long",
    431: "Request Header Fields Too Large",
    500: "Internal Server Error",
    501: "Not Implemented",
    503: "Service Unavailable",
    505: "HTTP Version Not Supported",
}


@dataclass(slots=True)
class HTTPResponse:
    status_code: int
    reason_phrase: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes | str = b""
    should_close: bool = False
    content_length_override: int | None = None

    def __post_init__(self) -> None:
        if isinstance(self.body, str):
            self.body = self.body.encode("utf-8")

    def head_bytes(self) -> bytes:
        """Serialize the status line and headers, including the blank line."""
        reason = self.reason_phrase or REASON_PHRASES.get(self.status_code, "Unknown")
        headers = dict(self.headers)
        headers.setdefault("Date", formatdate(timeval=None, localtime=False, usegmt=True))
        headers.setdefault("Server", SERVER_NAME)
        headers.setdefault("Content-Type", "text/plain; charset=utf-8")

        content_length = self.content_length_override
        if content_length is None:
            content_length = len(self.body)
        headers["Content-Length"] = str(content_length)

        lines = [f"HTTP/1.1 {self.status_code} {reason}"]
        lines.extend(f"{key}: {value}" for key, value in headers.items())
        return "\r\n".join(lines).encode("iso-8859-1") + b"\r\n\r\n"

    def to_bytes(self) -> bytes:
        """Serialize the response into HTTP/1.1 wire format bytes."""
        return self.head_bytes() + bytes(self.body)


def as_head_response(get_response: HTTPResponse) -> HTTPResponse:
    """Drop the body of a GET response while keeping its Content-Length."""
    return HTTPResponse(
        status_code=get_response.status_code,
        reason_phrase=get_response.reason_phrase,
        headers=dict(get_response.headers),
        body=b"",
        should_close=get_response.should_close,
        content_length_override=len(get_response.body),
    )
