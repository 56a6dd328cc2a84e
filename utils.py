"""Utility helpers shared across server modules."""

from pathlib import Path
from urllib.parse import unquote

from config import PUBLIC_DIR

CONTENT_TYPES: dict[str, str] = {
    ".html": "text/html",
    ".css": "text/css",
    ".js": "application/javascript",
    ".json": "application/json",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
}


def get_content_type(file_path: Path | str) -> str:
    return CONTENT_TYPES.get(Path(file_path).suffix.lower(), "application/octet-stream")


def resolve_public_path(request_path: str, public_dir: str = PUBLIC_DIR) -> Path | None:
    """Map a URL path onto the public root, or return None if it escapes the root.

    Raises ValueError for paths the filesystem cannot represent (embedded NUL).
    """
    if request_path == "/":
        request_path = "/index.html"

    relative_path = unquote(request_path).lstrip("/")
    if "\x00" in relative_path:
        raise ValueError("embedded null byte in request path")

    public_root = Path(public_dir).resolve()
    candidate = (public_root / relative_path).resolve()
    try:
        candidate.relative_to(public_root)
    except ValueError:
        return None

    return candidate
