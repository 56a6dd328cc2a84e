"""Configuration constants for the Client Hints server."""

from pathlib import Path

HOST: str = "0.0.0.0"
PORT: int = 3000
PUBLIC_DIR: str = str(Path(__file__).resolve().parent / "public")
API_PATH: str = "/api/client-hints"
SERVER_NAME: str = "client-hints-server/0.1"

BUFFER_SIZE: int = 4096
SOCKET_TIMEOUT_SECS: int = 5
MAX_HEADER_BYTES: int = 16_384
MAX_BODY_BYTES: int = 65_536
MAX_TARGET_LENGTH: int = 2048

KEEPALIVE_TIMEOUT_SECS: int = 5
MAX_KEEPALIVE_REQUESTS: int = 100

WORKER_COUNT: int = 8
REQUEST_QUEUE_SIZE: int = 64
DRAIN_TIMEOUT_SECS: float = 2.0

LOG_FORMAT: str = "plain"
