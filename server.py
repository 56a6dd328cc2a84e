"""Main HTTP server entry point and connection lifecycle orchestration."""

from __future__ import annotations

import argparse
import functools
import json
import logging
import socket
import time

from config import (
    API_PATH,
    DRAIN_TIMEOUT_SECS,
    HOST,
    KEEPALIVE_TIMEOUT_SECS,
    LOG_FORMAT,
    MAX_KEEPALIVE_REQUESTS,
    PORT,
    PUBLIC_DIR,
    REQUEST_QUEUE_SIZE,
    SOCKET_TIMEOUT_SECS,
    WORKER_COUNT,
)
from handlers.api_handlers import client_hints_api
from handlers.static_handlers import serve_static
from request import HTTPRequest, HTTPRequestParseError
from response import REASON_PHRASES, HTTPResponse, as_head_response
from router import Router
from socket_handler import (
    HeaderTooLargeError,
    HTTPReadError,
    MalformedRequestError,
    PayloadTooLargeError,
    SocketTimeoutError,
    read_http_request_message,
    write_http_response_message,
)
from thread_pool import ThreadPool

logger = logging.getLogger(__name__)

READ_ERROR_STATUS: dict[type[HTTPReadError], int] = {
    PayloadTooLargeError: 413,
    HeaderTooLargeError: 431,
    SocketTimeoutError: 408,
    MalformedRequestError: 400,
}


class ClientHintsServer:
    def __init__(
        self,
        host: str = HOST,
        port: int = PORT,
        router: Router | None = None,
        worker_count: int = WORKER_COUNT,
        request_queue_size: int = REQUEST_QUEUE_SIZE,
        *,
        public_dir: str = PUBLIC_DIR,
        keepalive_timeout_secs: int = KEEPALIVE_TIMEOUT_SECS,
        log_format: str = LOG_FORMAT,
    ) -> None:
        self.host = host
        self.port = port
        self.public_dir = public_dir
        self.router = router or self._build_default_router()
        self.worker_count = worker_count
        self.request_queue_size = request_queue_size
        self.keepalive_timeout_secs = keepalive_timeout_secs
        self.log_format = log_format

        self._server_socket: socket.socket | None = None
        self._pool: ThreadPool | None = None
        self._running = False

    def _build_default_router(self) -> Router:
        router = Router()
        router.add_route(API_PATH, client_hints_api)
        router.set_fallback(functools.partial(serve_static, public_dir=self.public_dir))
        return router

    def start(self) -> None:
        """Bind, then accept clients until stop() is called."""
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as server_socket:
            self._server_socket = server_socket
            server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            server_socket.bind((self.host, self.port))
            server_socket.listen(128)
            server_socket.settimeout(0.2)
            self.port = server_socket.getsockname()[1]
            self._pool = ThreadPool(
                worker_count=self.worker_count,
                queue_size=self.request_queue_size,
                handler=self._handle_client,
            )
            self._pool.start()

            self._running = True
            logger.info("Server running at http://localhost:%s/", self.port)
            logger.info("API endpoint: http://localhost:%s%s", self.port, API_PATH)
            try:
                while self._running:
                    try:
                        client_socket, address = server_socket.accept()
                    except socket.timeout:
                        continue
                    except OSError:
                        break

                    if not self._pool.submit(client_socket, address):
                        self._send_queue_full_response(client_socket, address)
            finally:
                self._running = False
                self._pool.shutdown(graceful=True, timeout=DRAIN_TIMEOUT_SECS)
                self._pool = None

    def stop(self) -> None:
        self._running = False
        if self._server_socket is not None:
            self._server_socket.close()
            self._server_socket = None

    def _send_queue_full_response(
        self, client_socket: socket.socket, address: tuple[str, int]
    ) -> None:
        with client_socket:
            started_at = time.perf_counter()
            response = HTTPResponse(
                status_code=503,
                headers={"Connection": "close"},
                body="Service Unavailable",
            )
            try:
                bytes_sent = write_http_response_message(client_socket, response)
            except OSError:
                return
            self._log_access(
                address=address,
                method="-",
                path="-",
                response=response,
                bytes_in=0,
                bytes_out=bytes_sent,
                started_at=started_at,
                connection_reused=False,
            )

    def _send_error_and_close(
        self,
        client_socket: socket.socket,
        address: tuple[str, int],
        status_code: int,
        *,
        bytes_in: int,
        started_at: float,
    ) -> None:
        response = HTTPResponse(
            status_code=status_code,
            headers={"Connection": "close"},
            body=REASON_PHRASES.get(status_code, "Bad Request"),
        )
        try:
            bytes_sent = write_http_response_message(client_socket, response)
        except OSError:
            return
        self._log_access(
            address=address,
            method="-",
            path="-",
            response=response,
            bytes_in=bytes_in,
            bytes_out=bytes_sent,
            started_at=started_at,
            connection_reused=False,
        )

    def _handle_client(self, client_socket: socket.socket, address: tuple[str, int]) -> None:
        with client_socket:
            client_socket.settimeout(min(SOCKET_TIMEOUT_SECS, self.keepalive_timeout_secs))
            request_count = 0
            carry = b""
            while request_count < MAX_KEEPALIVE_REQUESTS:
                started_at = time.perf_counter()
                try:
                    raw_request, carry = read_http_request_message(client_socket, carry)
                except HTTPReadError as exc:
                    if isinstance(exc, SocketTimeoutError) and request_count > 0:
                        # Idle keep-alive connection; close quietly.
                        return
                    self._send_error_and_close(
                        client_socket,
                        address,
                        READ_ERROR_STATUS.get(type(exc), 400),
                        bytes_in=0,
                        started_at=started_at,
                    )
                    return
                except OSError:
                    return

                if not raw_request:
                    return

                try:
                    request = HTTPRequest.from_bytes(raw_request)
                except HTTPRequestParseError as exc:
                    self._send_error_and_close(
                        client_socket,
                        address,
                        exc.status_code,
                        bytes_in=len(raw_request),
                        started_at=started_at,
                    )
                    return

                request_count += 1
                response = self._dispatch(request)
                should_close = (
                    not request.keep_alive
                    or response.should_close
                    or request_count >= MAX_KEEPALIVE_REQUESTS
                )
                if should_close:
                    response.headers.setdefault("Connection", "close")
                else:
                    response.headers.setdefault("Connection", "keep-alive")
                    response.headers.setdefault(
                        "Keep-Alive",
                        (
                            f"timeout={self.keepalive_timeout_secs}, "
                            f"max={MAX_KEEPALIVE_REQUESTS - request_count}"
                        ),
                    )

                try:
                    bytes_sent = write_http_response_message(client_socket, response)
                except OSError:
                    return

                self._log_access(
                    address=address,
                    method=request.method,
                    path=request.raw_target,
                    response=response,
                    bytes_in=len(raw_request),
                    bytes_out=bytes_sent,
                    started_at=started_at,
                    connection_reused=request_count > 1,
                )
                if should_close:
                    return

    def _dispatch(self, request: HTTPRequest) -> HTTPResponse:
        handler = self.router.resolve(request.path)
        if handler is None:
            response = HTTPResponse(status_code=404, body="Not Found")
        else:
            try:
                response = handler(request)
            except Exception:
                logger.exception("Unhandled error in route handler for %s", request.raw_target)
                response = HTTPResponse(status_code=500, body="Internal Server Error")

        if request.method == "HEAD":
            return as_head_response(response)
        return response

    def _log_access(
        self,
        *,
        address: tuple[str, int],
        method: str,
        path: str,
        response: HTTPResponse,
        bytes_in: int,
        bytes_out: int,
        started_at: float,
        connection_reused: bool,
    ) -> None:
        duration_ms = (time.perf_counter() - started_at) * 1000
        event = {
            "client": address[0],
            "method": method,
            "path": path,
            "status": response.status_code,
            "bytes_in": bytes_in,
            "bytes_out": bytes_out,
            "latency_ms": round(duration_ms, 3),
            "connection_reused": connection_reused,
        }
        if self.log_format == "json":
            logger.info(json.dumps(event, sort_keys=True))
            return

        logger.info(
            (
                "client=%s method=%s path=%s status=%s bytes_in=%s bytes_out=%s "
                "duration_ms=%.2f connection_reused=%s"
            ),
            event["client"],
            event["method"],
            event["path"],
            event["status"],
            event["bytes_in"],
            event["bytes_out"],
            duration_ms,
            event["connection_reused"],
        )


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the Client Hints demo server")
    parser.add_argument("--host", default=HOST)
    parser.add_argument("--port", type=int, default=PORT)
    parser.add_argument("--public-dir", default=PUBLIC_DIR)
    parser.add_argument("--workers", type=int, default=WORKER_COUNT)
    parser.add_argument("--log-format", choices=["plain", "json"], default=LOG_FORMAT)
    return parser.parse_args()


if __name__ == "__main__":
    args = _parse_args()
    logging.basicConfig(level=logging.INFO)
    server = ClientHintsServer(
        host=args.host,
        port=args.port,
        worker_count=args.workers,
        public_dir=args.public_dir,
        log_format=args.log_format,
    )
    try:
        server.start()
    except KeyboardInterrupt:
        server.stop()
