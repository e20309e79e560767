"""Shared fixtures: a real local HTTP server standing in for the Awair device."""

from __future__ import annotations

import gzip
import json
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Callable, Iterator

import pytest

Responder = Callable[[BaseHTTPRequestHandler], None]


class DeviceServer(ThreadingHTTPServer):
    daemon_threads = True
    responder: Responder

    @property
    def address(self) -> str:
        host, port = self.server_address[:2]
        return f"http://{host}:{port}/air-data/latest"


class _DeviceHandler(BaseHTTPRequestHandler):
    server: DeviceServer

    def do_GET(self) -> None:
        try:
            self.server.responder(self)
        except (BrokenPipeError, ConnectionResetError):
            pass

    def log_message(self, format: str, *args) -> None:
        pass


def respond_json(payload: dict, status: int = 200) -> Responder:
    def responder(handler: BaseHTTPRequestHandler) -> None:
        body = json.dumps(payload).encode("utf-8")
        handler.send_response(status)
        handler.send_header("Content-Type", "application/json")
        handler.send_header("Content-Length", str(len(body)))
        handler.end_headers()
        handler.wfile.write(body)

    return responder


def respond_corrupt_gzip(handler: BaseHTTPRequestHandler) -> None:
    body = b'{"co2": 612} is not gzip'
    handler.send_response(200)
    handler.send_header("Content-Type", "application/json")
    handler.send_header("Content-Encoding", "gzip")
    handler.send_header("Content-Length", str(len(body)))
    handler.end_headers()
    handler.wfile.write(body)


def respond_gzip_json(payload: dict) -> Responder:
    def responder(handler: BaseHTTPRequestHandler) -> None:
        body = gzip.compress(json.dumps(payload).encode("utf-8"))
        handler.send_response(200)
        handler.send_header("Content-Type", "application/json")
        handler.send_header("Content-Encoding", "gzip")
        handler.send_header("Content-Length", str(len(body)))
        handler.end_headers()
        handler.wfile.write(body)

    return responder


def respond_trickle(payload: dict, delay: float) -> Responder:
    def responder(handler: BaseHTTPRequestHandler) -> None:
        body = json.dumps(payload).encode("utf-8")
        handler.send_response(200)
        handler.send_header("Content-Type", "application/json")
        handler.send_header("Content-Length", str(len(body)))
        handler.end_headers()
        handler.wfile.flush()
        for byte in body:
            handler.wfile.write(bytes([byte]))
            handler.wfile.flush()
            time.sleep(delay)

    return responder


@pytest.fixture
def device_server() -> Iterator[DeviceServer]:
    server = DeviceServer(("127.0.0.1", 0), _DeviceHandler)
    server.responder = respond_json({})
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield server
    finally:
        server.shutdown()
        server.server_close()
        thread.join(timeout=2)
