from __future__ import annotations

import socket
import time

import httpx

from .app import GREETING


def _elapsed_ms(start: float) -> float:
    return round((time.time() - start) * 1000.0, 2)


def check_tcp(host: str, port: int, timeout_s: float = 2.0) -> tuple[bool, str, float | None]:
    """Open and close a TCP connection, the way a tcpSocket probe does.

    Returns (is_open, message, latency_ms).
    """
    start = time.time()
    try:
        with socket.create_connection((host, int(port)), timeout=timeout_s):
            pass
        return True, "Listening", _elapsed_ms(start)
    except socket.timeout:
        return False, "No response", _elapsed_ms(start)
    except OSError as e:
        return False, f"Error: {type(e).__name__}: {e}", _elapsed_ms(start)


def check_http(url: str, timeout_s: float = 2.0) -> tuple[bool, str, float | None]:
    """Call the service root.

    Expected: HTTP 200 with body "Hello World".
    Returns (is_healthy, message, latency_ms).
    """
    start = time.time()
    try:
        with httpx.Client(timeout=timeout_s, follow_redirects=False) as client:
            resp = client.get(url)
        latency_ms = _elapsed_ms(start)
        if resp.status_code != 200:
            return False, f"HTTP {resp.status_code}", latency_ms
        if resp.text != GREETING:
            return False, f"Unexpected body: {resp.text[:80]!r}", latency_ms
        return True, "Healthy", latency_ms
    except (httpx.ConnectError, httpx.TimeoutException):
        return False, "No response", _elapsed_ms(start)
    except httpx.HTTPError as e:
        return False, f"Error: {type(e).__name__}: {e}", _elapsed_ms(start)


def wait_for_port(host: str, port: int, timeout_s: float = 5.0, interval_s: float = 0.1) -> bool:
    """Poll check_tcp until the port accepts connections or the deadline passes."""
    deadline = time.monotonic() + max(0.0, timeout_s)
    while True:
        ok, _, _ = check_tcp(host, port, timeout_s=max(0.1, interval_s))
        if ok:
            return True
        if time.monotonic() >= deadline:
            return False
        time.sleep(interval_s)
