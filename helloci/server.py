"""Service process lifecycle: starting -> listening -> stopped.

The socket is bound before uvicorn starts, so a port that is taken (or not
ours to take) fails fast with a non-zero exit and nothing left listening.
Exit codes:

    0  clean shutdown (SIGTERM / SIGINT)
    1  bind failure
    2  configuration error (bad PORT, descriptor mismatch)
"""

from __future__ import annotations

import signal
import socket
import threading
from collections.abc import Iterator
from contextlib import contextmanager

import structlog
import uvicorn
from fastapi import FastAPI

from .descriptor import check_port_coupling, load_descriptor
from .errors import BindFailure, ConfigError
from .logs import configure_logging
from .settings import Settings, load_settings

EXIT_OK = 0
EXIT_BIND_FAILURE = 1
EXIT_CONFIG_ERROR = 2

log = structlog.get_logger("helloci.server")


class _Terminated(Exception):
    pass


def bind_socket(host: str, port: int, backlog: int = 2048) -> socket.socket:
    """Create a listening TCP socket or raise BindFailure.

    The socket is closed again on any failure, so retries against an
    occupied port fail the same way every time.
    """
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
        sock.listen(backlog)
    except OSError as e:
        sock.close()
        raise BindFailure(host, port, e.strerror or str(e)) from e
    return sock


def check_startup(settings: Settings) -> None:
    """Validate settings and, if configured, the descriptor's containerPort."""
    settings.validate()
    if settings.descriptor_path:
        descriptor = load_descriptor(settings.descriptor_path)
        check_port_coupling(descriptor, settings.port)


def build_server(settings: Settings, app: FastAPI | None = None) -> uvicorn.Server:
    if app is None:
        from .app import app as default_app

        app = default_app
    config = uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        log_config=None,
        access_log=settings.access_log,
        timeout_keep_alive=settings.keepalive_timeout_s,
        timeout_graceful_shutdown=settings.shutdown_timeout_s,
        limit_concurrency=settings.limit_concurrency,
    )
    return uvicorn.Server(config)


@contextmanager
def _sigterm_as_exception() -> Iterator[None]:
    """Turn a SIGTERM that uvicorn does not consume into _Terminated."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _raise(signum, frame):
        raise _Terminated()

    previous = signal.signal(signal.SIGTERM, _raise)
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, previous)


def serve(settings: Settings | None = None, app: FastAPI | None = None) -> int:
    """Run the service until it is told to stop. Returns the exit code."""
    try:
        cfg = settings if settings is not None else load_settings()
    except ConfigError as e:
        configure_logging()
        log.error("config_error", error=str(e))
        return EXIT_CONFIG_ERROR

    configure_logging(level=cfg.log_level, log_json=cfg.log_json, access_log=cfg.access_log)

    try:
        check_startup(cfg)
    except ConfigError as e:
        log.error("config_error", error=str(e))
        return EXIT_CONFIG_ERROR

    try:
        sock = bind_socket(cfg.host, cfg.port)
    except BindFailure as e:
        log.error("bind_failed", host=e.host, port=e.port, reason=e.reason)
        return EXIT_BIND_FAILURE

    log.info("listening", host=cfg.host, port=cfg.port, address=f"http://{cfg.address}")

    server = build_server(cfg, app)
    try:
        with _sigterm_as_exception():
            server.run(sockets=[sock])
    except (KeyboardInterrupt, _Terminated):
        log.info("interrupted")
    finally:
        sock.close()

    log.info("stopped", address=f"http://{cfg.address}")
    return EXIT_OK
