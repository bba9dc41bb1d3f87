"""Process entry point: bind a free port and serve the app with uvicorn."""

from __future__ import annotations

import logging
import socket

import uvicorn

from logging_config import configure_logging
from settings import get_settings

logger = logging.getLogger(__name__)


class PortUnavailableError(RuntimeError):
    """No port in the retry window could be bound."""


def find_open_port(host: str, port: int, retries: int) -> int:
    """Return the first bindable port in ``port .. port + retries``."""
    for candidate in range(port, port + retries + 1):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as probe:
            probe.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            try:
                probe.bind((host, candidate))
            except OSError as exc:
                logger.warning("Port is busy, trying the next one", extra={"reason": f"{candidate}: {exc}"})
                continue
        return candidate
    raise PortUnavailableError(f"Unable to find available port after {retries} attempts")


def run() -> None:
    configure_logging()
    settings = get_settings()
    try:
        port = find_open_port(settings.host, settings.port, settings.port_retries)
    except PortUnavailableError as exc:
        logger.critical("Failed to start server", extra={"reason": str(exc)})
        raise SystemExit(1) from exc

    logger.info("Starting dashboard server", extra={"status": f"{settings.host}:{port}"})
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=port,
        log_config=None,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
