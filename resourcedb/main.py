"""
ResourceDB Server - Main entry point.

This module starts the ResourceDB server:
- Resource store (memory or SQLite, per STORE_BACKEND)
- HTTP API served by uvicorn

Usage:
    python -m resourcedb.main

Configuration is entirely via environment variables.
See config.py for all available settings.

Invariants:
    - The store is built before the server accepts requests
    - Graceful shutdown waits for in-flight requests up to
      SHUTDOWN_TIMEOUT_SECONDS, then closes the store

How to change safely:
    - Test shutdown sequence thoroughly
    - Keep the store free of any dependency on this module
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
from collections.abc import Iterator
from contextlib import contextmanager

import json_log_formatter
import uvicorn

from .api import create_http_app
from .config import ServerConfig
from .store import ResourceStore, create_resource_store

logger = logging.getLogger(__name__)


def setup_logging(config: ServerConfig) -> None:
    """Configure logging based on configuration.

    Args:
        config: Server configuration
    """
    level = getattr(logging, config.observability.log_level.upper(), logging.INFO)

    if config.observability.log_format == "json":
        formatter: logging.Formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    # Requests are already logged by the request context middleware
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


class HttpServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to main()."""

    def install_signal_handlers(self) -> None:
        pass

    @contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield


class Server:
    """ResourceDB Server orchestrator.

    Manages the lifecycle of the store and the HTTP server.

    Attributes:
        config: Server configuration
        store: Resource store instance
        http_server: uvicorn server instance

    Example:
        >>> server = Server()
        >>> await server.start()
        >>> # Server is running
        >>> await server.stop()
    """

    def __init__(self, config: ServerConfig | None = None) -> None:
        """Initialize the server.

        Args:
            config: Optional server configuration (loaded from env if not provided)
        """
        self.config = config or ServerConfig.from_env()
        self._running = False
        self._shutdown_event = asyncio.Event()

        # Components (initialized in start())
        self.store: ResourceStore | None = None
        self.http_server: HttpServer | None = None
        self._serve_task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the server and block until shutdown is requested."""
        if self._running:
            logger.warning("Server already running")
            return

        logger.info("Starting ResourceDB server")
        self.config.log_config()

        try:
            self.store = create_resource_store(self.config.store)

            app = create_http_app(self.store, self.config.http)
            self.http_server = HttpServer(
                uvicorn.Config(
                    app,
                    host=self.config.http.host,
                    port=self.config.http.port,
                    log_config=None,
                    timeout_graceful_shutdown=self.config.http.shutdown_timeout_seconds,
                )
            )
            self._serve_task = asyncio.create_task(self.http_server.serve())
            # uvicorn exiting on its own (e.g. bind failure) ends start() too
            self._serve_task.add_done_callback(lambda _: self.request_shutdown())

            self._running = True
            logger.info(
                f"ResourceDB server running on http://{self.config.http.host}:{self.config.http.port}"
            )

            # Wait for shutdown signal
            await self._shutdown_event.wait()

        except Exception as e:
            logger.error(f"Server startup failed: {e}", exc_info=True)
            await self.stop()
            raise

    async def stop(self) -> None:
        """Stop the server gracefully."""
        if self.http_server is None and self.store is None:
            return

        logger.info("Stopping ResourceDB server")

        if self.http_server is not None:
            self.http_server.should_exit = True
        if self._serve_task is not None:
            try:
                await asyncio.wait_for(
                    self._serve_task,
                    timeout=self.config.http.shutdown_timeout_seconds + 1,
                )
            except asyncio.TimeoutError:
                logger.warning("HTTP server did not stop in time, cancelling")
                self._serve_task.cancel()
                await asyncio.gather(self._serve_task, return_exceptions=True)

        if self.store is not None:
            await self.store.close()

        self.http_server = None
        self._serve_task = None
        self.store = None
        self._running = False
        logger.info("ResourceDB server stopped")

    def request_shutdown(self) -> None:
        """Request graceful shutdown."""
        self._shutdown_event.set()


def main() -> None:
    """Main entry point."""
    # Load configuration
    try:
        config = ServerConfig.from_env()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    # Setup logging
    setup_logging(config)

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    # Create server
    server = Server(config)

    def handle_signal(sig: int) -> None:
        logger.info(f"Received signal {sig}, initiating shutdown")
        server.request_shutdown()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, handle_signal, sig)

    # Run server
    try:
        loop.run_until_complete(server.start())
    except KeyboardInterrupt:
        pass
    finally:
        loop.run_until_complete(server.stop())
        loop.close()


if __name__ == "__main__":
    main()
