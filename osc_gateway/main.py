"""
OSC WebSocket Gateway main application.

Composes the client registry, the broadcaster, the UDP listener and the
WebSocket server, and supervises the two server loops:

- Both transports are bound before either loop starts (fail fast).
- The UDP receive loop and the embedded uvicorn server run as two tasks.
- The first of {either task ending, a shutdown request} ends the run.
- Shutdown closes every connection, stops both servers and reports the
  exit status (0 after a requested shutdown, 1 otherwise).
"""

from __future__ import annotations

import asyncio
import contextlib
import signal
import socket
from typing import Iterator

import uvicorn

from osc_gateway.components.core.constants import RelayConstants
from osc_gateway.components.endpoints.relay import create_app
from osc_gateway.connection_registry import ClientRegistry
from osc_gateway.core.connection import ConnectionBroadcaster, ConnectionLifecycle, RelayStats
from osc_gateway.core.listener import OSCListener
from shared.config.logging import get_logger
from shared.config.settings import Settings
from shared.utils.exceptions import RelayStartupError

logger = get_logger(__name__)


class EmbeddedServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to the gateway."""

    def install_signal_handlers(self) -> None:
        pass

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield


def bind_tcp_socket(host: str, port: int) -> socket.socket:
    """
    Bind the WebSocket listening socket.

    Mirrors uvicorn's own Config.bind_socket() but raises instead of
    exiting, so the gateway can report both transports the same way.

    Raises:
        RelayStartupError: If the address cannot be bound.
    """
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family=family, type=socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
    except OSError as e:
        sock.close()
        raise RelayStartupError(
            "Failed to bind WebSocket server",
            host=host,
            port=port,
            error=str(e),
        ) from e
    sock.set_inheritable(True)
    return sock


class RelayGateway:
    """
    The running relay: one registry shared by the acceptor and broadcaster.

    Usage:
        gateway = RelayGateway(settings)
        exit_code = await gateway.run()
    """

    def __init__(
        self,
        settings: Settings,
        shutdown_timeout: float = RelayConstants.SHUTDOWN_TIMEOUT,
    ) -> None:
        self.settings = settings
        self._shutdown_timeout = shutdown_timeout
        self.stats = RelayStats()
        self.registry = ClientRegistry()
        self.broadcaster = ConnectionBroadcaster(self.registry, self.stats)
        self.lifecycle = ConnectionLifecycle(self.registry, self.stats)
        self.listener = OSCListener(
            settings.osc_host,
            settings.osc_port,
            self.broadcaster,
            self.stats,
        )
        self.app = create_app(self.lifecycle)

        self._server: EmbeddedServer | None = None
        self._ws_socket: socket.socket | None = None
        self._tasks: list[asyncio.Task] = []
        self._shutdown_requested: asyncio.Event | None = None
        self._shutdown_done = False

    # =========================================================================
    # Startup
    # =========================================================================

    @property
    def ws_address(self) -> tuple[str, int] | None:
        """The (host, port) the WebSocket server is bound to."""
        if self._ws_socket is None:
            return None
        sockname = self._ws_socket.getsockname()
        return sockname[0], sockname[1]

    @property
    def started(self) -> bool:
        """Whether uvicorn is accepting connections."""
        return self._server is not None and self._server.started

    async def start(self) -> None:
        """
        Bind both transports.

        Raises:
            RelayStartupError: If either transport cannot be bound. Nothing
                stays bound when this is raised.
        """
        self._shutdown_requested = asyncio.Event()
        self._ws_socket = bind_tcp_socket(self.settings.ws_host, self.settings.ws_port)
        try:
            await self.listener.start()
        except RelayStartupError:
            self._ws_socket.close()
            self._ws_socket = None
            raise

        config = uvicorn.Config(
            self.app,
            log_config=None,
            access_log=False,
            lifespan="off",
            timeout_graceful_shutdown=RelayConstants.SERVER_GRACE_TIMEOUT,
        )
        self._server = EmbeddedServer(config)

        host, port = self.ws_address
        logger.info("WebSocket server started", host=host, port=port)

    # =========================================================================
    # Supervision
    # =========================================================================

    async def run(self) -> int:
        """
        Run until shutdown is requested or either server stops.

        Returns:
            Process exit status: 0 after a requested shutdown, 1 on startup
            failure or when a server stopped on its own.
        """
        try:
            await self.start()
        except RelayStartupError as e:
            logger.error("Server startup error", error=str(e))
            return 1

        self._install_signal_handlers()

        listener_task = asyncio.create_task(
            self.listener.serve(), name=RelayConstants.LISTENER_TASK_NAME
        )
        server_task = asyncio.create_task(
            self._server.serve(sockets=[self._ws_socket]),
            name=RelayConstants.WS_SERVER_TASK_NAME,
        )
        self._tasks = [listener_task, server_task]
        shutdown_waiter = asyncio.create_task(self._shutdown_requested.wait())

        try:
            done, _ = await asyncio.wait(
                {listener_task, server_task, shutdown_waiter},
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            shutdown_waiter.cancel()

        exit_code = 0
        for task in (listener_task, server_task):
            if task in done:
                exit_code = 1
                self._report_stopped(task)

        await self.shutdown()
        self._remove_signal_handlers()
        return exit_code

    def request_shutdown(self) -> None:
        """Ask the running gateway to drain and exit. Safe from signal handlers."""
        if self._shutdown_requested is not None and not self._shutdown_requested.is_set():
            logger.info("Shutting down...")
            self._shutdown_requested.set()

    async def shutdown(self) -> None:
        """
        Close every connection, stop both servers and wait for their tasks.
        Tasks still running after the shutdown timeout are cancelled.

        Idempotent.
        """
        if self._shutdown_done:
            return
        self._shutdown_done = True

        self.lifecycle.set_shutdown(True)
        closed = await self.registry.close_all()
        if closed:
            logger.debug("Closed WebSocket clients", count=closed)

        self.listener.close()
        if self._server is not None:
            self._server.should_exit = True

        await self._wait_for_tasks()

        if self._ws_socket is not None:
            self._ws_socket.close()

        logger.info("Relay statistics", **self.stats.get_snapshot())
        logger.info("Shutdown complete")

    async def _wait_for_tasks(self) -> None:
        """Wait for both server tasks, cancelling any that outlive the shutdown timeout."""
        if not self._tasks:
            return

        _, pending = await asyncio.wait(self._tasks, timeout=self._shutdown_timeout)
        for task in pending:
            logger.warning("Server task did not stop in time, cancelling", task=task.get_name())
            task.cancel()
        if pending:
            await asyncio.wait(pending)

        for task in self._tasks:
            if task.cancelled():
                continue
            exc = task.exception()
            if exc is not None:
                logger.debug(
                    "Server task ended with error",
                    task=task.get_name(),
                    error=str(exc) or type(exc).__name__,
                )

    def _report_stopped(self, task: asyncio.Task) -> None:
        component = (
            "OSC server"
            if task.get_name() == RelayConstants.LISTENER_TASK_NAME
            else "WebSocket server"
        )
        if task.cancelled():
            logger.error(f"{component} task was cancelled")
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"{component} error", error=str(exc), exc_info=exc)
        else:
            logger.error(f"{component} stopped unexpectedly")

    # =========================================================================
    # Signals
    # =========================================================================

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            # Not available on Windows event loops
            with contextlib.suppress(NotImplementedError, RuntimeError):
                loop.add_signal_handler(sig, self.request_shutdown)

    def _remove_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError, RuntimeError):
                loop.remove_signal_handler(sig)


async def run_gateway(settings: Settings) -> int:
    """Run a gateway with the given settings and return its exit status."""
    gateway = RelayGateway(settings)
    return await gateway.run()
