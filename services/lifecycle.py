"""Process lifecycle: wiring, signal handling and graceful shutdown."""

from __future__ import annotations

import logging
import signal
import socket
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Dict, Optional

import uvicorn

from app.main import create_app
from services.awair import REQUEST_TIMEOUT_SECONDS, AwairClient
from services.metrics import ClimateMetrics
from services.poller import Poller
from settings import Settings, format_duration

logger = logging.getLogger(__name__)

SHUTDOWN_GRACE_SECONDS = 5
_STOP_CHECK_INTERVAL = 0.5


class StartupError(RuntimeError):
    """Raised when the exporter cannot start serving, e.g. the port is taken."""


class ExporterRuntime:
    """Runs the metrics server and the poller until a shutdown is requested.

    Both run on worker threads and share one stop event. A signal, an explicit
    ``request_shutdown`` or either task finishing on its own ends the run.
    """

    def __init__(
        self,
        settings: Settings,
        client: Optional[AwairClient] = None,
        install_signal_handlers: bool = True,
    ) -> None:
        self.settings = settings
        self.metrics = ClimateMetrics()
        self.client = client if client is not None else AwairClient(settings.awair_address)
        self._stop = threading.Event()
        self.poller = Poller(
            self.client,
            self.metrics,
            settings.poll_frequency,
            stop_event=self._stop,
        )
        self.app = create_app(self.metrics)
        self.server = uvicorn.Server(
            uvicorn.Config(
                self.app,
                log_config=None,
                lifespan="off",
                timeout_graceful_shutdown=SHUTDOWN_GRACE_SECONDS,
            )
        )
        self.bound_port: Optional[int] = None
        self._install_signal_handlers = install_signal_handlers

    @property
    def listen(self) -> str:
        port = self.bound_port if self.bound_port is not None else self.settings.listen_port
        return f"{self.settings.listen_address}:{port}"

    def request_shutdown(self) -> None:
        self._stop.set()

    def bind(self) -> socket.socket:
        address = self.settings.listen_address
        family = socket.AF_INET6 if ":" in address else socket.AF_INET
        try:
            sock = socket.create_server(
                (address, self.settings.listen_port), family=family
            )
        except OSError as exc:
            raise StartupError(f"Failed to start server on {self.listen}: {exc}") from exc
        self.bound_port = sock.getsockname()[1]
        return sock

    def run(self) -> int:
        """Serve until shutdown; return the process exit code."""
        try:
            sock = self.bind()
        except StartupError:
            self.client.close()
            raise
        executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="awair-exporter")
        previous_handlers = self._register_signal_handlers()
        try:
            futures: Dict[Future[None], str] = {
                executor.submit(self.server.run, sockets=[sock]): "server",
                executor.submit(self.poller.run): "poller",
            }
            for future in futures:
                future.add_done_callback(lambda _f: self.request_shutdown())

            logger.info(
                "Awair Poller started",
                extra={
                    "listen": self.listen,
                    "awair_address": self.client.address,
                    "poll_frequency": format_duration(self.settings.poll_frequency),
                },
            )

            # Timed waits hand control back to the interpreter so pending signal
            # handlers run even where lock waits are not interrupted by signals.
            while not self._stop.wait(_STOP_CHECK_INTERVAL):
                pass

            logger.info("Shutting down", extra={"grace_period": SHUTDOWN_GRACE_SECONDS})
            self.server.should_exit = True
            self.poller.stop()
            failed = self._wait_for_tasks(futures)
        finally:
            self._restore_signal_handlers(previous_handlers)
            executor.shutdown(wait=False, cancel_futures=True)
            sock.close()
            self.client.close()

        logger.info("Shutdown complete")
        return 1 if failed else 0

    def _wait_for_tasks(self, futures: Dict[Future[None], str]) -> bool:
        deadline = SHUTDOWN_GRACE_SECONDS + REQUEST_TIMEOUT_SECONDS + _STOP_CHECK_INTERVAL
        done, pending = wait(futures, timeout=deadline)
        failed = False
        for future in done:
            exc = future.exception()
            if exc is not None:
                failed = True
                logger.error(
                    "Error shutting down %s: %r",
                    futures[future],
                    exc,
                    exc_info=exc,
                )
        for future in pending:
            failed = True
            logger.error("Task %s did not stop within the grace period", futures[future])
        return failed

    def _register_signal_handlers(self) -> Dict[int, object]:
        if not self._install_signal_handlers:
            return {}
        if threading.current_thread() is not threading.main_thread():
            logger.warning("Not on the main thread; signal handlers not installed")
            return {}

        def _handle(signum: int, _frame: object) -> None:
            logger.info("Received %s", signal.Signals(signum).name)
            self.request_shutdown()

        previous: Dict[int, object] = {}
        for signum in (signal.SIGINT, signal.SIGTERM):
            previous[signum] = signal.signal(signum, _handle)
        return previous

    @staticmethod
    def _restore_signal_handlers(previous: Dict[int, object]) -> None:
        for signum, handler in previous.items():
            signal.signal(signum, handler)
