import os
import signal
import socket
import threading
import time
from typing import Callable, Dict

import httpx
import pytest

from conftest import respond_corrupt_gzip, respond_trickle
from services.awair import AwairClient
from services.lifecycle import SHUTDOWN_GRACE_SECONDS, ExporterRuntime, StartupError
from settings import Settings

ADDRESS = "http://awair.test/air-data/latest"


def _settings(port: int = 0, poll_frequency: float = 0.05) -> Settings:
    return Settings(
        listen_address="127.0.0.1",
        listen_port=port,
        awair_address=ADDRESS,
        poll_frequency=poll_frequency,
        log_level="INFO",
    )


def _device(payload: Dict[str, object]) -> AwairClient:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=payload)

    return AwairClient(ADDRESS, transport=httpx.MockTransport(handler))


def _wait_for(condition: Callable[[], bool], timeout: float = 5.0) -> None:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return
        time.sleep(0.02)
    pytest.fail("Condition was not met in time")


def _start(runtime: ExporterRuntime) -> tuple[threading.Thread, Dict[str, int]]:
    outcome: Dict[str, int] = {}

    def target() -> None:
        outcome["exit_code"] = runtime.run()

    thread = threading.Thread(target=target)
    thread.start()
    _wait_for(lambda: runtime.server.started)
    return thread, outcome


def test_serves_polled_values_and_shuts_down_cleanly() -> None:
    runtime = ExporterRuntime(
        _settings(),
        client=_device({"temp": 21.5, "co2": 612, "score": 88}),
        install_signal_handlers=False,
    )
    thread, outcome = _start(runtime)

    try:
        _wait_for(
            lambda: runtime.metrics.registry.get_sample_value("awair_climate_co2_ppm") == 612.0
        )
        response = httpx.get(f"http://127.0.0.1:{runtime.bound_port}/metrics", trust_env=False)
        assert response.status_code == 200
        assert "\nawair_climate_temp_c 21.5\n" in response.text
        assert "\nawair_climate_score 88.0\n" in response.text
    finally:
        runtime.request_shutdown()
        thread.join(timeout=SHUTDOWN_GRACE_SECONDS + 2)

    assert not thread.is_alive()
    assert outcome["exit_code"] == 0
    assert runtime.poller.stopped is True
    with pytest.raises(httpx.ConnectError):
        httpx.get(f"http://127.0.0.1:{runtime.bound_port}/metrics", trust_env=False)


def test_metrics_available_before_first_poll() -> None:
    runtime = ExporterRuntime(
        _settings(poll_frequency=60),
        client=_device({"co2": 612}),
        install_signal_handlers=False,
    )
    thread, outcome = _start(runtime)

    try:
        response = httpx.get(f"http://127.0.0.1:{runtime.bound_port}/metrics", trust_env=False)
        assert response.status_code == 200
        assert "\nawair_climate_co2_ppm 0.0\n" in response.text
    finally:
        runtime.request_shutdown()
        thread.join(timeout=SHUTDOWN_GRACE_SECONDS + 2)

    assert outcome["exit_code"] == 0


def test_port_in_use_is_fatal() -> None:
    occupied = socket.create_server(("127.0.0.1", 0))
    try:
        port = occupied.getsockname()[1]
        runtime = ExporterRuntime(
            _settings(port=port),
            client=_device({}),
            install_signal_handlers=False,
        )

        with pytest.raises(StartupError) as excinfo:
            runtime.run()

        assert str(port) in str(excinfo.value)
    finally:
        occupied.close()


def test_sigterm_triggers_graceful_shutdown() -> None:
    runtime = ExporterRuntime(_settings(poll_frequency=60), client=_device({}))

    def send_sigterm() -> None:
        _wait_for(lambda: runtime.server.started)
        os.kill(os.getpid(), signal.SIGTERM)

    sender = threading.Thread(target=send_sigterm)
    previous = signal.getsignal(signal.SIGTERM)
    sender.start()
    started = time.monotonic()
    exit_code = runtime.run()
    sender.join(timeout=1)

    assert exit_code == 0
    assert time.monotonic() - started < SHUTDOWN_GRACE_SECONDS + 5
    assert signal.getsignal(signal.SIGTERM) == previous


def test_failing_device_keeps_exporter_running(device_server) -> None:
    device_server.responder = respond_corrupt_gzip
    runtime = ExporterRuntime(
        _settings(poll_frequency=0.05),
        client=AwairClient(device_server.address),
        install_signal_handlers=False,
    )
    thread, outcome = _start(runtime)

    def read_errors() -> float:
        value = runtime.metrics.registry.get_sample_value(
            "awair_exporter_poll_errors_total", {"reason": "read"}
        )
        return value or 0.0

    try:
        _wait_for(lambda: read_errors() >= 3)
        response = httpx.get(f"http://127.0.0.1:{runtime.bound_port}/metrics", trust_env=False)
        assert response.status_code == 200
        assert "\nawair_exporter_last_poll_success 0.0\n" in response.text
        assert thread.is_alive()
        assert runtime.poller.stopped is False
    finally:
        runtime.request_shutdown()
        thread.join(timeout=SHUTDOWN_GRACE_SECONDS + 2)

    assert not thread.is_alive()
    assert outcome["exit_code"] == 0


def test_slow_device_does_not_delay_shutdown(device_server) -> None:
    device_server.responder = respond_trickle({"co2": 612, "temp": 21.5, "score": 88}, delay=0.2)
    runtime = ExporterRuntime(
        _settings(poll_frequency=0.05),
        client=AwairClient(device_server.address),
        install_signal_handlers=False,
    )
    thread, outcome = _start(runtime)

    time.sleep(0.3)
    requested = time.monotonic()
    runtime.request_shutdown()
    thread.join(timeout=SHUTDOWN_GRACE_SECONDS + 2)

    assert not thread.is_alive()
    assert time.monotonic() - requested < 2.5
    assert outcome["exit_code"] == 0
