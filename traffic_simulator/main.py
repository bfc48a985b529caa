from __future__ import annotations

import asyncio
import json
import signal
import threading
from http.server import BaseHTTPRequestHandler, HTTPServer

from prometheus_client import start_http_server

from shared.constants import Environment
from traffic_simulator.core.config import settings
from traffic_simulator.core.logger import configure_logging, get_logger
from traffic_simulator.services.engine import TrafficEngine

logger = get_logger("app")


def _health_handler_factory(engine: TrafficEngine):
    class Handler(BaseHTTPRequestHandler):
        def do_GET(self):  # noqa: N802
            if self.path != "/healthz":
                self.send_response(404)
                self.end_headers()
                return
            payload = {
                "status": "stopping" if engine.stop_token.is_set() else "ok",
                "service": settings.otel_service_name,
                "emitted_total": engine.stats.emitted_total,
                "live_emitters": engine.scheduler.live_tasks(),
                "workers": {k: v.value for k, v in engine.consumers.states().items()},
            }
            body = json.dumps(payload).encode()
            self.send_response(200)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def log_message(self, format, *args):  # noqa: A003
            return

    return Handler


def _start_health_server(engine: TrafficEngine) -> None:
    try:
        server = HTTPServer(("0.0.0.0", settings.health_port), _health_handler_factory(engine))
        logger.info("health_server_listening", extra={"port": settings.health_port})
        server.serve_forever()
    except Exception as exc:  # noqa: BLE001
        logger.exception("health_server_error", extra={"error": str(exc)})


async def _run() -> None:
    configure_logging()
    logger.info("traffic_simulator_starting")

    if Environment.exposes_metrics(settings.app_environment):
        start_http_server(settings.metrics_port)
        logger.info("metrics_listening", extra={"port": settings.metrics_port})

    engine = TrafficEngine(settings)
    threading.Thread(
        target=_start_health_server, args=(engine,), name="healthz", daemon=True
    ).start()

    loop = asyncio.get_running_loop()

    # first signal drains, second cancels everything
    state = {"signalled": False}

    def _cancel_all() -> None:
        for task in asyncio.all_tasks(loop):
            task.cancel()

    def _on_signal(signum, frame):
        if not state["signalled"]:
            state["signalled"] = True
            logger.info("signal_received", extra={"signal": signum, "action": "drain"})
            loop.call_soon_threadsafe(engine.stop_token.set)
        else:
            logger.warning("second_signal_exit", extra={"signal": signum, "action": "cancel"})
            loop.call_soon_threadsafe(_cancel_all)

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            signal.signal(sig, _on_signal)
        except Exception:  # noqa: BLE001
            logger.debug("signal_handler_install_failed", extra={"signal": sig})

    try:
        await engine.start()
        await engine.run_until_stopped()
    except asyncio.CancelledError:  # pragma: no cover
        logger.info("app_cancelled")
    finally:
        logger.info("traffic_simulator_stopped")


def main() -> None:  # pragma: no cover - small wrapper
    try:
        asyncio.run(_run())
    except KeyboardInterrupt:  # noqa: PIE786
        logger.info("keyboard_interrupt_shutdown")
    except Exception:  # noqa: BLE001
        logger.exception("fatal_error_main")


if __name__ == "__main__":  # pragma: no cover
    main()
