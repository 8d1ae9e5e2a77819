"""Entry point for the pingweb service."""

import logging
import sys
import threading

import uvicorn
from pydantic import ValidationError

from pingweb.config import MonitorConfig, load_config
from pingweb.errors import PingWebError
from pingweb.fake_prober import FakeProber
from pingweb.logging_config import configure_logging
from pingweb.logstore import LogStore
from pingweb.monitor import MonitorLoop
from pingweb.prober import PingProber, Prober
from pingweb.web import create_app

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_CONFIG = 2

MONITOR_JOIN_TIMEOUT = 5.0


def build_prober(config: MonitorConfig) -> Prober:
    """Select the prober named by the configuration."""
    if config.prober == "fake":
        logger.info("Using FakeProber (PINGWEB_PROBER=fake)")
        return FakeProber.from_config(config)

    prober = PingProber(timeout_ms=config.probe_timeout_ms)
    prober.check_available()
    logger.info("PingProber initialized successfully")
    return prober


def _run_monitor(monitor: MonitorLoop) -> None:
    try:
        monitor.run()
    except Exception:
        # already logged, stored on monitor.error and reported through on_error
        pass


def main() -> int:
    """Run the monitor loop and the web view until shutdown or a fatal error."""
    configure_logging()

    try:
        config = load_config()
    except ValidationError as e:
        logger.error("Invalid configuration:\n%s", e)
        return EXIT_CONFIG

    try:
        prober = build_prober(config)
        store = LogStore.open_dir(config.log_dir, config.max_ping_entries)
    except PingWebError as e:
        logger.error("Startup failed: %s", e)
        return EXIT_FATAL

    server = uvicorn.Server(
        uvicorn.Config(
            create_app(config, store),
            host=config.listen_host,
            port=config.listen_port,
            log_config=None,
        )
    )

    def on_monitor_error(exc: BaseException) -> None:
        server.should_exit = True

    monitor = MonitorLoop(prober, store, config, on_error=on_monitor_error)
    thread = threading.Thread(
        target=_run_monitor, args=(monitor,), name="pingweb-monitor", daemon=True
    )
    thread.start()

    logger.info(
        "Serving ping view for %s on http://%s:%d/",
        config.target,
        config.listen_host,
        config.listen_port,
    )
    try:
        server.run()
    finally:
        monitor.stop()
        thread.join(MONITOR_JOIN_TIMEOUT)

    if monitor.error is not None:
        logger.error("Exiting after monitor failure: %r (%s)", monitor.error, monitor.get_stats())
        return EXIT_FATAL
    if not server.started:
        logger.error("Web server failed to start on port %d", config.listen_port)
        return EXIT_FATAL

    logger.info("Shutdown complete: %s", monitor.get_stats())
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
