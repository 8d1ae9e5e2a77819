"""Fixed-cadence monitor loop driving the prober and the log store."""

import enum
import logging
import threading
import time
from typing import Callable

from pingweb.config import MonitorConfig
from pingweb.logstore import LogStore
from pingweb.models import ProbeOutcome
from pingweb.prober import Prober

logger = logging.getLogger(__name__)


class MonitorState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    TERMINATED = "terminated"


class MonitorLoop:
    """Probes one target forever and records every outcome.

    Scheduling is fixed-rate: tick k fires at ``start + k * interval`` on the
    monotonic clock, so probe latency does not accumulate drift. When an
    iteration overruns, the missed ticks are skipped and the loop resumes at
    the next tick in the future.

    stop() may be called from any thread. It is checked at the top of every
    iteration and wakes the inter-tick wait, but never interrupts an append.

    Any exception from the prober or the store (LogStoreError,
    ProberUnavailableError, or anything unexpected) terminates the loop: the
    error is stored in ``error``, passed to ``on_error`` and re-raised from
    run(). The process supervisor is expected to restart the process.
    """

    def __init__(
        self,
        prober: Prober,
        store: LogStore,
        config: MonitorConfig,
        on_error: Callable[[BaseException], None] | None = None,
    ):
        self.prober = prober
        self.store = store
        self.config = config
        self.on_error = on_error

        self.state = MonitorState.IDLE
        self.error: BaseException | None = None
        self.iterations = 0
        self.losses = 0
        self.skipped_ticks = 0

        self._stop_event = threading.Event()
        self._clock = time.monotonic

    def run(self) -> None:
        """Run until stop() is called or a fatal error occurs."""
        interval = self.config.probe_interval
        self.state = MonitorState.RUNNING
        logger.info(
            "Monitoring started: target=%s, interval=%.2fs, timeout=%.2fs",
            self.config.target,
            interval,
            self.config.probe_timeout,
        )

        start = self._clock()
        tick = 0
        try:
            while not self._stop_event.is_set():
                self.run_once()

                tick += 1
                now = self._clock()
                next_at = start + tick * interval
                if next_at < now:
                    behind = int((now - next_at) // interval) + 1
                    tick += behind
                    self.skipped_ticks += behind
                    next_at = start + tick * interval
                    logger.debug("Iteration overran, skipped %d tick(s)", behind)
                self._stop_event.wait(next_at - now)
        except Exception as e:
            # every escape is fatal to the process
            self.error = e
            logger.critical("Monitoring terminated: %r", e, exc_info=True)
            if self.on_error is not None:
                self.on_error(e)
            raise
        finally:
            self.state = MonitorState.TERMINATED

        logger.info("Monitoring stopped after %d iteration(s)", self.iterations)

    def run_once(self) -> ProbeOutcome:
        """Probe the target once and append the outcome to the store."""
        outcome = self.prober.probe(self.config.target)
        self.store.append(outcome)

        self.iterations += 1
        if outcome.loss:
            self.losses += 1
            logger.info("Packet loss: target=%s, ts=%s", self.config.target, outcome.ts)
        else:
            logger.debug("Reply: target=%s, latency=%sms", self.config.target, outcome.latency_ms)
        return outcome

    def stop(self) -> None:
        """Ask the loop to exit after the current iteration."""
        self._stop_event.set()

    def get_stats(self):
        """Get monitor statistics.

        Returns:
            Dict with monitor state info
        """
        return {
            "target": self.config.target,
            "state": self.state.value,
            "iterations": self.iterations,
            "losses": self.losses,
            "skipped_ticks": self.skipped_ticks,
        }
