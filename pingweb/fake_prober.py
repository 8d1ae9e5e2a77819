"""Simulated prober for running pingweb without ICMP access."""

import random
from datetime import datetime

from pingweb.config import MonitorConfig
from pingweb.models import ProbeOutcome


class FakeProber:
    """Generates plausible outcomes: jittery replies and short outages.

    A loss starts an outage of ``outage_length`` consecutive lost probes, so
    the packet-loss log shows bursts the way a flapping link would.
    """

    def __init__(
        self,
        seed: int | None = None,
        base_latency_ms: float = 25.0,
        jitter_ms: float = 5.0,
        loss_probability: float = 0.02,
        outage_length: int = 1,
    ):
        if outage_length < 1:
            raise ValueError("outage_length must be at least 1")

        # Isolated instance so seeded runs are reproducible
        self._random = random.Random(seed)

        self.base_latency_ms = base_latency_ms
        self.jitter_ms = jitter_ms
        self.loss_probability = loss_probability
        self.outage_length = outage_length
        self._outage_left = 0

    @classmethod
    def from_config(cls, config: MonitorConfig) -> "FakeProber":
        return cls(
            base_latency_ms=config.fake_latency_ms,
            jitter_ms=config.fake_jitter_ms,
            loss_probability=config.fake_loss_probability,
            outage_length=config.fake_outage_length,
        )

    def probe(self, target: str) -> ProbeOutcome:
        """Generate a single outcome for the given target."""
        if not target or not target.strip():
            raise ValueError("Target cannot be empty")

        timestamp = datetime.now()

        # Still inside an outage
        if self._outage_left > 0:
            self._outage_left -= 1
            return ProbeOutcome.lost(timestamp)

        if self._random.random() < self.loss_probability:
            self._outage_left = self.outage_length - 1
            return ProbeOutcome.lost(timestamp)

        latency = self.base_latency_ms + self._random.gauss(0, self.jitter_ms)

        # ping prints one decimal at these magnitudes; never report below 0.1 ms
        return ProbeOutcome.success(timestamp, round(max(0.1, latency), 1))
