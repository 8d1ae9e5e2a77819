"""Data models for pingweb probe outcomes and their persisted line format."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
SEPARATOR = " – "  # en dash, as in the legacy ping_logger.sh files

PING_LOSS_TEXT = "PACKET LOSS"
LOSS_LOG_TEXT = "100% Packet Loss"
LATENCY_SUFFIX = " ms"


@dataclass(frozen=True)
class ProbeOutcome:
    """A single reachability probe result.

    Frozen: published log snapshots share these objects with readers.
    """

    ts: datetime
    latency_ms: Decimal | None  # None indicates packet loss
    loss: bool

    def __post_init__(self):
        """Truncate to whole seconds and keep latency_ms/loss consistent."""
        object.__setattr__(self, "ts", self.ts.replace(microsecond=0))
        if self.loss:
            object.__setattr__(self, "latency_ms", None)
        elif self.latency_ms is None:
            object.__setattr__(self, "loss", True)
        else:
            if not isinstance(self.latency_ms, Decimal):
                object.__setattr__(self, "latency_ms", Decimal(str(self.latency_ms)))
            if self.latency_ms < 0:
                raise ValueError("latency_ms must be non-negative")

    @classmethod
    def success(cls, ts: datetime, latency_ms) -> "ProbeOutcome":
        return cls(ts=ts, latency_ms=latency_ms, loss=False)

    @classmethod
    def lost(cls, ts: datetime) -> "ProbeOutcome":
        return cls(ts=ts, latency_ms=None, loss=True)


def format_timestamp(ts: datetime) -> str:
    return ts.strftime(TIMESTAMP_FORMAT)


def format_ping_line(outcome: ProbeOutcome) -> str:
    """Render a PingLog line (without trailing newline).

    >>> format_ping_line(ProbeOutcome.success(datetime(2024, 1, 2, 3, 4, 5), Decimal("12.3")))
    '2024-01-02 03:04:05 – 12.3 ms'
    """
    if outcome.loss:
        value = PING_LOSS_TEXT
    else:
        value = f"{outcome.latency_ms}{LATENCY_SUFFIX}"
    return f"{format_timestamp(outcome.ts)}{SEPARATOR}{value}"


def format_loss_line(ts: datetime) -> str:
    """Render a LossLog line (without trailing newline)."""
    return f"{format_timestamp(ts)}{SEPARATOR}{LOSS_LOG_TEXT}"


def _split_line(line: str) -> tuple[datetime, str] | None:
    stamp, sep, value = line.rstrip("\r\n").partition(SEPARATOR)
    if not sep:
        return None
    try:
        return datetime.strptime(stamp, TIMESTAMP_FORMAT), value
    except ValueError:
        return None


def parse_ping_line(line: str) -> ProbeOutcome | None:
    """Parse a persisted PingLog line, or return None if it is malformed."""
    parts = _split_line(line)
    if parts is None:
        return None
    ts, value = parts
    if value == PING_LOSS_TEXT:
        return ProbeOutcome.lost(ts)
    if not value.endswith(LATENCY_SUFFIX):
        return None
    try:
        latency = Decimal(value[: -len(LATENCY_SUFFIX)])
    except InvalidOperation:
        return None
    if not latency.is_finite() or latency < 0:
        return None
    return ProbeOutcome.success(ts, latency)


def parse_loss_line(line: str) -> datetime | None:
    """Parse a persisted LossLog line, or return None if it is malformed."""
    parts = _split_line(line)
    if parts is None or parts[1] != LOSS_LOG_TEXT:
        return None
    return parts[0]
