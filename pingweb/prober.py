"""ICMP reachability prober for pingweb using the system ping command."""

import logging
import platform
import re
import shutil
import subprocess
from datetime import datetime
from decimal import Decimal, InvalidOperation
from math import ceil
from typing import Protocol

from pingweb.errors import ProberUnavailableError
from pingweb.models import ProbeOutcome

logger = logging.getLogger(__name__)

_LESS_THAN_PATTERN = re.compile(r"time<(\d+)", re.IGNORECASE)
_LATENCY_PATTERN = re.compile(r"time\s*[=<]\s*(\d+(?:\.\d+)?)\s*ms", re.IGNORECASE)


class Prober(Protocol):
    """Interface for anything that can probe a target once."""

    def probe(self, target: str) -> ProbeOutcome:
        """Probe the target once and classify the result."""
        ...


def parse_ping_latency_ms(output: str) -> Decimal | None:
    """Parse latency value from ping command output (pure function).

    Handles various ping output formats across platforms:
    - Linux/macOS: "time=12.3 ms"
    - Windows: "time=12ms" or "time<1ms"

    Windows "time<Nms" is interpreted as N/2 ms (midpoint estimate).
    The value is returned as a Decimal so the digits printed by ping are
    kept exactly ("time=100 ms" stays "100", not "100.0").

    Args:
        output: Raw ping command output (stdout or combined stdout+stderr)

    Returns:
        Latency in milliseconds, or None if parsing failed

    Examples:
        >>> parse_ping_latency_ms("time=12.3 ms")
        Decimal('12.3')
        >>> parse_ping_latency_ms("time<1ms")
        Decimal('0.5')
        >>> parse_ping_latency_ms("Request timed out.") is None
        True
    """
    if not output:
        return None

    match = _LESS_THAN_PATTERN.search(output)
    if match:
        return Decimal(match.group(1)) / 2

    match = _LATENCY_PATTERN.search(output)
    if match:
        try:
            return Decimal(match.group(1))
        except (InvalidOperation, IndexError):
            return None

    return None


class PingProber:
    """Prober that runs the OS ping command once per probe.

    Cross-platform implementation supporting Windows, Linux, and macOS.

    Ordinary network failure (timeout, unreachable host, unparseable reply)
    is reported as a loss outcome. Only an inability to run ping at all is
    raised, as ProberUnavailableError.

    **Localization Limitation:**
    Parsing relies on the English keyword "time" in ping output. On non-English
    systems every reply is reported as packet loss; run the service with an
    English locale (LANG=C).
    """

    def __init__(self, timeout_ms: int = 1000, executable: str = "ping"):
        """Initialize ping prober with timeout.

        Args:
            timeout_ms: Maximum time to wait for a reply in milliseconds.
            executable: Name or path of the ping binary.
        """
        if timeout_ms <= 0:
            raise ValueError("timeout_ms must be positive")

        self.timeout_ms = timeout_ms
        self.timeout_seconds = timeout_ms / 1000.0
        self.executable = executable
        self.system = platform.system()

        logger.debug(
            "PingProber initialized: timeout_ms=%d, system=%s",
            timeout_ms,
            self.system,
        )

    def check_available(self) -> None:
        """Raise ProberUnavailableError if the ping binary cannot be found."""
        if shutil.which(self.executable) is None:
            raise ProberUnavailableError(f"ping executable not found: {self.executable}")

    def probe(self, target: str) -> ProbeOutcome:
        """Send one echo request to target and classify the outcome.

        Args:
            target: Hostname or IP address to ping

        Returns:
            ProbeOutcome with the measured latency, or a loss outcome

        Raises:
            ProberUnavailableError: the ping binary could not be executed
        """
        timestamp = datetime.now()

        if not target or not target.strip():
            return ProbeOutcome.lost(timestamp)

        cmd = self._build_ping_command(target)
        logger.debug("Executing ping: target=%s, timeout=%.1fs", target, self.timeout_seconds)

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=self.timeout_seconds + 0.5,
                shell=False,
            )
        except subprocess.TimeoutExpired:
            logger.debug("Ping timeout: target=%s", target)
            return ProbeOutcome.lost(timestamp)
        except OSError as e:
            raise ProberUnavailableError(f"cannot run {cmd[0]}: {e}") from e
        except subprocess.SubprocessError as e:
            logger.warning("Ping error: target=%s, error=%s", target, e, exc_info=True)
            return ProbeOutcome.lost(timestamp)
        except ValueError as e:
            # bad arguments (e.g. NUL in target) or undecodable output
            logger.warning("Ping error: target=%s, error=%s", target, e, exc_info=True)
            return ProbeOutcome.lost(timestamp)

        if result.returncode != 0:
            logger.debug(
                "Ping failed (non-zero returncode): target=%s, returncode=%d",
                target,
                result.returncode,
            )
            return ProbeOutcome.lost(timestamp)

        latency = parse_ping_latency_ms(result.stdout)
        if latency is None:
            logger.debug(
                "Parse failed: target=%s, output_preview=%s",
                target,
                result.stdout[:100] if result.stdout else "(empty)",
            )
            return ProbeOutcome.lost(timestamp)

        logger.debug("Parsed latency: target=%s, latency=%sms", target, latency)
        return ProbeOutcome.success(timestamp, latency)

    def _build_ping_command(self, target: str) -> list[str]:
        """Build platform-specific ping command."""
        if self.system == "Windows":
            return [self.executable, "-n", "1", "-w", str(self.timeout_ms), target]

        elif self.system == "Linux":
            timeout_secs = max(1, ceil(self.timeout_seconds))
            return [self.executable, "-c", "1", "-W", str(timeout_secs), target]

        else:
            # macOS -W has different semantics, rely on the subprocess timeout
            return [self.executable, "-c", "1", target]
