"""Append-only, size-bounded log store for probe outcomes.

The store keeps two logs:

- PingLog: the newest ``max_ping_entries`` outcomes of any kind.
- LossLog: the timestamp of every lost probe, never trimmed.

Both are mirrored to plain-text files, one line per entry, in the format
used by the earlier shell-based logger so existing consumers keep working.

There is exactly one writer. Appends are serialized on a lock and publish a
new immutable LogSnapshot with a single reference assignment, so readers
never take the lock and always see either the state before or after an
append.
"""

import logging
import os
import tempfile
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from pingweb.errors import LogStoreError
from pingweb.models import (
    ProbeOutcome,
    format_loss_line,
    format_ping_line,
    parse_loss_line,
    parse_ping_line,
)

logger = logging.getLogger(__name__)

PING_LOG_NAME = "ping_log.txt"
LOSS_LOG_NAME = "packet_loss_log.txt"
DEFAULT_MAX_PING_ENTRIES = 100
PING_LOG_MODE = 0o664  # mkstemp creates 0600; the web server user must read it


@dataclass(frozen=True)
class LogSnapshot:
    """Point-in-time copy of both logs."""

    ping: tuple[ProbeOutcome, ...] = ()
    losses: tuple[datetime, ...] = ()

    def ping_text(self) -> str:
        return "".join(format_ping_line(o) + "\n" for o in self.ping)

    def loss_text(self) -> str:
        return "".join(format_loss_line(ts) + "\n" for ts in self.losses)


class LogStore:
    """Durable PingLog/LossLog pair with atomic append and lock-free snapshots."""

    def __init__(self, log_dir, max_ping_entries: int = DEFAULT_MAX_PING_ENTRIES):
        if max_ping_entries <= 0:
            raise ValueError("max_ping_entries must be positive")

        self.log_dir = Path(log_dir)
        self.max_ping_entries = max_ping_entries
        self.ping_path = self.log_dir / PING_LOG_NAME
        self.loss_path = self.log_dir / LOSS_LOG_NAME

        self._write_lock = threading.Lock()
        self._snapshot = LogSnapshot()

    @classmethod
    def open_dir(cls, log_dir, max_ping_entries: int = DEFAULT_MAX_PING_ENTRIES) -> "LogStore":
        """Create a store for log_dir and load whatever is already persisted."""
        store = cls(log_dir, max_ping_entries)
        store.open()
        return store

    def open(self) -> None:
        """Create missing files and load persisted entries.

        Raises:
            LogStoreError: the directory or files cannot be created or read
        """
        with self._write_lock:
            try:
                self.log_dir.mkdir(parents=True, exist_ok=True)
                self.ping_path.touch(exist_ok=True)
                self.loss_path.touch(exist_ok=True)
                ping = self._load(self.ping_path, parse_ping_line)
                losses = self._load(self.loss_path, parse_loss_line)
            except OSError as e:
                raise LogStoreError(f"cannot open log directory {self.log_dir}: {e}") from e

            ping = ping[-self.max_ping_entries :]
            self._snapshot = LogSnapshot(ping=tuple(ping), losses=tuple(losses))

        logger.info(
            "Log store opened: dir=%s, ping_entries=%d, loss_entries=%d",
            self.log_dir,
            len(ping),
            len(losses),
        )

    def append(self, outcome: ProbeOutcome) -> None:
        """Record one outcome in PingLog (and LossLog if it is a loss).

        The trimmed PingLog file is swapped in with os.replace, so the file
        is never seen half-written. Memory is updated only after both files
        are written.

        Raises:
            LogStoreError: the write failed; previous state is left intact
        """
        with self._write_lock:
            current = self._snapshot
            ping = deque(current.ping, maxlen=self.max_ping_entries)
            ping.append(outcome)
            losses = current.losses

            try:
                if outcome.loss:
                    self._append_line(self.loss_path, format_loss_line(outcome.ts))
                    losses = losses + (outcome.ts,)
                self._replace_ping_file(ping)
            except OSError as e:
                raise LogStoreError(f"cannot write log files in {self.log_dir}: {e}") from e

            self._snapshot = LogSnapshot(ping=tuple(ping), losses=losses)

    def snapshot(self) -> LogSnapshot:
        """Return a consistent copy of both logs without blocking the writer."""
        return self._snapshot

    def _load(self, path: Path, parse):
        entries = []
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            for lineno, line in enumerate(f, start=1):
                if not line.strip():
                    continue
                entry = parse(line)
                if entry is None:
                    logger.warning("Skipping malformed line %s:%d: %r", path.name, lineno, line)
                    continue
                entries.append(entry)
        return entries

    def _append_line(self, path: Path, line: str) -> None:
        """Append one line, first closing off any fragment a failed write left."""
        data = (line + "\n").encode("utf-8")
        with open(path, "ab+") as f:
            if f.seek(0, os.SEEK_END) > 0:
                f.seek(-1, os.SEEK_END)
                if f.read(1) != b"\n":
                    logger.warning("Terminating partial last line in %s", path.name)
                    data = b"\n" + data
            f.write(data)
            f.flush()
            os.fsync(f.fileno())

    def _replace_ping_file(self, ping) -> None:
        fd, tmp_name = tempfile.mkstemp(
            dir=self.log_dir, prefix=PING_LOG_NAME + ".", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                for outcome in ping:
                    f.write(format_ping_line(outcome) + "\n")
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_name, PING_LOG_MODE)
            os.replace(tmp_name, self.ping_path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise
