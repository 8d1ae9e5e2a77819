"""Unit tests for PingProber."""

import os
import subprocess
from datetime import datetime
from decimal import Decimal

import pytest

from pingweb.errors import ProberUnavailableError
from pingweb.models import ProbeOutcome
from pingweb.prober import PingProber

LINUX_REPLY = """PING 8.8.8.8 (8.8.8.8) 56(84) bytes of data.
64 bytes from 8.8.8.8: icmp_seq=1 ttl=117 time=12.3 ms

--- 8.8.8.8 ping statistics ---
1 packets transmitted, 1 received, 0% packet loss, time 0ms
rtt min/avg/max/mdev = 12.345/12.345/12.345/0.000 ms
"""

LINUX_NO_REPLY = """PING 192.0.2.1 (192.0.2.1) 56(84) bytes of data.

--- 192.0.2.1 ping statistics ---
1 packets transmitted, 0 received, 100% packet loss, time 0ms
"""


def fake_run(returncode=0, stdout="", exc=None, calls=None):
    """Build a subprocess.run replacement returning a canned result."""

    def run(cmd, **kwargs):
        if calls is not None:
            calls.append((cmd, kwargs))
        if exc is not None:
            raise exc
        return subprocess.CompletedProcess(cmd, returncode, stdout=stdout, stderr="")

    return run


class TestPingProberBuildCommand:
    """Test platform-specific command building."""

    def test_build_command_windows(self):
        prober = PingProber(timeout_ms=1000)
        prober.system = "Windows"

        assert prober._build_ping_command("google.com") == [
            "ping", "-n", "1", "-w", "1000", "google.com",
        ]

    def test_build_command_linux(self):
        prober = PingProber(timeout_ms=1000)
        prober.system = "Linux"

        assert prober._build_ping_command("google.com") == [
            "ping", "-c", "1", "-W", "1", "google.com",
        ]

    def test_build_command_linux_fractional_timeout(self):
        """Fractional timeouts round up to whole seconds on Linux."""
        prober = PingProber(timeout_ms=1500)
        prober.system = "Linux"

        assert prober._build_ping_command("google.com")[4] == "2"

    def test_build_command_macos(self):
        prober = PingProber(timeout_ms=1000)
        prober.system = "Darwin"

        assert prober._build_ping_command("google.com") == ["ping", "-c", "1", "google.com"]

    def test_build_command_custom_executable(self):
        prober = PingProber(executable="/usr/bin/ping")
        prober.system = "Linux"

        assert prober._build_ping_command("8.8.8.8")[0] == "/usr/bin/ping"


class TestPingProberInitialization:
    """Test PingProber initialization and configuration."""

    def test_init_default_timeout(self):
        prober = PingProber()
        assert prober.timeout_ms == 1000
        assert prober.timeout_seconds == 1.0

    def test_init_invalid_timeout_zero(self):
        with pytest.raises(ValueError, match="timeout_ms must be positive"):
            PingProber(timeout_ms=0)

    def test_init_invalid_timeout_negative(self):
        with pytest.raises(ValueError, match="timeout_ms must be positive"):
            PingProber(timeout_ms=-100)

    def test_check_available_missing_binary(self, monkeypatch):
        """A missing ping binary is reported as unavailable."""
        monkeypatch.setattr("pingweb.prober.shutil.which", lambda name: None)
        prober = PingProber()

        with pytest.raises(ProberUnavailableError, match="not found"):
            prober.check_available()

    def test_check_available_present_binary(self, monkeypatch):
        monkeypatch.setattr("pingweb.prober.shutil.which", lambda name: "/bin/ping")
        PingProber().check_available()


class TestPingProberProbe:
    """Test outcome classification with a faked subprocess.run."""

    def test_successful_reply(self, monkeypatch):
        calls = []
        monkeypatch.setattr(subprocess, "run", fake_run(stdout=LINUX_REPLY, calls=calls))
        prober = PingProber(timeout_ms=1000)

        outcome = prober.probe("8.8.8.8")

        assert isinstance(outcome, ProbeOutcome)
        assert outcome.loss is False
        assert outcome.latency_ms == Decimal("12.3")
        assert isinstance(outcome.ts, datetime)
        cmd, kwargs = calls[0]
        assert cmd[-1] == "8.8.8.8"
        assert kwargs["shell"] is False
        assert kwargs["timeout"] == pytest.approx(1.5)

    def test_no_reply_is_loss(self, monkeypatch):
        monkeypatch.setattr(subprocess, "run", fake_run(returncode=1, stdout=LINUX_NO_REPLY))

        outcome = PingProber().probe("192.0.2.1")

        assert outcome.loss is True
        assert outcome.latency_ms is None

    def test_subprocess_timeout_is_loss(self, monkeypatch):
        exc = subprocess.TimeoutExpired(cmd="ping", timeout=1.5)
        monkeypatch.setattr(subprocess, "run", fake_run(exc=exc))

        assert PingProber().probe("192.0.2.1").loss is True

    def test_unparseable_reply_is_loss(self, monkeypatch):
        monkeypatch.setattr(subprocess, "run", fake_run(stdout="Antwort: Zeit=15ms"))

        assert PingProber().probe("8.8.8.8").loss is True

    def test_other_subprocess_error_is_loss(self, monkeypatch):
        monkeypatch.setattr(subprocess, "run", fake_run(exc=subprocess.SubprocessError("boom")))

        assert PingProber().probe("8.8.8.8").loss is True

    def test_empty_target_is_loss_without_subprocess(self, monkeypatch):
        calls = []
        monkeypatch.setattr(subprocess, "run", fake_run(calls=calls))

        assert PingProber().probe("   ").loss is True
        assert calls == []

    def test_missing_binary_is_fatal(self, monkeypatch):
        monkeypatch.setattr(subprocess, "run", fake_run(exc=FileNotFoundError("ping")))

        with pytest.raises(ProberUnavailableError):
            PingProber().probe("8.8.8.8")

    def test_permission_denied_is_fatal(self, monkeypatch):
        monkeypatch.setattr(subprocess, "run", fake_run(exc=PermissionError("denied")))

        with pytest.raises(ProberUnavailableError):
            PingProber().probe("8.8.8.8")


class TestPingProberOutputDecoding:
    """Output that is not valid UTF-8 must not escape as an exception."""

    def test_output_decoded_leniently(self, monkeypatch):
        calls = []
        monkeypatch.setattr(subprocess, "run", fake_run(stdout=LINUX_REPLY, calls=calls))

        PingProber().probe("8.8.8.8")

        assert calls[0][1]["text"] is True
        assert calls[0][1]["errors"] == "replace"

    def test_decode_error_is_loss(self, monkeypatch):
        exc = UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")
        monkeypatch.setattr(subprocess, "run", fake_run(exc=exc))

        assert PingProber().probe("8.8.8.8").loss is True

    def test_invalid_argument_is_loss(self, monkeypatch):
        monkeypatch.setattr(subprocess, "run", fake_run(exc=ValueError("embedded null byte")))

        assert PingProber().probe("8.8.8.8").loss is True

    @pytest.mark.skipif(not os.path.exists("/bin/sh"), reason="needs a POSIX shell")
    def test_non_utf8_bytes_from_real_process(self, tmp_path):
        """A ping binary that prints stray bytes still yields its latency."""
        script = tmp_path / "ping"
        script.write_bytes(b"#!/bin/sh\nprintf 'time=1.0 ms \\377\\376\\n'\n")
        script.chmod(0o755)
        prober = PingProber(executable=str(script))
        prober.system = "Linux"

        outcome = prober.probe("192.0.2.1")

        assert outcome.loss is False
        assert outcome.latency_ms == Decimal("1.0")
