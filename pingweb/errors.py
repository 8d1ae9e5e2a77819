"""Exceptions raised by pingweb components."""


class PingWebError(Exception):
    """Base class for pingweb errors."""


class ProberUnavailableError(PingWebError):
    """The system ping facility cannot be invoked at all."""


class LogStoreError(PingWebError):
    """Writing to the log storage medium failed."""
