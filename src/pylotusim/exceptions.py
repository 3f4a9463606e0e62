"""Custom exception hierarchy for pylotusim."""

from __future__ import annotations


class LotusimError(Exception):
    """Base exception for all pylotusim errors."""


class LotusimConfigError(LotusimError):
    """Invalid or missing configuration."""


class LotusimTransportError(LotusimError):
    """Socket or broker level failure (bind, connect, subscribe)."""

    def __init__(
        self,
        message: str,
        *,
        endpoint: str = "",
    ) -> None:
        self.endpoint = endpoint
        super().__init__(message)


class LotusimMessageError(LotusimError):
    """A single inbound message could not be parsed.

    Message errors never stop a transport: the worker or callback that
    catches one drops the offending message and keeps going.
    """

    def __init__(
        self,
        message: str,
        *,
        source: str = "",
    ) -> None:
        self.source = source
        super().__init__(message)


class LotusimUnknownInterfaceError(LotusimError):
    """Requested interface type has no registered implementation."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Interface type '{name}' not found")
