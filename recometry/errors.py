"""Exceptions raised by the Recometry client."""


class RecometryError(Exception):
    """Base class for errors raised by this package."""


class HubStateError(RecometryError):
    """Operation not allowed in the channel's current state."""


class HubConnectError(RecometryError):
    """Hub connection could not be opened."""


class HubInvocationError(RecometryError):
    """Hub invocation completed with an error, or did not complete in time."""

    def __init__(self, method: str, message: str):
        super().__init__(f"Invocation of {method!r} failed: {message}")
        self.method = method
        self.message = message


class HubConnectionLostError(RecometryError):
    """Connection closed while an invocation was awaiting its completion."""
