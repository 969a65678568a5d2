"""
Recometry Client – Core Types

This module defines the enums shared by every part of the client.

CONTENTS:
- ConnectionState: real-time channel lifecycle states
- Environment: closed set of target environments
- EventType: kinds of collected events
- BASE_URLS: fixed environment -> base address table
"""

from enum import Enum
from typing import Dict


class ConnectionState(Enum):
    """
    Real-time channel lifecycle states.

    DISCONNECTED: Initial state, and the state after stop()
    CONNECTING: start() in progress
    CONNECTED: Handshake completed, invocations allowed
    RECONNECTING: Transport lost the socket and is retrying on its own

    State transitions:
    - DISCONNECTED -> CONNECTING (via start())
    - CONNECTING -> CONNECTED | DISCONNECTED
    - CONNECTED -> RECONNECTING (transport drop, automatic)
    - RECONNECTING -> CONNECTED | DISCONNECTED
    - any -> DISCONNECTED (via stop())

    There is no terminal state.
    """
    DISCONNECTED = "Disconnected"
    CONNECTING = "Connecting"
    CONNECTED = "Connected"
    RECONNECTING = "Reconnecting"


class Environment(str, Enum):
    """Target environment. Each value maps to exactly one base address."""
    SANDBOX = "sandbox"
    LIVE = "live"


class EventType(str, Enum):
    """Kinds of events accepted by the collect hub method."""
    CLICK = "click"
    RATING = "rating"


# Fixed table, not user-overridable
BASE_URLS: Dict[Environment, str] = {
    Environment.SANDBOX: "https://localhost:5001",
    Environment.LIVE: "https://api.recometry.com",
}
