"""
Recometry Client – Connection Lifecycle

This module owns the real-time channel used for event collection.

LIFECYCLE:
1. Construction builds the channel and schedules the initial connect
2. collect() reconnects if needed, then invokes the hub's collect method
3. close() disconnects; a later collect() connects again (no terminal state)

RECOVERY RULE:
- Any state other than CONNECTED is treated the same way:
  stop the channel, then start it again
- The transport's own automatic reconnect is a first line of defense only;
  it is never assumed to have succeeded

FAILURE SEMANTICS:
- connect / disconnect / reconnect / collect NEVER raise
- Every failure is logged and discarded
- Events that cannot be delivered are dropped (no queue, no retry)
- on_error fires only for transport error notifications

CONCURRENCY:
- The initial connect and every reconnect+send sequence hold one
  per-instance asyncio.Lock, so concurrent collect() calls cannot tear
  the channel down twice and are sent in call order
"""

import asyncio
import inspect
from typing import Any, Mapping, Optional, Union

from .channel import Channel, HubChannel
from .config import RecometryConfig
from .schema import RecometryEvent, coerce
from .types import ConnectionState

HUB_PATH = "/metrics"
COLLECT_METHOD = "collect"
ERROR_NOTIFICATION = "error"


class ConnectionManager:
    """
    Connection lifecycle manager for the collection hub.

    CARDINALITY: Exactly one channel per manager, for the manager's lifetime.
    OWNERSHIP: The channel is never exposed to callers.
    """

    def __init__(self, config: RecometryConfig, channel: Optional[Channel] = None):
        """
        Initialize the manager and start connecting in the background.

        Args:
            config: Client configuration (required)
            channel: Transport to use instead of the default HubChannel

        Raises:
            ValueError: If config is missing

        Connection failures are never raised here; they are logged.
        """
        if config is None:
            raise ValueError("config is required")

        self.config = config
        self.base_url = config.base_url
        self._log = config.log

        if channel is None:
            channel = HubChannel(
                f"{self.base_url}{HUB_PATH}",
                access_token_factory=lambda: config.api_key,
                auto_reconnect=config.auto_reconnect,
                log=self._log,
            )
        self._channel = channel
        self._channel.on(ERROR_NOTIFICATION, self._on_error)

        self._lock = asyncio.Lock()
        self._connect_task: Optional[asyncio.Task] = None

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._log.debug("No running event loop, initial connect deferred to first collect()")
        else:
            self._connect_task = loop.create_task(self._initial_connect())

    @property
    def state(self) -> ConnectionState:
        """Current channel state (read-only)."""
        return self._channel.state

    async def wait_started(self) -> None:
        """
        Wait for the initial connect scheduled at construction to finish.

        Returns once it has finished, successful or not; check state.
        """
        task = self._connect_task
        if task is not None:
            # wait() leaves the task alone if the caller is cancelled
            await asyncio.wait({task})

    async def connect(self) -> None:
        """Start the channel unless it is already CONNECTED. Never raises."""
        try:
            if self._channel.state is ConnectionState.CONNECTED:
                return
            await self._channel.start()
        except Exception as e:
            self._log.error(f"Connect failed: {e!r}")

    async def disconnect(self) -> None:
        """Stop the channel unless it is already DISCONNECTED. Never raises."""
        try:
            if self._channel.state is ConnectionState.DISCONNECTED:
                return
            await self._channel.stop()
        except Exception as e:
            self._log.error(f"Disconnect failed: {e!r}")

    async def reconnect(self) -> None:
        """
        Make sure the channel is CONNECTED before a send.

        No-op when CONNECTED. Otherwise disconnect() then connect(),
        whatever the reason the channel is down. Never raises; a failed
        reconnect leaves the channel in whatever state the transport reports.
        """
        try:
            if self._channel.state is ConnectionState.CONNECTED:
                return

            self._log.debug(f"Channel is {self._channel.state.value}, restarting it")
            await self.disconnect()
            await self.connect()

        except Exception as e:
            self._log.error(f"Reconnect failed: {e!r}")

    async def collect(self, event: Union[RecometryEvent, Mapping[str, Any]]) -> None:
        """
        Send one event to the collection hub (best-effort).

        Sequence:
        1. reconnect()
        2. invoke the hub's collect method with the event as sole argument

        Never raises and returns nothing. There is exactly one attempt;
        an event that cannot be delivered is dropped.
        """
        async with self._lock:
            try:
                await self.reconnect()
                payload = coerce(RecometryEvent, event).to_wire()
                await self._channel.invoke(COLLECT_METHOD, payload)
            except Exception as e:
                self._log.error(f"Collect failed: {e!r}")

    async def close(self) -> None:
        """Disconnect after any in-flight initial connect. Never raises."""
        await self.wait_started()
        async with self._lock:
            await self.disconnect()

    async def __aenter__(self) -> "ConnectionManager":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def _initial_connect(self) -> None:
        async with self._lock:
            await self.connect()

    async def _on_error(self, error: Any) -> None:
        """Error notification from the transport: log, then forward to on_error."""
        self._log.error(f"Error notification from hub: {error!r}")

        callback = self.config.on_error
        if callback is None:
            return

        result = callback(error)
        if inspect.isawaitable(result):
            await result
