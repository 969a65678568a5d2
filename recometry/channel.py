"""
Recometry Client – Real-Time Channel

This module provides the real-time transport consumed by ConnectionManager.

CHANNEL CONTRACT (what the manager relies on):
- state: current ConnectionState (owned by the channel)
- start(): open the connection (only from DISCONNECTED)
- stop(): close the connection (no-op when DISCONNECTED)
- invoke(method, *args): call a hub method and await its completion
- on(method, handler): register a server-to-client notification handler

HubChannel adapts pysignalr's SignalRClient to that contract:
- pysignalr owns the wire protocol (negotiation, framing, handshake,
  pings and its own low-level reconnect loop)
- HubChannel owns the observable state, invocation results and
  notification dispatch
- Bearer credential is sent as a header, fetched again on every start()

NOTIFICATION DISPATCH:
- Server-to-client notifications are queued and run one at a time by a
  dispatcher task, outside pysignalr's receive loop
- A handler may therefore invoke hub methods and await their completion
"""

import asyncio
import inspect
from typing import Any, Callable, Dict, List, Optional, Protocol, Set, Tuple

from loguru import logger
from pysignalr.client import SignalRClient
from pysignalr.messages import CompletionMessage

from .errors import (
    HubConnectError,
    HubConnectionLostError,
    HubInvocationError,
    HubStateError,
)
from .types import ConnectionState

Handler = Callable[..., Any]


class Channel(Protocol):
    """Transport contract consumed by ConnectionManager."""

    @property
    def state(self) -> ConnectionState: ...

    async def start(self) -> None: ...

    async def stop(self) -> None: ...

    async def invoke(self, method: str, *args: Any) -> Any: ...

    def on(self, method: str, handler: Handler) -> None: ...


class HubChannel:
    """
    Hub connection backed by one pysignalr client per start().

    One HubChannel is one logical connection: it is stopped and restarted
    in place, never replaced. All methods must be called from the event
    loop that owns the channel.

    FAILURE SEMANTICS:
    - Not opened within connect_timeout, or client gave up -> HubConnectError,
      state back to DISCONNECTED
    - Completion with error -> HubInvocationError raised from invoke()
    - No completion within invocation_timeout -> HubInvocationError
    - Connection lost with invocations pending -> HubConnectionLostError
    - Notification handler raises -> logged, dispatch continues
    """

    def __init__(
        self,
        url: str,
        access_token_factory: Optional[Callable[[], str]] = None,
        auto_reconnect: bool = True,
        connect_timeout: float = 15.0,
        invocation_timeout: float = 30.0,
        log=None,
    ):
        """
        Initialize hub channel (no I/O happens here).

        Args:
            url: Hub address (http(s); pysignalr derives the socket address)
            access_token_factory: Returns the bearer token for each start()
            auto_reconnect: Let pysignalr reconnect after an unexpected loss;
                            when False the channel goes DISCONNECTED instead
            connect_timeout: Seconds start() waits for the connection to open
            invocation_timeout: Seconds invoke() waits for a completion
            log: loguru-compatible logger (default: module logger)
        """
        self.url = url
        self.access_token_factory = access_token_factory
        self.auto_reconnect = auto_reconnect
        self.connect_timeout = connect_timeout
        self.invocation_timeout = invocation_timeout
        self._log = log if log is not None else logger

        self._state = ConnectionState.DISCONNECTED
        self._handlers: Dict[str, List[Handler]] = {}
        self._pending: Set["asyncio.Future[Any]"] = set()

        self._client: Optional[SignalRClient] = None
        self._opened: Optional[asyncio.Event] = None
        self._queue: Optional["asyncio.Queue[Optional[Tuple[str, List[Any]]]]"] = None
        self._run_task: Optional[asyncio.Task] = None
        self._dispatch_task: Optional[asyncio.Task] = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    def on(self, method: str, handler: Handler) -> None:
        """Register a handler for a server-to-client method (sync or async)."""
        first = method not in self._handlers
        self._handlers.setdefault(method, []).append(handler)
        if first and self._client is not None:
            self._client.on(method, self._forwarder(method))

    def off(self, method: str, handler: Optional[Handler] = None) -> None:
        """Remove one handler, or every handler for method when handler is None."""
        if handler is None:
            self._handlers.pop(method, None)
            return
        handlers = self._handlers.get(method, [])
        if handler in handlers:
            handlers.remove(handler)

    async def start(self) -> None:
        """
        Open the hub connection.

        Raises:
            HubStateError: If the channel is not DISCONNECTED
            HubConnectError: If the connection did not open
        """
        if self._state is not ConnectionState.DISCONNECTED:
            raise HubStateError(f"Cannot start hub channel in state {self._state.value}")

        self._state = ConnectionState.CONNECTING
        self._log.debug(f"Starting hub channel to {self.url}")

        try:
            await self._release()

            self._client = self._build_client()
            self._opened = asyncio.Event()
            self._queue = asyncio.Queue()
            self._dispatch_task = asyncio.create_task(self._dispatch_loop(self._queue))
            self._run_task = asyncio.create_task(self._client.run())
            self._run_task.add_done_callback(self._run_finished)

            await self._wait_opened()
        except BaseException:
            self._state = ConnectionState.DISCONNECTED
            await self._release()
            raise

        self._log.info(f"Hub channel connected to {self.url}")

    async def stop(self) -> None:
        """Close the connection. Safe to call in any state."""
        was_active = self._state is not ConnectionState.DISCONNECTED
        if was_active:
            self._log.debug(f"Stopping hub channel (state={self._state.value})")

        self._state = ConnectionState.DISCONNECTED
        self._fail_pending(HubConnectionLostError("Hub channel stopped"))
        await self._release()

        if was_active:
            self._log.info("Hub channel disconnected")

    async def invoke(self, method: str, *args: Any) -> Any:
        """
        Invoke a hub method and wait for its completion.

        Returns:
            The completion result (None for void hub methods)

        Raises:
            HubStateError: If the channel is not CONNECTED
            HubInvocationError: If the server reports an error or never completes
            HubConnectionLostError: If the connection drops first
        """
        if self._state is not ConnectionState.CONNECTED or self._client is None:
            raise HubStateError(
                f"Cannot invoke {method!r}: hub channel is {self._state.value}"
            )

        future: "asyncio.Future[Any]" = asyncio.get_running_loop().create_future()

        async def on_completion(message: CompletionMessage) -> None:
            if future.done():
                return
            if message.error:
                future.set_exception(HubInvocationError(method, str(message.error)))
            else:
                future.set_result(message.result)

        self._pending.add(future)
        try:
            await self._client.send(method, list(args), on_invocation=on_completion)
            return await asyncio.wait_for(future, timeout=self.invocation_timeout)
        except asyncio.TimeoutError:
            raise HubInvocationError(
                method, f"no completion within {self.invocation_timeout}s"
            )
        finally:
            self._pending.discard(future)

    def _build_client(self) -> SignalRClient:
        headers = {}
        if self.access_token_factory is not None:
            headers["Authorization"] = f"Bearer {self.access_token_factory()}"

        client = SignalRClient(self.url, headers=headers)
        client.on_open(self._on_open)
        client.on_close(self._on_close)
        client.on_error(self._on_completion_error)
        for method in self._handlers:
            client.on(method, self._forwarder(method))
        return client

    async def _wait_opened(self) -> None:
        """Wait until pysignalr reports the connection open or its run task ends."""
        opened = asyncio.ensure_future(self._opened.wait())
        try:
            done, _ = await asyncio.wait(
                {opened, self._run_task},
                timeout=self.connect_timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            opened.cancel()

        if self._opened.is_set():
            return

        if self._run_task in done:
            error = None if self._run_task.cancelled() else self._run_task.exception()
            raise HubConnectError(f"Hub connection to {self.url} failed: {error!r}") from error

        raise HubConnectError(
            f"Hub connection to {self.url} not opened within {self.connect_timeout}s"
        )

    async def _release(self) -> None:
        """Cancel and await the tasks of the previous client, if any."""
        current = asyncio.current_task()
        tasks = [
            t for t in (self._run_task, self._dispatch_task)
            if t is not None and t is not current
        ]
        if self._queue is not None:
            # Lets a dispatcher that is stopping its own channel exit
            self._queue.put_nowait(None)

        self._client = None
        self._run_task = self._dispatch_task = None
        self._queue = None

        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _on_open(self) -> None:
        if self._state is ConnectionState.DISCONNECTED:
            return
        reconnected = self._state is ConnectionState.RECONNECTING
        self._state = ConnectionState.CONNECTED
        self._opened.set()
        if reconnected:
            self._log.info(f"Hub channel reconnected to {self.url}")

    async def _on_close(self) -> None:
        if self._state is not ConnectionState.CONNECTED:
            return

        self._fail_pending(HubConnectionLostError("Hub connection lost"))

        if self.auto_reconnect:
            self._log.warning("Hub connection lost, reconnecting")
            self._state = ConnectionState.RECONNECTING
            return

        self._log.warning("Hub connection lost, not reconnecting")
        self._state = ConnectionState.DISCONNECTED
        # Runs inside the run task; the next stop()/start() awaits both
        for task in (self._run_task, self._dispatch_task):
            if task is not None:
                task.cancel()

    async def _on_completion_error(self, message: CompletionMessage) -> None:
        self._log.debug(
            f"Hub completed invocation {message.invocation_id} with error: {message.error}"
        )

    def _run_finished(self, task: asyncio.Task) -> None:
        """Done callback of the pysignalr run task."""
        if task.cancelled():
            return
        error = task.exception()
        if task is not self._run_task or self._state in (
            ConnectionState.CONNECTING,
            ConnectionState.DISCONNECTED,
        ):
            return

        self._log.error(f"Hub client stopped: {error!r}")
        self._state = ConnectionState.DISCONNECTED
        self._fail_pending(HubConnectionLostError(f"Hub client stopped: {error!r}"))
        if self._dispatch_task is not None:
            self._dispatch_task.cancel()

    def _forwarder(self, method: str) -> Callable[[List[Any]], Any]:
        async def forward(arguments: List[Any]) -> None:
            if self._queue is not None:
                self._queue.put_nowait((method, list(arguments or [])))
        return forward

    async def _dispatch_loop(self, queue: "asyncio.Queue") -> None:
        while True:
            item = await queue.get()
            if item is None:
                return
            method, arguments = item
            await self._run_handlers(method, arguments)

    async def _run_handlers(self, method: str, arguments: List[Any]) -> None:
        handlers = list(self._handlers.get(method, ()))
        if not handlers:
            self._log.warning(f"No handler registered for hub method {method!r}")
            return

        for handler in handlers:
            try:
                result = handler(*arguments)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self._log.error(f"Handler for hub method {method!r} failed: {e!r}")

    def _fail_pending(self, error: Exception) -> None:
        for future in self._pending:
            if not future.done():
                future.set_exception(error)
        self._pending.clear()
