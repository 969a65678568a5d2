"""
Pytest configuration and fixtures.
"""
import asyncio
import inspect
import json
from typing import Any, Dict, List, Optional, Set

import pytest
from aiohttp import WSMsgType, web
from aiohttp.test_utils import TestServer
from loguru import logger

from recometry.config import RecometryConfig
from recometry.types import ConnectionState

RS = "\x1e"


class FakeChannel:
    """Recording channel: start/stop/invoke flip state without I/O."""

    def __init__(
        self,
        start_error: Optional[Exception] = None,
        invoke_error: Optional[Exception] = None,
        start_delay: float = 0.0,
    ):
        self.state = ConnectionState.DISCONNECTED
        self.start_error = start_error
        self.invoke_error = invoke_error
        self.start_delay = start_delay
        self.calls: List[str] = []
        self.invocations: List[tuple] = []
        self.handlers: Dict[str, list] = {}

    def on(self, method, handler):
        self.handlers.setdefault(method.lower(), []).append(handler)

    async def start(self):
        self.calls.append("start")
        self.state = ConnectionState.CONNECTING
        if self.start_delay:
            await asyncio.sleep(self.start_delay)
        if self.start_error is not None:
            self.state = ConnectionState.DISCONNECTED
            raise self.start_error
        self.state = ConnectionState.CONNECTED

    async def stop(self):
        self.calls.append("stop")
        await asyncio.sleep(0)
        self.state = ConnectionState.DISCONNECTED

    async def invoke(self, method, *args):
        self.calls.append("invoke")
        if self.state is not ConnectionState.CONNECTED:
            raise RuntimeError(f"not connected ({self.state.value})")
        if self.invoke_error is not None:
            raise self.invoke_error
        await asyncio.sleep(0)
        self.invocations.append((method, args))

    async def emit(self, method, *args):
        """Simulate a server notification, awaiting async handlers."""
        for handler in self.handlers.get(method.lower(), []):
            result = handler(*args)
            if inspect.isawaitable(result):
                await result


class FakeHub:
    """In-process hub endpoint: negotiate route plus the JSON hub protocol."""

    def __init__(self):
        self.negotiations = 0
        self.authorization: List[Optional[str]] = []
        self.handshakes: List[Dict[str, Any]] = []
        self.received: List[tuple] = []
        self.sockets: List[web.WebSocketResponse] = []
        self.available = True
        self.fail_methods: Dict[str, str] = {}
        self.silent_methods: Set[str] = set()
        self.results: Dict[str, Any] = {}

    @property
    def connections(self) -> int:
        return len(self.sockets)

    async def negotiate(self, request: web.Request) -> web.Response:
        if not self.available:
            return web.Response(status=503)
        self.negotiations += 1
        return web.json_response({
            "connectionId": f"c{self.negotiations}",
            "connectionToken": f"t{self.negotiations}",
            "negotiateVersion": 1,
            "availableTransports": [
                {"transport": "WebSockets", "transferFormats": ["Text", "Binary"]},
            ],
        })

    async def handler(self, request: web.Request) -> web.StreamResponse:
        if not self.available:
            return web.Response(status=503)
        self.authorization.append(request.headers.get("Authorization"))

        ws = web.WebSocketResponse()
        await ws.prepare(request)
        self.sockets.append(ws)

        message = await ws.receive()
        self.handshakes.append(json.loads(message.data.rstrip(RS)))
        await ws.send_str("{}" + RS)

        async for message in ws:
            if message.type != WSMsgType.TEXT:
                continue
            for part in message.data.split(RS):
                if part:
                    await self._handle(ws, json.loads(part))
        return ws

    async def _handle(self, ws, message):
        if message["type"] != 1:
            return
        target = message["target"]
        self.received.append((target, message["arguments"]))
        if target in self.silent_methods or "invocationId" not in message:
            return

        reply = {"type": 3, "invocationId": message["invocationId"]}
        if target in self.fail_methods:
            reply["error"] = self.fail_methods[target]
        else:
            reply["result"] = self.results.get(target)
        await ws.send_str(json.dumps(reply) + RS)

    async def notify(self, method, *args):
        message = {"type": 1, "target": method, "arguments": list(args)}
        await self.sockets[-1].send_str(json.dumps(message) + RS)

    async def drop(self):
        await self.sockets[-1].close()


class FakeMLServer:
    """Recommend / predict endpoints with a configurable reply."""

    def __init__(self):
        self.requests: List[Dict[str, Any]] = []
        self.status = 200
        self.body: Any = {"status": True, "message": "ok", "data": []}
        self.raw: Optional[str] = None

    async def handler(self, request: web.Request) -> web.Response:
        self.requests.append({
            "path": request.path,
            "method": request.method,
            "authorization": request.headers.get("Authorization"),
            "json": await request.json(),
        })
        if self.raw is not None:
            return web.Response(text=self.raw, status=self.status)
        return web.json_response(self.body, status=self.status)


async def wait_until(predicate, timeout=2.0):
    """Poll until predicate() is true."""
    async def _poll():
        while not predicate():
            await asyncio.sleep(0.01)
    await asyncio.wait_for(_poll(), timeout=timeout)


@pytest.fixture
def config():
    return RecometryConfig(api_key="k", env="sandbox")


@pytest.fixture
def sample_event():
    """Sample collection event (wire spelling)."""
    return {
        "id": "1",
        "type": "click",
        "data": {},
        "productId": 1,
        "userId": "u",
    }


@pytest.fixture
def fake_channel():
    return FakeChannel()


@pytest.fixture
def log_messages():
    """Capture loguru messages emitted during the test."""
    messages: List[str] = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)


@pytest.fixture
async def hub():
    """Running FakeHub; yields (hub, url of the /metrics endpoint)."""
    fake = FakeHub()
    app = web.Application()
    app.router.add_post("/metrics/negotiate", fake.negotiate)
    app.router.add_get("/metrics", fake.handler)

    server = TestServer(app)
    await server.start_server()
    yield fake, str(server.make_url("/metrics"))
    await server.close()


@pytest.fixture
async def ml_server():
    """Running FakeMLServer; yields (server state, base url)."""
    fake = FakeMLServer()
    app = web.Application()
    app.router.add_post("/api/v1/ml/recommend", fake.handler)
    app.router.add_post("/api/v1/ml/predict", fake.handler)

    server = TestServer(app)
    await server.start_server()
    yield fake, str(server.make_url("/")).rstrip("/")
    await server.close()
