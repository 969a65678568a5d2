"""
Recometry Client – Facade

Recometry composes the connection manager (event collection) and the ML
client (recommend / predict) behind one object sharing one configuration.

USAGE:
    async with Recometry(RecometryConfig(api_key="...", env="live")) as client:
        await client.collect({"id": "1", "type": "click", "data": {},
                              "productId": 1, "userId": "u"})
        response = await client.recommend({"modelId": "m", "userId": "u", "limit": 5})
"""

from typing import Any, Mapping, Optional, Union

from .channel import Channel
from .config import RecometryConfig
from .connection import ConnectionManager
from .ml_client import MLClient
from .schema import (
    PredictionRequest,
    PredictionResponse,
    RecometryEvent,
    RecommendationRequest,
    RecommendationResponse,
)
from .types import ConnectionState


class Recometry:
    """
    Recometry client.

    Connects to the collection hub automatically on construction (when an
    event loop is running). collect() never raises; recommend() and
    predict() raise on any failure.
    """

    def __init__(self, config: RecometryConfig, channel: Optional[Channel] = None):
        if config is None:
            raise ValueError("config is required")

        self.config = config
        self.connection = ConnectionManager(config, channel=channel)
        self.ml = MLClient(
            config.base_url,
            config.api_key,
            timeout_seconds=config.request_timeout,
            log=config.log,
        )

    @property
    def base_url(self) -> str:
        return self.config.base_url

    @property
    def state(self) -> ConnectionState:
        return self.connection.state

    async def collect(self, event: Union[RecometryEvent, Mapping[str, Any]]) -> None:
        """Sends event to the server for collection (best-effort)."""
        await self.connection.collect(event)

    async def recommend(
        self,
        request: Union[RecommendationRequest, Mapping[str, Any]]
    ) -> RecommendationResponse:
        """Sends a recommendation request."""
        return await self.ml.recommend(request)

    async def predict(
        self,
        request: Union[PredictionRequest, Mapping[str, Any]]
    ) -> PredictionResponse:
        """Sends a prediction request."""
        return await self.ml.predict(request)

    async def wait_started(self) -> None:
        await self.connection.wait_started()

    async def close(self) -> None:
        await self.connection.close()

    async def __aenter__(self) -> "Recometry":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
