"""
Recometry Client

Python client for the Recometry platform:
- Event collection over a persistent real-time hub channel (best-effort)
- Recommendation retrieval and prediction scoring over HTTPS

EXPORTS:
- Recometry: Client facade
- RecometryConfig: Immutable client configuration
- ConnectionManager: Hub connection lifecycle
- HubChannel: Default real-time transport (pysignalr adapter)
- MLClient: recommend / predict endpoints
- Schemas, enums and errors
"""

from .channel import Channel, HubChannel
from .client import Recometry
from .config import RecometryConfig
from .connection import ConnectionManager
from .errors import (
    HubConnectError,
    HubConnectionLostError,
    HubInvocationError,
    HubStateError,
    RecometryError,
)
from .ml_client import MLClient
from .schema import (
    Prediction,
    PredictionRequest,
    PredictionResponse,
    RecometryEvent,
    Recommendation,
    RecommendationRequest,
    RecommendationResponse,
    TypedResponse,
)
from .types import BASE_URLS, ConnectionState, Environment, EventType

__all__ = [
    "Recometry",
    "RecometryConfig",
    "ConnectionManager",
    "Channel",
    "HubChannel",
    "MLClient",
    "RecometryEvent",
    "RecommendationRequest",
    "Recommendation",
    "RecommendationResponse",
    "PredictionRequest",
    "Prediction",
    "PredictionResponse",
    "TypedResponse",
    "ConnectionState",
    "Environment",
    "EventType",
    "BASE_URLS",
    "RecometryError",
    "HubStateError",
    "HubConnectError",
    "HubInvocationError",
    "HubConnectionLostError",
]

__version__ = "0.1.0"
