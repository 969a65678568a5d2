"""
Recometry Client – Value Objects

Pydantic schemas for everything the client sends or receives.

WIRE FORMAT:
- Field names are snake_case in Python and camelCase on the wire
- Models accept either spelling on input (populate_by_name)
- Models are dumped by alias before being sent

No validation beyond shape: events are sent as-is, including top-level
keys the schema does not name. Values are never coerced to another type.
"""

from typing import Any, Dict, Generic, List, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field

from .types import EventType


class WireModel(BaseModel):
    """Base for models exchanged with the server (camelCase aliases)."""

    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    def to_wire(self) -> Dict[str, Any]:
        """JSON-ready dict using wire (camelCase) field names."""
        return self.model_dump(mode="json", by_alias=True)


M = TypeVar("M", bound=WireModel)


def coerce(model: Type[M], value: Union[M, Mapping[str, Any]]) -> M:
    """Accept either a model instance or a plain mapping."""
    if isinstance(value, model):
        return value
    return model.model_validate(value)


class RecometryEvent(WireModel):
    """Single user interaction sent over the hub's collect method."""

    # Unknown top-level keys are forwarded unchanged
    model_config = ConfigDict(populate_by_name=True, protected_namespaces=(), extra="allow")

    id: str = Field(..., description="Client-side event identifier")
    type: EventType = Field(..., description="click or rating")
    data: Dict[str, Any] = Field(
        default_factory=dict,
        description="Freeform event attributes (opaque)"
    )
    product_id: int = Field(..., alias="productId", strict=True)
    user_id: str = Field(..., alias="userId")


class RecommendationRequest(WireModel):
    model_id: str = Field(..., alias="modelId")
    user_id: str = Field(..., alias="userId")
    limit: int


class Recommendation(WireModel):
    # Servers may send numeric product ids here
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    user_id: str = Field(..., alias="userId")
    product_id: str = Field(..., alias="productId")
    score: float


class PredictionRequest(WireModel):
    model_id: str = Field(..., alias="modelId")
    data: Dict[str, Any] = Field(default_factory=dict)
    limit: int


class Prediction(WireModel):
    predicted_label: bool = Field(..., alias="predictedLabel")
    probability: Optional[float] = None
    score: float


T = TypeVar("T")


class TypedResponse(BaseModel, Generic[T]):
    """Envelope returned by the ML endpoints."""

    status: bool
    message: str
    data: T


RecommendationResponse = TypedResponse[List[Recommendation]]
PredictionResponse = TypedResponse[List[Prediction]]
