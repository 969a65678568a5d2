"""
Recometry Client – ML Endpoints

This module provides the two request/response calls of the client:
- recommend: POST {base}/api/v1/ml/recommend
- predict:   POST {base}/api/v1/ml/predict

Both are bearer-authenticated, send the request as a JSON body and
return the parsed TypedResponse envelope.

FAILURE SEMANTICS (unlike collect):
- Network failure -> aiohttp.ClientError propagates
- Non-2xx status -> aiohttp.ClientResponseError propagates
- Non-JSON body -> ValueError propagates
- Envelope of the wrong shape -> pydantic.ValidationError propagates
- No retries
"""

from typing import Any, Dict, Mapping, Optional, Union

import aiohttp
from loguru import logger

from .schema import (
    PredictionRequest,
    PredictionResponse,
    RecommendationRequest,
    RecommendationResponse,
    coerce,
)

RECOMMEND_PATH = "/api/v1/ml/recommend"
PREDICT_PATH = "/api/v1/ml/predict"


class MLClient:
    """
    Stateless client for the recommend and predict endpoints.

    A new aiohttp session is opened for every call.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout_seconds: Optional[float] = None,
        log=None,
    ):
        """
        Initialize ML client.

        Args:
            base_url: Base address (e.g., "https://api.recometry.com")
            api_key: Bearer credential
            timeout_seconds: Total request timeout, None keeps aiohttp's default
            log: loguru-compatible logger (default: module logger)
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = (
            aiohttp.ClientTimeout(total=timeout_seconds)
            if timeout_seconds is not None else None
        )
        self._log = log if log is not None else logger

    async def recommend(
        self,
        request: Union[RecommendationRequest, Mapping[str, Any]]
    ) -> RecommendationResponse:
        """Fetch recommendations for a user from a model."""
        payload = coerce(RecommendationRequest, request).to_wire()
        body = await self._post(RECOMMEND_PATH, payload)
        return RecommendationResponse.model_validate(body)

    async def predict(
        self,
        request: Union[PredictionRequest, Mapping[str, Any]]
    ) -> PredictionResponse:
        """Score a feature mapping with a model."""
        payload = coerce(PredictionRequest, request).to_wire()
        body = await self._post(PREDICT_PATH, payload)
        return PredictionResponse.model_validate(body)

    def _headers(self) -> Dict[str, str]:
        return {
            "Accept": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

    async def _post(self, path: str, payload: Dict[str, Any]) -> Any:
        url = f"{self.base_url}{path}"
        session_kwargs = {} if self.timeout is None else {"timeout": self.timeout}

        self._log.debug(f"POST {url} model={payload.get('modelId')}")

        async with aiohttp.ClientSession(**session_kwargs) as session:
            async with session.post(url, json=payload, headers=self._headers()) as response:
                response.raise_for_status()
                # Accept JSON regardless of the declared content type
                return await response.json(content_type=None)
