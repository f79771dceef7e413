"""HuggingFace Inference API provider with bounded retries."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

import httpx
from pydantic import ValidationError

from soilsense.core.errors import NetworkError, ServiceUnavailable
from soilsense.services.ai.soil.contracts import Prediction

from .base import BaseProvider

logger = logging.getLogger(__name__)

# HuggingFace answers 503 while the model is still being loaded.
MODEL_LOADING_STATUS = 503


def _parse_predictions(data: Any) -> list[Prediction]:
    if not isinstance(data, list) or not data:
        raise ServiceUnavailable("Unexpected response from inference service")
    try:
        predictions = [Prediction.model_validate(item) for item in data]
    except ValidationError as exc:
        raise ServiceUnavailable("Malformed predictions from inference service") from exc
    return sorted(predictions, key=lambda p: p.score, reverse=True)


class HuggingFaceProvider(BaseProvider):
    name = "huggingface"

    def __init__(
        self,
        api_key: str,
        *,
        endpoint: str,
        max_attempts: int = 3,
        retry_delay_ms: int = 2000,
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._endpoint = endpoint
        self._max_attempts = max(1, max_attempts)
        self._retry_delay = retry_delay_ms / 1000
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    async def _post(self, client: httpx.AsyncClient, image_bytes: bytes) -> list[Prediction]:
        try:
            resp = await client.post(
                self._endpoint,
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/octet-stream",
                },
                content=image_bytes,
            )
        except httpx.TransportError as exc:
            raise NetworkError(f"Inference service unreachable: {exc}") from exc

        if resp.is_error:
            raise ServiceUnavailable(
                f"API request failed: {resp.reason_phrase or resp.status_code}",
                status=resp.status_code,
            )
        try:
            data = resp.json()
        except ValueError as exc:
            raise ServiceUnavailable("Inference service returned invalid JSON") from exc
        return _parse_predictions(data)

    async def classify(self, image_bytes: bytes) -> list[Prediction]:
        """Classify *image_bytes*, retrying while the model loads.

        Retry policy:
          - 503 on attempt *n*: wait ``retry_delay * n`` and retry.
          - Connection failure: wait a flat ``retry_delay`` and retry.
          - Any other error status fails immediately.
        The last error propagates once ``max_attempts`` is used up.
        """
        t0 = time.monotonic()

        async with httpx.AsyncClient(
            timeout=self._timeout_seconds,
            transport=self._transport,
        ) as client:
            attempt = 0
            while True:
                attempt += 1
                try:
                    predictions = await self._post(client, image_bytes)
                except ServiceUnavailable as exc:
                    if exc.status != MODEL_LOADING_STATUS or attempt >= self._max_attempts:
                        raise
                    delay = self._retry_delay * attempt
                    logger.info("Attempt %d: model loading, retrying in %.1fs", attempt, delay)
                except NetworkError as exc:
                    if attempt >= self._max_attempts:
                        raise
                    delay = self._retry_delay
                    logger.warning("Attempt %d failed: %s", attempt, exc)
                else:
                    elapsed = (time.monotonic() - t0) * 1000
                    logger.info(
                        "Classified image in %d attempt(s), %.2f ms, top=%r",
                        attempt,
                        elapsed,
                        predictions[0].label,
                    )
                    return predictions

                await asyncio.sleep(delay)
