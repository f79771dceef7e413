"""Mock provider: deterministic predictions for demo mode and tests."""

from __future__ import annotations

from soilsense.services.ai.soil.contracts import Prediction

from .base import BaseProvider

DEMO_PREDICTIONS: tuple[Prediction, ...] = (
    Prediction(label="loamy soil", score=0.875),
    Prediction(label="clay soil", score=0.089),
    Prediction(label="sandy soil", score=0.036),
)


class MockProvider(BaseProvider):
    name = "mock"

    async def classify(self, image_bytes: bytes) -> list[Prediction]:
        return list(DEMO_PREDICTIONS)
