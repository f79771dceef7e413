"""Abstract base for all image classification providers."""

from __future__ import annotations

import abc

from soilsense.services.ai.soil.contracts import Prediction


class BaseProvider(abc.ABC):
    """Contract that every classification provider must implement."""

    name: str = "base"

    @abc.abstractmethod
    async def classify(self, image_bytes: bytes) -> list[Prediction]:
        """Send *image_bytes* and return predictions ordered by descending score."""
