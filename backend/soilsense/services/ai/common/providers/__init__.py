"""Provider factory: returns the HuggingFace provider or the demo mock."""

from __future__ import annotations

import logging

from soilsense.core.config import Settings

from .base import BaseProvider
from .mock import DEMO_PREDICTIONS, MockProvider

logger = logging.getLogger(__name__)

__all__ = ["get_provider", "BaseProvider", "MockProvider", "DEMO_PREDICTIONS"]


def get_provider(settings: Settings) -> BaseProvider:
    """Return a provider instance for *settings*.

    Without an API token no network client is built and the deterministic
    ``MockProvider`` is returned instead.
    """
    if not settings.is_inference_configured:
        logger.warning("HF_API_TOKEN not set, using demo provider")
        return MockProvider()

    from .huggingface import HuggingFaceProvider

    return HuggingFaceProvider(
        api_key=settings.hf_api_token.strip(),
        endpoint=settings.inference_endpoint,
        max_attempts=settings.inference_max_attempts,
        retry_delay_ms=settings.inference_retry_delay_ms,
        timeout_seconds=settings.inference_timeout_seconds,
    )
