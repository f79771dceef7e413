"""AI Router: resolves the analysis mode and its provider once, at the boundary."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from soilsense.core.config import Settings
from soilsense.services.ai.soil.contracts import AnalysisMode

from .providers import BaseProvider, get_provider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedConfig:
    """Final resolved mode + provider."""

    mode: AnalysisMode
    provider: BaseProvider
    model: str


def resolve(settings: Settings) -> ResolvedConfig:
    """Resolve the analysis mode for *settings*.

    A configured token commits the analyzer to ``REAL_SERVICE``; service
    failures are then reported and never replaced by demo data.
    """
    mode = AnalysisMode.REAL_SERVICE if settings.is_inference_configured else AnalysisMode.DEMO
    provider = get_provider(settings)
    model = settings.hf_model_id if mode is AnalysisMode.REAL_SERVICE else "mock-v1"
    logger.info("Soil analysis mode=%s provider=%s model=%s", mode.value, provider.name, model)
    return ResolvedConfig(mode=mode, provider=provider, model=model)
