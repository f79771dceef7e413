"""Soil analysis service: one linear flow from image bytes to a stored verdict.

Steps:
  1. Single-flight check (a second concurrent request is rejected).
  2. Color extraction (worker thread) and classification run concurrently.
  3. Validity gate on the predictions.
  4. Fusion (standard, or label-only when the color sample is missing).
  5. Local history save and optional remote mirror; failures there are logged.

Demo mode short-circuits after step 1 with a fixed result.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Optional

from soilsense.core.config import Settings
from soilsense.core.errors import (
    AnalysisInProgress,
    AnalysisTimeout,
    DecodeError,
    NonSoilImage,
    StorageError,
)
from soilsense.core.image_processing import extract_color, history_image_data
from soilsense.core.storage import RemoteAnalysisStore
from soilsense.services.history_store import HistoryStore

from ..common import router as ai_router
from ..common.providers import DEMO_PREDICTIONS, BaseProvider
from .contracts import AnalysisMode, AnalysisResult, ColorSample, Prediction, SoilType
from .fusion import fuse
from .knowledge_base import lookup
from .validity import is_soil_image

logger = logging.getLogger(__name__)

DEMO_SOIL_TYPE = SoilType.LOAMY
DEMO_CONFIDENCE = 87.5
TOP_PREDICTIONS = 3


def build_result(
    soil_type: SoilType,
    confidence: float,
    predictions: list[Prediction],
    *,
    color: ColorSample | None = None,
    mode: AnalysisMode = AnalysisMode.REAL_SERVICE,
    degraded: bool = False,
) -> AnalysisResult:
    profile = lookup(soil_type)
    return AnalysisResult(
        soil_type=soil_type,
        confidence=confidence,
        characteristics=profile.characteristics,
        recommendations=list(profile.recommendations),
        nutrients=profile.nutrients,
        ph=profile.ph,
        color_sample=color,
        top_predictions=predictions[:TOP_PREDICTIONS],
        mode=mode,
        degraded=degraded,
    )


def demo_result() -> AnalysisResult:
    return build_result(
        DEMO_SOIL_TYPE,
        DEMO_CONFIDENCE,
        list(DEMO_PREDICTIONS),
        mode=AnalysisMode.DEMO,
    )


@dataclass
class AnalysisOutcome:
    """Result from ``SoilAnalyzer.analyze`` including metadata."""

    result: AnalysisResult
    record_id: str | None
    total_latency_ms: float


def _extract_color_or_none(content: bytes) -> ColorSample | None:
    try:
        return extract_color(content)
    except DecodeError as exc:
        logger.warning("Color analysis unavailable, using label-only fusion: %s", exc)
        return None


class SoilAnalyzer:
    def __init__(
        self,
        *,
        mode: AnalysisMode,
        provider: BaseProvider,
        history: HistoryStore,
        remote: RemoteAnalysisStore | None = None,
        timeout_seconds: float = 120.0,
    ) -> None:
        self.mode = mode
        self.provider = provider
        self.history = history
        self.remote = remote
        self._timeout_seconds = timeout_seconds
        self._in_flight = False

    @property
    def busy(self) -> bool:
        return self._in_flight

    async def analyze(
        self,
        content: bytes,
        *,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> AnalysisOutcome:
        if self._in_flight:
            raise AnalysisInProgress("An analysis is already running")

        self._in_flight = True
        t0 = time.monotonic()
        try:
            try:
                result = await asyncio.wait_for(self._classify(content), timeout=self._timeout_seconds)
            except asyncio.TimeoutError as exc:
                logger.warning("Analysis abandoned after %.1fs", self._timeout_seconds)
                raise AnalysisTimeout("Analysis timed out") from exc

            result, record_id = self._persist(
                content,
                result,
                filename=filename,
                content_type=content_type,
            )
        finally:
            self._in_flight = False

        total_ms = (time.monotonic() - t0) * 1000
        logger.info(
            "Analysis complete: soil=%s confidence=%.1f mode=%s degraded=%s (%.2f ms)",
            result.soil_type.value,
            result.confidence,
            result.mode.value,
            result.degraded,
            total_ms,
        )
        return AnalysisOutcome(result=result, record_id=record_id, total_latency_ms=round(total_ms, 2))

    async def _classify(self, content: bytes) -> AnalysisResult:
        if self.mode is AnalysisMode.DEMO:
            return demo_result()

        color_task = asyncio.create_task(asyncio.to_thread(_extract_color_or_none, content))
        try:
            predictions = await self.provider.classify(content)
        except BaseException:
            color_task.cancel()
            raise

        if not is_soil_image(predictions):
            color_task.cancel()
            labels = ", ".join(p.label for p in predictions[:3])
            logger.info("Rejected non-soil image (labels: %s)", labels)
            raise NonSoilImage(
                "This does not look like a soil image. Please upload a clear photo of soil."
            )

        color = await color_task
        soil_type, confidence = fuse(predictions, color)
        return build_result(
            soil_type,
            confidence,
            predictions,
            color=color,
            degraded=color is None,
        )

    def _persist(
        self,
        content: bytes,
        result: AnalysisResult,
        *,
        filename: Optional[str],
        content_type: Optional[str],
    ) -> tuple[AnalysisResult, str | None]:
        if self.remote is not None:
            try:
                image_url = self.remote.upload_soil_image(
                    content,
                    filename=filename,
                    content_type=content_type,
                )
                result = result.model_copy(update={"image_url": image_url})
                self.remote.save_remote_analysis(image_url, result)
            except StorageError:
                logger.warning("Remote save failed, continuing with local history", exc_info=True)

        try:
            record = self.history.save(history_image_data(content, content_type), result)
        except StorageError:
            logger.warning("Failed to save analysis to local history", exc_info=True)
            return result, None
        return result, record.id


def build_soil_analyzer(settings: Settings) -> SoilAnalyzer:
    """Construct the analyzer and its collaborators from *settings*."""
    config = ai_router.resolve(settings)
    history = HistoryStore(settings.history_path, max_records=settings.history_max_records)
    remote = RemoteAnalysisStore.from_settings(settings)
    return SoilAnalyzer(
        mode=config.mode,
        provider=config.provider,
        history=history,
        remote=remote,
        timeout_seconds=settings.analysis_timeout_seconds,
    )
