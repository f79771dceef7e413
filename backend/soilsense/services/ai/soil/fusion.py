"""Fusion of classifier labels and color statistics into a soil verdict.

Two paths exist:

* Standard: color rules first, then label keywords, with a confidence that
  blends the top score with how close the sample is to the soil type's
  expected color. Clamped to ``[MIN_CONFIDENCE, MAX_CONFIDENCE]``.
* Degraded (no color sample): label keywords only, confidence is the raw top
  score. Not clamped.
"""

from __future__ import annotations

from collections.abc import Sequence

from .contracts import ColorSample, Prediction, SoilType
from .knowledge_base import expected_color

MIN_CONFIDENCE = 60.0
MAX_CONFIDENCE = 95.0

BASE_WEIGHT = 0.6
COLOR_WEIGHT = 0.4

# Maximum summed channel delta (3 * 255) mapped onto 0..100.
COLOR_DELTA_SCALE = 7.65

# Checked in order against the top label; first hit wins.
LABEL_KEYWORDS: tuple[tuple[str, SoilType], ...] = (
    ("clay", SoilType.CLAY),
    ("sand", SoilType.SANDY),
    ("loam", SoilType.LOAMY),
    ("silt", SoilType.SILTY),
    ("peat", SoilType.PEATY),
    ("chalk", SoilType.CHALKY),
)


def determine_soil_type_from_labels(predictions: Sequence[Prediction]) -> SoilType:
    if not predictions:
        return SoilType.LOAMY
    label = predictions[0].label.lower()
    for keyword, soil_type in LABEL_KEYWORDS:
        if keyword in label:
            return soil_type
    return SoilType.LOAMY


def determine_soil_type(predictions: Sequence[Prediction], color: ColorSample) -> SoilType:
    if color.is_dark and color.r < 80:
        return SoilType.PEATY
    if color.dominant_channel == "red" and color.r > 120:
        return SoilType.CLAY
    if color.r > 150 and color.g > 140 and color.b > 120:
        return SoilType.SANDY
    return determine_soil_type_from_labels(predictions)


def color_match_score(color: ColorSample, reference: tuple[int, int, int]) -> float:
    """0..100 closeness of *color* to *reference*; 100 is an exact match."""
    ref_r, ref_g, ref_b = reference
    delta = abs(ref_r - color.r) + abs(ref_g - color.g) + abs(ref_b - color.b)
    return 100 - delta / COLOR_DELTA_SCALE


def _top_score(predictions: Sequence[Prediction]) -> float:
    return predictions[0].score * 100 if predictions else 0.0


def calculate_confidence(
    predictions: Sequence[Prediction],
    color: ColorSample,
    soil_type: SoilType,
) -> float:
    confidence = _top_score(predictions)
    reference = expected_color(soil_type)
    if reference is not None:
        confidence = BASE_WEIGHT * confidence + COLOR_WEIGHT * color_match_score(color, reference)
    confidence = min(MAX_CONFIDENCE, max(MIN_CONFIDENCE, confidence))
    return round(confidence, 1)


def degraded_confidence(predictions: Sequence[Prediction]) -> float:
    return round(_top_score(predictions), 1)


def fuse(
    predictions: Sequence[Prediction],
    color: ColorSample | None,
) -> tuple[SoilType, float]:
    """Return ``(soil_type, confidence)`` choosing the path from *color*."""
    if color is None:
        return determine_soil_type_from_labels(predictions), degraded_confidence(predictions)
    soil_type = determine_soil_type(predictions, color)
    return soil_type, calculate_confidence(predictions, color, soil_type)
