"""Soil image gate: decides whether classifier labels plausibly describe soil."""

from __future__ import annotations

from collections.abc import Sequence

from .contracts import Prediction

SOIL_KEYWORDS = frozenset(
    {
        "soil",
        "dirt",
        "earth",
        "ground",
        "sand",
        "clay",
        "mud",
        "terrain",
        "land",
        "brown",
        "agricultural",
    }
)

MAX_INSPECTED_PREDICTIONS = 5


def is_soil_image(predictions: Sequence[Prediction]) -> bool:
    for prediction in predictions[:MAX_INSPECTED_PREDICTIONS]:
        label = prediction.label.lower()
        if any(keyword in label for keyword in SOIL_KEYWORDS):
            return True
    return False
