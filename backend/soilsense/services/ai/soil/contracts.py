"""Soil scope contracts: predictions, color samples, profiles and results."""

from __future__ import annotations

import enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

DARK_BRIGHTNESS_THRESHOLD = 100


class SoilType(str, enum.Enum):
    CLAY = "clay"
    SANDY = "sandy"
    LOAMY = "loamy"
    SILTY = "silty"
    PEATY = "peaty"
    CHALKY = "chalky"


class Prediction(BaseModel):
    """Label/score pair returned by the classification service."""

    model_config = ConfigDict(frozen=True)

    label: str
    score: float

    @field_validator("score")
    @classmethod
    def score_range(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            msg = f"Score must be 0.0-1.0, got {v}"
            raise ValueError(msg)
        return v


DominantChannel = Literal["red", "green", "blue"]


class ColorSample(BaseModel):
    """Mean channel statistics of the sampled image region."""

    model_config = ConfigDict(frozen=True)

    r: int = Field(ge=0, le=255)
    g: int = Field(ge=0, le=255)
    b: int = Field(ge=0, le=255)
    dominant_channel: DominantChannel
    brightness: float
    is_dark: bool

    @classmethod
    def from_means(cls, r: int, g: int, b: int) -> ColorSample:
        # Ties resolve red > green > blue.
        if r >= g and r >= b:
            dominant = "red"
        elif g >= b:
            dominant = "green"
        else:
            dominant = "blue"
        brightness = (r + g + b) / 3
        return cls(
            r=r,
            g=g,
            b=b,
            dominant_channel=dominant,
            brightness=brightness,
            is_dark=brightness < DARK_BRIGHTNESS_THRESHOLD,
        )


class SoilCharacteristics(BaseModel):
    model_config = ConfigDict(frozen=True)

    texture: str
    drainage: str
    water_retention: str
    workability: str


class Nutrients(BaseModel):
    model_config = ConfigDict(frozen=True)

    nitrogen: int = Field(ge=0, le=100)
    phosphorus: int = Field(ge=0, le=100)
    potassium: int = Field(ge=0, le=100)


class PHDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: float
    range: str
    status: str


class SoilProfile(BaseModel):
    """Static agronomic record for one soil type."""

    model_config = ConfigDict(frozen=True)

    soil_type: SoilType
    description: str
    color: str
    characteristics: SoilCharacteristics
    nutrients: Nutrients
    ph: PHDescriptor
    recommendations: tuple[str, ...]


class AnalysisMode(str, enum.Enum):
    REAL_SERVICE = "real"
    DEMO = "demo"


class AnalysisResult(BaseModel):
    """Final verdict of one analysis, owned by the caller."""

    soil_type: SoilType
    confidence: float
    characteristics: SoilCharacteristics
    recommendations: list[str]
    nutrients: Nutrients
    ph: PHDescriptor
    color_sample: ColorSample | None = None
    top_predictions: list[Prediction] = Field(default_factory=list, max_length=3)
    mode: AnalysisMode = AnalysisMode.REAL_SERVICE
    degraded: bool = False
    image_url: str | None = None


class HistoryRecord(BaseModel):
    id: str
    timestamp: str
    image_data: str
    result: AnalysisResult


class HistoryStatistics(BaseModel):
    total_count: int
    counts_by_soil_type: dict[SoilType, int]
    average_confidence: float
    oldest_timestamp: str | None = None
    newest_timestamp: str | None = None


class StorageSize(BaseModel):
    bytes: int
    kb: float
    mb: float
