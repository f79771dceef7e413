"""Static soil knowledge base: characteristics, nutrients, pH and advice per soil type."""

from __future__ import annotations

from types import MappingProxyType

from .contracts import (
    Nutrients,
    PHDescriptor,
    SoilCharacteristics,
    SoilProfile,
    SoilType,
)

_PROFILES: dict[SoilType, SoilProfile] = {
    SoilType.CLAY: SoilProfile(
        soil_type=SoilType.CLAY,
        description="Heavy soil with fine particles, excellent for nutrients but poor drainage",
        color="#8B4513",
        characteristics=SoilCharacteristics(
            texture="Heavy and sticky when wet",
            drainage="Poor",
            water_retention="High",
            workability="Difficult",
        ),
        nutrients=Nutrients(nitrogen=75, phosphorus=70, potassium=80),
        ph=PHDescriptor(value=6.5, range="6.0-7.0", status="Slightly Acidic to Neutral"),
        recommendations=(
            "Add organic matter to improve drainage",
            "Avoid working when wet",
            "Consider raised beds",
            "Grow crops: Broccoli, cabbage, beans",
        ),
    ),
    SoilType.SANDY: SoilProfile(
        soil_type=SoilType.SANDY,
        description="Light, gritty soil with excellent drainage but low nutrient retention",
        color="#F4A460",
        characteristics=SoilCharacteristics(
            texture="Gritty and loose",
            drainage="Excellent",
            water_retention="Low",
            workability="Easy",
        ),
        nutrients=Nutrients(nitrogen=40, phosphorus=35, potassium=30),
        ph=PHDescriptor(value=6.0, range="5.5-6.5", status="Acidic"),
        recommendations=(
            "Add compost to retain moisture",
            "Mulch heavily to prevent drying",
            "Fertilize regularly",
            "Grow crops: Carrots, potatoes, lettuce",
        ),
    ),
    SoilType.LOAMY: SoilProfile(
        soil_type=SoilType.LOAMY,
        description="Ideal balanced soil with good drainage and nutrient retention",
        color="#6B4423",
        characteristics=SoilCharacteristics(
            texture="Smooth and slightly gritty",
            drainage="Good",
            water_retention="Moderate",
            workability="Easy",
        ),
        nutrients=Nutrients(nitrogen=70, phosphorus=65, potassium=70),
        ph=PHDescriptor(value=6.8, range="6.5-7.5", status="Neutral"),
        recommendations=(
            "Maintain with regular compost",
            "Ideal for most crops",
            "Practice crop rotation",
            "Grow crops: Tomatoes, peppers, most vegetables",
        ),
    ),
    SoilType.SILTY: SoilProfile(
        soil_type=SoilType.SILTY,
        description="Smooth soil with good fertility and moderate drainage",
        color="#A0826D",
        characteristics=SoilCharacteristics(
            texture="Smooth and soapy",
            drainage="Moderate",
            water_retention="High",
            workability="Moderate",
        ),
        nutrients=Nutrients(nitrogen=65, phosphorus=60, potassium=55),
        ph=PHDescriptor(value=6.5, range="6.0-7.0", status="Slightly Acidic to Neutral"),
        recommendations=(
            "Add organic matter for structure",
            "Avoid compaction",
            "Mulch to prevent erosion",
            "Grow crops: Vegetables, grasses",
        ),
    ),
    SoilType.PEATY: SoilProfile(
        soil_type=SoilType.PEATY,
        description="Dark, organic-rich soil with high water retention",
        color="#3E2723",
        characteristics=SoilCharacteristics(
            texture="Spongy and fibrous",
            drainage="Good",
            water_retention="Very High",
            workability="Easy",
        ),
        nutrients=Nutrients(nitrogen=85, phosphorus=50, potassium=45),
        ph=PHDescriptor(value=5.0, range="4.0-5.5", status="Very Acidic"),
        recommendations=(
            "Add lime to reduce acidity",
            "Ensure good drainage",
            "Rich in nutrients",
            "Grow crops: Root vegetables, brassicas",
        ),
    ),
    SoilType.CHALKY: SoilProfile(
        soil_type=SoilType.CHALKY,
        description="Alkaline soil with stones, free-draining but low nutrients",
        color="#D3D3D3",
        characteristics=SoilCharacteristics(
            texture="Stony and gritty",
            drainage="Excellent",
            water_retention="Low",
            workability="Moderate",
        ),
        nutrients=Nutrients(nitrogen=50, phosphorus=55, potassium=60),
        ph=PHDescriptor(value=7.5, range="7.0-8.5", status="Alkaline"),
        recommendations=(
            "Add organic matter regularly",
            "Choose alkaline-tolerant plants",
            "Mulch to retain moisture",
            "Grow crops: Spinach, beets, cabbage",
        ),
    ),
}

PROFILES = MappingProxyType(_PROFILES)

# Typical mean (r, g, b) of a photographed sample. Silty and chalky soils
# vary too much in color to have a useful reference.
EXPECTED_COLORS = MappingProxyType(
    {
        SoilType.CLAY: (160, 80, 60),
        SoilType.SANDY: (194, 178, 128),
        SoilType.LOAMY: (107, 68, 35),
        SoilType.PEATY: (62, 39, 35),
    }
)


def lookup(soil_type: SoilType | str) -> SoilProfile:
    """Return the profile for *soil_type*."""
    return PROFILES[SoilType(soil_type)]


def expected_color(soil_type: SoilType) -> tuple[int, int, int] | None:
    return EXPECTED_COLORS.get(soil_type)
