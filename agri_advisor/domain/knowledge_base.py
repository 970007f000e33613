from dataclasses import dataclass
from typing import Dict, Tuple


@dataclass(frozen=True)
class CropProfile:
    name: str
    seasons: Tuple[str, ...]
    rainfall_mm: Tuple[float, float]
    temperature_c: Tuple[float, float]
    ph: Tuple[float, float]
    soil_types: Tuple[str, ...]
    water_need: str
    family: str
    nitrogen_kg_ha: float
    phosphorus_kg_ha: float
    potassium_kg_ha: float
    crop_coefficient: float


CROP_PROFILES: Dict[str, CropProfile] = {
    "rice": CropProfile(
        name="rice",
        seasons=("monsoon", "summer"),
        rainfall_mm=(1000.0, 2500.0),
        temperature_c=(22.0, 35.0),
        ph=(5.0, 7.0),
        soil_types=("clay", "clay_loam", "silt"),
        water_need="high",
        family="poaceae",
        nitrogen_kg_ha=120.0,
        phosphorus_kg_ha=60.0,
        potassium_kg_ha=60.0,
        crop_coefficient=1.2,
    ),
    "wheat": CropProfile(
        name="wheat",
        seasons=("winter", "autumn"),
        rainfall_mm=(300.0, 900.0),
        temperature_c=(10.0, 25.0),
        ph=(6.0, 7.5),
        soil_types=("loam", "clay_loam", "silt"),
        water_need="medium",
        family="poaceae",
        nitrogen_kg_ha=120.0,
        phosphorus_kg_ha=60.0,
        potassium_kg_ha=40.0,
        crop_coefficient=1.05,
    ),
    "pearl_millet": CropProfile(
        name="pearl_millet",
        seasons=("monsoon", "summer"),
        rainfall_mm=(250.0, 700.0),
        temperature_c=(25.0, 38.0),
        ph=(5.5, 8.0),
        soil_types=("sandy", "sandy_loam", "loam"),
        water_need="low",
        family="poaceae",
        nitrogen_kg_ha=60.0,
        phosphorus_kg_ha=30.0,
        potassium_kg_ha=20.0,
        crop_coefficient=0.9,
    ),
    "sorghum": CropProfile(
        name="sorghum",
        seasons=("monsoon", "summer", "winter"),
        rainfall_mm=(350.0, 900.0),
        temperature_c=(20.0, 36.0),
        ph=(5.5, 8.5),
        soil_types=("loam", "sandy_loam", "clay_loam"),
        water_need="low",
        family="poaceae",
        nitrogen_kg_ha=80.0,
        phosphorus_kg_ha=40.0,
        potassium_kg_ha=40.0,
        crop_coefficient=0.95,
    ),
    "chickpea": CropProfile(
        name="chickpea",
        seasons=("winter", "autumn"),
        rainfall_mm=(250.0, 650.0),
        temperature_c=(12.0, 28.0),
        ph=(6.0, 8.0),
        soil_types=("loam", "sandy_loam", "clay_loam"),
        water_need="low",
        family="fabaceae",
        nitrogen_kg_ha=20.0,
        phosphorus_kg_ha=50.0,
        potassium_kg_ha=20.0,
        crop_coefficient=0.85,
    ),
    "groundnut": CropProfile(
        name="groundnut",
        seasons=("monsoon", "summer"),
        rainfall_mm=(450.0, 1250.0),
        temperature_c=(22.0, 33.0),
        ph=(6.0, 7.5),
        soil_types=("sandy_loam", "loam", "sandy"),
        water_need="medium",
        family="fabaceae",
        nitrogen_kg_ha=25.0,
        phosphorus_kg_ha=50.0,
        potassium_kg_ha=45.0,
        crop_coefficient=0.95,
    ),
    "maize": CropProfile(
        name="maize",
        seasons=("monsoon", "spring", "summer"),
        rainfall_mm=(500.0, 1200.0),
        temperature_c=(18.0, 32.0),
        ph=(5.5, 7.5),
        soil_types=("loam", "sandy_loam", "silt"),
        water_need="medium",
        family="poaceae",
        nitrogen_kg_ha=150.0,
        phosphorus_kg_ha=60.0,
        potassium_kg_ha=40.0,
        crop_coefficient=1.15,
    ),
    "mustard": CropProfile(
        name="mustard",
        seasons=("winter", "autumn"),
        rainfall_mm=(250.0, 500.0),
        temperature_c=(10.0, 25.0),
        ph=(6.0, 8.0),
        soil_types=("loam", "clay_loam", "sandy_loam"),
        water_need="low",
        family="brassicaceae",
        nitrogen_kg_ha=80.0,
        phosphorus_kg_ha=40.0,
        potassium_kg_ha=40.0,
        crop_coefficient=1.0,
    ),
    "cotton": CropProfile(
        name="cotton",
        seasons=("monsoon", "summer"),
        rainfall_mm=(500.0, 1000.0),
        temperature_c=(21.0, 35.0),
        ph=(6.0, 8.0),
        soil_types=("clay", "clay_loam", "loam"),
        water_need="medium",
        family="malvaceae",
        nitrogen_kg_ha=100.0,
        phosphorus_kg_ha=50.0,
        potassium_kg_ha=50.0,
        crop_coefficient=1.1,
    ),
    "potato": CropProfile(
        name="potato",
        seasons=("winter", "spring", "autumn"),
        rainfall_mm=(400.0, 800.0),
        temperature_c=(12.0, 24.0),
        ph=(5.0, 6.5),
        soil_types=("loam", "sandy_loam"),
        water_need="medium",
        family="solanaceae",
        nitrogen_kg_ha=150.0,
        phosphorus_kg_ha=80.0,
        potassium_kg_ha=120.0,
        crop_coefficient=1.1,
    ),
}

SOIL_TYPE_ALIASES = {
    "sandy loam": "sandy_loam",
    "clay loam": "clay_loam",
    "loamy": "loam",
    "sand": "sandy",
    "clayey": "clay",
    "black": "clay",
    "black cotton": "clay",
    "alluvial": "loam",
}

# Water held per metre of root zone, mm; used for irrigation intervals.
SOIL_WATER_HOLDING_MM: Dict[str, float] = {
    "sandy": 60.0,
    "sandy_loam": 100.0,
    "loam": 150.0,
    "silt": 170.0,
    "clay_loam": 180.0,
    "clay": 200.0,
}

COVER_CROPS: Dict[str, Tuple[str, ...]] = {
    "poaceae": ("cowpea", "sunn hemp"),
    "fabaceae": ("oats", "mustard"),
    "brassicaceae": ("cowpea", "sesbania"),
    "malvaceae": ("sunn hemp", "horse gram"),
    "solanaceae": ("oats", "cowpea"),
}


def canonical_soil_type(value) -> str:
    if not value:
        return ""
    text = str(value).strip().lower()
    return SOIL_TYPE_ALIASES.get(text, text.replace(" ", "_"))


def get_profile(name: str):
    return CROP_PROFILES.get(str(name).strip().lower().replace(" ", "_"))
