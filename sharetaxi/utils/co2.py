"""
CO2 Tracking Utilities

Emission accounting for shared rides, eco points and the level ladder
shown on the impact dashboard.
"""

import math
from enum import Enum
from typing import Any, Dict, List

from sharetaxi.utils.timezone_utils import round_half_up


# kg CO2 per km, based on Indian vehicle emission figures
EMISSION_FACTORS = {
    "SOLO_CAR": 0.21,
    "SHARED_CAR_2": 0.105,
    "SHARED_CAR_3": 0.07,
    "SHARED_CAR_4": 0.0525,
    "PUBLIC_TRANSPORT": 0.05,
    "ELECTRIC_CAR": 0.08,
    "TWO_WHEELER": 0.12,
    "AUTO_RICKSHAW": 0.15,
}


class VehicleClass(str, Enum):
    """Vehicle classes with their own base emission factor."""
    CAR = "car"
    ELECTRIC = "electric"
    TWO_WHEELER = "two_wheeler"


_BASE_EMISSION = {
    VehicleClass.CAR: EMISSION_FACTORS["SOLO_CAR"],
    VehicleClass.ELECTRIC: EMISSION_FACTORS["ELECTRIC_CAR"],
    VehicleClass.TWO_WHEELER: EMISSION_FACTORS["TWO_WHEELER"],
}

DRIVER_SHARE_PERCENT = 60


def calculate_co2_saved(
    distance_km: float,
    participants: int,
    vehicle_class: VehicleClass = VehicleClass.CAR
) -> float:
    """
    CO2 saved (kg) by sharing one vehicle instead of everyone driving alone.

    A solo trip saves nothing.
    """
    if participants <= 1:
        return 0.0

    base_emission = _BASE_EMISSION[VehicleClass(vehicle_class)]
    total_if_solo = base_emission * participants * distance_km
    total_shared = base_emission * distance_km

    return round_half_up(total_if_solo - total_shared, 2)


def calculate_co2_split(
    total_co2_saved: float,
    driver_percentage: float = DRIVER_SHARE_PERCENT
) -> Dict[str, float]:
    """Split saved CO2 between driver and passenger (driver provides the vehicle)."""
    driver_share = (total_co2_saved * driver_percentage) / 100
    passenger_share = total_co2_saved - driver_share

    return {
        "driver": round_half_up(driver_share, 2),
        "passenger": round_half_up(passenger_share, 2),
    }


def calculate_eco_points(co2_saved_kg: float) -> int:
    """10 points per kg of CO2 saved."""
    return math.floor(co2_saved_kg * 10)


# =============================================================================
# Environmental Equivalents
# =============================================================================

def co2_to_trees_equivalent(co2_kg: float) -> float:
    # One tree absorbs ~21 kg CO2 per year
    return round_half_up(co2_kg / 21, 2)


def co2_to_plastic_bottles(co2_kg: float) -> int:
    # ~82 g CO2 per bottle produced
    return math.floor((co2_kg * 1000) / 82)


def co2_to_car_km_equivalent(co2_kg: float) -> float:
    return round_half_up(co2_kg / EMISSION_FACTORS["SOLO_CAR"], 1)


def co2_to_phone_charges(co2_kg: float) -> int:
    # ~8.22 g CO2 per full smartphone charge
    return math.floor((co2_kg * 1000) / 8.22)


def co2_to_led_hours(co2_kg: float) -> int:
    # 10W LED for one hour ~4.6 g CO2
    return math.floor((co2_kg * 1000) / 4.6)


# =============================================================================
# Levels
# =============================================================================

LEVELS: List[Dict[str, Any]] = [
    {"name": "Newcomer", "threshold": 0, "icon": "🌱", "color": "#9CA3AF"},
    {"name": "Eco Explorer", "threshold": 10, "icon": "🌿", "color": "#10B981"},
    {"name": "Green Commuter", "threshold": 50, "icon": "🍃", "color": "#059669"},
    {"name": "Carbon Crusher", "threshold": 100, "icon": "💚", "color": "#047857"},
    {"name": "Eco Warrior", "threshold": 250, "icon": "🌳", "color": "#065F46"},
    {"name": "Climate Champion", "threshold": 500, "icon": "🏆", "color": "#064E3B"},
    {"name": "Planet Protector", "threshold": 1000, "icon": "🌍", "color": "#1E40AF"},
    {"name": "Earth Guardian", "threshold": 2500, "icon": "👑", "color": "#7C3AED"},
    {"name": "Sustainability Legend", "threshold": 5000, "icon": "⭐", "color": "#F59E0B"},
]


def get_user_level(total_co2_kg: float) -> Dict[str, Any]:
    """
    Current level for a lifetime CO2 total, with progress (0-100)
    towards the next level. The top level reports 100% progress.
    """
    current = LEVELS[0]
    upcoming = LEVELS[1]

    for i, level in enumerate(LEVELS):
        if total_co2_kg >= level["threshold"]:
            current = level
            upcoming = LEVELS[i + 1] if i + 1 < len(LEVELS) else level
        else:
            break

    threshold_diff = upcoming["threshold"] - current["threshold"]
    if threshold_diff > 0:
        progress = ((total_co2_kg - current["threshold"]) / threshold_diff) * 100
    else:
        progress = 100

    return {
        "level": current["name"],
        "next_level": upcoming["name"],
        "progress": min(progress, 100),
        "next_level_threshold": upcoming["threshold"],
        "icon": current["icon"],
        "color": current["color"],
    }


def get_all_levels() -> List[Dict[str, Any]]:
    return [{**level, "order": index + 1} for index, level in enumerate(LEVELS)]


def format_co2_display(co2_kg: float) -> str:
    if co2_kg >= 1000:
        return f"{co2_kg / 1000:.1f} tons"
    if co2_kg >= 1:
        return f"{co2_kg:.1f} kg"
    return f"{co2_kg * 1000:.0f} g"


def get_impact_summary(total_co2_kg: float) -> Dict[str, Any]:
    """Everything the impact dashboard shows for a CO2 total."""
    return {
        "co2_saved": format_co2_display(total_co2_kg),
        "trees_equivalent": co2_to_trees_equivalent(total_co2_kg),
        "plastic_bottles": co2_to_plastic_bottles(total_co2_kg),
        "car_km_avoided": co2_to_car_km_equivalent(total_co2_kg),
        "phone_charges": co2_to_phone_charges(total_co2_kg),
        "led_hours": co2_to_led_hours(total_co2_kg),
        "eco_points": calculate_eco_points(total_co2_kg),
        "level": get_user_level(total_co2_kg),
    }
