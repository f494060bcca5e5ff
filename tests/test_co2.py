"""
Tests for CO2 tracking utilities
"""

import pytest

from sharetaxi.utils.co2 import (
    LEVELS,
    VehicleClass,
    calculate_co2_saved,
    calculate_co2_split,
    calculate_eco_points,
    co2_to_car_km_equivalent,
    co2_to_trees_equivalent,
    format_co2_display,
    get_all_levels,
    get_impact_summary,
    get_user_level,
)


class TestCo2Saved:

    def test_solo_trip_saves_nothing(self):
        assert calculate_co2_saved(10, 1) == 0.0

    def test_shared_car(self):
        # Three people, one car: two solo trips avoided
        assert calculate_co2_saved(10, 3) == 4.2

    def test_vehicle_class(self):
        assert calculate_co2_saved(10, 2, VehicleClass.TWO_WHEELER) == 1.2
        assert calculate_co2_saved(10, 2, VehicleClass.ELECTRIC) == 0.8

    def test_split(self):
        assert calculate_co2_split(2.1) == {"driver": 1.26, "passenger": 0.84}
        assert calculate_co2_split(10, driver_percentage=50) == {"driver": 5.0, "passenger": 5.0}

    def test_eco_points(self):
        assert calculate_eco_points(1.26) == 12
        assert calculate_eco_points(0.09) == 0


class TestEquivalents:

    def test_trees(self):
        assert co2_to_trees_equivalent(42) == 2.0

    def test_car_km(self):
        assert co2_to_car_km_equivalent(2.1) == 10.0

    @pytest.mark.parametrize("kg,expected", [
        (0.5, "500 g"),
        (12.34, "12.3 kg"),
        (2500, "2.5 tons"),
    ])
    def test_display(self, kg, expected):
        assert format_co2_display(kg) == expected


class TestLevels:

    def test_newcomer(self):
        level = get_user_level(0)
        assert level["level"] == "Newcomer"
        assert level["next_level"] == "Eco Explorer"
        assert level["progress"] == 0

    def test_progress_between_levels(self):
        level = get_user_level(30)
        assert level["level"] == "Eco Explorer"
        assert level["next_level"] == "Green Commuter"
        assert level["progress"] == 50.0
        assert level["next_level_threshold"] == 50

    def test_top_level(self):
        level = get_user_level(6000)
        assert level["level"] == "Sustainability Legend"
        assert level["next_level"] == "Sustainability Legend"
        assert level["progress"] == 100

    def test_all_levels_ordered(self):
        levels = get_all_levels()
        assert len(levels) == len(LEVELS)
        assert [level["order"] for level in levels] == list(range(1, len(LEVELS) + 1))

    def test_impact_summary(self):
        summary = get_impact_summary(21)
        assert summary["trees_equivalent"] == 1.0
        assert summary["eco_points"] == 210
        assert summary["level"]["level"] == "Eco Explorer"
