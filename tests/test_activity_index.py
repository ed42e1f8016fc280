"""Tests for the fish activity index (dynamic score baseline)."""

import pytest

from spotscore.domain import Impact
from spotscore.scoring.activity_index import (
    ActivityConditions,
    calculate_activity_index,
    moon_phase_category,
    score_label,
)


def factor(index, name):
    return next(f for f in index.factors if f.name == name)


def test_neutral_defaults():
    # stable +5, 1013 hPa +10, light wind +10, 50% cloud +10, neutral hour
    index = calculate_activity_index(ActivityConditions(hour_of_day=3, month=6))
    assert index.score == 85
    assert index.label == "Excellente"


def test_midday_penalty():
    index = calculate_activity_index(ActivityConditions(hour_of_day=12, month=6))
    assert index.score == 75
    assert factor(index, "Heure").impact == Impact.NEGATIVE


def test_best_conditions_are_clamped():
    index = calculate_activity_index(
        ActivityConditions(
            hour_of_day=7,
            month=5,
            pressure_trend="falling",
            moon_phase="full",
            water_temperature=16,
            water_level_trend="stable",
        )
    )
    assert index.score == 100


def test_worst_conditions():
    index = calculate_activity_index(
        ActivityConditions(
            hour_of_day=13,
            month=1,
            pressure=990,
            pressure_trend="rising",
            wind_speed=55,
            cloud_cover=0,
            water_temperature=2,
            water_level_trend="falling",
        )
    )
    # 50 - 20 wind - 10 hour - 15 water - 5 level
    assert index.score == 0
    assert index.label == "Très faible"
    assert factor(index, "Vent").impact == Impact.NEGATIVE


def test_water_rules_only_fire_with_data():
    index = calculate_activity_index(ActivityConditions(hour_of_day=3, month=6))
    names = {f.name for f in index.factors}
    assert "Eau" not in names
    assert "Niveau eau" not in names


@pytest.mark.parametrize(
    "phase,expected",
    [(0.0, "new"), (0.97, "new"), (0.5, "full"), (0.25, "other"), (0.75, "other")],
)
def test_moon_phase_category(phase, expected):
    assert moon_phase_category(phase) == expected


@pytest.mark.parametrize(
    "score,expected",
    [(100, "Excellente"), (80, "Excellente"), (79, "Bonne"), (45, "Moyenne"), (20, "Faible"), (0, "Très faible")],
)
def test_score_label(score, expected):
    assert score_label(score) == expected
