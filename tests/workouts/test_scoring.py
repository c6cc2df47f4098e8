"""Tests for confidence and completeness scoring."""

import pytest

from trainlog.workouts.scoring import calculate_completeness, calculate_confidence, get_discipline_data


def test_full_workout_scores_high(powerlifting_workout):
    assert calculate_completeness(powerlifting_workout) >= 0.75
    # base + name + exertion + notes
    assert calculate_confidence(powerlifting_workout) == pytest.approx(0.9)


def test_reflection_scores_below_save_floor(reflection_workout):
    assert calculate_completeness(reflection_workout) < 0.2


def test_defaulted_metrics_do_not_count_as_measured(reflection_workout):
    without_metrics = dict(reflection_workout, performance_metrics=None)
    assert calculate_completeness(reflection_workout) == calculate_completeness(without_metrics)


def test_validation_flags_reduce_confidence(powerlifting_workout):
    baseline = calculate_confidence(powerlifting_workout)
    powerlifting_workout["metadata"]["validation_flags"] = ["date", "schema_mismatch"]

    assert round(baseline - calculate_confidence(powerlifting_workout), 4) == 0.1


def test_confidence_is_clamped():
    workout = {"metadata": {"validation_flags": [f"flag{i}" for i in range(20)]}}
    assert calculate_confidence(workout) == 0.1


def test_crossfit_total_time_raises_confidence():
    workout = {
        "workout_name": "Fran",
        "discipline": "crossfit",
        "discipline_specific": {"crossfit": {"performance_data": {"total_time": 537}}},
    }
    assert calculate_confidence(workout) == pytest.approx(0.9)


def test_get_discipline_data_falls_back_to_any_key():
    workout = {"discipline": "hybrid", "discipline_specific": {"running": {"segments": [{"distance": 400}]}}}
    assert get_discipline_data(workout) == {"segments": [{"distance": 400}]}


def test_get_discipline_data_without_content():
    assert get_discipline_data({"discipline": "running", "discipline_specific": {}}) is None
    assert get_discipline_data({"discipline": "running"}) is None
