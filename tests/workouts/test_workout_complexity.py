"""Tests for the pre-extraction workout complexity heuristic."""

import pytest

from trainlog.workouts.classifiers import check_workout_complexity


@pytest.mark.parametrize(
    "message",
    [
        "Ran an easy 5k this morning",
        "Back squat 3x3 @ 315",
        "Yoga class, 60 minutes",
    ],
)
def test_simple_workouts(message):
    complexity = check_workout_complexity(message)

    assert complexity.is_complex is False
    assert complexity.complexity_factors == []


def test_multiple_phases_are_complex():
    complexity = check_workout_complexity("Warm-up on the bike, then strength work, then a cooldown stretch")

    assert complexity.is_complex is True
    assert complexity.complexity_factors[0].startswith("multiple phases")


def test_structure_patterns_are_complex():
    complexity = check_workout_complexity("EMOM 12: 5 pull-ups. Then AMRAP 10 of 3 rounds, 21-15-9 for time in 8:30")

    assert complexity.is_complex is True
    assert any(factor.startswith("complex structure") for factor in complexity.complexity_factors)


def test_long_description_is_complex():
    message = "Easy jog around the park with the dog. " * 25

    complexity = check_workout_complexity(message)

    assert len(message) > 800
    assert complexity.is_complex is True
    assert complexity.complexity_factors == [f"long description: {len(message)} chars"]


def test_confidence_grows_with_factors():
    one = check_workout_complexity("Warmup then metcon")
    two = check_workout_complexity("Warmup then metcon: 3 rounds, 5 sets of 5x5, superset, finished 12:00")

    assert one.is_complex and two.is_complex
    assert two.confidence > one.confidence
    assert two.confidence <= 0.95
