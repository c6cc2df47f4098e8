"""Confidence and completeness scores for workout candidates."""

from typing import Any

WorkoutData = dict[str, Any]

# Weights sum to 1.0. Schema-required identity fields are cheap so a
# candidate holding only those (e.g. a reflection) scores below 0.2.
COMPLETENESS_WEIGHTS = {
    "date": 0.03,
    "discipline": 0.03,
    "workout_type": 0.03,
    "location": 0.05,
    "subjective_feedback": 0.05,
    "workout_name": 0.10,
    "duration": 0.10,
    "performance_metrics": 0.10,
    "pr_achievements": 0.05,
    "discipline_data": 0.20,
    "discipline_structure": 0.26,
}

_DEFAULTED_METRICS = {"intensity", "perceived_exertion"}


def _has_value(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, dict):
        return any(_has_value(item) for item in value.values())
    if isinstance(value, (list, str)):
        return len(value) > 0
    return True


def _flags(workout_data: WorkoutData) -> list[str]:
    metadata = workout_data.get("metadata")
    if not isinstance(metadata, dict):
        return []
    flags = metadata.get("validation_flags")
    return flags if isinstance(flags, list) else []


def get_discipline_data(workout_data: WorkoutData) -> dict[str, Any] | None:
    """Return discipline-specific data, falling back to any non-empty key."""
    discipline_specific = workout_data.get("discipline_specific")
    if not isinstance(discipline_specific, dict):
        return None

    declared = discipline_specific.get(workout_data.get("discipline"))
    if isinstance(declared, dict) and declared:
        return declared

    for candidate in discipline_specific.values():
        if isinstance(candidate, dict) and candidate:
            return candidate
    return None


def calculate_confidence(workout_data: WorkoutData) -> float:
    """Confidence in the extracted data, clamped to [0.1, 1.0]."""
    confidence = 0.5

    if workout_data.get("workout_name"):
        confidence += 0.2

    discipline_specific = workout_data.get("discipline_specific")
    crossfit = discipline_specific.get("crossfit") if isinstance(discipline_specific, dict) else None
    performance_data = crossfit.get("performance_data") if isinstance(crossfit, dict) else None
    if isinstance(performance_data, dict) and performance_data.get("total_time"):
        confidence += 0.2

    metrics = workout_data.get("performance_metrics")
    if isinstance(metrics, dict) and metrics.get("perceived_exertion"):
        confidence += 0.1
    feedback = workout_data.get("subjective_feedback")
    if isinstance(feedback, dict) and feedback.get("notes"):
        confidence += 0.1

    confidence -= len(_flags(workout_data)) * 0.05
    return max(0.1, min(1.0, confidence))


def calculate_completeness(workout_data: WorkoutData) -> float:
    """Weighted field coverage of a workout candidate in [0.0, 1.0]."""
    metrics = workout_data.get("performance_metrics")
    measured_metrics = (
        {key: value for key, value in metrics.items() if key not in _DEFAULTED_METRICS}
        if isinstance(metrics, dict)
        else {}
    )
    discipline_data = get_discipline_data(workout_data)

    present = {
        "date": _has_value(workout_data.get("date")),
        "discipline": _has_value(workout_data.get("discipline")),
        "workout_type": _has_value(workout_data.get("workout_type")),
        "location": _has_value(workout_data.get("location")),
        "subjective_feedback": _has_value(workout_data.get("subjective_feedback")),
        "workout_name": _has_value(workout_data.get("workout_name")),
        "duration": _has_value(workout_data.get("duration")) or _has_value(workout_data.get("session_duration")),
        "performance_metrics": _has_value(measured_metrics),
        "pr_achievements": _has_value(workout_data.get("pr_achievements")),
        "discipline_data": discipline_data is not None,
        "discipline_structure": discipline_data is not None
        and any(isinstance(value, list) and value for value in discipline_data.values()),
    }

    score = sum(weight for field, weight in COMPLETENESS_WEIGHTS.items() if present[field])
    return round(min(1.0, score), 4)
