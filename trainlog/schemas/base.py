"""Base workout schema shared by every discipline.

Discipline-specific fields live in ``trainlog.schemas.disciplines`` and are
merged in under ``discipline_specific`` by ``compose_schema``.
"""

from typing import Any

BASE_SCHEMA_VERSION = "2.0"

ALL_DISCIPLINES = [
    "crossfit",
    "powerlifting",
    "bodybuilding",
    "olympic_weightlifting",
    "functional_bodybuilding",
    "calisthenics",
    "hiit",
    "running",
    "swimming",
    "cycling",
    "yoga",
    "martial_arts",
    "climbing",
    "hyrox",
    "circuit_training",
    "hybrid",
]


def nullable(json_type: str, description: str, **extra: Any) -> dict[str, Any]:
    return {"type": [json_type, "null"], "description": description, **extra}


def rating(description: str) -> dict[str, Any]:
    """Nullable 1-10 scale rating."""
    return nullable("number", description, minimum=1, maximum=10)


def string_list(description: str) -> dict[str, Any]:
    return {"type": ["array", "null"], "items": {"type": "string"}, "description": description}


BASE_WORKOUT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["date", "discipline", "workout_type", "metadata"],
    "properties": {
        "workout_id": {
            "type": "string",
            "pattern": "^workout_.*$",
            "description": "System-assigned identifier, workout_{userId}_{timestamp}_{shortId}",
        },
        "user_id": {"type": "string", "description": "Owning user identifier (system-assigned)"},
        "date": {
            "type": "string",
            "pattern": r"^\d{4}-\d{2}-\d{2}$",
            "description": "Workout date in YYYY-MM-DD format",
        },
        "discipline": {
            "type": "string",
            "enum": ALL_DISCIPLINES,
            "description": "Primary training discipline for this workout",
        },
        "methodology": nullable("string", 'Training methodology (e.g., "Westside Barbell", "CompTrain")'),
        "workout_name": nullable("string", 'Name or title of the workout (e.g., "Fran", "Deadlift Day")'),
        "workout_type": {
            "type": "string",
            "enum": ["strength", "cardio", "flexibility", "skill", "competition", "recovery", "hybrid"],
            "description": "Primary type/focus of the workout",
        },
        "duration": nullable("number", "Total work time in seconds"),
        "session_duration": nullable("number", "Total gym session time in seconds, only if stated"),
        "location": {
            "type": "string",
            "enum": ["gym", "box", "home", "outdoors", "online", "other"],
            "description": "Where the workout took place",
        },
        "performance_metrics": {
            "type": "object",
            "properties": {
                "intensity": rating("Overall intensity rating (1-10)"),
                "perceived_exertion": rating("Rate of perceived exertion (1-10)"),
                "heart_rate": {
                    "type": "object",
                    "properties": {
                        "avg": nullable("number", "Average heart rate (bpm)"),
                        "max": nullable("number", "Maximum heart rate (bpm)"),
                    },
                },
                "calories_burned": nullable("number", "Estimated calories burned"),
                "mood_pre": rating("Mood before workout (1-10)"),
                "mood_post": rating("Mood after workout (1-10)"),
            },
        },
        "pr_achievements": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["exercise", "pr_type", "new_best"],
                "properties": {
                    "exercise": {"type": "string", "description": "Exercise where the PR was achieved"},
                    "pr_type": {
                        "type": "string",
                        "enum": ["1rm", "volume_pr", "distance_pr", "time_pr", "pace_pr", "workout_time", "rounds_pr"],
                    },
                    "previous_best": nullable("number", "Previous best value"),
                    "new_best": {"type": "number", "description": "New best value"},
                    "unit": nullable("string", "Unit of the PR value (lbs, kg, km, sec, ...)"),
                },
            },
        },
        "subjective_feedback": {
            "type": "object",
            "properties": {
                "enjoyment": rating("Enjoyment (1-10)"),
                "difficulty": rating("Difficulty (1-10)"),
                "soreness": {
                    "type": "object",
                    "properties": {
                        "level": rating("Soreness level (1-10)"),
                        "location": string_list("Sore body parts"),
                    },
                },
                "sleep_hours": nullable("number", "Hours slept the night before"),
                "notes": nullable("string", "Free-form notes about how the workout felt"),
                "overall_feeling": nullable("string", "One-phrase overall feeling"),
            },
        },
        "environmental_factors": {
            "type": "object",
            "properties": {
                "temperature": nullable("number", "Temperature"),
                "altitude": nullable("number", "Altitude"),
                "weather": nullable("string", "Weather description"),
            },
        },
        "coach_notes": {
            "type": "object",
            "properties": {
                "programming_intent": nullable("string", "Why this session was programmed"),
                "coaching_cues": string_list("Cues given during the session"),
                "next_session_focus": nullable("string", "Focus for the next session"),
            },
        },
        "metadata": {
            "type": "object",
            "required": ["logged_via", "data_confidence", "ai_extracted", "validation_flags"],
            "properties": {
                "logged_via": {
                    "type": "string",
                    "enum": ["conversation", "app", "wearable", "manual", "slash_command"],
                },
                "data_confidence": {"type": "number", "minimum": 0, "maximum": 1},
                "data_completeness": {"type": "number", "minimum": 0, "maximum": 1},
                "ai_extracted": {"type": "boolean"},
                "user_verified": {"type": "boolean"},
                "schema_version": {"type": "string"},
                "validation_flags": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": (
                        "Data-quality flags. Use planning_inquiry, advice_seeking, future_planning or "
                        "no_performance_data when the message is not a completed, loggable workout."
                    ),
                },
                "extraction_notes": nullable("string", "Notes about ambiguous or assumed values"),
                "generation_method": {"type": "string", "enum": ["tool", "fallback"]},
                "generation_timestamp": {"type": "string", "format": "date-time"},
            },
        },
    },
}
