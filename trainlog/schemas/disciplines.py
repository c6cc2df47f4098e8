"""Discipline schema plugins.

Each plugin is ``{discipline: object_schema}`` and is placed verbatim under
``discipline_specific.properties`` of the composed schema. Array-typed
properties of a plugin are the structures validation expects to be populated
(``exercises``, ``rounds``, ``segments`` ...).
"""

from typing import Any

from trainlog.schemas.base import nullable, rating, string_list

_SET = {
    "type": "object",
    "required": ["reps"],
    "properties": {
        "set_type": {"type": "string", "enum": ["warmup", "working", "drop", "failure", "opener", "second", "third"]},
        "weight": nullable("number", "Weight used"),
        "weight_unit": {"type": "string", "enum": ["lbs", "kg"]},
        "reps": {"type": "number", "description": "Reps performed"},
        "rpe": rating("Set RPE (1-10)"),
        "rest_time": nullable("number", "Rest after set (seconds)"),
        "percentage_1rm": nullable("number", "Percentage of 1RM"),
        "tempo": nullable("string", "Tempo notation such as 3-1-1-0"),
    },
}

_ROUND_EXERCISE = {
    "type": "object",
    "required": ["exercise_name"],
    "properties": {
        "exercise_name": {"type": "string"},
        "movement_type": {"type": "string", "enum": ["barbell", "dumbbell", "kettlebell", "bodyweight", "gymnastics", "cardio", "other"]},
        "reps": {
            "type": "object",
            "properties": {
                "prescribed": nullable("number", "Prescribed reps"),
                "completed": nullable("number", "Completed reps"),
            },
        },
        "weight": {
            "type": "object",
            "properties": {
                "value": nullable("number", "Load"),
                "unit": {"type": "string", "enum": ["lbs", "kg", "bodyweight"]},
            },
        },
        "distance": nullable("number", "Distance in meters"),
        "calories": nullable("number", "Calories for machine work"),
        "time": nullable("number", "Time in seconds"),
    },
}

CROSSFIT_SCHEMA_PLUGIN: dict[str, Any] = {
    "crossfit": {
        "type": "object",
        "required": ["workout_format", "rx_status", "rounds"],
        "properties": {
            "workout_format": {"type": "string", "enum": ["for_time", "amrap", "emom", "tabata", "ladder", "chipper", "death_by", "intervals", "strength_then_metcon", "other"]},
            "time_cap": nullable("number", "Time cap in seconds"),
            "rx_status": {"type": "string", "enum": ["rx", "scaled", "modified"]},
            "rounds": {
                "type": "array",
                "items": {
                    "type": "object",
                    "required": ["round_number", "exercises"],
                    "properties": {
                        "round_number": {"type": "number"},
                        "phase": nullable("string", "warmup, strength, metcon, cooldown"),
                        "exercises": {"type": "array", "items": _ROUND_EXERCISE},
                    },
                },
            },
            "performance_data": {
                "type": "object",
                "properties": {
                    "total_time": nullable("number", "Total time in seconds"),
                    "rounds_completed": nullable("number", "Rounds completed"),
                    "additional_reps": nullable("number", "Extra reps beyond full rounds"),
                    "score": {
                        "type": "object",
                        "properties": {
                            "value": {"type": ["number", "string", "null"]},
                            "type": {"type": "string", "enum": ["time", "rounds", "reps", "weight", "distance", "points"]},
                        },
                    },
                },
            },
        },
    }
}

POWERLIFTING_SCHEMA_PLUGIN: dict[str, Any] = {
    "powerlifting": {
        "type": "object",
        "required": ["session_type", "exercises"],
        "properties": {
            "session_type": {"type": "string", "enum": ["max_effort", "dynamic_effort", "repetition_method", "competition_prep"]},
            "competition_prep": {"type": "boolean"},
            "exercises": {
                "type": "array",
                "items": {
                    "type": "object",
                    "required": ["exercise_name", "movement_category", "sets"],
                    "properties": {
                        "exercise_name": {"type": "string"},
                        "movement_category": {"type": "string", "enum": ["main_lift", "accessory", "mobility"]},
                        "equipment": string_list("Belt, sleeves, wraps ..."),
                        "sets": {"type": "array", "items": _SET},
                    },
                },
            },
        },
    }
}

BODYBUILDING_SCHEMA_PLUGIN: dict[str, Any] = {
    "bodybuilding": {
        "type": "object",
        "required": ["split_type", "exercises"],
        "properties": {
            "split_type": {"type": "string", "enum": ["push", "pull", "legs", "upper", "lower", "full_body", "bro_split", "other"]},
            "target_muscle_groups": {"type": "array", "items": {"type": "string"}},
            "exercises": {
                "type": "array",
                "items": {
                    "type": "object",
                    "required": ["exercise_name", "sets"],
                    "properties": {
                        "exercise_name": {"type": "string"},
                        "equipment": nullable("string", "Equipment used"),
                        "superset_with": nullable("string", "Exercise paired in a superset"),
                        "sets": {"type": "array", "items": _SET},
                    },
                },
            },
        },
    }
}

OLYMPIC_WEIGHTLIFTING_SCHEMA_PLUGIN: dict[str, Any] = {
    "olympic_weightlifting": {
        "type": "object",
        "required": ["session_type", "lifts"],
        "properties": {
            "session_type": {"type": "string", "enum": ["technique", "strength", "competition", "testing"]},
            "lifts": {
                "type": "array",
                "items": {
                    "type": "object",
                    "required": ["lift_name", "attempts"],
                    "properties": {
                        "lift_name": {"type": "string"},
                        "lift_category": {"type": "string", "enum": ["competition", "variation", "complex", "accessory"]},
                        "complex_structure": nullable("string", "Complex such as 1 clean + 2 jerks"),
                        "attempts": {
                            "type": "array",
                            "items": {
                                "type": "object",
                                "properties": {
                                    "weight": {"type": "number"},
                                    "reps": {"type": "number"},
                                    "successful": {"type": "boolean"},
                                    "percentage_1rm": nullable("number", "Percentage of 1RM"),
                                },
                            },
                        },
                    },
                },
            },
        },
    }
}

FUNCTIONAL_BODYBUILDING_SCHEMA_PLUGIN: dict[str, Any] = {
    "functional_bodybuilding": {
        "type": "object",
        "required": ["exercises"],
        "properties": {
            "session_focus": nullable("string", "Movement pattern or quality focus"),
            "target_muscles": {"type": "array", "items": {"type": "string"}},
            "exercises": {
                "type": "array",
                "items": {
                    "type": "object",
                    "required": ["exercise_name"],
                    "properties": {
                        "exercise_name": {"type": "string"},
                        "structure": {"type": "string", "enum": ["emom", "amrap", "sets", "circuit", "superset"]},
                        "tempo": nullable("string", "Tempo notation"),
                        "sets": {"type": "array", "items": _SET},
                    },
                },
            },
        },
    }
}

CALISTHENICS_SCHEMA_PLUGIN: dict[str, Any] = {
    "calisthenics": {
        "type": "object",
        "required": ["session_focus", "exercises"],
        "properties": {
            "session_focus": {"type": "string", "enum": ["strength", "skill", "endurance", "mobility", "mixed"]},
            "exercises": {
                "type": "array",
                "items": {
                    "type": "object",
                    "required": ["exercise_name", "sets"],
                    "properties": {
                        "exercise_name": {"type": "string"},
                        "progression_level": nullable("string", "tuck, advanced tuck, straddle, full ..."),
                        "assistance": nullable("string", "Band or other assistance"),
                        "sets": {
                            "type": "array",
                            "items": {
                                "type": "object",
                                "properties": {
                                    "reps": nullable("number", "Reps"),
                                    "hold_time": nullable("number", "Hold time in seconds"),
                                    "success": {"type": "boolean"},
                                },
                            },
                        },
                    },
                },
            },
        },
    }
}

HYROX_SCHEMA_PLUGIN: dict[str, Any] = {
    "hyrox": {
        "type": "object",
        "required": ["race_or_training", "stations"],
        "properties": {
            "race_or_training": {"type": "string", "enum": ["race", "simulation", "training"]},
            "division": nullable("string", "Open, Pro, Doubles, Relay"),
            "stations": {
                "type": "array",
                "items": {
                    "type": "object",
                    "required": ["station_name"],
                    "properties": {
                        "station_number": nullable("number", "1-8"),
                        "station_name": {"type": "string"},
                        "distance": nullable("number", "Distance in meters"),
                        "reps": nullable("number", "Reps"),
                        "weight": nullable("number", "Load"),
                        "time": nullable("number", "Station time in seconds"),
                    },
                },
            },
            "runs": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "run_number": {"type": "number"},
                        "distance": {"type": "number"},
                        "time": nullable("number", "Run time in seconds"),
                    },
                },
            },
            "total_time": nullable("number", "Total time in seconds"),
        },
    }
}

RUNNING_SCHEMA_PLUGIN: dict[str, Any] = {
    "running": {
        "type": "object",
        "required": ["run_type", "total_distance", "distance_unit"],
        "properties": {
            "run_type": {"type": "string", "enum": ["easy", "tempo", "intervals", "long", "race", "recovery", "fartlek", "hill", "other"]},
            "total_distance": {"type": "number"},
            "distance_unit": {"type": "string", "enum": ["miles", "km", "meters"]},
            "total_time": nullable("number", "Total time in seconds"),
            "average_pace": nullable("string", "Average pace such as 7:30/mile"),
            "elevation_gain": nullable("number", "Elevation gain"),
            "surface": {"type": "string", "enum": ["road", "trail", "track", "treadmill", "mixed"]},
            "segments": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "segment_number": {"type": "number"},
                        "segment_type": {"type": "string", "enum": ["warmup", "main", "interval", "recovery", "cooldown"]},
                        "distance": nullable("number", "Segment distance"),
                        "time": nullable("number", "Segment time in seconds"),
                        "pace": nullable("string", "Segment pace"),
                        "heart_rate_avg": nullable("number", "Average heart rate"),
                    },
                },
            },
        },
    }
}

CIRCUIT_TRAINING_SCHEMA_PLUGIN: dict[str, Any] = {
    "circuit_training": {
        "type": "object",
        "required": ["circuit_format", "stations"],
        "properties": {
            "circuit_format": {"type": "string", "enum": ["timed_stations", "rep_based", "tabata", "bootcamp", "class", "other"]},
            "class_name": nullable("string", "Class or program name"),
            "total_rounds": nullable("number", "Rounds through the circuit"),
            "work_interval": nullable("number", "Work interval in seconds"),
            "rest_interval": nullable("number", "Rest interval in seconds"),
            "stations": {
                "type": "array",
                "items": {
                    "type": "object",
                    "required": ["station_name"],
                    "properties": {
                        "station_name": {"type": "string"},
                        "exercise": nullable("string", "Exercise performed"),
                        "reps": nullable("number", "Reps"),
                        "weight": nullable("number", "Load"),
                        "duration": nullable("number", "Duration in seconds"),
                    },
                },
            },
        },
    }
}

HYBRID_SCHEMA_PLUGIN: dict[str, Any] = {
    "hybrid": {
        "type": "object",
        "required": ["phases"],
        "properties": {
            "primary_focus": nullable("string", "strength, conditioning, skill, mixed"),
            "workout_style": nullable("string", "Free-form style description"),
            "phases": {
                "type": "array",
                "items": {
                    "type": "object",
                    "required": ["phase_name", "exercises"],
                    "properties": {
                        "phase_name": {"type": "string"},
                        "phase_type": {"type": "string", "enum": ["warmup", "strength", "conditioning", "skill", "cooldown", "other"]},
                        "duration": nullable("number", "Phase duration in seconds"),
                        "exercises": {"type": "array", "items": _ROUND_EXERCISE},
                    },
                },
            },
            "exercises": {"type": "array", "items": _ROUND_EXERCISE},
        },
    }
}

DISCIPLINE_PLUGIN_MAP: dict[str, dict[str, Any]] = {
    "crossfit": CROSSFIT_SCHEMA_PLUGIN,
    "powerlifting": POWERLIFTING_SCHEMA_PLUGIN,
    "bodybuilding": BODYBUILDING_SCHEMA_PLUGIN,
    "olympic_weightlifting": OLYMPIC_WEIGHTLIFTING_SCHEMA_PLUGIN,
    "functional_bodybuilding": FUNCTIONAL_BODYBUILDING_SCHEMA_PLUGIN,
    "calisthenics": CALISTHENICS_SCHEMA_PLUGIN,
    "hyrox": HYROX_SCHEMA_PLUGIN,
    "running": RUNNING_SCHEMA_PLUGIN,
    "circuit_training": CIRCUIT_TRAINING_SCHEMA_PLUGIN,
    "hybrid": HYBRID_SCHEMA_PLUGIN,
}
