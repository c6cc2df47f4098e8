"""Compose an extraction schema for one discipline.

Only the base schema plus ONE discipline plugin is sent to the model, which
keeps the tool definition small. Unknown disciplines fall back to the
crossfit plugin (the most permissive mixed-modality shape).
"""

import json
from copy import deepcopy
from typing import Any

from loguru import logger

from trainlog.schemas.base import BASE_WORKOUT_SCHEMA
from trainlog.schemas.disciplines import DISCIPLINE_PLUGIN_MAP

FALLBACK_DISCIPLINE = "crossfit"


def is_discipline_supported(discipline: str) -> bool:
    return discipline in DISCIPLINE_PLUGIN_MAP


def compose_schema(discipline: str) -> dict[str, Any]:
    """Merge the base workout schema with a single discipline plugin.

    Args:
        discipline: Detected workout discipline

    Returns:
        JSON schema with base fields plus ``discipline_specific``
    """
    plugin = DISCIPLINE_PLUGIN_MAP.get(discipline)
    schema_discipline = discipline
    if plugin is None:
        logger.warning(
            "No schema plugin for discipline, falling back",
            discipline=discipline,
            fallback=FALLBACK_DISCIPLINE,
        )
        plugin = DISCIPLINE_PLUGIN_MAP[FALLBACK_DISCIPLINE]
        schema_discipline = FALLBACK_DISCIPLINE

    composed = deepcopy(BASE_WORKOUT_SCHEMA)
    composed["properties"]["discipline_specific"] = {
        "type": "object",
        "properties": deepcopy(plugin),
        "description": f"Discipline-specific data for {schema_discipline} workouts",
    }

    logger.debug(
        "Composed extraction schema",
        discipline=schema_discipline,
        schema_chars=len(json.dumps(composed)),
    )
    return composed


def get_expected_array_fields(discipline: str) -> list[str]:
    """Array-typed properties of a discipline plugin.

    Examples:
        >>> get_expected_array_fields("running")
        ['segments']
        >>> get_expected_array_fields("unknown")
        []
    """
    plugin = DISCIPLINE_PLUGIN_MAP.get(discipline)
    if plugin is None:
        return []

    properties = plugin.get(discipline, {}).get("properties", {})
    return [name for name, field_schema in properties.items() if field_schema.get("type") == "array"]
