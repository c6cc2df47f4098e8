"""Structured workout extraction.

The primary path offers the model a single ``generate_workout`` tool whose
parameters are the discipline-narrowed schema. If the model does not call the
tool (or the call fails), a fallback asks for raw JSON text and runs it
through the response repair pipeline. System-owned fields are stamped by the
caller after either path; the model is never trusted for them.

Attached images travel with the user message on both paths. Messages that
describe complex multi-phase sessions are extracted with a larger model and
output budget.
"""

import json
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Literal

from loguru import logger

from trainlog.config.models import (
    COMPLEX_EXTRACTION_MAX_TOKENS,
    COMPLEX_EXTRACTION_MODEL,
    EXTRACTION_MAX_TOKENS,
    EXTRACTION_MODEL,
)
from trainlog.parsing.response_repair import fix_double_encoded_properties, parse_trusted_json
from trainlog.schemas.composer import compose_schema
from trainlog.services.llm.structured import request_text, request_tool_input
from trainlog.workouts.classifiers import check_workout_complexity

WorkoutData = dict[str, Any]
GenerationMethod = Literal["tool", "fallback"]

EXTRACTION_TOOL_NAME = "generate_workout"
DEFAULT_INTENSITY = 5
DEFAULT_PERCEIVED_EXERTION = 5

_DOUBLE_ENCODING_WATCHLIST = ("discipline_specific", "performance_metrics", "subjective_feedback", "metadata", "coach_notes")


def generate_workout_id(user_id: str) -> str:
    """Generate a workout id: ``workout_{user_id}_{epoch_ms}_{short_id}``."""
    return f"workout_{user_id}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def build_extraction_prompt(
    discipline: str,
    user_timezone: str,
    message_timestamp: datetime,
    is_slash_command: bool = False,
    image_count: int = 0,
) -> str:
    """Build the system prompt for workout extraction."""
    local_date = message_timestamp.strftime("%Y-%m-%d")
    command_note = (
        "The user logged this with an explicit logging command: extract everything you can, "
        "assume sensible defaults for missing values, and do not add planning or advice flags.\n"
        if is_slash_command
        else ""
    )
    image_note = (
        f"The user attached {image_count} image(s) (whiteboard, app or watch screenshots). Read sets, reps, loads, "
        "times and distances from them as well as from the text.\n"
        if image_count
        else ""
    )
    return f"""You are a workout data extraction engine for a {discipline} workout.

Convert the user's description of a COMPLETED workout into structured data that matches the tool schema.

RULES
1. Put discipline-specific data under discipline_specific.{discipline}
2. Preserve every number the user gave (weights, reps, sets, times, distances) with its unit
3. Times and durations are in seconds
4. Use null for unknown optional values; never invent performance numbers
5. The workout date is YYYY-MM-DD; today's date for the user is {local_date} ({user_timezone})
6. Record data-quality concerns in metadata.validation_flags:
   - planning_inquiry: the user asks what to do rather than reporting what they did
   - advice_seeking: the user asks for advice
   - future_planning: the workout has not happened yet
   - no_performance_data: no sets, reps, loads, times or distances were given
7. metadata.logged_via is "conversation" and metadata.ai_extracted is true
{command_note}{image_note}"""


def apply_performance_metric_defaults(workout_data: WorkoutData) -> None:
    """Default intensity and perceived exertion to 5 when missing."""
    metrics = workout_data.get("performance_metrics")
    if not isinstance(metrics, dict):
        metrics = {}
        workout_data["performance_metrics"] = metrics

    if metrics.get("intensity") is None:
        metrics["intensity"] = DEFAULT_INTENSITY
    if metrics.get("perceived_exertion") is None:
        metrics["perceived_exertion"] = DEFAULT_PERCEIVED_EXERTION


def reconcile_discipline(workout_data: WorkoutData) -> None:
    """Align ``discipline`` with the key the model actually stored data under."""
    discipline_specific = workout_data.get("discipline_specific")
    if not isinstance(discipline_specific, dict) or not discipline_specific:
        return

    actual_key = next(iter(discipline_specific))
    if workout_data.get("discipline") != actual_key:
        logger.warning(
            "Discipline mismatch detected, correcting discipline field",
            declared=workout_data.get("discipline"),
            actual_data_key=actual_key,
        )
        workout_data["discipline"] = actual_key


def unwrap_workout_log(data: Any) -> Any:
    """Remove a top-level ``workout_log`` wrapper the fallback path sometimes adds."""
    if isinstance(data, dict) and "workout_log" in data and not data.get("workout_id"):
        logger.info("Unwrapping workout_log wrapper from fallback extraction")
        return data["workout_log"]
    return data


def find_double_encoded_fields(workout_data: WorkoutData) -> list[str]:
    """List top-level and first-level nested fields holding JSON-looking strings."""
    found: list[str] = []
    for key in _DOUBLE_ENCODING_WATCHLIST:
        value = workout_data.get(key)
        if isinstance(value, str) and value.lstrip().startswith(("{", "[")):
            found.append(key)
        elif isinstance(value, dict):
            found.extend(
                f"{key}.{sub_key}"
                for sub_key, sub_value in value.items()
                if isinstance(sub_value, str) and sub_value.lstrip().startswith(("{", "["))
            )
    return found


async def extract_structured_workout(
    *,
    discipline: str,
    user_message: str,
    user_timezone: str,
    message_timestamp: datetime | None = None,
    is_slash_command: bool = False,
    image_refs: list[str] | None = None,
) -> tuple[WorkoutData, GenerationMethod]:
    """Extract a structured workout candidate from a message.

    Args:
        discipline: Detected discipline used to narrow the schema
        user_message: Workout description
        user_timezone: IANA timezone of the user
        message_timestamp: When the message was typed
        is_slash_command: Whether the user used an explicit logging command
        image_refs: Images attached to the message

    Returns:
        Tuple of (workout data, generation method)

    Raises:
        MalformedResponseError: If the fallback response cannot be parsed
        ValueError: If the fallback response is not a JSON object
    """
    reference = message_timestamp or datetime.now(timezone.utc)
    system_prompt = build_extraction_prompt(
        discipline, user_timezone, reference, is_slash_command, image_count=len(image_refs or [])
    )
    schema = compose_schema(discipline)

    complexity = check_workout_complexity(user_message)
    model_name = COMPLEX_EXTRACTION_MODEL if complexity.is_complex else EXTRACTION_MODEL
    max_tokens = COMPLEX_EXTRACTION_MAX_TOKENS if complexity.is_complex else EXTRACTION_MAX_TOKENS
    logger.info(
        "Workout complexity checked",
        is_complex=complexity.is_complex,
        factors=complexity.complexity_factors,
        model=model_name,
        images=len(image_refs or []),
    )

    try:
        workout_data = await request_tool_input(
            model_name=model_name,
            system_prompt=system_prompt,
            user_prompt=user_message,
            tool_name=EXTRACTION_TOOL_NAME,
            tool_description=f"Generate structured {discipline} workout data from the user's description",
            parameters_schema=schema,
            max_tokens=max_tokens,
            image_refs=image_refs,
        )
        generation_method: GenerationMethod = "tool"
        logger.info("Tool-based extraction succeeded", discipline=discipline)
    except Exception as e:
        logger.warning(f"Tool-based extraction failed, using fallback: {e}")
        fallback_prompt = (
            f"{system_prompt}\n"
            "Return ONLY a JSON object matching this schema. No markdown, no commentary.\n"
            f"{json.dumps(schema)}"
        )
        raw = await request_text(
            model_name=model_name,
            system_prompt=fallback_prompt,
            user_prompt=user_message,
            image_refs=image_refs,
        )
        workout_data = unwrap_workout_log(parse_trusted_json(raw))
        generation_method = "fallback"
        logger.info("Fallback extraction completed", discipline=discipline)

    if not isinstance(workout_data, dict):
        raise ValueError(f"Extraction returned {type(workout_data).__name__}, expected an object")

    double_encoded = find_double_encoded_fields(workout_data)
    if double_encoded:
        logger.warning("Double-encoded fields in extraction output", fields=double_encoded)
    # The watchlist only reaches one level down; the repair is recursive
    workout_data = fix_double_encoded_properties(workout_data)

    reconcile_discipline(workout_data)
    return workout_data, generation_method
