"""Workout summaries for coaching context, search indexing and display."""

import json
from typing import Any

from loguru import logger

from trainlog.config.models import SUMMARY_MODEL
from trainlog.services.llm.structured import request_text

SUMMARY_PROMPT = """You are a fitness coach creating a concise summary of a completed workout for coaching context and display.

Write 2-3 sentences that capture:
1. What was completed (name, discipline, key movements); always include the workout name when one is given
2. Key performance highlights (weights, times, rounds, reps, sets, notable achievements)
3. Relevant context (conditions, how it felt, modifications)

EXAMPLES:
- "Completed Fran (21-15-9 thrusters/pull-ups) in 8:47 Rx. Unbroken thrusters in the first round and only 2 breaks on pull-ups."
- "Heavy deadlift session with 5x3 at 315lbs, hitting a new 3RM. Form stayed solid with controlled negatives."

Respond with the summary text only."""


def build_fallback_summary(workout_data: dict[str, Any]) -> str:
    """Deterministic summary: ``Completed <name> (<discipline>) in <N>min``."""
    summary = f"Completed {workout_data.get('workout_name') or 'Workout'}"
    if workout_data.get("discipline"):
        summary += f" ({workout_data['discipline']})"
    duration = workout_data.get("duration")
    if isinstance(duration, (int, float)) and duration > 0:
        summary += f" in {round(duration / 60)}min"
    return summary


async def generate_workout_summary(workout_data: dict[str, Any], original_message: str) -> str:
    """Generate a short natural-language workout summary.

    Falls back to a deterministic summary if the model call fails or returns
    nothing.
    """
    user_prompt = (
        f"WORKOUT DATA:\n{json.dumps(workout_data, indent=2, default=str)}\n\n"
        f'ORIGINAL USER MESSAGE:\n"{original_message}"'
    )
    try:
        summary = await request_text(model_name=SUMMARY_MODEL, system_prompt=SUMMARY_PROMPT, user_prompt=user_prompt)
    except Exception as e:
        logger.error(f"Error generating workout summary, using fallback: {e}")
        return build_fallback_summary(workout_data)

    summary = summary.strip().removeprefix("SUMMARY:").strip()
    return summary or build_fallback_summary(workout_data)
