"""Completion-time extraction for logged workouts."""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from loguru import logger
from pydantic import BaseModel, Field
from pydantic_ai import Agent

from trainlog.config.models import TIME_EXTRACTION_MODEL
from trainlog.config.settings import settings
from trainlog.services.llm.model import get_model

TIME_EXTRACTION_PROMPT = """You are a time extraction expert. Determine when the described workout was actually completed.

RULES
1. Use MESSAGE TYPED AT as the reference point for all relative times ("this morning", "yesterday")
2. Convert timezone abbreviations (ET, PT, CT, MT) and local times to UTC
3. "this morning" means roughly 9am local, "afternoon" 2pm, "evening" 7pm
4. A workout cannot finish after the message was typed; re-check dates that land in the future
5. Return completed_at = null for planning questions or when the message is not about a completed workout
"""


class CompletedAtExtraction(BaseModel):
    """Model output for completion-time extraction."""

    completed_at: datetime | None = Field(default=None, description="Completion time in UTC (ISO 8601) or null")
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    reasoning: str = Field(default="")


def _user_local_time(reference: datetime, user_timezone: str) -> str:
    try:
        return reference.astimezone(ZoneInfo(user_timezone)).strftime("%Y-%m-%d %H:%M (%A)")
    except ZoneInfoNotFoundError:
        logger.warning("Unknown user timezone, using UTC", user_timezone=user_timezone)
        return reference.strftime("%Y-%m-%d %H:%M (%A) UTC")


async def extract_completed_at(
    user_message: str,
    message_timestamp: datetime | None = None,
    user_timezone: str | None = None,
) -> datetime | None:
    """Extract when a workout was completed.

    Args:
        user_message: Workout description
        message_timestamp: When the user typed the message (defaults to now)
        user_timezone: IANA timezone of the user

    Returns:
        Completion time in UTC, None when the message does not describe a
        completed workout, or the current time if extraction fails
    """
    user_timezone = user_timezone or settings.default_user_timezone
    reference = message_timestamp or datetime.now(timezone.utc)
    if reference.tzinfo is None:
        reference = reference.replace(tzinfo=timezone.utc)

    user_prompt = (
        f'USER MESSAGE: "{user_message}"\n'
        f"MESSAGE TYPED AT: {reference.isoformat()} (UTC)\n"
        f"USER'S LOCAL TIME WHEN TYPED: {_user_local_time(reference, user_timezone)} ({user_timezone})\n"
        f"CURRENT SERVER TIME: {datetime.now(timezone.utc).isoformat()} (UTC)"
    )

    try:
        agent = Agent(
            model=get_model(settings.llm_provider, TIME_EXTRACTION_MODEL),
            system_prompt=TIME_EXTRACTION_PROMPT,
            output_type=CompletedAtExtraction,
        )
        result = await agent.run(user_prompt)
        extraction = result.output
    except Exception as e:
        logger.warning(f"Time extraction failed, using current time: {e}")
        return datetime.now(timezone.utc)

    completed_at = extraction.completed_at
    if completed_at is None:
        logger.info("No completion time extracted", reasoning=extraction.reasoning)
        return None

    if completed_at.tzinfo is None:
        completed_at = completed_at.replace(tzinfo=timezone.utc)

    hours_ahead = (completed_at - reference).total_seconds() / 3600
    if hours_ahead > 1:
        logger.warning(
            "Extracted completion time is after the message time",
            completed_at=completed_at.isoformat(),
            message_time=reference.isoformat(),
            hours_ahead=round(hours_ahead, 2),
        )

    logger.info(
        "Completion time extracted",
        completed_at=completed_at.isoformat(),
        confidence=extraction.confidence,
    )
    return completed_at
