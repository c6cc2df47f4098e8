"""Caller-facing entry point for workout logging.

``log_workout`` builds a fresh context and agent for one inbound message,
runs it, and always returns a ``WorkoutLogResult``; it never raises.
"""

from datetime import datetime

from loguru import logger

from trainlog.agents.core.types import ModelProvider
from trainlog.agents.workout_logger.agent import WorkoutLoggerAgent
from trainlog.agents.workout_logger.context import WorkoutLoggerContext
from trainlog.agents.workout_logger.results import WorkoutLogResult
from trainlog.config.settings import settings
from trainlog.persistence.types import TemplateContext
from trainlog.persistence.workout_repository import SqlWorkoutRepository, WorkoutRepository
from trainlog.workouts.slash_commands import parse_slash_command

IMAGE_ONLY_MESSAGE = "Log the workout shown in the attached image(s)."


async def log_workout(
    user_message: str,
    *,
    user_id: str,
    coach_id: str,
    conversation_id: str | None = None,
    user_timezone: str | None = None,
    message_timestamp: datetime | None = None,
    template_context: TemplateContext | None = None,
    image_refs: list[str] | None = None,
    repository: WorkoutRepository | None = None,
    provider: ModelProvider | None = None,
) -> WorkoutLogResult:
    """Extract, validate and save the workout(s) described in ``user_message``.

    Args:
        user_message: Raw message from the user (may start with a slash command)
        user_id: Owning user
        coach_id: Coach the conversation is with
        conversation_id: Conversation the message belongs to
        user_timezone: IANA timezone used to resolve relative times
        message_timestamp: When the message was sent (defaults to now)
        template_context: Program template the workout is logged against
        image_refs: Image URLs or local paths attached to the message (whiteboards, watch screens)
        repository: Persistence collaborator (defaults to SQLAlchemy)
        provider: Model provider (defaults to pydantic-ai)

    Returns:
        WorkoutLogResult; failures are reported as ``success=False, skipped=True``
    """
    try:
        slash_command = parse_slash_command(user_message)
        is_slash_command = slash_command is not None and slash_command.is_workout_command
        message = slash_command.content if is_slash_command and slash_command else user_message
        if not message.strip():
            if not image_refs:
                return WorkoutLogResult(success=False, skipped=True, reason="Empty workout message")
            message = IMAGE_ONLY_MESSAGE

        context = WorkoutLoggerContext(
            user_id=user_id,
            coach_id=coach_id,
            conversation_id=conversation_id,
            user_timezone=user_timezone or settings.default_user_timezone,
            is_slash_command=is_slash_command,
            slash_command=slash_command.command if is_slash_command and slash_command else None,
            message_timestamp=message_timestamp,
            template_context=template_context,
            image_refs=list(image_refs or []),
            repository=repository or SqlWorkoutRepository(),
        )
        logger.info(
            "Logging workout",
            user_id=user_id,
            coach_id=coach_id,
            is_slash_command=is_slash_command,
            has_template=template_context is not None,
            image_count=len(context.image_refs),
        )

        agent = WorkoutLoggerAgent(context, provider=provider)
        result = await agent.run(message)
    except Exception as e:
        logger.exception(f"Workout logging failed: {e}")
        return WorkoutLogResult(success=False, skipped=True, reason=str(e))

    logger.info(
        "Workout logging finished",
        success=result.success,
        workout_id=result.workout_id,
        blocking_flags=result.blocking_flags,
    )
    return result
