"""Per-run context shared by the workout logger tools."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from trainlog.agents.workout_logger.result_store import ResultStore
from trainlog.config.settings import settings
from trainlog.persistence.types import TemplateContext
from trainlog.persistence.workout_repository import WorkoutRepository


class WorkoutLoggerContext(BaseModel):
    """Everything a tool needs besides its own input.

    A fresh context (and therefore a fresh ``ResultStore``) is built for
    every extraction run and never shared between runs.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    user_id: str
    coach_id: str
    conversation_id: str | None = None
    user_timezone: str = Field(default_factory=lambda: settings.default_user_timezone)
    is_slash_command: bool = False
    slash_command: str | None = None
    message_timestamp: datetime | None = None
    template_context: TemplateContext | None = None
    # Image URLs or local file paths attached to the message
    image_refs: list[str] = Field(default_factory=list)
    store: ResultStore = Field(default_factory=ResultStore)
    repository: WorkoutRepository
