"""Workout logger agent.

A ``ToolAgent`` specialised for workout extraction: it owns a per-run
``ResultStore``, stores every tool outcome under the tool's role key at the
workout index the model passed, vetoes gated tools through the blocking
gate, and turns the final state of the store into a ``WorkoutLogResult``.
"""

import re

from loguru import logger
from pydantic import BaseModel

from trainlog.agents.core.agent import ToolAgent
from trainlog.agents.core.provider import PydanticAIModelProvider
from trainlog.agents.core.types import ModelProvider
from trainlog.agents.workout_logger.blocking import check_blocking, validation_veto
from trainlog.agents.workout_logger.context import WorkoutLoggerContext
from trainlog.agents.workout_logger.prompts import build_workout_logger_prompt
from trainlog.agents.workout_logger.result_store import ResultStore
from trainlog.agents.workout_logger.results import (
    STORAGE_KEY_MAP,
    ExtractionResult,
    NormalizationToolResult,
    SavedWorkoutSummary,
    SaveResult,
    ToolError,
    ValidationResult,
    WorkoutLogResult,
)
from trainlog.agents.workout_logger.retry import ResponseClassifier, decide_retry
from trainlog.agents.workout_logger.tools.discipline import DetectDisciplineTool
from trainlog.agents.workout_logger.tools.extraction import ExtractWorkoutDataTool
from trainlog.agents.workout_logger.tools.normalization import NormalizeWorkoutDataTool
from trainlog.agents.workout_logger.tools.save import SaveWorkoutTool
from trainlog.agents.workout_logger.tools.summary import GenerateWorkoutSummaryTool
from trainlog.agents.workout_logger.tools.validation import ValidateWorkoutCompletenessTool
from trainlog.config.models import ORCHESTRATOR_MODEL
from trainlog.core.errors import WorkoutLoggerError

WORKOUT_ID_PATTERN = re.compile(r"workout_[a-z0-9_]+", re.IGNORECASE)

PIPELINE_ROLES = ("extraction", "validation", "normalization", "save")

CLARIFICATION_REASON = "Agent requested clarification"
INCOMPLETE_REASON = "Workflow incomplete - could not determine workout log result"


def build_tools() -> list:
    return [
        DetectDisciplineTool(),
        ExtractWorkoutDataTool(),
        ValidateWorkoutCompletenessTool(),
        NormalizeWorkoutDataTool(),
        GenerateWorkoutSummaryTool(),
        SaveWorkoutTool(),
    ]


class WorkoutLoggerAgent(ToolAgent[WorkoutLoggerContext]):
    """Extracts, validates and saves workouts from one user message."""

    def __init__(
        self,
        context: WorkoutLoggerContext,
        *,
        provider: ModelProvider | None = None,
        classifier: ResponseClassifier | None = None,
        max_iterations: int | None = None,
    ):
        super().__init__(
            provider=provider or PydanticAIModelProvider(),
            system_prompt=build_workout_logger_prompt(context),
            tools=build_tools(),
            context=context,
            model_id=ORCHESTRATOR_MODEL,
            max_iterations=max_iterations,
        )
        self.classifier = classifier

    @property
    def store(self) -> ResultStore:
        return self.context.store

    def enforce_tool_blocking(self, tool_name: str, tool_input: BaseModel) -> BaseModel | None:
        return check_blocking(tool_name, getattr(tool_input, "workout_index", None), self.store)

    def on_tool_success(self, tool_name: str, tool_input: BaseModel, result: BaseModel) -> None:
        role = STORAGE_KEY_MAP.get(tool_name)
        if role is None:
            return
        self.store.write(role, result, getattr(tool_input, "workout_index", None))

    def on_tool_error(self, tool_name: str, tool_input: BaseModel | None, error: Exception) -> None:
        role = STORAGE_KEY_MAP.get(tool_name)
        if role is None:
            return
        index = getattr(tool_input, "workout_index", None) if tool_input is not None else None
        if role == "validation" and validation_veto(self.store, index) is not None:
            # A failed call must not displace a blocked verdict
            logger.warning("Keeping blocked validation verdict after failed call", tool=tool_name, workout_index=index)
            return
        message = error.message if isinstance(error, WorkoutLoggerError) else str(error)
        self.store.write(
            role,
            ToolError(tool=tool_name, error=message, error_type=type(error).__name__),
            index,
        )

    async def run(self, user_message: str) -> WorkoutLogResult:
        """Process one message end to end. Never raises."""
        try:
            response_text = await self.converse(user_message)
            result = self.build_result(response_text)

            decision = decide_retry(
                result,
                response_text,
                self.store.successful_count(),
                self._original_message(user_message),
                self.classifier,
            )
            if decision is None:
                return result

            logger.warning(decision.log_message, response_preview=response_text[:200])
            successful_before = self.store.successful_count()
            retry_text = await self.converse(decision.retry_prompt)
            if self.store.successful_count() == successful_before:
                logger.info("Retry produced no tool results, keeping the first result")
                return result
            return self.build_result(retry_text)
        except Exception as e:
            logger.exception(f"Workout logger run failed: {e}")
            return WorkoutLogResult(success=False, skipped=True, reason=str(e))

    def _original_message(self, fallback: str) -> str:
        for turn in self.conversation:
            if turn.role == "user" and turn.text:
                return turn.text
        return fallback

    def build_result(self, response_text: str) -> WorkoutLogResult:
        """Turn the store's final state into the caller-facing result."""
        saves = [
            (index, entry)
            for index, entry in enumerate(self.store.read_all("save"))
            if isinstance(entry, SaveResult) and entry.success
        ]
        if saves:
            return self._saved_result(saves)

        validation = self.store.read("validation")
        if isinstance(validation, ValidationResult) and not validation.should_save:
            return WorkoutLogResult(
                success=False,
                skipped=True,
                reason=validation.reason or response_text,
                blocking_flags=validation.blocking_flags,
                confidence=validation.confidence,
            )

        if not any(self.store.read(role) is not None for role in PIPELINE_ROLES):
            return WorkoutLogResult(success=False, skipped=True, reason=response_text or CLARIFICATION_REASON)

        failed_saves = [entry for entry in self.store.read_all("save") if isinstance(entry, ToolError)]
        if failed_saves:
            logger.warning("Save failed, reporting the stored error", error=failed_saves[-1].error)
            return WorkoutLogResult(success=False, skipped=True, reason=failed_saves[-1].error)

        workout_id = self._extracted_workout_id_in(response_text)
        if workout_id:
            logger.warning("No stored save result, using extracted workout id from response text", workout_id=workout_id)
            return WorkoutLogResult(success=True, workout_id=workout_id)

        failed = [role for role in self.store.roles() if isinstance(self.store.read(role), ToolError)]
        if failed:
            logger.warning("Run ended with failed stages", failed_roles=failed)
        return WorkoutLogResult(success=False, skipped=True, reason=response_text or INCOMPLETE_REASON)

    def _extracted_workout_id_in(self, response_text: str) -> str | None:
        """First workout id in the text that this run actually extracted."""
        extracted_ids = {
            entry.workout_data.get("workout_id")
            for entry in self.store.read_all("extraction")
            if isinstance(entry, ExtractionResult)
        }
        for match in WORKOUT_ID_PATTERN.finditer(response_text or ""):
            if match.group(0) in extracted_ids:
                return match.group(0)
        return None

    def _saved_result(self, saves: list[tuple[int, SaveResult]]) -> WorkoutLogResult:
        index, primary = saves[0]
        extraction = self.store.read("extraction", index)
        if not isinstance(extraction, ExtractionResult):
            extraction = self.store.read("extraction")
        normalization = self.store.read("normalization", index)

        workout_data = extraction.workout_data if isinstance(extraction, ExtractionResult) else {}
        validation = self.store.read("validation", index)
        if isinstance(validation, ValidationResult):
            workout_data = validation.workout_data
        metadata = workout_data.get("metadata") if isinstance(workout_data.get("metadata"), dict) else {}

        all_workouts = None
        if len(saves) >= 2:
            all_workouts = [self._saved_summary(i, save) for i, save in saves]

        return WorkoutLogResult(
            success=True,
            workout_id=primary.workout_id,
            discipline=workout_data.get("discipline"),
            workout_name=workout_data.get("workout_name"),
            confidence=metadata.get("data_confidence"),
            completeness=metadata.get("data_completeness"),
            extraction_metadata=metadata or None,
            normalization_summary=(
                normalization.normalization_summary if isinstance(normalization, NormalizationToolResult) else None
            ),
            all_workouts=all_workouts,
        )

    def _saved_summary(self, index: int, save: SaveResult) -> SavedWorkoutSummary:
        extraction = self.store.read("extraction", index)
        workout_data = extraction.workout_data if isinstance(extraction, ExtractionResult) else {}
        return SavedWorkoutSummary(
            workout_id=save.workout_id,
            discipline=workout_data.get("discipline"),
            workout_name=workout_data.get("workout_name"),
        )
