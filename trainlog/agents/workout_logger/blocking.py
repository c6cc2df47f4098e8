"""Blocking gate for the workout logger.

Consulted before every tool call. Once the validation verdict for a workout
index says ``should_save=False``, ``normalize_workout_data`` and
``save_workout_to_database`` are vetoed for that index, and so is a second
``validate_workout_completeness`` call: a blocked verdict cannot be replaced
by re-extracting and re-validating. This is the only place that decision is
enforced; tools themselves never re-check it.
"""

from loguru import logger

from trainlog.agents.workout_logger.result_store import ResultStore
from trainlog.agents.workout_logger.results import BlockedByValidation, ValidationResult

GATED_TOOLS = {
    "validate_workout_completeness": "re-validate",
    "normalize_workout_data": "normalize",
    "save_workout_to_database": "save",
}


def validation_veto(store: ResultStore, workout_index: int | None) -> ValidationResult | None:
    """Return the blocked verdict for ``workout_index`` (latest when None), if any."""
    validation = store.read("validation", workout_index)
    if isinstance(validation, ValidationResult) and not validation.should_save:
        return validation
    return None


def check_blocking(tool_name: str, workout_index: int | None, store: ResultStore) -> BlockedByValidation | None:
    """Return a blocking result if ``tool_name`` must not run for this workout.

    Args:
        tool_name: Tool about to run
        workout_index: Workout index from the tool input (None means latest)
        store: Result store of the current run

    Returns:
        BlockedByValidation when vetoed, None when the tool may run
    """
    action = GATED_TOOLS.get(tool_name)
    if action is None:
        return None

    validation = validation_veto(store, workout_index)
    if validation is None:
        return None

    reason = validation.reason or "Validation determined the workout should not be saved"
    logger.warning(
        "Blocking tool after validation veto",
        tool=tool_name,
        workout_index=workout_index,
        blocking_flags=validation.blocking_flags,
        reason=reason,
    )
    return BlockedByValidation(
        reason=f"Cannot {action} workout - validation blocked save: {reason}",
        blocking_flags=validation.blocking_flags,
    )
