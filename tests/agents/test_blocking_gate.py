"""Tests for the validation blocking gate."""

import random

import pytest

from trainlog.agents.workout_logger.blocking import GATED_TOOLS, check_blocking, validation_veto
from trainlog.agents.workout_logger.result_store import ResultStore
from trainlog.agents.workout_logger.results import STORAGE_KEY_MAP, ValidationResult


def _validation(should_save: bool, reason: str | None = None, flags: list[str] | None = None) -> ValidationResult:
    return ValidationResult(
        is_valid=should_save,
        should_save=should_save,
        should_normalize=False,
        confidence=0.6,
        completeness=0.5,
        blocking_flags=flags or [],
        reason=reason,
        workout_data={"discipline": "hybrid"},
    )


@pytest.mark.parametrize(
    "tool_name",
    ["validate_workout_completeness", "normalize_workout_data", "save_workout_to_database"],
)
def test_gated_tools_blocked_after_veto(tool_name):
    store = ResultStore()
    store.write("validation", _validation(False, "Not a workout log", ["planning_inquiry"]), index=0)

    blocked = check_blocking(tool_name, 0, store)

    assert blocked is not None
    assert blocked.blocked is True
    assert blocked.error is True
    assert blocked.blocking_flags == ["planning_inquiry"]
    assert "validation blocked save: Not a workout log" in blocked.reason
    assert blocked.reason.startswith(f"Cannot {GATED_TOOLS[tool_name]} workout")


@pytest.mark.parametrize(
    "tool_name",
    ["detect_discipline", "extract_workout_data", "generate_workout_summary"],
)
def test_ungated_tools_never_blocked(tool_name):
    store = ResultStore()
    store.write("validation", _validation(False, "blocked"), index=0)

    assert check_blocking(tool_name, 0, store) is None


def test_no_validation_means_no_block():
    assert check_blocking("save_workout_to_database", 0, ResultStore()) is None


def test_block_is_scoped_to_workout_index():
    store = ResultStore()
    store.write("validation", _validation(True), index=0)
    store.write("validation", _validation(False, "reflection"), index=1)

    assert check_blocking("save_workout_to_database", 0, store) is None
    assert check_blocking("save_workout_to_database", 1, store) is not None


def test_random_call_sequences_never_bypass_veto():
    """Whatever runs after a veto, gated tools stay blocked for that index."""
    rng = random.Random(1234)
    tools = list(STORAGE_KEY_MAP)

    for _ in range(200):
        store = ResultStore()
        store.write("validation", _validation(False, "insufficient data", ["insufficient_data"]), index=0)
        for _ in range(rng.randint(1, 10)):
            tool_name = rng.choice(tools)
            blocked = check_blocking(tool_name, rng.choice([0, None]), store)
            if tool_name in GATED_TOOLS:
                assert blocked is not None
            else:
                assert blocked is None


def test_revalidation_allowed_after_passing_verdict():
    store = ResultStore()
    store.write("validation", _validation(True), index=0)

    assert validation_veto(store, 0) is None
    assert check_blocking("validate_workout_completeness", 0, store) is None


def test_unindexed_veto_follows_latest_verdict():
    store = ResultStore()
    store.write("validation", _validation(True))
    store.write("validation", _validation(False, "reflection", ["insufficient_data"]))

    veto = validation_veto(store, None)
    assert veto is not None
    assert veto.blocking_flags == ["insufficient_data"]
    assert check_blocking("validate_workout_completeness", None, store).reason == (
        "Cannot re-validate workout - validation blocked save: reflection"
    )
