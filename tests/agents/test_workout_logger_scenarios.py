"""End-to-end workout logger scenarios.

The orchestrator is a scripted provider and every LLM-backed collaborator is
mocked where the tools import it, so these tests exercise the real agent
loop, result store, blocking gate, retry logic and result assembly.
"""

import copy
import random
from contextlib import ExitStack
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from tests.fakes import (
    POWERLIFTING_WORKOUT,
    REFLECTION_WORKOUT,
    RUNNING_WORKOUT,
    FakeRepository,
    ScriptedProvider,
    text_reply,
    tool_call,
    tool_reply,
)
from trainlog.core.background import drain_background_tasks
from trainlog.persistence.types import TemplateContext
from trainlog.services.workout_logging import log_workout
from trainlog.workouts.classifiers import WorkoutCharacteristics
from trainlog.workouts.discipline_detector import DisciplineDetection

TOOLS = "trainlog.agents.workout_logger.tools"
COMPLETED_AT = datetime(2026, 10, 15, 17, 30, tzinfo=timezone.utc)


def _detection(discipline: str) -> DisciplineDetection:
    return DisciplineDetection(discipline=discipline, confidence=0.9, reasoning=f"Clear {discipline} indicators")


@pytest.fixture
def collaborators():
    """Patch every model-backed collaborator the tools call."""
    with ExitStack() as stack:
        mocks = {
            "detect": stack.enter_context(
                patch(f"{TOOLS}.discipline.detect_discipline", new=AsyncMock(return_value=_detection("powerlifting")))
            ),
            "extract": stack.enter_context(
                patch(
                    f"{TOOLS}.extraction.extract_structured_workout",
                    new=AsyncMock(side_effect=lambda **_: (copy.deepcopy(POWERLIFTING_WORKOUT), "tool")),
                )
            ),
            "completed_at": stack.enter_context(
                patch(f"{TOOLS}.extraction.extract_completed_at", new=AsyncMock(return_value=COMPLETED_AT))
            ),
            "characteristics": stack.enter_context(
                patch(
                    f"{TOOLS}.validation.classify_workout_characteristics",
                    new=AsyncMock(
                        return_value=WorkoutCharacteristics(is_qualitative=False, requires_precise_metrics=True)
                    ),
                )
            ),
            "normalize": stack.enter_context(patch(f"{TOOLS}.normalization.normalize_workout", new=AsyncMock())),
            "summary": stack.enter_context(
                patch(f"{TOOLS}.summary.generate_workout_summary", new=AsyncMock(return_value="Heavy squat day."))
            ),
            "enqueue": stack.enter_context(
                patch(f"{TOOLS}.save.enqueue_exercise_extraction", new=MagicMock(return_value=True))
            ),
        }
        yield mocks


def _full_pipeline(message: str, discipline: str = "powerlifting", index: int | None = None) -> list:
    extra = {} if index is None else {"workout_index": index}
    return [
        tool_reply(tool_call("detect_discipline", "c1", user_message=message, **extra)),
        tool_reply(tool_call("extract_workout_data", "c2", discipline=discipline, user_message=message, **extra)),
        tool_reply(tool_call("validate_workout_completeness", "c3", **extra)),
        tool_reply(tool_call("generate_workout_summary", "c4", original_message=message, **extra)),
        tool_reply(tool_call("save_workout_to_database", "c5", **extra)),
    ]


def _tool_results(provider: ScriptedProvider, tool_name: str):
    final_conversation = provider.calls[-1].conversation
    return [
        entry
        for turn in final_conversation
        for entry in turn.tool_results
        if entry.tool_name == tool_name
    ]


@pytest.mark.asyncio
async def test_slash_command_powerlifting_is_saved(collaborators):
    message = "Back squat 3x3 @ 315, RDL 1x8 @ 185"
    provider = ScriptedProvider(
        [*_full_pipeline(message), text_reply("✅ Workout logged successfully!")]
    )
    repository = FakeRepository()

    result = await log_workout(
        f"/log-workout {message}",
        user_id="user123",
        coach_id="coach456",
        conversation_id="conv789",
        repository=repository,
        provider=provider,
    )
    await drain_background_tasks()

    assert result.success is True
    assert len(repository.saved) == 1
    saved = repository.saved[0]
    assert result.workout_id == saved.workout_id
    assert saved.workout_id.startswith("workout_user123_")
    assert result.discipline == "powerlifting"
    assert len(saved.workout_data["discipline_specific"]["powerlifting"]["exercises"]) >= 2
    assert saved.coach_ids == ["coach456"]
    assert saved.summary == "Heavy squat day."
    assert saved.extraction_metadata["normalization_summary"] == "No normalization performed"
    assert saved.workout_data["metadata"]["logged_via"] == "slash_command"
    assert repository.indexed == [saved.workout_id]
    collaborators["enqueue"].assert_called_once()
    collaborators["normalize"].assert_not_called()
    assert result.all_workouts is None
    # Only the command content reaches the agent
    assert provider.calls[0].conversation[0].text == message


@pytest.mark.asyncio
async def test_planning_question_saves_nothing(collaborators):
    refusal = "⚠️ Unable to log workout: this is a planning question, not a completed workout."
    provider = ScriptedProvider([text_reply(refusal)])
    repository = FakeRepository()

    result = await log_workout(
        "What should I do for my workout tomorrow?",
        user_id="user123",
        coach_id="coach456",
        repository=repository,
        provider=provider,
    )

    assert result.success is False
    assert result.skipped is True
    assert result.reason == refusal
    assert repository.saved == []
    assert len(provider.calls) == 1
    collaborators["detect"].assert_not_called()


@pytest.mark.asyncio
async def test_reflection_is_blocked_and_save_is_vetoed(collaborators):
    collaborators["detect"].return_value = _detection("hybrid")
    collaborators["extract"].side_effect = lambda **_: (copy.deepcopy(REFLECTION_WORKOUT), "tool")
    message = "My legs are so sore from yesterday's workout"
    provider = ScriptedProvider(
        [
            tool_reply(tool_call("detect_discipline", "c1", user_message=message)),
            tool_reply(tool_call("extract_workout_data", "c2", discipline="hybrid", user_message=message)),
            tool_reply(tool_call("validate_workout_completeness", "c3")),
            tool_reply(tool_call("save_workout_to_database", "c4")),
            text_reply("⚠️ Unable to log workout: no exercise data was provided."),
        ]
    )
    repository = FakeRepository()

    result = await log_workout(
        message,
        user_id="user123",
        coach_id="coach456",
        repository=repository,
        provider=provider,
    )

    assert result.success is False
    assert result.skipped is True
    assert result.blocking_flags == ["insufficient_data"]
    assert "completeness < 20%" in result.reason
    assert repository.saved == []

    save_result = _tool_results(provider, "save_workout_to_database")[0]
    assert save_result.is_error is True
    assert save_result.content["blocked"] is True
    assert save_result.content["reason"].startswith("Cannot save workout - validation blocked save")


@pytest.mark.asyncio
async def test_two_workouts_in_one_message(collaborators):
    collaborators["detect"].side_effect = [_detection("powerlifting"), _detection("running")]
    collaborators["extract"].side_effect = [
        (copy.deepcopy(POWERLIFTING_WORKOUT), "tool"),
        (copy.deepcopy(RUNNING_WORKOUT), "tool"),
    ]
    lift, run = "Squats 3x3 @ 315", "Then an easy 5k run"

    def both(tool_name: str, **per_workout):
        return tool_reply(
            tool_call(tool_name, f"{tool_name}-0", workout_index=0, **per_workout.get("first", {})),
            tool_call(tool_name, f"{tool_name}-1", workout_index=1, **per_workout.get("second", {})),
        )

    provider = ScriptedProvider(
        [
            both("detect_discipline", first={"user_message": lift}, second={"user_message": run}),
            both(
                "extract_workout_data",
                first={"discipline": "powerlifting", "user_message": lift},
                second={"discipline": "running", "user_message": run},
            ),
            both("validate_workout_completeness"),
            both(
                "generate_workout_summary",
                first={"original_message": lift},
                second={"original_message": run},
            ),
            both("save_workout_to_database"),
            text_reply("✅ Logged 2 workouts."),
        ]
    )
    repository = FakeRepository()

    result = await log_workout(
        f"{lift}. {run}",
        user_id="user123",
        coach_id="coach456",
        repository=repository,
        provider=provider,
    )
    await drain_background_tasks()

    assert result.success is True
    assert len(result.all_workouts) == 2
    assert [workout.discipline for workout in result.all_workouts] == ["powerlifting", "running"]
    assert result.workout_id == result.all_workouts[0].workout_id
    assert len({workout.workout_id for workout in result.all_workouts}) == 2
    assert [saved.discipline for saved in repository.saved] == ["powerlifting", "running"]


@pytest.mark.asyncio
async def test_clarifying_question_triggers_one_retry(collaborators):
    message = "Back squat 3x3 @ 315"
    provider = ScriptedProvider(
        [
            text_reply("What RPE was the top set?"),
            *_full_pipeline(message),
            text_reply("✅ Workout logged successfully!"),
        ]
    )
    repository = FakeRepository()

    result = await log_workout(
        message,
        user_id="user123",
        coach_id="coach456",
        repository=repository,
        provider=provider,
    )
    await drain_background_tasks()

    assert result.success is True
    assert len(repository.saved) == 1
    retry_turn = provider.calls[1].conversation[-1]
    assert "CRITICAL OVERRIDE" in retry_turn.text
    assert f'"{message}"' in retry_turn.text


@pytest.mark.asyncio
async def test_failed_retry_returns_original_result(collaborators):
    provider = ScriptedProvider([text_reply("How many reps did you do?"), text_reply("Could you share the weights?")])

    result = await log_workout(
        "did squats",
        user_id="user123",
        coach_id="coach456",
        repository=FakeRepository(),
        provider=provider,
    )

    assert result.success is False
    assert result.reason == "How many reps did you do?"
    assert len(provider.calls) == 2


@pytest.mark.asyncio
async def test_persistence_failure_is_reported_to_model(collaborators):
    message = "Back squat 3x3 @ 315"
    provider = ScriptedProvider([*_full_pipeline(message), text_reply("⚠️ Unable to log workout: database error.")])

    result = await log_workout(
        message,
        user_id="user123",
        coach_id="coach456",
        repository=FakeRepository(fail_save=True),
        provider=provider,
    )

    assert result.success is False
    assert result.skipped is True
    assert result.reason == "Database unavailable"
    save_result = _tool_results(provider, "save_workout_to_database")[0]
    assert save_result.is_error is True
    assert save_result.content == {"error": "Database unavailable"}


@pytest.mark.asyncio
async def test_template_link_failure_keeps_save(collaborators):
    message = "Back squat 3x3 @ 315"
    provider = ScriptedProvider([*_full_pipeline(message), text_reply("✅ Workout logged successfully!")])
    repository = FakeRepository(fail_link=True)

    result = await log_workout(
        message,
        user_id="user123",
        coach_id="coach456",
        template_context=TemplateContext(template_id="tmpl_1", group_id="grp_1"),
        repository=repository,
        provider=provider,
    )
    await drain_background_tasks()

    assert result.success is True
    assert repository.saved[0].template_id == "tmpl_1"
    save_result = _tool_results(provider, "save_workout_to_database")[0]
    assert save_result.content["template_linked"] is False


@pytest.mark.asyncio
async def test_provider_failure_never_raises():
    class BrokenProvider:
        async def request(self, call):
            raise RuntimeError("provider unreachable")

    result = await log_workout(
        "ran 5k",
        user_id="user123",
        coach_id="coach456",
        repository=FakeRepository(),
        provider=BrokenProvider(),
    )

    assert result.success is False
    assert result.skipped is True
    assert result.reason == "provider unreachable"


@pytest.mark.asyncio
async def test_failed_save_stays_failed_when_reply_names_the_workout(collaborators):
    workout_id = "workout_user123_1760549400000_abc123def"
    message = "Back squat 3x3 @ 315"
    provider = ScriptedProvider([*_full_pipeline(message), text_reply(f"✅ Workout logged as {workout_id}")])
    repository = FakeRepository(fail_save=True)

    with patch(f"{TOOLS}.extraction.generate_workout_id", return_value=workout_id):
        result = await log_workout(
            message,
            user_id="user123",
            coach_id="coach456",
            repository=repository,
            provider=provider,
        )

    assert result.success is False
    assert result.workout_id is None
    assert result.reason == "Database unavailable"
    assert repository.saved == []


@pytest.mark.asyncio
async def test_unknown_workout_id_in_reply_is_not_trusted(collaborators):
    message = "Back squat 3x3 @ 315"
    reply = "✅ Workout logged as workout_user123_1_madeup"
    provider = ScriptedProvider([*_full_pipeline(message)[:3], text_reply(reply)])

    result = await log_workout(
        message,
        user_id="user123",
        coach_id="coach456",
        repository=FakeRepository(),
        provider=provider,
    )

    assert result.success is False
    assert result.workout_id is None
    assert result.reason == reply


@pytest.mark.asyncio
async def test_blocked_verdict_survives_reextraction_and_revalidation(collaborators):
    collaborators["detect"].return_value = _detection("hybrid")
    collaborators["extract"].side_effect = [
        (copy.deepcopy(REFLECTION_WORKOUT), "tool"),
        (copy.deepcopy(POWERLIFTING_WORKOUT), "tool"),
    ]
    message = "My legs are so sore from yesterday's workout"
    provider = ScriptedProvider(
        [
            tool_reply(tool_call("detect_discipline", "c1", user_message=message)),
            tool_reply(tool_call("extract_workout_data", "c2", discipline="hybrid", user_message=message)),
            tool_reply(tool_call("validate_workout_completeness", "c3")),
            tool_reply(
                tool_call("extract_workout_data", "c4", discipline="powerlifting", user_message="Back squat 3x3 @ 315")
            ),
            tool_reply(tool_call("validate_workout_completeness", "c5")),
            tool_reply(tool_call("validate_workout_completeness", "c6", workout_index=-1)),
            tool_reply(tool_call("generate_workout_summary", "c7", original_message=message)),
            tool_reply(tool_call("save_workout_to_database", "c8")),
            text_reply("✅ Workout logged successfully!"),
        ]
    )
    repository = FakeRepository()

    result = await log_workout(
        message,
        user_id="user123",
        coach_id="coach456",
        repository=repository,
        provider=provider,
    )

    assert result.success is False
    assert result.blocking_flags == ["insufficient_data"]
    assert repository.saved == []
    collaborators["characteristics"].assert_awaited_once()

    validations = _tool_results(provider, "validate_workout_completeness")
    assert validations[0].is_error is False
    assert validations[1].is_error is True
    assert validations[1].content["reason"].startswith("Cannot re-validate workout - validation blocked save")
    assert validations[2].is_error is True
    assert _tool_results(provider, "save_workout_to_database")[0].content["blocked"] is True


@pytest.mark.asyncio
async def test_retry_that_reaches_a_verdict_replaces_the_question(collaborators):
    collaborators["detect"].return_value = _detection("hybrid")
    collaborators["extract"].side_effect = lambda **_: (copy.deepcopy(REFLECTION_WORKOUT), "tool")
    message = "My legs are so sore from yesterday's workout"
    provider = ScriptedProvider(
        [
            text_reply("What RPE was the top set?"),
            tool_reply(tool_call("detect_discipline", "c1", user_message=message)),
            tool_reply(tool_call("extract_workout_data", "c2", discipline="hybrid", user_message=message)),
            tool_reply(tool_call("validate_workout_completeness", "c3")),
            text_reply("Nothing saved."),
        ]
    )

    result = await log_workout(
        message,
        user_id="user123",
        coach_id="coach456",
        repository=FakeRepository(),
        provider=provider,
    )

    assert result.success is False
    assert result.skipped is True
    assert result.blocking_flags == ["insufficient_data"]
    assert "completeness < 20%" in result.reason
    assert len(provider.calls) == 5


FOLLOW_UP_CALLS = ("extract", "validate", "malformed_validate", "normalize", "summary", "save")


def _follow_up(kind: str, call_id: str, message: str, extra: dict):
    if kind == "extract":
        return tool_call("extract_workout_data", call_id, discipline="powerlifting", user_message=message, **extra)
    if kind == "validate":
        return tool_call("validate_workout_completeness", call_id, **extra)
    if kind == "malformed_validate":
        return tool_call("validate_workout_completeness", call_id, workout_index=-1)
    if kind == "normalize":
        return tool_call("normalize_workout_data", call_id, **extra)
    if kind == "summary":
        return tool_call("generate_workout_summary", call_id, original_message=message, **extra)
    return tool_call("save_workout_to_database", call_id, **extra)


@pytest.mark.asyncio
@pytest.mark.parametrize("seed", range(30))
async def test_blocked_workout_never_reaches_repository(collaborators, seed):
    """Random origins, indexes and follow-up calls after a veto never persist anything."""
    rng = random.Random(seed)
    is_slash_command = rng.random() < 0.5
    origin = "reflection" if is_slash_command else rng.choice(["reflection", "planning"])
    index = rng.choice([None, 0, 1])
    extra = {} if index is None else {"workout_index": index}

    if origin == "reflection":
        blocked_data, expected_flag = copy.deepcopy(REFLECTION_WORKOUT), "insufficient_data"
    else:
        blocked_data, expected_flag = copy.deepcopy(POWERLIFTING_WORKOUT), "planning_inquiry"
        blocked_data["metadata"]["validation_flags"] = ["planning_inquiry"]
    extractions = iter([(blocked_data, "tool")])
    collaborators["extract"].side_effect = lambda **_: next(extractions, (copy.deepcopy(POWERLIFTING_WORKOUT), "tool"))

    message = "Back squat 3x3 @ 315"
    replies = [
        tool_reply(tool_call("detect_discipline", "c1", user_message=message, **extra)),
        tool_reply(tool_call("extract_workout_data", "c2", discipline="powerlifting", user_message=message, **extra)),
        tool_reply(tool_call("validate_workout_completeness", "c3", **extra)),
    ]
    for step in range(rng.randint(2, 8)):
        replies.append(tool_reply(_follow_up(rng.choice(FOLLOW_UP_CALLS), f"f{step}", message, extra)))
    replies.append(tool_reply(tool_call("save_workout_to_database", "final-save", **extra)))
    replies.append(text_reply("✅ Workout logged successfully!"))
    provider = ScriptedProvider(replies)
    repository = FakeRepository()

    result = await log_workout(
        f"/log-workout {message}" if is_slash_command else message,
        user_id="user123",
        coach_id="coach456",
        repository=repository,
        provider=provider,
    )

    assert repository.saved == []
    assert result.success is False
    assert result.blocking_flags == [expected_flag]
    collaborators["characteristics"].assert_awaited_once()
    collaborators["normalize"].assert_not_called()
    for save_result in _tool_results(provider, "save_workout_to_database"):
        assert save_result.content["blocked"] is True
