"""Tests for structured workout extraction.

The structured tool call and the text fallback are mocked at the helper
level; the tests cover path selection and output clean-up.
"""

import json
import re
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest

from trainlog.config.models import COMPLEX_EXTRACTION_MAX_TOKENS, COMPLEX_EXTRACTION_MODEL, EXTRACTION_MODEL
from trainlog.core.errors import MalformedResponseError
from trainlog.workouts.extraction import (
    apply_performance_metric_defaults,
    extract_structured_workout,
    find_double_encoded_fields,
    generate_workout_id,
)

EXTRACT_KWARGS = {
    "discipline": "powerlifting",
    "user_message": "Squats 3x3 at 315",
    "user_timezone": "America/Los_Angeles",
    "message_timestamp": datetime(2026, 10, 15, 18, 0, tzinfo=timezone.utc),
}


@pytest.mark.asyncio
async def test_tool_path_is_preferred(powerlifting_workout):
    with (
        patch(
            "trainlog.workouts.extraction.request_tool_input",
            new=AsyncMock(return_value=powerlifting_workout),
        ) as mock_tool,
        patch("trainlog.workouts.extraction.request_text", new=AsyncMock()) as mock_text,
    ):
        workout, method = await extract_structured_workout(**EXTRACT_KWARGS)

    assert method == "tool"
    assert workout["workout_name"] == "Heavy Squat Day"
    assert mock_tool.call_args.kwargs["tool_name"] == "generate_workout"
    mock_text.assert_not_called()


@pytest.mark.asyncio
async def test_fallback_unwraps_and_decodes(powerlifting_workout):
    wrapped = dict(powerlifting_workout)
    wrapped["performance_metrics"] = json.dumps(wrapped["performance_metrics"])
    raw = "Here you go:\n```json\n" + json.dumps({"workout_log": wrapped}) + "\n```"

    with (
        patch(
            "trainlog.workouts.extraction.request_tool_input",
            new=AsyncMock(side_effect=MalformedResponseError("text", "Tool use expected")),
        ),
        patch("trainlog.workouts.extraction.request_text", new=AsyncMock(return_value=raw)),
    ):
        workout, method = await extract_structured_workout(**EXTRACT_KWARGS)

    assert method == "fallback"
    assert workout["performance_metrics"] == {"intensity": 8, "perceived_exertion": 8}
    assert "workout_log" not in workout


@pytest.mark.asyncio
async def test_discipline_follows_discipline_specific_key(running_workout):
    running_workout["discipline"] = "hybrid"

    with patch("trainlog.workouts.extraction.request_tool_input", new=AsyncMock(return_value=running_workout)):
        workout, _ = await extract_structured_workout(**EXTRACT_KWARGS)

    assert workout["discipline"] == "running"


@pytest.mark.asyncio
async def test_non_object_fallback_raises():
    with (
        patch("trainlog.workouts.extraction.request_tool_input", new=AsyncMock(side_effect=RuntimeError("no tool"))),
        patch("trainlog.workouts.extraction.request_text", new=AsyncMock(return_value="[1, 2, 3]")),
    ):
        with pytest.raises(ValueError):
            await extract_structured_workout(**EXTRACT_KWARGS)


def test_generate_workout_id_format():
    workout_id = generate_workout_id("user123")
    assert re.fullmatch(r"workout_user123_\d{13}_[0-9a-f]{9}", workout_id)


def test_performance_metric_defaults():
    workout = {"performance_metrics": {"intensity": 9}}
    apply_performance_metric_defaults(workout)
    assert workout["performance_metrics"] == {"intensity": 9, "perceived_exertion": 5}

    empty = {}
    apply_performance_metric_defaults(empty)
    assert empty["performance_metrics"] == {"intensity": 5, "perceived_exertion": 5}


def test_find_double_encoded_fields():
    workout = {
        "discipline_specific": '{"crossfit": {}}',
        "metadata": {"notes": '["a"]', "source": "chat"},
        "workout_name": "{not watched}",
    }
    assert find_double_encoded_fields(workout) == ["discipline_specific", "metadata.notes"]


@pytest.mark.asyncio
async def test_nested_double_encoding_is_repaired_on_tool_path():
    crossfit = {
        "discipline": "crossfit",
        "workout_name": "Fran",
        "discipline_specific": {
            "crossfit": {
                "workout_format": "for_time",
                "performance_data": json.dumps({"total_time": 537, "rounds_completed": 3}),
            }
        },
    }

    with patch("trainlog.workouts.extraction.request_tool_input", new=AsyncMock(return_value=crossfit)):
        workout, method = await extract_structured_workout(**{**EXTRACT_KWARGS, "discipline": "crossfit"})

    assert method == "tool"
    assert workout["discipline_specific"]["crossfit"]["performance_data"] == {"total_time": 537, "rounds_completed": 3}


@pytest.mark.asyncio
async def test_complex_workout_uses_larger_extraction_settings(powerlifting_workout):
    message = "Warmup: 10 min row. Strength: back squat 5x5 @ 275. Metcon: 3 rounds for time of 21-15-9, finished in 9:42"

    with patch(
        "trainlog.workouts.extraction.request_tool_input",
        new=AsyncMock(return_value=powerlifting_workout),
    ) as mock_tool:
        await extract_structured_workout(**{**EXTRACT_KWARGS, "user_message": message})

    assert mock_tool.call_args.kwargs["model_name"] == COMPLEX_EXTRACTION_MODEL
    assert mock_tool.call_args.kwargs["max_tokens"] == COMPLEX_EXTRACTION_MAX_TOKENS


@pytest.mark.asyncio
async def test_simple_workout_uses_default_extraction_model(powerlifting_workout):
    with patch(
        "trainlog.workouts.extraction.request_tool_input",
        new=AsyncMock(return_value=powerlifting_workout),
    ) as mock_tool:
        await extract_structured_workout(**EXTRACT_KWARGS)

    assert mock_tool.call_args.kwargs["model_name"] == EXTRACTION_MODEL


@pytest.mark.asyncio
async def test_images_reach_both_extraction_paths(powerlifting_workout):
    images = ["https://cdn.example.com/whiteboard.jpg"]

    with (
        patch(
            "trainlog.workouts.extraction.request_tool_input",
            new=AsyncMock(side_effect=MalformedResponseError("text", "Tool use expected")),
        ) as mock_tool,
        patch(
            "trainlog.workouts.extraction.request_text",
            new=AsyncMock(return_value=json.dumps(powerlifting_workout)),
        ) as mock_text,
    ):
        await extract_structured_workout(**EXTRACT_KWARGS, image_refs=images)

    assert mock_tool.call_args.kwargs["image_refs"] == images
    assert "attached 1 image(s)" in mock_tool.call_args.kwargs["system_prompt"]
    assert mock_text.call_args.kwargs["image_refs"] == images
