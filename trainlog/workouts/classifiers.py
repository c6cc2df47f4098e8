"""Workout classifiers.

The LLM classifiers used during validation raise ``ClassificationFailure``
when their model call errors; validation call sites decide the conservative
default. ``check_workout_complexity`` is a local heuristic run before
extraction to pick the extraction model.
"""

import json
import re
from typing import Any, Literal

from loguru import logger
from pydantic import BaseModel, Field
from pydantic_ai import Agent

from trainlog.config.models import CLASSIFICATION_MODEL
from trainlog.config.settings import settings
from trainlog.core.errors import ClassificationFailure
from trainlog.services.llm.model import get_model

WorkoutData = dict[str, Any]

QUALITATIVE_PROMPT = """You classify whether a workout is "qualitative" (activity/completion focused) or "quantitative" (structured exercise data focused).

QUALITATIVE workouts are valid WITHOUT sets/reps/weights:
- yoga, pilates, meditation classes
- walks, easy or recovery runs
- physical therapy, rehab, mobility work
- app-based or guided programs (e.g. "Hinge Health level 10", Peloton)
- group classes (spin, bootcamp, dance)
- stretching, foam rolling

QUANTITATIVE workouts are tracked through structured data:
- CrossFit rounds/reps/times, powerlifting or bodybuilding sets/reps/weights, Olympic lifting sessions

If the workout is primarily about COMPLETING AN ACTIVITY rather than tracking sets/reps/weights, it is qualitative."""

SEMANTIC_CHECK_PROMPT = """You validate whether workout data contains actual exercise/activity information.

Be inclusive of qualitative, activity-based workouts: a completed activity with at least one meaningful
data point (duration, name, type, feedback) is VALID.

INVALID data:
- empty discipline data with no other meaningful values
- only placeholder or null values
- a bare comment like "I did a workout" with no details
- a planned (future) workout or a question about workouts"""

CHARACTERISTICS_PROMPT = """Classify a workout discipline.

QUALITATIVE disciplines tolerate missing precise metrics (time, effort, technique matter more):
running (especially trails), swimming, cycling, yoga, martial arts, climbing, hiking, dance, pilates.
QUANTITATIVE disciplines require specific metrics: powerlifting, weightlifting, CrossFit, bodybuilding.
The "hybrid" discipline leans qualitative.

Return confidence 0.8+ for clear classifications, 0.5-0.7 for moderate cases, below 0.5 when unclear."""


class QualitativeCheck(BaseModel):
    is_qualitative: bool = Field(description="True if activity/completion focused")
    reason: str = Field(default="No reasoning provided")


class SemanticExerciseCheck(BaseModel):
    has_exercises: bool = Field(description="True if the data holds meaningful exercise/activity information")
    reasoning: str = Field(default="No reasoning provided")


class WorkoutCharacteristics(BaseModel):
    """Discipline characteristics that drive validation strictness."""

    is_qualitative: bool
    requires_precise_metrics: bool
    environment: Literal["indoor", "outdoor", "mixed"] = "mixed"
    primary_focus: Literal[
        "strength",
        "endurance",
        "power",
        "speed",
        "agility",
        "flexibility",
        "balance",
        "technique",
        "coordination",
        "mixed",
    ] = "mixed"
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    reasoning: str = ""


QUANTITATIVE_DEFAULT = WorkoutCharacteristics(
    is_qualitative=False,
    requires_precise_metrics=True,
    reasoning="Classification failed, defaulted to quantitative",
)


def _workout_overview(workout_data: WorkoutData) -> str:
    duration = workout_data.get("duration")
    return (
        f"- Discipline: {workout_data.get('discipline')}\n"
        f"- Workout Name: {workout_data.get('workout_name') or 'not provided'}\n"
        f"- Workout Type: {workout_data.get('workout_type') or 'not provided'}\n"
        f"- Duration: {f'{duration}s' if duration else 'not provided'}"
    )


async def is_qualitative_workout(workout_data: WorkoutData, user_message: str | None = None) -> QualitativeCheck:
    """Classify a workout as qualitative (activity-based) or quantitative.

    Raises:
        ClassificationFailure: If the model call fails
    """
    prompt = f"WORKOUT DATA:\n{_workout_overview(workout_data)}\n- User Message: {user_message or 'not provided'}"
    try:
        agent = Agent(
            model=get_model(settings.llm_provider, CLASSIFICATION_MODEL),
            system_prompt=QUALITATIVE_PROMPT,
            output_type=QualitativeCheck,
        )
        result = await agent.run(prompt)
    except Exception as e:
        raise ClassificationFailure("qualitative_workout", f"Qualitative workout classification failed: {e}") from e

    logger.debug("Qualitative check", is_qualitative=result.output.is_qualitative, reason=result.output.reason)
    return result.output


async def validate_exercise_semantics(workout_data: WorkoutData, discipline_data: Any) -> SemanticExerciseCheck:
    """Judge whether ambiguous discipline data holds real exercise information.

    Raises:
        ClassificationFailure: If the model call fails
    """
    feedback = workout_data.get("subjective_feedback") or {}
    session_duration = workout_data.get("session_duration")
    prompt = (
        f"WORKOUT DATA:\n{_workout_overview(workout_data)}\n"
        f"- Session Duration: {f'{session_duration}s' if session_duration else 'not provided'}\n"
        f"- Has Performance Metrics: {bool(workout_data.get('performance_metrics'))}\n"
        f"- Has Subjective Feedback: {bool(isinstance(feedback, dict) and (feedback.get('enjoyment') or feedback.get('notes')))}\n"
        f"- Discipline-Specific Data: {json.dumps(discipline_data or {}, indent=2, default=str)}"
    )
    try:
        agent = Agent(
            model=get_model(settings.llm_provider, CLASSIFICATION_MODEL),
            system_prompt=SEMANTIC_CHECK_PROMPT,
            output_type=SemanticExerciseCheck,
        )
        result = await agent.run(prompt)
    except Exception as e:
        raise ClassificationFailure("exercise_semantics", f"Exercise semantic validation failed: {e}") from e

    return result.output


async def classify_workout_characteristics(discipline: str, workout_data: WorkoutData | None = None) -> WorkoutCharacteristics:
    """Classify discipline characteristics (qualitative vs quantitative, focus, environment).

    Raises:
        ClassificationFailure: If the discipline is missing or the model call fails
    """
    if not discipline:
        raise ClassificationFailure("workout_characteristics", "Invalid discipline provided")

    context = ""
    if workout_data:
        context = "\nWORKOUT CONTEXT: " + json.dumps(
            {key: workout_data.get(key) for key in ("workout_name", "workout_type", "duration", "location")},
            default=str,
        )

    try:
        agent = Agent(
            model=get_model(settings.llm_provider, CLASSIFICATION_MODEL),
            system_prompt=CHARACTERISTICS_PROMPT,
            output_type=WorkoutCharacteristics,
        )
        result = await agent.run(f'DISCIPLINE: "{discipline}"{context}')
    except Exception as e:
        raise ClassificationFailure("workout_characteristics", f'Failed to classify discipline "{discipline}": {e}') from e

    logger.info(
        "Workout characteristics classified",
        discipline=discipline,
        is_qualitative=result.output.is_qualitative,
        primary_focus=result.output.primary_focus,
        confidence=result.output.confidence,
    )
    return result.output


# Multi-phase sessions: warmup, strength block, metcon, cooldown...
PHASE_INDICATORS = (
    "warmup",
    "warm-up",
    "warm up",
    "working",
    "cooldown",
    "cool-down",
    "cool down",
    "metcon",
    "strength",
    "skill",
    "accessory",
    "finisher",
    "part a",
    "part b",
)

COMPLEXITY_PATTERNS = {
    "rounds": re.compile(r"\d+\s*rounds?", re.IGNORECASE),
    "sets": re.compile(r"\d+\s*sets?", re.IGNORECASE),
    "superset": re.compile(r"superset", re.IGNORECASE),
    "circuit": re.compile(r"circuit", re.IGNORECASE),
    "emom": re.compile(r"\bemom\b", re.IGNORECASE),
    "tabata": re.compile(r"tabata", re.IGNORECASE),
    "for_time": re.compile(r"for time", re.IGNORECASE),
    "amrap": re.compile(r"\bamrap\b", re.IGNORECASE),
    "clock_time": re.compile(r"\d+:\d+"),
    "sets_by_reps": re.compile(r"\d+\s*x\s*\d+", re.IGNORECASE),
}

MIN_PHASE_INDICATORS = 2
MIN_COMPLEXITY_PATTERNS = 3
LONG_MESSAGE_CHARS = 800


class WorkoutComplexity(BaseModel):
    is_complex: bool
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str
    complexity_factors: list[str] = Field(default_factory=list)


def check_workout_complexity(user_message: str) -> WorkoutComplexity:
    """Decide whether a message describes a workout complex enough for the stronger extraction settings.

    Complex means several session phases, several structure patterns
    (rounds, supersets, EMOMs, clock times...), or a long message.

    Examples:
        >>> check_workout_complexity("ran an easy 5k").is_complex
        False
        >>> check_workout_complexity("Warmup 10 min, strength 5x5 back squat, metcon 3 rounds for time").is_complex
        True
    """
    lowered = user_message.lower()
    phases = [indicator for indicator in PHASE_INDICATORS if indicator in lowered]
    patterns = [name for name, pattern in COMPLEXITY_PATTERNS.items() if pattern.search(user_message)]

    factors: list[str] = []
    if len(phases) >= MIN_PHASE_INDICATORS:
        factors.append(f"multiple phases: {', '.join(phases)}")
    if len(patterns) >= MIN_COMPLEXITY_PATTERNS:
        factors.append(f"complex structure: {', '.join(patterns)}")
    if len(user_message) > LONG_MESSAGE_CHARS:
        factors.append(f"long description: {len(user_message)} chars")

    if factors:
        return WorkoutComplexity(
            is_complex=True,
            confidence=min(0.6 + 0.15 * len(factors), 0.95),
            reasoning="; ".join(factors),
            complexity_factors=factors,
        )
    return WorkoutComplexity(
        is_complex=False,
        confidence=0.7,
        reasoning="Single-phase workout with simple structure",
    )
