"""Retry decision for the workout logger.

After one full pass, the model's final text is classified as a valid refusal
(correct non-action, never retried), an incomplete workflow (it asked the
user something in a fire-and-forget system), or a plain final answer.
Classification sits behind ``ResponseClassifier`` so the regex pattern sets
can be replaced without touching the agent.
"""

import re
from typing import Literal, Protocol

from loguru import logger
from pydantic import BaseModel

from trainlog.agents.workout_logger.results import WorkoutLogResult

ResponseKind = Literal["valid_refusal", "incomplete_workflow", "final"]

RETRY_PREVIEW_LENGTH = 200

_WARNING_MARKER = "⚠️"
_WORKOUT_CONTEXT_WORDS = ("workout", "log", "exercise", "training")


def _compile(patterns: list[str]) -> list[re.Pattern[str]]:
    return [re.compile(pattern, re.IGNORECASE) for pattern in patterns]


NEGATION_PATTERNS = _compile(
    [
        r"unable to (log|save|record|process|extract|complete)",
        r"cannot (log|save|record|process|extract|complete)",
        r"can'?t (log|save|record|process|extract|complete)",
        r"couldn'?t (log|save|record|process|extract|complete)",
        r"won'?t be able to (log|save|record|process)",
        r"not a (workout|completed workout|valid workout|loggable workout)",
        r"this is(n't| not) a (workout|completed workout|valid workout)",
        r"doesn'?t (appear|seem|look) (to be |like )?(a )?workout",
        r"no (workout|performance|exercise|training) data",
        r"no (actionable|loggable|extractable) (data|information)",
        r"insufficient (data|information|details|context)",
        r"missing (data|information|details|required|key|essential)",
        r"lack(s|ing)? (sufficient |enough |the )?(data|information|details)",
        r"nothing to (log|save|record|extract)",
        r"no (data|information|details) to (log|save|extract)",
    ]
)

NON_WORKOUT_PATTERNS = _compile(
    [
        r"this is (a |an )?(planning|reflection|advice|question|inquiry)",
        r"(planning|future|upcoming) (question|request|inquiry|workout|session)",
        r"workout.*(you'?re |you are )?(planning|going to|will|intend)",
        r"plan(ning)? to (do|complete|perform)",
        r"(asking|seeking|looking) (for )?(advice|help|guidance|recommendations)",
        r"question about (workout|training|exercise|fitness)",
        r"advice (on|about|regarding|for)",
        r"reflect(ion|ing) (on|about)",
        r"thinking (about|back on)",
        r"remember(ing)? (when|that|my)",
        r"not (a )?(completed|finished|done) workout",
        r"workout.*(not|hasn'?t|wasn'?t).*(completed|finished|done)",
        r"haven'?t (yet )?(completed|finished|done)",
        r"future (workout|training|intention|plan)",
        r"(tomorrow|next|later|upcoming).*(workout|training|session)",
        r"going to (do|complete|perform|try)",
        r"will (do|complete|perform|try)",
        r"intend(ing)? to",
    ]
)

EXPLICIT_BLOCKING_PATTERNS = _compile(
    [
        r"i (can'?t|cannot|won'?t|am unable to) (log|save|record) this",
        r"this (message|request|input) (is|isn'?t|does|doesn'?t)",
        r"not (a )?valid (workout )?log",
        r"no (valid |actual )?(workout|exercise) (was )?(performed|completed|done)",
        r"only (log|save|record) (completed|actual|real) workouts",
    ]
)

REQUEST_PATTERNS = _compile(
    [
        r"(could|can|would|will) you (please )?(provide|share|tell|give|clarify|specify|confirm)",
        r"please (provide|share|confirm|clarify|tell|specify|give|let me know)",
        r"need (more |additional )?(information|details|data|context|specifics)",
        r"require (more |additional )?(information|details|data|context)",
        r"looking for (more |additional )?(information|details|data|specifics)",
    ]
)

CONFIRMATION_PATTERNS = _compile(
    [
        r"please (confirm|verify|validate|check)",
        r"(confirm|verify|validate) (that|this|the|if|whether)",
        r"let me know (if|when|what|which|whether|about)",
        r"get back to me",
        r"respond (with|when|if)",
        r"await(ing)? (your|a|the) (response|reply|confirmation|answer)",
        r"waiting (for|on) (your|a|the)",
    ]
)

INCOMPLETE_ACTION_PATTERNS = _compile(
    [
        r"i (need|require|would need|will need) (to|more|additional)",
        r"i'?d need (to|more|additional)",
        r"(should|shall) i (proceed|continue|assume|go ahead|start|begin)",
        r"do you want me to (proceed|continue|assume|go ahead)",
        r"before i (can|could|am able to|proceed|continue)",
        r"in order to (log|save|process|extract|complete)",
        r"to (proceed|continue|complete), i (need|require|would need)",
        r"(once|when|after|if) you (provide|share|confirm|tell|give|specify)",
    ]
)

CONDITIONAL_PATTERNS = _compile(
    [
        r"if (you |this |the |that )",
        r"assuming (you |this |the |that )",
        r"depending on",
        r"based on (your|the|what)",
        r"without (more |additional |further |this |the )",
    ]
)

WAITING_PATTERNS = _compile(
    [
        r"then i (can|could|will|would)",
        r"i (can|could|will|would) (then|proceed|continue)",
    ]
)


class ResponseClassifier(Protocol):
    def classify(self, text: str) -> ResponseKind: ...


class RegexResponseClassifier:
    """Pattern-based classifier for the model's final text."""

    def is_valid_refusal(self, text: str) -> bool:
        lowered = text.lower()
        if _WARNING_MARKER in text and any(word in lowered for word in _WORKOUT_CONTEXT_WORDS):
            return True
        return any(
            pattern.search(text)
            for pattern in (*NEGATION_PATTERNS, *NON_WORKOUT_PATTERNS, *EXPLICIT_BLOCKING_PATTERNS)
        )

    def is_incomplete_workflow(self, text: str) -> bool:
        if "?" in text:
            return True
        if any(
            pattern.search(text)
            for pattern in (*REQUEST_PATTERNS, *CONFIRMATION_PATTERNS, *INCOMPLETE_ACTION_PATTERNS)
        ):
            return True
        has_conditional = any(pattern.search(text) for pattern in CONDITIONAL_PATTERNS)
        suggests_waiting = any(pattern.search(text) for pattern in WAITING_PATTERNS)
        return has_conditional and suggests_waiting

    def classify(self, text: str) -> ResponseKind:
        if self.is_valid_refusal(text):
            return "valid_refusal"
        if self.is_incomplete_workflow(text):
            return "incomplete_workflow"
        return "final"


class RetryDecision(BaseModel):
    retry_prompt: str
    log_message: str


def build_retry_prompt(original_message: str, ai_response: str) -> str:
    return f"""CRITICAL OVERRIDE: You did not complete the workflow. This is a FIRE-AND-FORGET system where the user CANNOT respond to questions.

Your incomplete response was: "{ai_response[:RETRY_PREVIEW_LENGTH]}..."

You MUST now complete the workflow by:
- Using your tools to extract, validate, normalize, and save the workout
- Making reasonable assumptions for missing information (intensity: 5/10, time: current time, etc.)
- NOT asking questions or requesting clarification
- Proceeding with the data available in the original message

Original message to process:
"{original_message}"

Complete the workout logging workflow now using your tools."""


def decide_retry(
    result: WorkoutLogResult,
    response_text: str,
    successful_tool_count: int,
    original_message: str,
    classifier: ResponseClassifier | None = None,
) -> RetryDecision | None:
    """Decide whether one more pass with a stronger directive is warranted.

    Returns:
        RetryDecision when a retry should run, None otherwise
    """
    if result.success:
        return None

    if result.blocking_flags:
        logger.info("Not retrying, validation blocked with flags", blocking_flags=result.blocking_flags)
        return None

    kind = (classifier or RegexResponseClassifier()).classify(response_text)
    if kind == "valid_refusal":
        logger.info("Valid refusal detected, not retrying")
        return None

    if successful_tool_count == 0 and kind == "incomplete_workflow":
        return RetryDecision(
            retry_prompt=build_retry_prompt(original_message, response_text),
            log_message="Incomplete workflow, retrying with a stronger directive",
        )
    return None
