"""LLM discipline detection for workout messages.

Detection never fails the pipeline: errors, unsupported labels, and low
confidence answers all resolve to the ``hybrid`` discipline.
"""

from typing import Literal

from loguru import logger
from pydantic import BaseModel, Field
from pydantic_ai import Agent

from trainlog.config.models import DISCIPLINE_DETECTION_MODEL
from trainlog.config.settings import settings
from trainlog.schemas.composer import is_discipline_supported
from trainlog.services.llm.model import get_model

FALLBACK_DISCIPLINE = "hybrid"
LOW_CONFIDENCE_THRESHOLD = 0.65
FAILURE_CONFIDENCE = 0.5

DISCIPLINE_DETECTION_PROMPT = """You are a fitness discipline classification expert.
Analyze the workout description and determine its primary training discipline.

DISCIPLINES
- crossfit: AMRAP, EMOM, For Time, benchmark WODs (Fran, Murph, Grace), mixed gymnastics + weightlifting + cardio, RX/scaled
- powerlifting: squat/bench/deadlift focus, percentage or RPE based, low rep ranges, competition attempts
- bodybuilding: split training (push/pull/legs), hypertrophy rep ranges, isolation work, supersets/drop sets
- olympic_weightlifting: snatch, clean & jerk, complexes, pulls, technique work
- functional_bodybuilding: quality-focused EMOMs, tempo work, movement pattern emphasis
- calisthenics: bodyweight skills, pull-up/dip/handstand progressions, hold times
- hyrox: 8 stations + runs, SkiErg, sled push/pull, wall balls, race simulation
- running: distance runs, pace work, intervals, tempo, long runs
- circuit_training: timed stations, bootcamp or group fitness circuits
- hybrid: mixed sessions with no dominant discipline, or unclear descriptions

RULES
1. Format trumps exercise selection ("EMOM 10: bench press" is crossfit)
2. Programming context is authoritative (Westside = powerlifting, CompTrain = crossfit)
3. Named WODs are definitive
4. Warmups do not determine the discipline

CONFIDENCE
- 0.9-1.0: unambiguous single-discipline indicators
- 0.7-0.9: strong indicators with minor ambiguity
- 0.5-0.7: mixed signals
- below 0.5: very unclear
"""


class DisciplineClassification(BaseModel):
    """Model output for discipline detection."""

    discipline: str = Field(description="One of the listed discipline identifiers")
    confidence: float = Field(ge=0.0, le=1.0, description="Classification confidence (0-1)")
    reasoning: str = Field(default="", description="One-sentence justification")


class DisciplineDetection(BaseModel):
    """Discipline detection outcome handed to the extraction step."""

    discipline: str
    confidence: float
    method: Literal["ai_detection"] = "ai_detection"
    reasoning: str


async def detect_discipline(user_message: str) -> DisciplineDetection:
    """Detect the primary training discipline of a workout message.

    Args:
        user_message: Workout description from the user

    Returns:
        DisciplineDetection, falling back to ``hybrid`` on failure or low confidence
    """
    logger.info(
        "Detecting workout discipline",
        message_length=len(user_message),
        message_preview=user_message[:100],
    )

    try:
        agent = Agent(
            model=get_model(settings.llm_provider, DISCIPLINE_DETECTION_MODEL),
            system_prompt=DISCIPLINE_DETECTION_PROMPT,
            output_type=DisciplineClassification,
        )
        result = await agent.run(f'Analyze this workout and classify its discipline:\n\n"{user_message}"')
        classification = result.output
    except Exception as e:
        logger.exception(f"Discipline detection failed, defaulting to {FALLBACK_DISCIPLINE}: {e}")
        return DisciplineDetection(
            discipline=FALLBACK_DISCIPLINE,
            confidence=FAILURE_CONFIDENCE,
            reasoning=f"Detection failed, defaulting to {FALLBACK_DISCIPLINE}: {e}",
        )

    discipline = classification.discipline.strip().lower()
    reasoning = classification.reasoning

    if not is_discipline_supported(discipline):
        logger.warning("Unsupported discipline detected", detected=discipline, fallback=FALLBACK_DISCIPLINE)
        reasoning = f"{reasoning} (unsupported discipline '{discipline}', using {FALLBACK_DISCIPLINE})"
        discipline = FALLBACK_DISCIPLINE
    elif classification.confidence < LOW_CONFIDENCE_THRESHOLD and discipline != FALLBACK_DISCIPLINE:
        logger.info(
            "Low-confidence discipline detection, using fallback",
            detected=discipline,
            confidence=classification.confidence,
        )
        reasoning = f"{reasoning} (low confidence for '{discipline}', using {FALLBACK_DISCIPLINE})"
        discipline = FALLBACK_DISCIPLINE

    logger.info("Discipline detected", discipline=discipline, confidence=classification.confidence)
    return DisciplineDetection(
        discipline=discipline,
        confidence=classification.confidence,
        reasoning=reasoning,
    )
