"""
Extraction Engine: keyword classification of goal intent and attributes.
Deterministic; a pure function of the message and prior user turns.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from legianos.models import GoalType, Intent, Priority

GOAL_CREATION_KEYWORDS = ("goal", "want to", "achieve", "weekly", "monthly", "habit", "learn", "improve")
REFINEMENT_KEYWORDS = ("adjust", "modify", "change", "update")
PROGRESS_KEYWORDS = ("progress", "completed", "finished", "done")

# Checked in order; first hit wins.
GOAL_TYPE_KEYWORDS: Tuple[Tuple[GoalType, Tuple[str, ...]], ...] = (
    (GoalType.WEEKLY, ("weekly",)),
    (GoalType.MONTHLY, ("monthly",)),
    (GoalType.YEARLY, ("yearly", "year")),
    (GoalType.HABIT, ("habit", "daily")),
    (GoalType.FITNESS, ("fitness", "exercise")),
    (GoalType.LEARNING, ("learn", "study")),
    (GoalType.FINANCIAL, ("money", "save", "financial")),
    (GoalType.CAREER, ("career", "job")),
)

TIMEFRAME_KEYWORDS = (
    ("week", "weekly"),
    ("month", "monthly"),
    ("quarter", "quarterly"),
    ("year", "yearly"),
)

PRIORITY_KEYWORDS: Tuple[Tuple[Priority, Tuple[str, ...]], ...] = (
    (Priority.CRITICAL, ("urgent", "critical", "asap")),
    (Priority.HIGH, ("important", "high")),
    (Priority.LOW, ("low priority", "eventually")),
)

MOTIVATION_INDICATORS = ("because", "want to", "need to", "hope to", "desire to")

CALENDAR_UNITS = {"day", "days", "week", "weeks", "month", "months", "quarter", "quarters", "year", "years"}
_TARGET_RE = re.compile(r"\b(\d+(?:\.\d+)?)\s+([a-z][a-z-]*)", re.IGNORECASE)

BASE_CONFIDENCE = 0.2
DETAILED_MESSAGE_LENGTH = 50
CONFIDENCE_THRESHOLD = 0.7
MAX_MISSING_ELEMENTS = 2


@dataclass
class ExtractedInfo:
    """Partial attribute bag recovered from free text."""
    goal_type: Optional[GoalType] = None
    timeframe: Optional[str] = None  # weekly | monthly | quarterly | yearly
    priority: Optional[Priority] = None
    motivation: Optional[str] = None
    specific_target: Optional[str] = None  # e.g. "10 books"
    obstacles: List[str] = field(default_factory=list)


@dataclass
class ExtractionResult:
    intent: Intent
    extracted_info: ExtractedInfo
    confidence: float
    needs_more_info: bool
    missing_elements: List[str]


def classify_intent(message: str) -> Intent:
    lower = message.lower()
    if any(k in lower for k in GOAL_CREATION_KEYWORDS):
        return Intent.GOAL_CREATION
    if any(k in lower for k in REFINEMENT_KEYWORDS):
        return Intent.GOAL_REFINEMENT
    if any(k in lower for k in PROGRESS_KEYWORDS):
        return Intent.PROGRESS_UPDATE
    return Intent.GENERAL_INQUIRY


def _first_match(lower: str, table):
    for value, keywords in table:
        if any(k in lower for k in keywords):
            return value
    return None


def extract_goal_type(message: str) -> Optional[GoalType]:
    return _first_match(message.lower(), GOAL_TYPE_KEYWORDS)


def extract_timeframe(message: str) -> Optional[str]:
    lower = message.lower()
    for keyword, timeframe in TIMEFRAME_KEYWORDS:
        if keyword in lower:
            return timeframe
    return None


def extract_priority(message: str) -> Optional[Priority]:
    return _first_match(message.lower(), PRIORITY_KEYWORDS)


def extract_motivation(message: str) -> Optional[str]:
    """Text after the first indicator present, in indicator order."""
    for indicator in MOTIVATION_INDICATORS:
        match = re.search(re.escape(indicator), message, re.IGNORECASE)
        if match:
            return message[match.end():].strip() or None
    return None


def extract_specific_target(message: str) -> Optional[str]:
    for number, unit in _TARGET_RE.findall(message):
        if unit.lower() not in CALENDAR_UNITS:
            return f"{number} {unit.lower()}"
    return None


INHERITED_ATTRIBUTES = ("goal_type", "timeframe", "priority", "motivation", "specific_target")


def _extract_attributes(message: str) -> ExtractedInfo:
    return ExtractedInfo(
        goal_type=extract_goal_type(message),
        timeframe=extract_timeframe(message),
        priority=extract_priority(message),
        motivation=extract_motivation(message),
        specific_target=extract_specific_target(message),
    )


def _states_anything(info: ExtractedInfo) -> bool:
    return any(getattr(info, name) is not None for name in INHERITED_ATTRIBUTES)


def _inherit(info: ExtractedInfo, earlier: ExtractedInfo) -> None:
    for name in INHERITED_ATTRIBUTES:
        if getattr(info, name) is None and getattr(earlier, name) is not None:
            setattr(info, name, getattr(earlier, name))


def score_confidence(info: ExtractedInfo, message: str) -> float:
    """
    0.2 base, +0.2 type, +0.2 timeframe, +0.2 motivation, +0.1 priority,
    +0.1 for a message longer than 50 characters. Capped at 1.0.
    """
    confidence = BASE_CONFIDENCE
    if info.goal_type:
        confidence += 0.2
    if info.timeframe:
        confidence += 0.2
    if info.motivation:
        confidence += 0.2
    if info.priority:
        confidence += 0.1
    if len(message) > DETAILED_MESSAGE_LENGTH:
        confidence += 0.1
    return round(min(1.0, confidence), 2)


def missing_elements_for(info: ExtractedInfo) -> List[str]:
    missing = []
    if not info.goal_type:
        missing.append("goal_type")
    if not info.timeframe:
        missing.append("timeframe")
    if not info.motivation:
        missing.append("motivation")
    if not info.priority:
        missing.append("priority")
    return missing


def extract(user_message: str, conversation_context: Optional[Sequence[str]] = None) -> ExtractionResult:
    """
    Classify intent and pull goal attributes out of `user_message`.

    `conversation_context` holds prior user turns of the goal being gathered,
    oldest first. Attributes the current message does not state are inherited
    from the most recent turn that does, but only when the current message
    states at least one attribute itself. Intent and the detail bonus only look
    at the current message.
    """
    info = _extract_attributes(user_message)
    if _states_anything(info):
        for earlier in reversed(list(conversation_context or [])):
            _inherit(info, _extract_attributes(earlier))

    confidence = score_confidence(info, user_message)
    missing = missing_elements_for(info)

    return ExtractionResult(
        intent=classify_intent(user_message),
        extracted_info=info,
        confidence=confidence,
        needs_more_info=confidence < CONFIDENCE_THRESHOLD or len(missing) > MAX_MISSING_ELEMENTS,
        missing_elements=missing,
    )
