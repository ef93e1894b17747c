"""
Question Generator: clarifying questions for whatever extraction could not recover.
"""

from dataclasses import dataclass, field
from typing import List

from legianos.models import GoalType, Priority
from legianos.services.extraction import ExtractionResult

QUESTION_BANK = {
    "goal_type": (
        "What area of your life is this goal focused on? (fitness, learning, career, personal habits, etc.)",
        Priority.HIGH,
    ),
    "timeframe": (
        "What timeframe are you thinking about for this goal? (weekly, monthly, quarterly, yearly)",
        Priority.HIGH,
    ),
    "motivation": (
        "What's driving this goal for you? What would achieving it mean to you?",
        Priority.HIGH,
    ),
    "specific_target": (
        "How will you know when you've succeeded? What specific outcome are you aiming for?",
        Priority.MEDIUM,
    ),
    "priority": (
        "How important is this goal compared to other things in your life right now?",
        Priority.MEDIUM,
    ),
}

FOLLOW_UPS = {
    GoalType.FITNESS: "What's your current activity level, and what would you like it to be?",
    GoalType.LEARNING: "What's your current knowledge level in this area, and how do you prefer to learn?",
    GoalType.HABIT: "What time of day or situation would work best for building this habit?",
}

_PRIORITY_RANK = {Priority.CRITICAL: 0, Priority.HIGH: 1, Priority.MEDIUM: 2, Priority.LOW: 3}


@dataclass
class QuestionSet:
    questions: List[str] = field(default_factory=list)
    priorities: List[Priority] = field(default_factory=list)
    reply: str = ""

    def top(self, limit: int = 2) -> List[str]:
        """Highest priority first; ties keep their original order."""
        ranked = sorted(
            zip(self.questions, self.priorities),
            key=lambda pair: _PRIORITY_RANK[pair[1]],
        )
        return [question for question, _ in ranked[:limit]]


def generate_questions(user_message: str, extraction: ExtractionResult) -> QuestionSet:
    info = extraction.extracted_info
    missing = set(extraction.missing_elements)
    if not info.specific_target:
        missing.add("specific_target")

    result = QuestionSet()
    for element, (question, priority) in QUESTION_BANK.items():
        if element in missing:
            result.questions.append(question)
            result.priorities.append(priority)

    follow_up = FOLLOW_UPS.get(info.goal_type)
    if follow_up:
        result.questions.append(follow_up)
        result.priorities.append(Priority.MEDIUM)

    if extraction.confidence > 0.5:
        kind = f"a {info.goal_type.value}" if info.goal_type else "setting a"
        focus = f" with a {info.timeframe} focus" if info.timeframe else ""
        reply = f"I can see you're interested in {kind} goal{focus}. That's great! "
    else:
        reply = "I'd love to help you create a meaningful goal! "

    if result.questions:
        primary = next(
            (q for q, p in zip(result.questions, result.priorities) if p == Priority.HIGH),
            result.questions[0],
        )
        reply += f"To make sure we create something that really works for you, {primary.lower()}"
    else:
        reply += "It sounds like you have a clear vision. Let me help you structure this into an actionable goal profile."

    result.reply = reply
    return result
