"""
Assistant Service for CLEP Finder

Sits between the HTTP layer and the language model:
- students: a bounded digest of the database goes to the model with the question
- institutions: model-extracted update tuples are sanitized against the exam
  catalog before they can reach the update service

Language model failures become friendly replies; they never surface as errors.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Sequence

from clepfinder.domain.aggregation import collection_summary
from clepfinder.domain.catalog import EXAM_CATALOG, US_STATES, resolve_exam_name
from clepfinder.domain.filtering import FilterCriteria, filter_institutions, sort_institutions
from clepfinder.domain.interfaces import LanguageModel
from clepfinder.domain.models import Institution, SortOrder, UserExamScore
from clepfinder.domain.normalization import normalize_credits, normalize_score
from clepfinder.domain.overrides import UpdateAction, format_value, resolve_field
from clepfinder.infrastructure.exceptions import AIServiceError, RateLimitError


logger = logging.getLogger(__name__)


NOT_CONFIGURED_REPLY = (
    "I'm sorry, but the AI service is not properly configured. Please contact support."
)
RATE_LIMITED_REPLY = (
    "I'm receiving too many requests right now. Please try again in a moment."
)
ERROR_REPLY = "I encountered an error while answering. Please try again."
UNPARSEABLE_REPLY = (
    "I couldn't understand the update request. Please try rephrasing it, for example: "
    "'Set Biology minimum score to 55' or 'Change Chemistry credits to 4'."
)
NO_COMMANDS_REPLY = (
    "I couldn't find any update commands in your message. "
    "Please specify which exam and what you'd like to change."
)
NO_VALID_COMMANDS_REPLY = (
    "I couldn't extract valid update commands. Please specify the exam name, "
    "field (minScore, credits, or courseCode), and value."
)

# Everyday words students use -> fragments of catalog exam names
EXAM_KEYWORDS = {
    "biology": ("biology",),
    "chemistry": ("chemistry",),
    "calculus": ("calculus",),
    "algebra": ("college algebra",),
    "psychology": ("psychology",),
    "economics": ("macroeconomics", "microeconomics"),
    "macro": ("macroeconomics",),
    "micro": ("microeconomics",),
    "history": ("history",),
    "western civilization": ("western civilization",),
    "literature": ("literature",),
    "composition": ("composition",),
    "writing": ("composition", "writing"),
    "sociology": ("sociology",),
    "government": ("government",),
    "spanish": ("spanish",),
    "french": ("french",),
    "german": ("german",),
}

_SCORE_PATTERN = re.compile(r"\b(\d{2,3})\b")
MIN_CLEP_SCORE = 20
MAX_CLEP_SCORE = 80


@dataclass
class AssistantProposal:
    """Reply for the institution chat plus the actions awaiting confirmation."""
    reply: str
    actions: List[UpdateAction] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"reply": self.reply, "actions": [a.to_dict() for a in self.actions]}


# =============================================================================
# Message parsing
# =============================================================================

def mentioned_state(message: str) -> Optional[str]:
    """Postal code of the first US state named in the message (longest name wins)."""
    lowered = message.lower()
    for name in sorted(US_STATES, key=len, reverse=True):
        if re.search(rf"\b{re.escape(name)}\b", lowered):
            return US_STATES[name]
    return None


def mentioned_exams(message: str) -> List[str]:
    """Catalog exams the message refers to, by full name or keyword."""
    lowered = message.lower()
    fragments = set()
    for keyword, targets in EXAM_KEYWORDS.items():
        if re.search(rf"\b{re.escape(keyword)}\b", lowered):
            fragments.update(targets)

    return [
        exam for exam in EXAM_CATALOG
        if exam.lower() in lowered
        or any(fragment in exam.lower() for fragment in fragments)
    ]


def mentioned_score(message: str) -> Optional[int]:
    """First number in the CLEP score range (20-80)."""
    for match in _SCORE_PATTERN.finditer(message):
        score = int(match.group(1))
        if MIN_CLEP_SCORE <= score <= MAX_CLEP_SCORE:
            return score
    return None


def _describe(institution: Institution, detailed: bool) -> str:
    avg = institution.avg_score or "N/A"
    if detailed:
        return (
            f"- {institution.name} ({institution.city}, {institution.state}): "
            f"Accepts {institution.exams_accepted} CLEP exams, "
            f"Average minimum score: {avg}, "
            f"Max credits: {institution.max_credits}, "
            f"Score validity: {institution.score_validity_years} years"
        )
    return (
        f"- {institution.name} ({institution.city}, {institution.state}): "
        f"Accepts {institution.exams_accepted} exams, avg score: {avg}"
    )


# =============================================================================
# Action sanitization
# =============================================================================

def sanitize_action(item: Any) -> Optional[UpdateAction]:
    """
    Validate one raw {"exam", "field", "value"} item from the model.

    Returns:
        A clean UpdateAction with the catalog exam name, or None
    """
    if not isinstance(item, dict):
        return None

    update_field = resolve_field(item.get("field"))
    exam = resolve_exam_name(item.get("exam"))
    value = item.get("value")
    if update_field is None or exam is None or value is None:
        return None

    if update_field == "minScore":
        score = normalize_score(value)
        if score is None:
            return None
        text = str(score)
    elif update_field == "credits":
        credits = normalize_credits(value)
        if credits is None:
            return None
        text = format_value(credits)
    else:
        text = format_value(value).strip()
        if not text:
            return None

    return UpdateAction(exam=exam, field=update_field, value=text)


def sanitize_actions(items: Iterable[Any]) -> List[UpdateAction]:
    actions = []
    for item in items:
        action = sanitize_action(item)
        if action is None:
            logger.info(f"Dropped invalid update item: {item!r}")
            continue
        actions.append(action)
    return actions


def confirmation_summary(actions: Sequence[UpdateAction]) -> str:
    lines = ["You want to apply these updates:", ""]
    lines.extend(f"• {a.exam}: {a.label} = {a.value}" for a in actions)
    lines.extend(["", "Confirm? (yes/no)"])
    return "\n".join(lines)


class AssistantService:
    """
    Chat features for students and institutions.

    Args:
        language_model: LanguageModel, or None when no API key is configured
        context_limit: Maximum institutions listed in a digest
    """

    def __init__(self, language_model: Optional[LanguageModel], context_limit: int = 10):
        self._model = language_model
        self.context_limit = context_limit

    def build_context(self, institutions: Sequence[Institution], message: str) -> str:
        """
        Bounded digest of the database for one question.

        Mentioned state, exams and score narrow the institution list; at most
        context_limit institutions are listed, followed by general statistics.
        """
        parts = [
            f"You have access to data about {len(institutions)} universities "
            f"and their CLEP acceptance policies.",
            "",
        ]

        state = mentioned_state(message)
        exams = mentioned_exams(message)
        score = mentioned_score(message)

        criteria = FilterCriteria(state=state, exam_names=exams or None)
        if score is not None and exams:
            criteria.user_exam_scores = [UserExamScore(exam=e, score=score) for e in exams]
        relevant = filter_institutions(institutions, criteria)

        if state:
            parts.append(
                f"User is asking about {state}. Found {len(relevant)} universities in {state}."
            )
        if exams:
            parts.append(
                f"User is asking about {', '.join(exams)}. "
                f"Found {len(relevant)} universities that accept these exams."
            )
        if score is not None:
            parts.append(f"User mentioned a CLEP score of {score}.")

        ranked = sort_institutions(relevant, SortOrder.EXAMS_ACCEPTED)
        if 0 < len(ranked) <= self.context_limit:
            parts.append("\nRelevant Universities:")
            parts.extend(_describe(i, detailed=True) for i in ranked)
        elif len(ranked) > self.context_limit:
            parts.append(
                f"\nFound {len(ranked)} relevant universities. "
                f"Here are the top {self.context_limit}:"
            )
            parts.extend(_describe(i, detailed=False) for i in ranked[:self.context_limit])

        summary = collection_summary(institutions)
        parts.extend([
            "\nGeneral Statistics:",
            f"- Total universities in database: {summary.total_institutions}",
            f"- Average exams accepted per university: {summary.average_exams_accepted}",
            f"- Average minimum CLEP score required: {summary.average_minimum_score}",
        ])
        return "\n".join(parts)

    async def answer(self, institutions: Sequence[Institution], message: str) -> str:
        if self._model is None:
            return NOT_CONFIGURED_REPLY

        context = self.build_context(institutions, message)
        try:
            return await self._model.answer_question(message, context)
        except RateLimitError:
            logger.warning("Language model rate limited")
            return RATE_LIMITED_REPLY
        except AIServiceError as e:
            logger.error(f"Chat answer failed: {e.message}")
            return ERROR_REPLY

    async def propose_updates(self, message: str) -> AssistantProposal:
        """Turn an institution's message into confirmed-pending update actions."""
        if self._model is None:
            return AssistantProposal(reply=NOT_CONFIGURED_REPLY)

        try:
            items = await self._model.extract_update_intent(message)
        except RateLimitError:
            logger.warning("Language model rate limited")
            return AssistantProposal(reply=RATE_LIMITED_REPLY)
        except AIServiceError as e:
            logger.error(f"Update intent extraction failed: {e.message}")
            return AssistantProposal(reply=UNPARSEABLE_REPLY)

        if not items:
            return AssistantProposal(reply=NO_COMMANDS_REPLY)

        actions = sanitize_actions(items)
        if not actions:
            return AssistantProposal(reply=NO_VALID_COMMANDS_REPLY)

        return AssistantProposal(reply=confirmation_summary(actions), actions=actions)
