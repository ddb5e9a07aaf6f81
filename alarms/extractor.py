from __future__ import annotations

import logging
import re

logger = logging.getLogger(__name__)

# Order matters: specific lead-ins must be tried before the generic "to"/"for".
LEAD_IN_PHRASES = (
    "remind me to",
    "tell me to",
    "to",
    "that",
    "about",
    "for",
    "wake me up and tell me to",
    "set alarm and tell me to",
)

TIME_WORDS = ("in", "at", "for", "minutes", "hours", "am", "pm", "oclock")

ACTION_WORDS = ("do", "finish", "complete", "go", "call", "pick", "buy", "study", "work", "exercise")

MIN_MESSAGE_LENGTH = 3
MAX_ACTION_WORDS = 10

_TIME_WORD_PATTERNS = [re.compile(r"\s+" + re.escape(word) + r"\b") for word in TIME_WORDS]


def extract_reminder_message(text: str) -> str:
    """Pull the task description out of a lowercased utterance.

    Returns a title-cased message or an empty string when nothing qualifies.
    """

    lower = text.lower()
    message = _after_lead_in(lower) or _from_action_word(lower)
    if not message:
        return ""
    message = _title_case(message)
    if message.endswith("."):
        message = message[:-1]
    logger.debug("Extracted reminder message: %r", message)
    return message


def strip_time_clause(text: str) -> str:
    cleaned = text
    for pattern in _TIME_WORD_PATTERNS:
        match = pattern.search(cleaned)
        if match:
            cleaned = cleaned[: match.start()]
    return cleaned.strip()


def _after_lead_in(lower: str) -> str:
    for phrase in LEAD_IN_PHRASES:
        idx = lower.find(phrase)
        if idx < 0:
            continue
        remainder = lower[idx + len(phrase) :].strip()
        cleaned = strip_time_clause(remainder)
        if len(cleaned) > MIN_MESSAGE_LENGTH:
            return cleaned
    return ""


def _from_action_word(lower: str) -> str:
    for word in ACTION_WORDS:
        idx = lower.find(word)
        if idx < 0:
            continue
        words = lower[idx:].strip().split()
        return " ".join(words[:MAX_ACTION_WORDS])
    return ""


def _title_case(text: str) -> str:
    # str.title() would capitalize after apostrophes ("Don'T")
    return " ".join(word[:1].upper() + word[1:].lower() for word in text.split())
