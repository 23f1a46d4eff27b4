"""Receptionist speech intent classification.

Pure keyword/regex matching over a single recognized utterance. Hold
phrases are tested first so that "yes, one moment" reads as a hold and
never as an affirmative. Utterances that match nothing come back as
``Intent.OTHER`` and are escalated by the caller to the conversational
fallback.
"""

import re
from enum import Enum


class Intent(Enum):
    YES = "yes"
    NO = "no"
    TIME = "time"
    HOLD = "hold"
    WALK_IN = "walkin"
    OTHER = "other"


HOLD_KEYWORDS = frozenset({
    "please hold", "hold please", "hold on", "put you on hold", "place you on hold",
    "one moment", "just a moment", "a moment please",
    "one sec", "one second", "just a sec", "just a second",
    "one minute", "a minute", "just a minute", "give me a minute", "wait a minute",
    "hold for a", "can you hold", "could you hold",
    "hang on", "bear with me",
})

WALK_IN_KEYWORDS = frozenset({
    "walk-in", "walk-ins", "walk in", "walk ins", "walkin", "walkins",
    "first come first serve", "first come first served",
    "just come in", "come on in", "come in anytime", "come in any time",
    "no appointment needed", "no appointment necessary",
    "don't need an appointment", "don't take appointments",
})

# Multi-word declines win over affirmative words ("okay, that doesn't work").
DECLINE_KEYWORDS = frozenset({
    "doesn't work", "does not work", "won't work", "not going to work",
    "not available", "unavailable", "no availability", "nothing available",
    "can't", "cannot", "can not",
    "we're full", "fully booked", "booked up", "all booked",
})

YES_KEYWORDS = frozenset({
    "yes", "yeah", "yep", "yup", "sure", "okay", "ok",
    "works", "that works", "that's fine", "perfect", "sounds good",
    "correct", "that's right", "confirmed", "absolutely",
})

COUNTER_OFFER_KEYWORDS = frozenset({
    "but", "how about", "what about", "instead", "we have", "we've got",
    "we could do", "we can do", "there's", "there is", "i have", "i've got",
})

_NO_RE = re.compile(r"^(no|nope|nah)\b|\b(no|nope|nah)[.!]?$")
_QUESTION_RE = re.compile(r"^(what|when|which|how|who|where)\b")

WEEKDAYS = (
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
    "mon", "tue", "tues", "wed", "thu", "thur", "thurs", "fri", "sat", "sun",
)
MONTHS = (
    "january", "february", "march", "april", "june", "july", "august",
    "september", "october", "november", "december",
    "jan", "feb", "mar", "apr", "jun", "jul", "aug", "sep", "sept", "oct", "nov", "dec",
)

_DAY_CUE_PATTERNS = (
    re.compile(rf"\b({'|'.join(WEEKDAYS)})\b\.?"),
    re.compile(rf"\b({'|'.join(MONTHS)})\b\.?"),
    re.compile(r"\bmay\s+\d"),
    re.compile(r"\b(today|tomorrow|tonight|next week|this week)\b"),
    re.compile(r"\b\d{1,2}(st|nd|rd|th)\b"),
)

_TIME_CUE_PATTERNS = _DAY_CUE_PATTERNS + (
    re.compile(r"\b\d{1,2}:\d{2}\b"),
    re.compile(r"\b\d{1,2}\s*(am|pm|a\.m\.|p\.m\.)"),
    re.compile(r"\b\d{1,2}\s*o'clock\b"),
    re.compile(r"\b(morning|afternoon|evening|noon|midday)\b"),
)


def normalize(text: str) -> str:
    """Lowercase, straighten apostrophes and drop clause punctuation."""
    lower = (text or "").lower().replace("’", "'").replace("‘", "'")
    lower = re.sub(r"[,;!?]", " ", lower)
    return re.sub(r"\s+", " ", lower).strip()


def match_any_keyword(text: str, keywords) -> bool:
    """Check if any keyword appears in text as a whole word (not substring)."""
    lower = normalize(text)
    return any(re.search(rf"(?<![\w-]){re.escape(kw)}(?![\w-])", lower) for kw in keywords)


def is_hold(text: str) -> bool:
    return match_any_keyword(text, HOLD_KEYWORDS)


def is_walk_in(text: str) -> bool:
    return match_any_keyword(text, WALK_IN_KEYWORDS)


def is_affirmative(text: str) -> bool:
    return match_any_keyword(text, YES_KEYWORDS)


def has_time_cue(text: str) -> bool:
    lower = normalize(text)
    return any(p.search(lower) for p in _TIME_CUE_PATTERNS)


def has_day_cue(text: str) -> bool:
    """True when the utterance names a day rather than only a clock time."""
    lower = normalize(text)
    return any(p.search(lower) for p in _DAY_CUE_PATTERNS)


def is_counter_offer(text: str) -> bool:
    """A decline that carries a different time ("no, but Thursday at 3")."""
    return has_time_cue(text) and match_any_keyword(text, COUNTER_OFFER_KEYWORDS)


def classify(utterance: str) -> Intent:
    """Map a recognized utterance to an Intent.

    Order: hold, walk-in, decline phrases, affirmative words (unless the
    utterance is a question), bare no, date/time cues, then OTHER.
    """
    text = normalize(utterance)
    if not text:
        return Intent.OTHER
    if is_hold(text):
        return Intent.HOLD
    if is_walk_in(text):
        return Intent.WALK_IN
    if match_any_keyword(text, DECLINE_KEYWORDS):
        return Intent.NO
    if is_affirmative(text) and not _QUESTION_RE.match(text):
        return Intent.YES
    if _NO_RE.search(text.rstrip(".")):
        return Intent.NO
    if has_time_cue(text):
        return Intent.TIME
    return Intent.OTHER
