import logging
import re
from datetime import datetime, timedelta

from dateutil import parser as dtparser
from dateutil.relativedelta import relativedelta

from clarity.intents import MONTHS

logger = logging.getLogger(__name__)

_RELATIVE_DAYS = {"today": 0, "tonight": 0, "tomorrow": 1}

# Spoken day-part words dateutil doesn't understand on its own.
_DAYPART_SUBS = (
    (re.compile(r"\b(noon|midday)\b"), " 12:00 pm "),
    (re.compile(r"\bmidnight\b"), " 12:00 am "),
    (re.compile(r"\ba\.m\.?"), "am"),
    (re.compile(r"\bp\.m\.?"), "pm"),
    (re.compile(r"\s*o'clock\b"), ""),
)

_MERIDIEM_HINTS = (
    (re.compile(r"\b(in the |this )?morning\b"), "am"),
    (re.compile(r"\b(in the |this )?(afternoon|evening)\b|\btonight\b"), "pm"),
)

# "at 3", "at 10:30", "2:15" without an am/pm marker
_CLOCK_RE = re.compile(r"(?:(?<=\bat )\d{1,2}(?::\d{2})?|\b\d{1,2}:\d{2})\b(?!\s*(?:am|pm)|:\d)")
_HAS_CLOCK_RE = re.compile(r"\b\d{1,2}(:\d{2})?\s*(am|pm)\b|\b\d{1,2}:\d{2}\b")

# A number that is not a clock time, an ordinal or part of a date ("2 openings").
_STRAY_NUMBER_RE = re.compile(r"(?<![:/])\b\d{1,4}\b(?![:/]\d|\s*(?:am|pm)\b)")
_AFTER_MONTH_RE = re.compile(rf"\b(?:{'|'.join(MONTHS)}|may)\.?\s+(?:\d{{1,2}}(?:st|nd|rd|th)?,?\s+)?$")
_WEEKDAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
_WEEKDAY_RE = re.compile(rf"\b({'|'.join(_WEEKDAY_NAMES)})\b")

# Clinic hours: a bare "at 3" means the afternoon.
_AFTERNOON_HOURS = range(1, 8)


def format_display(dt: datetime, with_time: bool = True) -> str:
    """Long human-readable form, e.g. "Tuesday, October 20, 2:00 PM"."""
    day = f"{dt:%A}, {dt:%B} {dt.day}"
    if not with_time:
        return day
    hour = dt.hour % 12 or 12
    return f"{day}, {hour}:{dt:%M} {dt:%p}"


def _clock(match: re.Match, hint: str) -> str:
    token = match.group(0)
    if ":" not in token:
        token += ":00"
    if hint:
        return f"{token} {hint}"
    if int(token.split(":")[0]) in _AFTERNOON_HOURS:
        return f"{token} pm"
    return token


def _drop_stray_number(match: re.Match) -> str:
    if _AFTER_MONTH_RE.search(match.string[:match.start()]):
        return match.group(0)
    return " "


def _prepare(utterance: str, reference_now: datetime) -> tuple[str, datetime]:
    """Rewrite spoken phrasing into something dateutil can parse.

    Returns the rewritten text and the default datetime that fills the
    fields the utterance leaves out (shifted for today/tomorrow).
    """
    text = utterance.lower().replace("’", "'")
    default = reference_now.replace(hour=9, minute=0, second=0, microsecond=0)

    for word, offset in _RELATIVE_DAYS.items():
        if re.search(rf"\b{word}\b", text):
            default = default + timedelta(days=offset)
            break

    for pattern, repl in _DAYPART_SUBS:
        text = pattern.sub(repl, text)

    hint = ""
    for pattern, meridiem in _MERIDIEM_HINTS:
        if pattern.search(text):
            hint = meridiem
            text = pattern.sub(" ", text)
            break
    text = _CLOCK_RE.sub(lambda m: _clock(m, hint), text, count=1)
    text = _STRAY_NUMBER_RE.sub(_drop_stray_number, text)

    for word in _RELATIVE_DAYS:
        text = re.sub(rf"\b{word}\b", " ", text)
    return re.sub(r"\s+", " ", text).strip(), default


def parse_spoken_time(utterance: str, reference_now: datetime | None = None) -> str:
    """Convert a spoken time expression to a canonical display string.

    Falls back to the original utterance verbatim when nothing can be
    parsed; the result is read by a person, so unstructured text is fine.
    """
    original = (utterance or "").strip()
    if not original:
        return original
    now = reference_now or datetime.now()
    text, default = _prepare(original, now)
    relative = default.date() != now.date() or bool(re.search(r"\b(today|tonight)\b", original.lower()))

    if not text:
        return format_display(default, with_time=False) if relative else original
    try:
        parsed = dtparser.parse(text, default=default, fuzzy=True)
    except (dtparser.ParserError, ValueError, OverflowError) as e:
        logger.debug("Time parse failed for %r: %s", original, e)
        if relative:
            return format_display(default, with_time=False)
        return original

    named = _WEEKDAY_RE.search(text)
    if named:
        weekday = _WEEKDAY_NAMES.index(named.group(1))
        if parsed.weekday() != weekday:
            logger.debug("Parsed %r as %s, resolving from the named weekday", original, parsed.date())
            parsed = (default + relativedelta(weekday=weekday)).replace(hour=parsed.hour, minute=parsed.minute)
    return format_display(parsed, with_time=bool(_HAS_CLOCK_RE.search(text)))
