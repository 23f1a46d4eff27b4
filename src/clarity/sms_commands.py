"""Patient SMS replies: RETRY, NOW, WAIT <minutes>, CANCEL, SAVE CLINIC."""

import re
from dataclasses import dataclass
from enum import Enum

MAX_WAIT_MINUTES = 24 * 60

HELP_TEXT = "Reply RETRY to call the clinic again, WAIT 5 / WAIT 15 to schedule a retry, or CANCEL."

_WAIT_RE = re.compile(r"^wait\s*(\d{1,4})\s*(?:m|min|mins|minutes?)?$")


class SmsCommandKind(Enum):
    RETRY = "retry"
    WAIT = "wait"
    CANCEL = "cancel"
    SAVE_CLINIC = "save_clinic"
    HELP = "help"


@dataclass(frozen=True)
class SmsCommand:
    kind: SmsCommandKind
    minutes: int = 0


def parse_sms(body: str) -> SmsCommand:
    text = " ".join((body or "").strip().lower().split())
    if text in ("retry", "now", "call now", "retry now"):
        return SmsCommand(SmsCommandKind.RETRY)
    if text in ("cancel", "cancel retry"):
        return SmsCommand(SmsCommandKind.CANCEL)
    if text in ("save clinic", "save"):
        return SmsCommand(SmsCommandKind.SAVE_CLINIC)
    m = _WAIT_RE.match(text)
    if m:
        minutes = int(m.group(1))
        if 0 < minutes <= MAX_WAIT_MINUTES:
            return SmsCommand(SmsCommandKind.WAIT, minutes=minutes)
    return SmsCommand(SmsCommandKind.HELP)
