"""Patient-facing SMS notices tied to call lifecycle events.

Delivery is fire-and-forget: a failed send is logged and reported as
``False``, never raised into the dialogue.
"""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

RESCHEDULE_OPTIONS = "Reply RETRY for another attempt, WAIT 5 / WAIT 15 to schedule, or CANCEL."


class NoticeKind(Enum):
    CONFIRMED = "confirmed"
    WALK_IN = "walk_in"
    ENDED_UNCONFIRMED = "ended_unconfirmed"
    CALL_CAP = "call_cap"
    HOLD_TIMEOUT = "hold_timeout"
    CALL_FAILED = "call_failed"
    RETRYING = "retrying"
    RETRY_FAILED = "retry_failed"


TEMPLATES = {
    NoticeKind.CONFIRMED: (
        "✅ Confirmed: {when} at {clinic}.{bring}\n"
        "Reply SAVE CLINIC to remember this clinic for next time."
    ),
    NoticeKind.WALK_IN: (
        "{clinic} takes walk-ins, so no appointment is needed for {patient}.{bring}\n"
        "Reply SAVE CLINIC to remember this clinic for next time."
    ),
    NoticeKind.ENDED_UNCONFIRMED: (
        "The call with {clinic} ended without a confirmed time. " + RESCHEDULE_OPTIONS
    ),
    NoticeKind.CALL_CAP: "Clinic line busy/long. " + RESCHEDULE_OPTIONS,
    NoticeKind.HOLD_TIMEOUT: (
        "Clinic kept us on hold too long. I'll try again in {minutes} minutes. "
        "Reply NOW to call right away, WAIT 5 / WAIT 15 to reschedule, or CANCEL."
    ),
    NoticeKind.CALL_FAILED: "Couldn't reach {clinic} ({status}). " + RESCHEDULE_OPTIONS,
    NoticeKind.RETRYING: "Retrying your booking with {clinic} now. I'll text the result.",
    NoticeKind.RETRY_FAILED: "Couldn't retry the call just now. Reply RETRY to try again.",
}


class _Params(dict):
    """Template params; unknown keys render as empty strings."""

    def __missing__(self, key):
        return ""


def render(kind: NoticeKind, params: Optional[dict] = None) -> str:
    values = _Params(params or {})
    if not values.get("clinic"):
        values["clinic"] = "the clinic"
    if values.get("bring"):
        values["bring"] = f"\nBring: {values['bring']}"
    return TEMPLATES[kind].format_map(values)


class NotificationDispatcher:
    """Renders a notice and hands it to the ``send_message`` capability."""

    def __init__(self, send_message: Callable[[str, str], Awaitable[object]], timeout: float = 10.0):
        self._send = send_message
        self.timeout = timeout

    async def notify(self, identity: str, kind: NoticeKind, params: Optional[dict] = None) -> bool:
        if not identity:
            logger.info("No callback identity, skipping %s notice", kind.value)
            return False
        body = render(kind, params)
        try:
            result = await asyncio.wait_for(self._send(identity, body), timeout=self.timeout)
        except Exception as e:
            logger.error("Notification %s to %s failed: %s", kind.value, identity, e)
            return False
        if result is False or result is None:
            logger.warning("Notification %s to %s was not delivered", kind.value, identity)
            return False
        logger.info("Notification %s sent to %s", kind.value, identity)
        return True
