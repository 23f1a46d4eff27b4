"""Deferred re-dial of a clinic on the patient's behalf.

At most one pending attempt exists per callback identity. Scheduling again
replaces the earlier one; cancelling removes it; a ticket that fires is
removed before the call is placed, so it fires at most once.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from clarity.notifications import NoticeKind, NotificationDispatcher
from clarity.session import CallRequest

logger = logging.getLogger(__name__)


@dataclass
class RetryTicket:
    callback_identity: str
    pending_attempt: CallRequest
    fire_at: float
    task: Optional[asyncio.Task] = field(default=None, repr=False)


class RetryScheduler:
    """Timers that place a new call for a saved request after a delay.

    ``place_again`` returns a truthy value (the new call id) when the call
    was placed. ``sleep`` and ``clock`` are injectable for tests.
    """

    def __init__(
        self,
        place_again: Callable[[CallRequest], Awaitable[object]],
        dispatcher: Optional[NotificationDispatcher] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ):
        self._place_again = place_again
        self._dispatcher = dispatcher
        self._sleep = sleep
        self._clock = clock
        self._tickets: dict[str, RetryTicket] = {}

    def __len__(self) -> int:
        return len(self._tickets)

    def pending(self, identity: str) -> Optional[RetryTicket]:
        return self._tickets.get(identity)

    def schedule(self, identity: str, attempt: CallRequest, delay: float) -> RetryTicket:
        if not identity:
            raise ValueError("retry requires a callback identity")
        self.cancel(identity)
        ticket = RetryTicket(
            callback_identity=identity,
            pending_attempt=attempt,
            fire_at=self._clock() + delay,
        )
        ticket.task = asyncio.create_task(self._run(ticket, delay))
        self._tickets[identity] = ticket
        logger.info("Retry for %s scheduled in %.0fs", identity, delay)
        return ticket

    def cancel(self, identity: str) -> bool:
        ticket = self._tickets.pop(identity, None)
        if ticket is None:
            return False
        if ticket.task is not None and not ticket.task.done():
            ticket.task.cancel()
        logger.info("Retry for %s cancelled", identity)
        return True

    async def _run(self, ticket: RetryTicket, delay: float):
        await self._sleep(delay)
        # A replaced or cancelled ticket no longer owns the slot.
        if self._tickets.get(ticket.callback_identity) is not ticket:
            return
        del self._tickets[ticket.callback_identity]
        await self._fire(ticket)

    async def _fire(self, ticket: RetryTicket):
        attempt = ticket.pending_attempt
        logger.info("Retry firing for %s to %s", ticket.callback_identity, attempt.clinic_phone_number)
        try:
            placed = await self._place_again(attempt)
        except Exception as e:
            logger.error("Retry call for %s failed: %s", ticket.callback_identity, e)
            placed = None
        if self._dispatcher is None:
            return
        params = {"patient": attempt.patient_name, "clinic": attempt.clinic_display_name}
        kind = NoticeKind.RETRYING if placed else NoticeKind.RETRY_FAILED
        await self._dispatcher.notify(ticket.callback_identity, kind, params)
