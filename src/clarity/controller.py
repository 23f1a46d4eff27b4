"""Webhook-facing orchestration.

Each telephony event reads the session, lets the dialogue machine decide,
then runs the side effects the returned Action asks for (fallback reply,
patient notice, retry timer) and renders TwiML for the live call.
"""

import logging
import time
from typing import Awaitable, Callable, Optional

from clarity.notifications import NoticeKind, NotificationDispatcher
from clarity.patients import PatientDirectory, SavedClinic
from clarity.post_call import handle_call_ended
from clarity.retry import RetryScheduler
from clarity.session import CallRequest, CallSession
from clarity.sms_commands import HELP_TEXT, SmsCommandKind, parse_sms
from clarity.state_machine import Action, DialogueMachine
from clarity.states import CallStatus, DialogueState
from clarity.store import SessionStore
from clarity.telephony import TwilioGateway
from clarity.twiml import DEFAULT_VOICE, context_lost, render_action

logger = logging.getLogger(__name__)

FAILED_STATUSES = {"busy", "no-answer", "failed", "canceled"}
NO_PREVIOUS_CALL = "I couldn't find a previous booking request for this number."


class CallController:
    def __init__(
        self,
        gateway: TwilioGateway,
        machine: Optional[DialogueMachine] = None,
        store: Optional[SessionStore] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        retries: Optional[RetryScheduler] = None,
        fallback: Optional[Callable[[CallSession], Awaitable[str]]] = None,
        patients: Optional[PatientDirectory] = None,
        voice: str = DEFAULT_VOICE,
        clock: Callable[[], float] = time.time,
    ):
        self.gateway = gateway
        self.machine = machine or DialogueMachine()
        self.store = store or SessionStore(clock=clock)
        self.dispatcher = dispatcher or NotificationDispatcher(gateway.send_message)
        self.retries = retries or RetryScheduler(self.start_call, self.dispatcher)
        self.fallback = fallback
        self.patients = patients or PatientDirectory()
        self.voice = voice
        self._clock = clock

    @property
    def gather_url(self) -> str:
        return f"{self.gateway.public_base_url}/gather"

    def _render(self, action: Action) -> str:
        return render_action(action, self.gather_url, voice=self.voice)

    # ── Outbound ──

    async def start_call(self, request: CallRequest) -> Optional[str]:
        """Dial the clinic and open a session. Returns the call id or None."""
        if not request.clinic_phone_number:
            raise ValueError("clinic phone number is required")
        self.patients.remember_request(request)
        call_id = await self.gateway.place_call(request.clinic_phone_number)
        if not call_id:
            logger.error("Could not place call to %s", request.clinic_phone_number)
            return None
        self.store.create(call_id, request, started_at=self._clock())
        logger.info("Session %s opened for %s", call_id, request.patient_name)
        return call_id

    # ── Voice webhooks ──

    async def on_call_answered(self, call_id: str) -> str:
        now = self._clock()
        action = self.store.mutate(call_id, lambda s: self.machine.greet(s, now))
        if action is None:
            logger.warning("Answered call %s has no session", call_id)
            return context_lost(self.voice)
        logger.info("Call %s answered", call_id)
        return self._render(action)

    async def on_speech_captured(self, call_id: str, utterance: str) -> str:
        now = self._clock()
        action = self.store.mutate(call_id, lambda s: self.machine.process(s, utterance, now))
        if action is None:
            logger.warning("Speech for unknown call %s", call_id)
            return context_lost(self.voice)

        session = self.store.get(call_id)
        if action.needs_llm:
            reply = await self.fallback(session) if self.fallback else ""
            action = self.machine.handle_fallback(session, reply, now)

        await self._follow_up(session, action)
        return self._render(action)

    async def on_call_status_changed(self, call_id: str, status: str):
        status = (status or "").lower()
        session = self.store.get(call_id)
        if session is None:
            logger.info("Status %s for unknown call %s", status, call_id)
            return
        logger.info("Call %s status: %s", call_id, status)

        if status in FAILED_STATUSES:
            if session.status is CallStatus.IN_PROGRESS:
                session.status = CallStatus.ABANDONED
            session.state = DialogueState.ENDED
            # Retry is left to the patient's reply.
            params = {"clinic": session.request.clinic_display_name, "status": status}
            await self.dispatcher.notify(session.request.callback_identity, NoticeKind.CALL_FAILED, params)
            self._finish(session)
        elif status == "completed":
            if not session.state.is_terminal:
                kind = NoticeKind.WALK_IN if session.status is CallStatus.WALK_IN else NoticeKind.ENDED_UNCONFIRMED
                session.state = DialogueState.ENDED
                params = self.machine.notice_params(session)
                await self.dispatcher.notify(session.request.callback_identity, kind, params)
            if session.status is CallStatus.IN_PROGRESS:
                session.status = CallStatus.ABANDONED
            self._finish(session)

    async def _follow_up(self, session: CallSession, action: Action):
        identity = session.request.callback_identity
        if action.notify is not None:
            await self.dispatcher.notify(identity, action.notify, action.notify_params)
        if action.retry_delay and identity:
            self.retries.schedule(identity, session.request, action.retry_delay)

    def _finish(self, session: CallSession):
        handle_call_ended(session, self._clock())
        self.store.delete(session.call_id)

    # ── Patient SMS ──

    async def handle_sms(self, identity: str, body: str) -> str:
        """Apply a patient's SMS reply and return the text to send back."""
        command = parse_sms(body)
        logger.info("SMS from %s: %s", identity, command.kind.value)

        if command.kind is SmsCommandKind.HELP:
            return HELP_TEXT
        if command.kind is SmsCommandKind.CANCEL:
            if self.retries.cancel(identity):
                return "Retry cancelled."
            return "No retry was pending."

        request = self.patients.last_request(identity)
        if request is None:
            return NO_PREVIOUS_CALL
        clinic = request.clinic_label

        if command.kind is SmsCommandKind.RETRY:
            self.retries.cancel(identity)
            call_id = await self.start_call(request)
            if call_id:
                return f"Calling {clinic} again now. I'll text the result."
            return "Couldn't place the call. Reply RETRY to try again."
        if command.kind is SmsCommandKind.WAIT:
            self.retries.schedule(identity, request, command.minutes * 60)
            return f"OK, I'll try {clinic} again in {command.minutes} minutes. Reply CANCEL to stop."

        saved = self.patients.save_clinic(
            identity,
            SavedClinic(name=request.clinic_display_name, phone=request.clinic_phone_number),
        )
        return f"Saved {clinic} to your clinics." if saved else f"{clinic} is already saved."
