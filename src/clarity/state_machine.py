import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from clarity.intents import classify, has_day_cue, has_time_cue, is_counter_offer, is_hold
from clarity.notifications import NoticeKind
from clarity.session import CallSession
from clarity.states import CallStatus, DialogueState
from clarity.timeparse import parse_spoken_time

logger = logging.getLogger(__name__)

MAX_CALL_SECONDS = 3 * 60
MAX_HOLD_SECONDS = 90
HOLD_PAUSE_SECONDS = 15
HOLD_LISTEN_TIMEOUT = 5
LISTEN_TIMEOUT = 8
DEFAULT_RETRY_SECONDS = 15 * 60
MAX_DECLINES = 3
MAX_TURNS_PER_CALL = 30

FALLBACK_QUESTION = "Could you share an available day and time?"
WRAP_UP_LINE = "I have to wrap here. We'll follow up by text. Thank you."
HOLD_TIMEOUT_LINE = "I'll follow up later. Thank you."
HOLD_ACK_LINE = "Certainly, I can hold."
HOLD_PROMPT = "I'm still here."
LISTEN_PROMPT = "I can wait for your available times."
GOODBYE_LINE = "Thank you, goodbye."

# A proposal parsed down to a calendar day: "Tuesday, October 20[, 2:00 PM]".
_DATED_PROPOSAL_RE = re.compile(r"^[A-Z][a-z]+day, [A-Z][a-z]+ \d{1,2}\b")


@dataclass
class Action:
    """What to do with the live call after one turn.

    ``speak`` is said first, then ``pause`` seconds of silence, then (unless
    ``end_call``) the call listens for ``listen_timeout`` seconds while
    ``prompt`` plays. ``needs_llm`` means the next line must come from the
    conversational fallback. ``notify`` and ``retry_delay`` are patient-side
    follow-ups for the controller to run.
    """

    speak: str = ""
    prompt: str = ""
    pause: int = 0
    listen_timeout: int = LISTEN_TIMEOUT
    end_call: bool = False
    needs_llm: bool = False
    notify: Optional[NoticeKind] = None
    notify_params: dict = field(default_factory=dict)
    retry_delay: float = 0.0


def _name(session: CallSession) -> str:
    return session.request.patient_name or "the patient"


def _resume_state(session: CallSession) -> DialogueState:
    if session.status is CallStatus.WALK_IN:
        return DialogueState.WALK_IN
    if session.proposed_time:
        return DialogueState.TIME_PROPOSED
    return DialogueState.LISTENING


class DialogueMachine:
    """Turn-driven controller for the outbound booking call.

    ``process`` is pure apart from session mutation: it never talks to a
    third party. The controller executes the returned Action.
    """

    def __init__(self, brand_name: str = "Clarity Health Concierge", brand_slogan: str = "AI appointment assistant"):
        self.brand_name = brand_name
        self.brand_slogan = brand_slogan

    def greet(self, session: CallSession, now: float) -> Action:
        req = session.request
        line = (
            f"Hello, this is {self.brand_name}, {self.brand_slogan}. "
            f"I'm calling to book an appointment for {_name(session)}. "
            f"{'Reason: ' + req.reason_for_visit + '. ' if req.reason_for_visit else ''}"
            f"Do you have availability {req.first_window}?"
        )
        session.state = DialogueState.LISTENING
        return self._say(session, Action(speak=line, prompt=LISTEN_PROMPT), now)

    def process(self, session: CallSession, utterance: str, now: float) -> Action:
        text = (utterance or "").strip()
        session.turn_count += 1

        if session.state.is_terminal:
            return Action(speak=GOODBYE_LINE, end_call=True)

        # Call-duration ceiling outranks everything, including what was said.
        if now - session.started_at > MAX_CALL_SECONDS:
            logger.warning("Call %s exceeded %ds, wrapping up", session.call_id, MAX_CALL_SECONDS)
            return self._end(session, WRAP_UP_LINE, NoticeKind.CALL_CAP, now)

        if text:
            session.record("receptionist", text, now)
            logger.info("[%s] Receptionist: %s", session.state.value, text)

        if is_hold(text) or (not text and session.on_hold_since is not None):
            return self._handle_hold(session, now)

        if session.on_hold_since is not None:
            logger.info("Call %s off hold after %.0fs", session.call_id, now - session.on_hold_since)
            session.on_hold_since = None
            session.state = _resume_state(session)

        if session.turn_count > MAX_TURNS_PER_CALL:
            logger.warning("Per-call turn limit exceeded on %s", session.call_id)
            return self._end(session, self._decline_close(session), NoticeKind.ENDED_UNCONFIRMED, now)

        if session.state == DialogueState.WALK_IN:
            return self._handle_walk_in_note(session, text, now)

        if not text:
            return self._say(session, Action(speak="Sorry, I didn't catch that.", prompt=self._reask(session)), now)

        intent = classify(text)
        logger.debug("Call %s intent=%s", session.call_id, intent.value)
        handler = getattr(self, f"_on_{intent.value}")
        return handler(session, text, now)

    def handle_fallback(self, session: CallSession, reply: str, now: float) -> Action:
        """Turn a fallback reply (possibly empty) into the spoken action."""
        line = (reply or "").strip() or FALLBACK_QUESTION
        return self._say(session, Action(speak=line), now)

    # ── Intent handlers ──

    def _on_time(self, session: CallSession, text: str, now: float) -> Action:
        return self._propose(session, parse_spoken_time(text, datetime.fromtimestamp(now)), now)

    def _propose(self, session: CallSession, when: str, now: float) -> Action:
        session.proposed_time = when
        session.state = DialogueState.TIME_PROPOSED
        line = f"Great, so that's {when} for {_name(session)}. Can you confirm that?"
        return self._say(session, Action(speak=line), now)

    def _other_time_offered(self, session: CallSession, text: str, now: float) -> str:
        """The time named in a reply to an open proposal, or "" when it agrees.

        A clock time with no day ("yes, 2pm") is read against the proposed day.
        """
        if not has_time_cue(text):
            return ""
        proposed = session.proposed_time
        spoken = text.strip()
        if not has_day_cue(text) and _DATED_PROPOSAL_RE.match(proposed):
            spoken = f"{', '.join(proposed.split(', ')[:2])} {spoken}"
        when = parse_spoken_time(spoken, datetime.fromtimestamp(now))
        if when == spoken:
            return text.strip() if is_counter_offer(text) else ""
        if when == proposed or proposed.startswith(when + ","):
            return ""
        return when

    def _on_yes(self, session: CallSession, text: str, now: float) -> Action:
        if session.state == DialogueState.TIME_PROPOSED and session.proposed_time:
            offered = self._other_time_offered(session, text, now)
            if offered:
                logger.info("Call %s: new time offered instead of %s", session.call_id, session.proposed_time)
                return self._propose(session, offered, now)
            when = session.proposed_time
            session.confirm(when)
            line = (
                f"Perfect. Thank you very much. We'll note {when} for the patient "
                f"{_name(session)}. Have a wonderful day."
            )
            logger.info("Call %s confirmed for %s", session.call_id, when)
            action = Action(
                speak=line,
                end_call=True,
                notify=NoticeKind.CONFIRMED,
                notify_params=self.notice_params(session),
            )
            return self._say(session, action, now)
        if has_time_cue(text):
            return self._on_time(session, text, now)
        line = f"Great. What day and time would work for {_name(session)}?"
        return self._say(session, Action(speak=line), now)

    def _on_no(self, session: CallSession, text: str, now: float) -> Action:
        if is_counter_offer(text):
            return self._on_time(session, text, now)

        session.decline_count += 1
        session.proposed_time = ""
        session.state = DialogueState.LISTENING
        if session.decline_count >= MAX_DECLINES:
            logger.info("Call %s: %d declines, giving up", session.call_id, session.decline_count)
            return self._end(session, self._decline_close(session), NoticeKind.ENDED_UNCONFIRMED, now)

        windows = session.request.preferred_time_windows
        if session.decline_count < len(windows):
            line = f"No problem. Would {windows[session.decline_count]} work instead?"
        else:
            line = "No problem. Is there another day or time that might work?"
        return self._say(session, Action(speak=line), now)

    def _on_walkin(self, session: CallSession, text: str, now: float) -> Action:
        session.proposed_time = ""
        session.mark_walk_in()
        line = (
            f"Wonderful, we'll let {_name(session)} know walk-ins are welcome. "
            f"Is there anything {_name(session)} should bring?"
        )
        logger.info("Call %s: clinic accepts walk-ins", session.call_id)
        return self._say(session, Action(speak=line), now)

    def _on_hold(self, session: CallSession, text: str, now: float) -> Action:
        return self._handle_hold(session, now)

    def _on_other(self, session: CallSession, text: str, now: float) -> Action:
        return Action(needs_llm=True)

    # ── State handlers ──

    def _handle_hold(self, session: CallSession, now: float) -> Action:
        if session.on_hold_since is None:
            session.on_hold_since = now
            logger.info("Call %s placed on hold", session.call_id)
        session.state = DialogueState.ON_HOLD

        if now - session.on_hold_since > MAX_HOLD_SECONDS:
            logger.warning("Call %s on hold over %ds, hanging up", session.call_id, MAX_HOLD_SECONDS)
            session.on_hold_since = None
            action = self._end(session, HOLD_TIMEOUT_LINE, NoticeKind.HOLD_TIMEOUT, now)
            if session.request.callback_identity:
                action.retry_delay = DEFAULT_RETRY_SECONDS
                action.notify_params["minutes"] = DEFAULT_RETRY_SECONDS // 60
            return action

        action = Action(
            speak=HOLD_ACK_LINE,
            pause=HOLD_PAUSE_SECONDS,
            prompt=HOLD_PROMPT,
            listen_timeout=HOLD_LISTEN_TIMEOUT,
        )
        return self._say(session, action, now)

    def _handle_walk_in_note(self, session: CallSession, text: str, now: float) -> Action:
        session.bring_note = text or "No special items"
        session.state = DialogueState.ENDED
        line = f"Perfect. Thank you very much. We'll let {_name(session)} know. Have a wonderful day."
        action = Action(
            speak=line,
            end_call=True,
            notify=NoticeKind.WALK_IN,
            notify_params=self.notice_params(session),
        )
        return self._say(session, action, now)

    # ── Helpers ──

    def _end(self, session: CallSession, line: str, notice: NoticeKind, now: float) -> Action:
        session.state = DialogueState.ENDED
        has_callback = bool(session.request.callback_identity)
        action = Action(
            speak=line,
            end_call=True,
            notify=notice if has_callback else None,
            notify_params=self.notice_params(session),
        )
        return self._say(session, action, now)

    def _decline_close(self, session: CallSession) -> str:
        return f"I understand. I'll check with {_name(session)} and follow up. Thank you for your time."

    def _reask(self, session: CallSession) -> str:
        if session.state == DialogueState.TIME_PROPOSED and session.proposed_time:
            return f"Does {session.proposed_time} work for {_name(session)}?"
        return f"Do you have any availability {session.request.first_window}?"

    def notice_params(self, session: CallSession) -> dict:
        return {
            "patient": _name(session),
            "clinic": session.request.clinic_label,
            "when": session.confirmed_time or "",
            "bring": session.bring_note if session.bring_note != "No special items" else "",
        }

    def _say(self, session: CallSession, action: Action, now: float) -> Action:
        for line in (action.speak, action.prompt):
            if line:
                session.record("agent", line, now)
        return action
