import json

from clarity.session import CallSession
from clarity.states import DialogueState

PERSONA = """You are a polite, concise patient concierge on a live phone call with a clinic receptionist, calling to book an appointment.
Goal: secure the earliest suitable slot that matches the patient's preferences.

RULES
- Do NOT diagnose or offer medical advice.
- Be friendly, clear and efficient. One or two short sentences, 25 words max. This is spoken aloud.
- Always be ready to confirm: patient name, reason, callback number, insurance if pressed.
- If the receptionist hasn't offered a time, ask for an available day and time.
- NEVER say the appointment is booked or confirmed. The call flow handles confirmation.
- If the clinic can't help, thank them and ask if another day or a walk-in would work."""

STATE_HINTS = {
    DialogueState.LISTENING: "No time has been offered yet. Steer toward a specific day and time.",
    DialogueState.TIME_PROPOSED: (
        "A time is on the table and awaiting the receptionist's confirmation. "
        "Restate it briefly and ask them to confirm."
    ),
}


def get_system_prompt(session: CallSession) -> str:
    req = session.request
    patient = f"""PATIENT
Name: {req.patient_name or 'John Doe'}
Reason: {req.reason_for_visit or 'Check-up'}
Preferred: {json.dumps(list(req.preferred_time_windows) or ['This week'])}
Callback: {req.callback_identity or 'N/A'}"""
    parts = [PERSONA, patient]
    if session.proposed_time:
        parts.append(f"PROPOSED TIME: {session.proposed_time}")
    hint = STATE_HINTS.get(session.state)
    if hint:
        parts.append(hint)
    return "\n\n".join(parts)


def build_messages(session: CallSession, last_turns: int = 3) -> list[dict]:
    """System prompt plus the last few transcript turns as chat messages."""
    messages = [{"role": "system", "content": get_system_prompt(session)}]
    for entry in session.transcript[-last_turns:]:
        role = "assistant" if entry.speaker == "agent" else "user"
        messages.append({"role": role, "content": entry.text})
    return messages
