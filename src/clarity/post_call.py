import json
import logging
import time
from typing import Optional

from clarity.session import CallSession
from clarity.states import CallStatus, DialogueState
from clarity.transcript import to_timestamped_dump

logger = logging.getLogger(__name__)

DUMP_PREFIX = "TRANSCRIPT_DUMP"


def derive_outcome(session: CallSession) -> str:
    """Map the final session to a one-word outcome for logs."""
    if session.status is CallStatus.CONFIRMED:
        return "confirmed"
    if session.status is CallStatus.WALK_IN:
        return "walk_in"
    if session.status is CallStatus.ABANDONED:
        return "abandoned"
    if session.state == DialogueState.ENDED:
        return "unconfirmed"
    return "hangup"


def build_call_record(session: CallSession, end_time: float) -> dict:
    req = session.request
    return {
        "call_id": session.call_id,
        "patient": req.patient_name,
        "clinic": req.clinic_display_name,
        "clinic_phone": req.clinic_phone_number,
        "callback": req.callback_identity,
        "outcome": derive_outcome(session),
        "final_state": session.state.value,
        "confirmed_time": session.confirmed_time,
        "bring": session.bring_note,
        "declines": session.decline_count,
        "turns": session.turn_count,
        "duration_seconds": round(end_time - session.started_at, 1),
    }


def chunk_transcript_dump(dump: dict, max_bytes: int = 3500) -> list[str]:
    """Split a dump into ``TRANSCRIPT_DUMP|n/m|{json}`` log lines.

    The first line carries the header fields; later lines carry entries only.
    An entry larger than ``max_bytes`` gets a line of its own.
    """
    header = {k: v for k, v in dump.items() if k != "entries"}
    entries = dump.get("entries", [])

    groups: list[list[dict]] = [[]]
    size = len(json.dumps({**header, "entries": []}))
    for entry in entries:
        entry_size = len(json.dumps(entry)) + 2
        if groups[-1] and size + entry_size > max_bytes:
            groups.append([])
            size = len(json.dumps({"entries": []}))
        groups[-1].append(entry)
        size += entry_size

    total = len(groups)
    lines = []
    for i, group in enumerate(groups):
        body = {**header, "entries": group} if i == 0 else {"entries": group}
        lines.append(f"{DUMP_PREFIX}|{i + 1}/{total}|{json.dumps(body)}")
    return lines


def handle_call_ended(session: CallSession, end_time: Optional[float] = None) -> dict:
    """Log the call summary and transcript dump once a call is over."""
    end_time = end_time if end_time is not None else time.time()
    record = build_call_record(session, end_time)
    logger.info(f"Call summary: {json.dumps(record)}")

    dump = to_timestamped_dump(
        session.transcript,
        start_time=session.started_at,
        call_id=session.call_id,
        callback=session.request.callback_identity,
        final_state=session.state.value,
    )
    dump["duration_s"] = record["duration_seconds"]
    for line in chunk_transcript_dump(dump):
        logger.info(line)

    logger.info(f"Post-call complete for {session.call_id}: outcome={record['outcome']}")
    return record
