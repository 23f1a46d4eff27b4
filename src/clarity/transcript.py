from clarity.session import TranscriptEntry


def to_timestamped_dump(
    log: list[TranscriptEntry],
    start_time: float,
    call_id: str,
    callback: str,
    final_state: str,
) -> dict:
    """Build a transcript dump dict for structured logging.

    Timestamps become seconds relative to call start. If start_time is 0,
    the first entry's timestamp is used as base.
    """
    base_time = start_time
    if base_time <= 0 and log:
        base_time = log[0].timestamp

    entries = [
        {
            "t": round(e.timestamp - base_time, 1),
            "role": e.speaker,
            "state": e.state,
            "content": e.text,
        }
        for e in log
    ]
    return {
        "call_id": call_id,
        "callback": callback,
        "final_state": final_state,
        "entries": entries,
    }
