from dataclasses import dataclass, field
from typing import Optional

from clarity.states import CallStatus, DialogueState


@dataclass(frozen=True)
class CallRequest:
    patient_name: str
    reason_for_visit: str = ""
    preferred_time_windows: tuple[str, ...] = ()
    clinic_display_name: str = ""
    clinic_phone_number: str = ""
    callback_identity: str = ""

    @property
    def first_window(self) -> str:
        return self.preferred_time_windows[0] if self.preferred_time_windows else "this week"

    @property
    def clinic_label(self) -> str:
        return self.clinic_display_name or "the clinic"


@dataclass
class TranscriptEntry:
    speaker: str  # "agent" | "receptionist"
    text: str
    timestamp: float
    state: str = ""


@dataclass
class CallSession:
    call_id: str
    request: CallRequest
    started_at: float

    state: DialogueState = DialogueState.GREETING
    status: CallStatus = CallStatus.IN_PROGRESS

    # Time negotiation
    proposed_time: str = ""
    confirmed_time: Optional[str] = None
    decline_count: int = 0

    # Hold tracking
    on_hold_since: Optional[float] = None

    # Walk-in follow-up
    bring_note: str = ""

    # Metadata
    transcript: list[TranscriptEntry] = field(default_factory=list)
    turn_count: int = 0
    last_activity: float = 0.0

    def __post_init__(self):
        if not self.last_activity:
            self.last_activity = self.started_at

    def record(self, speaker: str, text: str, timestamp: float):
        self.transcript.append(
            TranscriptEntry(speaker=speaker, text=text, timestamp=timestamp, state=self.state.value)
        )

    def confirm(self, when: str):
        """Lock in the agreed time. Only legal from an in-progress call."""
        if self.status is not CallStatus.IN_PROGRESS:
            raise ValueError(f"cannot confirm a call in status {self.status.value}")
        self.confirmed_time = when
        self.status = CallStatus.CONFIRMED
        self.state = DialogueState.CONFIRMED

    def mark_walk_in(self):
        if self.status is not CallStatus.IN_PROGRESS:
            raise ValueError(f"cannot mark walk-in for a call in status {self.status.value}")
        self.status = CallStatus.WALK_IN
        self.state = DialogueState.WALK_IN
