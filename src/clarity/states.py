from enum import Enum

TERMINAL_STATES = {"confirmed", "ended"}


class DialogueState(Enum):
    GREETING = "greeting"
    LISTENING = "listening"
    ON_HOLD = "on_hold"
    TIME_PROPOSED = "time_proposed"
    WALK_IN = "walk_in"
    CONFIRMED = "confirmed"
    ENDED = "ended"

    @property
    def is_terminal(self) -> bool:
        return self.value in TERMINAL_STATES


class CallStatus(Enum):
    IN_PROGRESS = "in_progress"
    CONFIRMED = "confirmed"
    WALK_IN = "walk_in"
    ABANDONED = "abandoned"
