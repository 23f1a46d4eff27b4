from clarity.states import CallStatus, DialogueState


class TestDialogueState:
    def test_terminal_states(self):
        assert DialogueState.CONFIRMED.is_terminal
        assert DialogueState.ENDED.is_terminal

    def test_non_terminal_states(self):
        for state in (
            DialogueState.GREETING,
            DialogueState.LISTENING,
            DialogueState.ON_HOLD,
            DialogueState.TIME_PROPOSED,
            DialogueState.WALK_IN,
        ):
            assert not state.is_terminal


def test_call_status_values():
    assert {s.value for s in CallStatus} == {"in_progress", "confirmed", "walk_in", "abandoned"}
