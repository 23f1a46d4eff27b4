import pytest
from clarity.session import CallRequest, CallSession
from clarity.states import CallStatus, DialogueState


class TestCallRequest:
    def test_first_window_defaults_to_this_week(self):
        req = CallRequest(patient_name="Sam")
        assert req.first_window == "this week"

    def test_first_window_uses_first_preference(self, request_details):
        assert request_details.first_window == "Tuesday afternoon"

    def test_clinic_label_falls_back(self):
        assert CallRequest(patient_name="Sam").clinic_label == "the clinic"

    def test_request_is_immutable(self, request_details):
        with pytest.raises(AttributeError):
            request_details.patient_name = "Other"


class TestCallSession:
    def test_defaults(self, session):
        assert session.state == DialogueState.GREETING
        assert session.status == CallStatus.IN_PROGRESS
        assert session.confirmed_time is None
        assert session.on_hold_since is None
        assert session.transcript == []
        assert session.last_activity == session.started_at

    def test_record_tags_current_state(self, session):
        session.state = DialogueState.LISTENING
        session.record("receptionist", "Hello?", session.started_at + 1)
        entry = session.transcript[0]
        assert entry.speaker == "receptionist"
        assert entry.state == "listening"

    def test_confirm_sets_time_and_status_together(self, session):
        session.confirm("Tuesday, October 20, 2:00 PM")
        assert session.status == CallStatus.CONFIRMED
        assert session.state == DialogueState.CONFIRMED
        assert session.confirmed_time == "Tuesday, October 20, 2:00 PM"

    def test_confirm_twice_rejected(self, session):
        session.confirm("Tuesday")
        with pytest.raises(ValueError):
            session.confirm("Wednesday")
        assert session.confirmed_time == "Tuesday"

    def test_walk_in_cannot_be_confirmed(self, session):
        session.mark_walk_in()
        with pytest.raises(ValueError):
            session.confirm("Tuesday")
        assert session.confirmed_time is None
        assert session.status == CallStatus.WALK_IN
