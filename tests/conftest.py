from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from clarity.controller import CallController
from clarity.session import CallRequest, CallSession
from clarity.state_machine import DialogueMachine
from clarity.store import SessionStore

# Sunday 2026-10-18 09:00 local time
T0 = datetime(2026, 10, 18, 9, 0).timestamp()


@pytest.fixture
def request_details():
    return CallRequest(
        patient_name="Jordan Lee",
        reason_for_visit="skin rash",
        preferred_time_windows=("Tuesday afternoon", "Wednesday morning"),
        clinic_display_name="Maple Dermatology",
        clinic_phone_number="+15125550100",
        callback_identity="+15125551234",
    )


@pytest.fixture
def session(request_details):
    return CallSession(call_id="CA_test", request=request_details, started_at=T0)


@pytest.fixture
def machine():
    return DialogueMachine()


class FakeClock:
    def __init__(self, now: float = T0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def gateway():
    gw = MagicMock()
    gw.public_base_url = "https://concierge.example.com"
    gw.place_call = AsyncMock(return_value="CA_new")
    gw.send_message = AsyncMock(return_value="SM_1")
    return gw


@pytest.fixture
def controller(gateway, clock):
    return CallController(
        gateway,
        store=SessionStore(clock=clock),
        fallback=AsyncMock(return_value=""),
        clock=clock,
    )
