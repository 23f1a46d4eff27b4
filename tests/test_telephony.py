from unittest.mock import MagicMock

import pytest
from clarity.telephony import STATUS_CALLBACK_EVENTS, TwilioGateway

BASE_URL = "https://concierge.example.com"


@pytest.fixture
def twilio_client():
    client = MagicMock()
    client.calls.create.return_value = MagicMock(sid="CA_123")
    client.messages.create.return_value = MagicMock(sid="SM_123")
    return client


@pytest.fixture
def gateway(twilio_client):
    return TwilioGateway("AC_test", "token", "+15125550000", BASE_URL + "/", client=twilio_client)


class TestPlaceCall:
    @pytest.mark.asyncio
    async def test_registers_webhooks(self, gateway, twilio_client):
        sid = await gateway.place_call("+15125550100")
        assert sid == "CA_123"
        kwargs = twilio_client.calls.create.call_args.kwargs
        assert kwargs["to"] == "+15125550100"
        assert kwargs["from_"] == "+15125550000"
        assert kwargs["url"] == f"{BASE_URL}/voice"
        assert kwargs["status_callback"] == f"{BASE_URL}/status"
        assert kwargs["status_callback_event"] == STATUS_CALLBACK_EVENTS

    @pytest.mark.asyncio
    async def test_custom_webhook_base(self, gateway, twilio_client):
        await gateway.place_call("+15125550100", webhook_base="https://other.example.com/")
        assert twilio_client.calls.create.call_args.kwargs["url"] == "https://other.example.com/voice"

    @pytest.mark.asyncio
    async def test_failure_returns_none(self, gateway, twilio_client):
        twilio_client.calls.create.side_effect = RuntimeError("invalid number")
        assert await gateway.place_call("+15125550100") is None

    @pytest.mark.asyncio
    async def test_circuit_opens_after_three_failures(self, gateway, twilio_client):
        twilio_client.calls.create.side_effect = RuntimeError("down")
        for _ in range(3):
            await gateway.place_call("+15125550100")
        twilio_client.calls.create.reset_mock()
        assert await gateway.place_call("+15125550100") is None
        twilio_client.calls.create.assert_not_called()


class TestSendMessage:
    @pytest.mark.asyncio
    async def test_sends_from_caller_id(self, gateway, twilio_client):
        sid = await gateway.send_message("+15125551234", "hello")
        assert sid == "SM_123"
        twilio_client.messages.create.assert_called_once_with(
            to="+15125551234", from_="+15125550000", body="hello"
        )

    @pytest.mark.asyncio
    async def test_failure_returns_none(self, gateway, twilio_client):
        twilio_client.messages.create.side_effect = RuntimeError("blocked")
        assert await gateway.send_message("+15125551234", "hello") is None
