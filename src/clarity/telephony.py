import asyncio
import logging
from typing import Optional

from twilio.rest import Client

from clarity.circuit_breaker import CircuitBreaker

logger = logging.getLogger(__name__)

STATUS_CALLBACK_EVENTS = ["initiated", "ringing", "answered", "completed"]


class TwilioGateway:
    """Outbound calls and SMS through the Twilio REST API.

    The Twilio SDK is blocking, so each request runs in a worker thread
    under a timeout. Failures are logged and come back as ``None`` so the
    dialogue can carry on; after 3 consecutive failures Twilio is skipped
    for 60s.
    """

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        caller_id: str,
        public_base_url: str,
        timeout: float = 10.0,
        client: Client | None = None,
    ):
        self.caller_id = caller_id
        self.public_base_url = public_base_url.rstrip("/")
        self.timeout = timeout
        self._client = client if client is not None else Client(account_sid, auth_token)
        self._circuit = CircuitBreaker(label="Twilio", failure_threshold=3, cooldown_seconds=60.0)

    async def _run(self, label: str, fn, **kwargs):
        if not self._circuit.should_try():
            logger.warning("Twilio circuit breaker open, skipping %s", label)
            return None
        try:
            result = await asyncio.wait_for(asyncio.to_thread(fn, **kwargs), timeout=self.timeout)
        except Exception as e:
            self._circuit.record_failure()
            logger.error("Twilio %s failed: %s", label, e)
            return None
        self._circuit.record_success()
        return result

    async def place_call(self, to: str, webhook_base: Optional[str] = None) -> Optional[str]:
        """Dial ``to`` and point its voice/status webhooks at ``webhook_base``.

        Returns the new call SID, or None if the call could not be placed.
        """
        base = (webhook_base or self.public_base_url).rstrip("/")
        call = await self._run(
            "place_call",
            self._client.calls.create,
            to=to,
            from_=self.caller_id,
            url=f"{base}/voice",
            method="POST",
            status_callback=f"{base}/status",
            status_callback_event=STATUS_CALLBACK_EVENTS,
            status_callback_method="POST",
        )
        if call is None:
            return None
        logger.info("Placed call %s to %s", call.sid, to)
        return call.sid

    async def send_message(self, to: str, body: str) -> Optional[str]:
        message = await self._run(
            "send_message",
            self._client.messages.create,
            to=to,
            from_=self.caller_id,
            body=body,
        )
        if message is None:
            return None
        logger.info("Sent SMS %s to %s", message.sid, to)
        return message.sid
