import asyncio
import logging

import httpx

from clarity.circuit_breaker import CircuitBreaker
from clarity.prompts import build_messages
from clarity.session import CallSession

logger = logging.getLogger(__name__)

OPENAI_URL = "https://api.openai.com/v1/chat/completions"


class FallbackResponder:
    """Generates the next spoken line when no intent pattern matched.

    Returns "" on any failure (timeout, HTTP error, open circuit); the
    dialogue substitutes a fixed clarifying question.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        timeout: float = 3.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._circuit = CircuitBreaker(label="OpenAI fallback", failure_threshold=3, cooldown_seconds=60.0)
        self._client = client if client is not None else httpx.AsyncClient(timeout=timeout)

    async def close(self):
        await self._client.aclose()

    async def __call__(self, session: CallSession) -> str:
        return await self.reply(session)

    async def reply(self, session: CallSession) -> str:
        if not self.api_key:
            logger.warning("OPENAI_API_KEY not set, using fixed clarifying question")
            return ""
        if not self._circuit.should_try():
            logger.warning("Fallback circuit breaker open, using fixed clarifying question")
            return ""
        try:
            resp = await asyncio.wait_for(
                self._client.post(
                    OPENAI_URL,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json={
                        "model": self.model,
                        "temperature": 0.3,
                        "max_tokens": 80,
                        "messages": build_messages(session),
                    },
                ),
                timeout=self.timeout,
            )
            resp.raise_for_status()
            text = resp.json()["choices"][0]["message"]["content"].strip()
        except Exception as e:
            self._circuit.record_failure()
            logger.warning(f"Fallback reply failed: {e!r}")
            return ""
        self._circuit.record_success()
        return text
