"""Startup configuration.

Checks that all required environment variables are set before the server
accepts webhooks, so a missing Twilio credential fails at boot rather than
on the first call.
"""

import logging
import os
import sys
from dataclasses import dataclass

logger = logging.getLogger(__name__)

REQUIRED_VARS = [
    "TWILIO_ACCOUNT_SID",
    "TWILIO_AUTH_TOKEN",
    "TWILIO_CALLER_ID",
    "PUBLIC_BASE_URL",
]

OPTIONAL_VARS = [
    "OPENAI_API_KEY",
    "GOOGLE_MAPS_API_KEY",
]


def validate_config() -> None:
    """Exit with a clear error if a required variable is missing or empty.

    Logs warnings for missing optional variables.
    """
    missing = [var for var in REQUIRED_VARS if not os.getenv(var)]

    if missing:
        print(
            f"\nFATAL: Missing required environment variables:\n"
            f"  {', '.join(missing)}\n"
            f"\nSet them in .env (local) or in the host's secret store (production).\n",
            file=sys.stderr,
        )
        sys.exit(1)

    for var in OPTIONAL_VARS:
        if not os.getenv(var):
            logger.warning("Optional env var %s is not set", var)


@dataclass(frozen=True)
class Settings:
    twilio_account_sid: str
    twilio_auth_token: str
    twilio_caller_id: str
    public_base_url: str
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    google_maps_api_key: str = ""
    brand_name: str = "Clarity Health Concierge"
    brand_slogan: str = "AI appointment assistant"
    tts_voice: str = "Polly.Joanna-Neural"
    session_ttl_seconds: float = 1800.0
    log_level: str = "INFO"
    port: int = 8000

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            twilio_account_sid=os.getenv("TWILIO_ACCOUNT_SID", ""),
            twilio_auth_token=os.getenv("TWILIO_AUTH_TOKEN", ""),
            twilio_caller_id=os.getenv("TWILIO_CALLER_ID", ""),
            public_base_url=os.getenv("PUBLIC_BASE_URL", "").rstrip("/"),
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),
            openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
            google_maps_api_key=os.getenv("GOOGLE_MAPS_API_KEY", ""),
            brand_name=os.getenv("BRAND_NAME", "Clarity Health Concierge"),
            brand_slogan=os.getenv("BRAND_SLOGAN", "AI appointment assistant"),
            tts_voice=os.getenv("TTS_VOICE", "Polly.Joanna-Neural"),
            session_ttl_seconds=float(os.getenv("SESSION_TTL_SECONDS", "1800")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            port=int(os.getenv("PORT", "8000")),
        )
