# helpers/settings.py
import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return str(v).strip().lower() in ("1", "true", "y", "yes", "on")


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except Exception:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except Exception:
        return default


class Settings(BaseModel):
    """
    Everything the webhook layer needs from the environment, resolved once.
    Routes receive it through `get_settings` so tests can swap in their own.
    """

    database_url: Optional[str] = None

    # Vapi
    vapi_webhook_secret: Optional[str] = None
    api_public_base: str = "http://localhost:8000"
    assistant_model_provider: str = "openai"
    assistant_model: str = "gpt-4-turbo"

    # Twilio
    twilio_account_sid: Optional[str] = None
    twilio_auth_token: Optional[str] = None
    twilio_validate_signature: bool = False
    default_sms_region: str = "US"
    send_booking_confirmation_sms: bool = True

    # Cal.com fallbacks when a practice has no credentials of its own
    cal_api_key: Optional[str] = None
    cal_event_type_id: Optional[str] = None
    calcom_api_base: str = "https://api.cal.com/v1"

    collaborator_timeout_seconds: float = 10.0
    log_level: str = "INFO"

    @property
    def vapi_server_url(self) -> str:
        return f"{self.api_public_base.rstrip('/')}/api/webhooks/vapi"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=os.getenv("DATABASE_URL"),
            vapi_webhook_secret=os.getenv("VAPI_WEBHOOK_SECRET"),
            api_public_base=os.getenv("API_PUBLIC_BASE", "http://localhost:8000"),
            assistant_model_provider=os.getenv("ASSISTANT_MODEL_PROVIDER", "openai"),
            assistant_model=os.getenv("ASSISTANT_MODEL", "gpt-4-turbo"),
            twilio_account_sid=os.getenv("TWILIO_ACCOUNT_SID"),
            twilio_auth_token=os.getenv("TWILIO_AUTH_TOKEN"),
            twilio_validate_signature=_env_bool("TWILIO_VALIDATE_SIGNATURE", False),
            default_sms_region=(os.getenv("DEFAULT_SMS_REGION") or "US").upper(),
            send_booking_confirmation_sms=_env_bool("SEND_BOOKING_CONFIRMATION_SMS", True),
            cal_api_key=os.getenv("CAL_API_KEY"),
            cal_event_type_id=os.getenv("CAL_EVENT_TYPE_ID"),
            calcom_api_base=os.getenv("CALCOM_API_BASE", "https://api.cal.com/v1"),
            collaborator_timeout_seconds=_env_float("COLLABORATOR_TIMEOUT_SECONDS", 10.0),
            log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
