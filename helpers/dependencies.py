import hmac
from typing import Annotated, Callable, Optional

from fastapi import Depends, HTTPException, Request, status

from helpers.calcom_client import CalcomClient, calendar_for_practice
from helpers.log_helper import get_logger
from helpers.settings import Settings, get_settings
from helpers.sms_helper import SmsSender

log = get_logger("vapi_webhook")

VAPI_SECRET_HEADER = "x-vapi-secret"

CalendarFactory = Callable[[Optional[object]], CalcomClient]


def get_sms_sender(settings: Annotated[Settings, Depends(get_settings)]) -> SmsSender:
    return SmsSender.from_settings(settings)


def get_calendar_factory(settings: Annotated[Settings, Depends(get_settings)]) -> CalendarFactory:
    def factory(practice) -> CalcomClient:
        return calendar_for_practice(practice, settings)

    return factory


async def verify_vapi_secret(request: Request, settings: Annotated[Settings, Depends(get_settings)]) -> None:
    expected = settings.vapi_webhook_secret
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
    )
    if not expected:
        log.error("VAPI_WEBHOOK_SECRET is not set; rejecting webhook")
        raise unauthorized
    provided = request.headers.get(VAPI_SECRET_HEADER) or ""
    if not hmac.compare_digest(provided.encode(), expected.encode()):
        log.warning("Vapi webhook secret mismatch from %s", request.client.host if request.client else "-")
        raise unauthorized
