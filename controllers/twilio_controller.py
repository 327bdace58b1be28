# controllers/twilio_controller.py
from typing import Annotated, Dict, Optional

from fastapi import APIRouter, Depends, Form, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from twilio.request_validator import RequestValidator
from twilio.twiml.messaging_response import MessagingResponse

from helpers.dependencies import CalendarFactory, get_calendar_factory, get_sms_sender
from helpers.log_helper import get_logger, mask_phone
from helpers.settings import Settings, get_settings
from helpers.sms_helper import SmsSender
from helpers.sms_inbound import handle_inbound_sms, update_message_status
from helpers.tenant_resolver import resolve_phone_row

router = APIRouter()
logger = get_logger("twilio_sms")


def _validate_twilio_signature(request: Request, form_data: Dict[str, str], settings: Settings) -> bool:
    if not settings.twilio_validate_signature:
        return True
    if not settings.twilio_auth_token:
        return False
    signature = request.headers.get("X-Twilio-Signature", "")
    validator = RequestValidator(settings.twilio_auth_token)
    # Twilio signs the public URL, not the one uvicorn sees behind a proxy
    path_q = request.url.path
    if request.url.query:
        path_q += f"?{request.url.query}"
    url = f"{settings.api_public_base.rstrip('/')}{path_q}"
    return validator.validate(url, form_data, signature)


def _empty_twiml() -> Response:
    return Response(content=str(MessagingResponse()), media_type="text/xml")


@router.post("/webhooks/twilio/sms")
async def twilio_sms_webhook(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
    sms_sender: Annotated[SmsSender, Depends(get_sms_sender)],
    calendar_factory: Annotated[CalendarFactory, Depends(get_calendar_factory)],
    From: str = Form(alias="From"),
    To: str = Form(alias="To"),
    Body: str = Form(default="", alias="Body"),
    MessageSid: Optional[str] = Form(default=None, alias="MessageSid"),
):
    form_dict = {k: str(v) for k, v in (await request.form()).items()}
    if not _validate_twilio_signature(request, form_dict, settings):
        logger.warning("[inbound] invalid Twilio signature to=%s", mask_phone(To))
        raise HTTPException(status_code=403, detail="Invalid signature")

    line = await resolve_phone_row(To, settings.default_sms_region)
    if not line:
        logger.warning("[inbound] unknown destination number %s", mask_phone(To))
        return JSONResponse({"error": "Unknown number"}, status_code=404)

    await handle_inbound_sms(
        line,
        from_number=From,
        body=Body or "",
        message_sid=MessageSid,
        sms_sender=sms_sender,
        calendar_factory=calendar_factory,
        region=settings.default_sms_region,
    )
    return _empty_twiml()


@router.post("/webhooks/twilio/sms-status")
async def twilio_status_webhook(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
    MessageSid: str = Form(...),
    MessageStatus: str = Form(...),
):
    form_dict = {k: str(v) for k, v in (await request.form()).items()}
    if not _validate_twilio_signature(request, form_dict, settings):
        raise HTTPException(status_code=403, detail="Invalid signature")

    updated = await update_message_status(MessageSid, MessageStatus)
    if not updated:
        logger.info("[status] no message for sid=%s", MessageSid)
    return {"ok": True}
