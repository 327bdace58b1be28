# helpers/sms_inbound.py
from datetime import datetime, timezone
from typing import Callable, Optional

from helpers.calcom_client import CalcomClient, CalendarError
from helpers.log_helper import get_logger, mask_phone
from helpers.Normalizers import normalize_phone
from helpers.sms_helper import SmsSender, send_practice_sms
from models.appointment import Booking, BookingStatus
from models.lead import Lead, LeadPriority, LeadStatus
from models.message import Message, MessageDirection
from models.patient import Patient
from models.phone_number import PhoneNumber

log = get_logger("twilio_sms")

CONFIRM_REPLY = "Great! Your appointment has been confirmed. See you then!"
CANCEL_REPLY = (
    "We have cancelled your appointment as requested. "
    "Someone from our office will call you shortly to reschedule. Have a nice day!"
)


def detect_keyword(body: Optional[str]) -> Optional[str]:
    """CANCEL wins when a message contains both keywords."""
    text = (body or "").strip().upper()
    if "CANCEL" in text:
        return "CANCEL"
    if "CONFIRM" in text:
        return "CONFIRM"
    return None


async def log_inbound_message(line: PhoneNumber, from_number: str, body: str, message_sid: Optional[str]) -> Message:
    return await Message.create(
        practice_id=line.practice_id,
        direction=MessageDirection.INBOUND,
        from_address=from_number,
        to_address=line.phone_number,
        body=body or "",
        provider="twilio",
        provider_message_id=message_sid,
        status="received",
        received_at=datetime.now(timezone.utc),
    )


async def _latest_confirmed_booking(line: PhoneNumber, from_number: str):
    patient = await Patient.filter(phone=from_number, practice_id=line.practice_id).order_by("id").first()
    if not patient:
        return None, None
    booking = (
        await Booking.filter(patient_id=patient.id, status=BookingStatus.CONFIRMED)
        .order_by("-created_at")
        .first()
    )
    return patient, booking


async def handle_confirm(line: PhoneNumber, from_number: str, sms_sender: SmsSender) -> Optional[Booking]:
    patient, booking = await _latest_confirmed_booking(line, from_number)
    if not booking:
        log.info("[inbound] CONFIRM from %s matched no booking", mask_phone(from_number))
        return None
    await send_practice_sms(
        sms_sender,
        practice=line.practice,
        from_number=line.phone_number,
        to_number=from_number,
        body=CONFIRM_REPLY,
        patient=patient,
        related_type="booking",
        related_id=str(booking.id),
    )
    return booking


async def handle_cancel(
    line: PhoneNumber,
    from_number: str,
    sms_sender: SmsSender,
    calendar_factory: Optional[Callable[..., CalcomClient]] = None,
) -> Optional[Booking]:
    patient, booking = await _latest_confirmed_booking(line, from_number)
    if not booking:
        log.info("[inbound] CANCEL from %s matched no booking", mask_phone(from_number))
        return None

    booking.status = BookingStatus.CANCELLED
    await booking.save(update_fields=["status", "updated_at"])
    log.info("[inbound] booking=%s cancelled by SMS from %s", booking.id, mask_phone(from_number))

    if booking.calendar_event_id and calendar_factory is not None:
        try:
            calendar = calendar_factory(line.practice)
            await calendar.cancel_booking(booking.calendar_event_id, "Cancelled by patient via SMS")
        except CalendarError as e:
            log.warning("[inbound] Cal.com cancel failed booking=%s: %s", booking.calendar_event_id, e)

    await send_practice_sms(
        sms_sender,
        practice=line.practice,
        from_number=line.phone_number,
        to_number=from_number,
        body=CANCEL_REPLY,
        patient=patient,
        related_type="booking",
        related_id=str(booking.id),
    )

    try:
        await Lead.create(
            practice_id=line.practice_id,
            patient=patient,
            status=LeadStatus.NEW,
            priority=LeadPriority.HIGH,
            source="sms_cancellation",
            notes=f"SMS Cancellation follow-up needed for {from_number}",
        )
    except Exception:
        log.exception("[inbound] could not create follow-up lead for booking=%s", booking.id)
    return booking


async def handle_inbound_sms(
    line: PhoneNumber,
    *,
    from_number: str,
    body: str,
    message_sid: Optional[str],
    sms_sender: SmsSender,
    calendar_factory: Optional[Callable[..., CalcomClient]] = None,
    region: str = "US",
) -> Optional[str]:
    """
    Log the message, then act on a CONFIRM / CANCEL keyword. Returns the keyword handled.

    `line` is the practice's PhoneNumber row the message was sent to, practice prefetched.
    """
    sender = normalize_phone(from_number, region) or from_number
    log.info("[inbound] practice=%s from=%s to=%s", line.practice_id, mask_phone(sender), mask_phone(line.phone_number))
    try:
        await log_inbound_message(line, sender, body, message_sid)
    except Exception:
        log.exception("[inbound] could not store inbound message sid=%s", message_sid)

    keyword = detect_keyword(body)
    try:
        if keyword == "CANCEL":
            await handle_cancel(line, sender, sms_sender, calendar_factory)
        elif keyword == "CONFIRM":
            await handle_confirm(line, sender, sms_sender)
    except Exception:
        log.exception("[inbound] %s handling failed from=%s", keyword, mask_phone(sender))
    return keyword


async def update_message_status(message_sid: str, status: str) -> bool:
    msg = await Message.filter(provider_message_id=message_sid).order_by("-id").first()
    if not msg:
        return False
    msg.status = (status or "").strip().lower()[:24] or msg.status
    if msg.status in ("failed", "undelivered"):
        msg.error_message = msg.error_message or msg.status
    await msg.save(update_fields=["status", "error_message"])
    return True
