# helpers/booking_helper.py
import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from helpers.calcom_client import CalcomClient, CalendarError
from helpers.log_helper import get_logger, mask_phone
from helpers.Normalizers import normalize_phone, normalize_timezone
from helpers.settings import Settings
from helpers.sms_helper import SmsSender, send_practice_sms
from models.appointment import Booking, BookingStatus
from models.patient import Patient, PatientType
from models.practice import Practice

log = get_logger("booking")

DEFAULT_APPOINTMENT_MINUTES = 30


def _iso_to_dt(s: Optional[str]) -> Optional[datetime]:
    if not s:
        return None
    try:
        dt = datetime.fromisoformat(str(s).replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _format_dt_local(dt: datetime, tz: Optional[str]) -> str:
    try:
        if tz:
            return dt.astimezone(ZoneInfo(tz)).strftime("%b %d at %I:%M %p")
    except (ZoneInfoNotFoundError, ValueError):
        pass
    return dt.strftime("%b %d at %I:%M %p")


def _split_name(name: str):
    parts = (name or "").strip().split()
    if not parts:
        return "Unknown", "Unknown"
    return parts[0], " ".join(parts[1:]) or "Unknown"


def _require(args: Dict[str, Any], *names: str) -> None:
    missing = [n for n in names if not str(args.get(n) or "").strip()]
    if missing:
        raise ValueError(f"Missing required argument(s): {', '.join(missing)}")


async def _bounded(coro, timeout: float, what: str):
    try:
        return await asyncio.wait_for(coro, timeout=timeout)
    except asyncio.TimeoutError as e:
        raise CalendarError(f"{what} timed out after {timeout}s") from e


async def check_availability(calendar: CalcomClient, args: Dict[str, Any], timeout: float = 10.0) -> Dict[str, Any]:
    _require(args, "startTime", "endTime")
    slots = await _bounded(
        calendar.get_slots(str(args["startTime"]), str(args["endTime"])), timeout, "checkAvailability"
    )
    return {"slots": slots}


async def upsert_patient(
    practice: Optional[Practice],
    *,
    name: str,
    email: str,
    phone: Optional[str],
) -> Optional[Patient]:
    """Find a patient by email (scoped to the practice when known), creating one if needed."""
    email_norm = (email or "").strip().lower()
    qs = Patient.filter(email=email_norm)
    if practice is not None:
        qs = qs.filter(practice_id=practice.id)
    patient = await qs.order_by("id").first()

    if patient:
        if phone and not patient.phone:
            patient.phone = phone
            await patient.save()
        return patient

    if practice is None:
        return None

    first_name, last_name = _split_name(name)
    return await Patient.create(
        practice=practice,
        first_name=first_name,
        last_name=last_name,
        email=email_norm,
        phone=phone,
        patient_type=PatientType.NEW,
        source="ai_booking",
    )


async def book_appointment(
    *,
    practice: Optional[Practice],
    args: Dict[str, Any],
    external_call_id: Optional[str],
    caller_number: Optional[str],
    calendar: CalcomClient,
    sms_sender: Optional[SmsSender],
    settings: Settings,
) -> Dict[str, Any]:
    """
    Book with Cal.com, then mirror the booking locally keyed by the Vapi call id.

    Cal.com is the source of truth: once it accepts the booking, a failure to write the
    local rows (or to text the patient) is logged but the tool still reports success.
    """
    _require(args, "name", "email", "startTime")
    tz = normalize_timezone(args.get("timeZone"))
    phone = normalize_phone(args.get("phone") or caller_number, settings.default_sms_region)

    booking_data = await _bounded(
        calendar.create_booking(
            name=str(args["name"]),
            email=str(args["email"]),
            phone=phone,
            start_time=str(args["startTime"]),
            time_zone=tz,
        ),
        settings.collaborator_timeout_seconds,
        "bookAppointment",
    )
    calendar_booking_id = str(booking_data.get("id"))
    log.info("[book] cal.com booking=%s call=%s practice=%s", calendar_booking_id, external_call_id, getattr(practice, "id", None))

    booking = None
    patient = None
    try:
        patient = await upsert_patient(practice, name=str(args["name"]), email=str(args["email"]), phone=phone)
        start_at = _iso_to_dt(booking_data.get("startTime")) or _iso_to_dt(args["startTime"])
        end_at = _iso_to_dt(booking_data.get("endTime")) or (start_at + timedelta(minutes=DEFAULT_APPOINTMENT_MINUTES))
        booking = await Booking.create(
            practice_id=practice.id if practice else (patient.practice_id if patient else None),
            patient=patient,
            external_call_id=external_call_id,
            start_time=start_at,
            end_time=end_at,
            timezone=tz,
            status=BookingStatus.CONFIRMED,
            appointment_type="consultation",
            calendar_event_id=calendar_booking_id,
        )
    except Exception:
        log.exception("[book] failed to persist booking locally cal.com booking=%s", calendar_booking_id)

    if booking and practice and phone and sms_sender and settings.send_booking_confirmation_sms:
        timeout = settings.collaborator_timeout_seconds
        try:
            await asyncio.wait_for(
                send_booking_confirmation(sms_sender, practice=practice, patient=patient, booking=booking, to_number=phone),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            log.warning("[book] confirmation SMS timed out after %ss booking=%s", timeout, booking.id)

    return {"success": True, "bookingId": calendar_booking_id}


async def send_booking_confirmation(
    sms_sender: SmsSender,
    *,
    practice: Practice,
    patient: Optional[Patient],
    booking: Booking,
    to_number: str,
) -> None:
    try:
        line = await practice.primary_number()
    except Exception:
        log.exception("[book] could not load sending number practice=%s", practice.id)
        return
    if not line:
        log.info("[book] practice=%s has no active number; skipping confirmation to %s", practice.id, mask_phone(to_number))
        return

    first = patient.first_name if patient else "there"
    when = _format_dt_local(booking.start_time, booking.timezone)
    body = (
        f"Hi {first}! Your appointment at {practice.name} is confirmed for {when}. "
        "Reply CONFIRM to confirm or CANCEL to cancel."
    )
    await send_practice_sms(
        sms_sender,
        practice=practice,
        from_number=line.phone_number,
        to_number=to_number,
        body=body,
        patient=patient,
        related_type="booking",
        related_id=str(booking.id),
    )
