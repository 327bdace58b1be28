# helpers/call_reconciler.py
"""
End-of-call reconciliation.

Vapi posts an `end-of-call-report` once a call finishes, and retries it freely. Each delivery
upserts the Call row by the Vapi call id, attaches any bookings made during the call, and
decides whether the call should become a follow-up lead:

    booking exists for the call       -> nothing to follow up
    duration <= LEAD_MIN_DURATION_S   -> hang-up / wrong number, ignored
    otherwise                         -> one Lead (source=phone_call, status=new)

The Call upsert is the only critical write and its failure propagates so the platform
retries. Everything after it is best effort.
"""
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from pydantic import BaseModel
from tortoise.exceptions import IntegrityError

from helpers.log_helper import get_logger, mask_phone
from helpers.Normalizers import normalize_phone
from helpers.tenant_resolver import resolve_tenant_for_call
from models.appointment import Booking
from models.call_log import Call, normalize_direction
from models.lead import Lead, LeadPriority, LeadStatus
from models.patient import Patient
from models.practice import Practice

log = get_logger("call_reconciler")

LEAD_MIN_DURATION_S = 10
NO_SUMMARY_NOTES = "No summary available."


class EndOfCallReport(BaseModel):
    external_call_id: Optional[str] = None
    assistant_id: Optional[str] = None
    status: Optional[str] = None
    direction: Optional[str] = None
    caller_number: Optional[str] = None
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    duration_seconds: int = 0
    cost: Optional[Decimal] = None
    ended_reason: Optional[str] = None
    summary: Optional[str] = None
    transcript: Optional[str] = None
    recording_url: Optional[str] = None


@dataclass
class ReconcileOutcome:
    call: Call
    created: bool
    practice: Optional[Practice] = None
    has_booking: bool = False
    lead: Optional[Lead] = None


# ------------------ Parsing ------------------

def _first(*values):
    for v in values:
        if v not in (None, ""):
            return v
    return None


def _iso_to_dt(s: Any) -> Optional[datetime]:
    if not s:
        return None
    if isinstance(s, datetime):
        dt = s
    else:
        try:
            dt = datetime.fromisoformat(str(s).replace("Z", "+00:00"))
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _coerce_transcript(raw: Any) -> Optional[str]:
    """Transcripts arrive as text or as a list of turns; anything unserialisable is dropped."""
    if raw is None or isinstance(raw, str):
        return raw
    try:
        return json.dumps(raw)
    except (TypeError, ValueError):
        return None


def _to_decimal(raw: Any) -> Optional[Decimal]:
    if raw is None:
        return None
    try:
        return Decimal(str(raw))
    except (InvalidOperation, ValueError):
        return None


def _duration(raw: Any, started_at: Optional[datetime], ended_at: Optional[datetime]) -> int:
    if raw is not None:
        try:
            return max(0, int(round(float(raw))))
        except (TypeError, ValueError):
            pass
    if started_at and ended_at:
        return max(0, int((ended_at - started_at).total_seconds()))
    return 0


def parse_end_of_call(message: Dict[str, Any]) -> EndOfCallReport:
    call = message.get("call") or {}
    artifact = message.get("artifact") or {}
    analysis = message.get("analysis") or call.get("analysis") or {}
    customer = message.get("customer") or call.get("customer") or {}

    started_at = _iso_to_dt(_first(message.get("startedAt"), call.get("startedAt")))
    ended_at = _iso_to_dt(_first(message.get("endedAt"), call.get("endedAt")))

    return EndOfCallReport(
        external_call_id=_first(call.get("id"), message.get("callId")),
        assistant_id=_first(call.get("assistantId"), (message.get("assistant") or {}).get("id")),
        status=_first(message.get("status"), call.get("status"), "ended"),
        direction=normalize_direction(call.get("type")),
        caller_number=customer.get("number"),
        started_at=started_at,
        ended_at=ended_at,
        duration_seconds=_duration(
            _first(message.get("durationSeconds"), call.get("durationSeconds")), started_at, ended_at
        ),
        cost=_to_decimal(_first(message.get("cost"), call.get("cost"))),
        ended_reason=_first(message.get("endedReason"), call.get("endedReason")),
        summary=_first(analysis.get("summary"), message.get("summary")),
        transcript=_coerce_transcript(
            _first(message.get("transcript"), artifact.get("transcript"), call.get("transcript"))
        ),
        recording_url=_first(
            message.get("recordingUrl"), artifact.get("recordingUrl"), call.get("recordingUrl")
        ),
    )


# ------------------ Persistence ------------------

async def upsert_call(report: EndOfCallReport, practice: Optional[Practice]):
    defaults = report.model_dump(exclude={"external_call_id"}, exclude_none=True)
    if practice is not None:
        defaults["practice_id"] = practice.id

    try:
        return await Call.update_or_create(defaults=defaults, external_call_id=report.external_call_id)
    except IntegrityError:
        # a concurrent delivery inserted the row first
        row = await Call.get(external_call_id=report.external_call_id)
        await row.update_from_dict(defaults).save()
        return row, False


async def link_bookings(call_row: Call) -> int:
    return await Booking.filter(
        external_call_id=call_row.external_call_id, call_id__isnull=True
    ).update(call_id=call_row.id)


async def find_patient_by_phone(phone: Optional[str], practice: Optional[Practice], region: str = "US") -> Optional[Patient]:
    n = normalize_phone(phone, region)
    if not n:
        return None
    qs = Patient.filter(phone=n)
    if practice is not None:
        qs = qs.filter(practice_id=practice.id)
    return await qs.order_by("id").first()


def lead_notes(summary: Optional[str]) -> str:
    return f"Auto-generated from call analysis: {summary or NO_SUMMARY_NOTES}"


async def lead_exists_for_call(call_id: int) -> bool:
    return await Lead.filter(call_id=call_id).exists()


async def create_lead_for_call(
    call_row: Call, report: EndOfCallReport, practice: Optional[Practice], region: str = "US"
) -> Optional[Lead]:
    if await lead_exists_for_call(call_row.id):
        log.info("[reconcile] lead already exists for call=%s; skipping", call_row.external_call_id)
        return None

    patient = await find_patient_by_phone(call_row.caller_number, practice, region)
    practice_id = practice.id if practice else (patient.practice_id if patient else None)
    try:
        lead = await Lead.create(
            practice_id=practice_id,
            call=call_row,
            patient=patient,
            status=LeadStatus.NEW,
            priority=LeadPriority.MEDIUM,
            source="phone_call",
            notes=lead_notes(report.summary),
        )
    except IntegrityError:
        log.info("[reconcile] concurrent lead insert for call=%s; skipping", call_row.external_call_id)
        return None
    log.info(
        "[reconcile] created lead=%s call=%s caller=%s",
        lead.id, call_row.external_call_id, mask_phone(call_row.caller_number),
    )
    return lead


async def reconcile_end_of_call(message: Dict[str, Any], region: str = "US") -> Optional[ReconcileOutcome]:
    report = parse_end_of_call(message)
    if not report.external_call_id:
        log.warning("[reconcile] end-of-call-report without a call id; ignoring")
        return None

    practice = await resolve_tenant_for_call(message, region)
    report.caller_number = normalize_phone(report.caller_number, region) or report.caller_number
    call_row, created = await upsert_call(report, practice)
    log.info(
        "[reconcile] call=%s %s practice=%s duration=%ss",
        report.external_call_id, "created" if created else "updated",
        getattr(practice, "id", None), report.duration_seconds,
    )
    outcome = ReconcileOutcome(call=call_row, created=created, practice=practice)

    try:
        linked = await link_bookings(call_row)
        if linked:
            log.info("[reconcile] linked %s booking(s) to call=%s", linked, report.external_call_id)
        outcome.has_booking = await Booking.filter(external_call_id=report.external_call_id).exists()

        if outcome.has_booking:
            return outcome
        if report.duration_seconds <= LEAD_MIN_DURATION_S:
            return outcome
        outcome.lead = await create_lead_for_call(call_row, report, practice, region)
    except Exception:
        log.exception("[reconcile] follow-up handling failed for call=%s", report.external_call_id)
    return outcome
