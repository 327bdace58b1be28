import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from tortoise.exceptions import IntegrityError

from conftest import CALLER_NUMBER, PRACTICE_NUMBER
from helpers import call_reconciler
from helpers.call_reconciler import create_lead_for_call, parse_end_of_call, reconcile_end_of_call
from models.appointment import Booking
from models.call_log import Call
from models.lead import Lead, LeadStatus
from models.patient import Patient


def end_of_call(call_id="call_123", duration=45, summary="Patient asked about pricing but did not book.", **extra):
    message = {
        "type": "end-of-call-report",
        "call": {
            "id": call_id,
            "type": "inboundPhoneCall",
            "status": "ended",
            "customer": {"number": CALLER_NUMBER},
            "phoneNumber": {"number": PRACTICE_NUMBER},
            "startedAt": "2026-10-19T16:00:00Z",
        },
        "endedReason": "customer-ended-call",
        "artifact": {"recordingUrl": "https://storage.vapi.ai/rec.wav", "transcript": "AI: Hello..."},
    }
    if duration is not None:
        message["durationSeconds"] = duration
    if summary is not None:
        message["analysis"] = {"summary": summary}
    message.update(extra)
    return message


async def _book_for(practice, call_id):
    start = datetime(2026, 11, 2, 15, tzinfo=timezone.utc)
    return await Booking.create(
        practice=practice, external_call_id=call_id, start_time=start, end_time=start + timedelta(minutes=30)
    )


async def test_redelivery_keeps_one_call_and_one_lead(practice):
    await reconcile_end_of_call(end_of_call())
    await reconcile_end_of_call(end_of_call())

    assert await Call.filter(external_call_id="call_123").count() == 1
    assert await Lead.all().count() == 1


async def test_booking_suppresses_lead(practice):
    booking = await _book_for(practice, "call_123")
    outcome = await reconcile_end_of_call(end_of_call())

    assert outcome.has_booking is True
    assert await Lead.all().count() == 0
    await booking.refresh_from_db()
    assert booking.call_id == outcome.call.id


async def test_short_call_suppresses_lead(practice):
    await reconcile_end_of_call(end_of_call(duration=5))
    assert await Call.all().count() == 1
    assert await Lead.all().count() == 0


async def test_ten_seconds_is_not_enough(practice):
    await reconcile_end_of_call(end_of_call(duration=10))
    assert await Lead.all().count() == 0


async def test_unbooked_call_creates_lead(practice):
    outcome = await reconcile_end_of_call(end_of_call())

    lead = await Lead.get(call_id=outcome.call.id)
    assert lead.source == "phone_call"
    assert lead.status == LeadStatus.NEW
    assert "Patient asked about pricing but did not book." in lead.notes
    assert lead.practice_id == practice.id


async def test_missing_summary_uses_placeholder(practice):
    outcome = await reconcile_end_of_call(end_of_call(summary=None))

    assert outcome.call.summary is None
    lead = await Lead.get(call_id=outcome.call.id)
    assert lead.notes == "Auto-generated from call analysis: No summary available."


async def test_lead_links_patient_by_phone(practice):
    patient = await Patient.create(practice=practice, first_name="Sam", phone="650-253-0000")
    outcome = await reconcile_end_of_call(end_of_call())
    lead = await Lead.get(call_id=outcome.call.id)
    assert lead.patient_id == patient.id


async def test_call_row_fields(practice):
    outcome = await reconcile_end_of_call(end_of_call(transcript=[{"role": "bot", "message": "Hi"}], cost=0.1234))
    call = await Call.get(id=outcome.call.id)

    assert call.practice_id == practice.id
    assert call.caller_number == CALLER_NUMBER
    assert call.direction == "inbound"
    assert call.duration_seconds == 45
    assert call.ended_reason == "customer-ended-call"
    assert call.recording_url == "https://storage.vapi.ai/rec.wav"
    assert call.transcript == '[{"role": "bot", "message": "Hi"}]'
    assert str(call.cost) == "0.1234"


def test_duration_derived_from_timestamps():
    report = parse_end_of_call(end_of_call(duration=None, endedAt="2026-10-19T16:01:30Z"))
    assert report.duration_seconds == 90
    assert parse_end_of_call(end_of_call(duration=None)).duration_seconds == 0


def test_unserialisable_transcript_is_dropped():
    report = parse_end_of_call(end_of_call(transcript={"bad": object()}))
    assert report.transcript is None


async def test_report_without_call_id_is_ignored(db):
    assert await reconcile_end_of_call({"type": "end-of-call-report", "call": {}}) is None
    assert await Call.all().count() == 0


async def test_unknown_tenant_still_persists(db):
    outcome = await reconcile_end_of_call(end_of_call())
    assert outcome.practice is None
    assert outcome.call.practice_id is None
    assert await Lead.all().count() == 1


async def test_call_upsert_failure_propagates(practice, monkeypatch):
    async def broken(*args, **kwargs):
        raise RuntimeError("database is locked")

    monkeypatch.setattr(Call, "update_or_create", broken)
    with pytest.raises(RuntimeError):
        await reconcile_end_of_call(end_of_call())


async def test_concurrent_deliveries_keep_one_call_and_one_lead(practice):
    outcomes = await asyncio.gather(*(reconcile_end_of_call(end_of_call()) for _ in range(3)))

    assert await Call.filter(external_call_id="call_123").count() == 1
    assert await Lead.all().count() == 1
    assert len({o.call.id for o in outcomes}) == 1
    assert sum(1 for o in outcomes if o.lead is not None) == 1


async def test_lead_unique_constraint_is_the_last_guard(practice, monkeypatch):
    outcome = await reconcile_end_of_call(end_of_call())
    assert await Lead.all().count() == 1

    async def not_seen(call_id):
        return False

    monkeypatch.setattr(call_reconciler, "lead_exists_for_call", not_seen)
    report = parse_end_of_call(end_of_call())
    assert await create_lead_for_call(outcome.call, report, practice) is None
    assert await Lead.all().count() == 1


async def test_call_insert_race_falls_back_to_update(practice, monkeypatch):
    await Call.create(external_call_id="call_123", duration_seconds=5)

    async def lost_race(*args, **kwargs):
        raise IntegrityError("UNIQUE constraint failed: calls.external_call_id")

    monkeypatch.setattr(Call, "update_or_create", lost_race)
    outcome = await reconcile_end_of_call(end_of_call(duration=45))

    assert outcome.created is False
    assert await Call.all().count() == 1
    call = await Call.get(external_call_id="call_123")
    assert call.duration_seconds == 45
    assert call.practice_id == practice.id
    assert await Lead.filter(call_id=call.id).count() == 1


async def test_caller_number_parsed_with_given_region(db):
    outcome = await reconcile_end_of_call(
        end_of_call(duration=5, customer={"number": "020 7946 0018"}), region="GB"
    )
    assert outcome.call.caller_number == "+442079460018"
