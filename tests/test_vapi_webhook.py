import json

from conftest import CALLER_NUMBER, PRACTICE_NUMBER, WEBHOOK_SECRET
from models.appointment import Booking
from models.call_log import Call
from models.lead import Lead

HEADERS = {"x-vapi-secret": WEBHOOK_SECRET}


def _call(call_id="call_vapi_1"):
    return {
        "id": call_id,
        "type": "inboundPhoneCall",
        "phoneNumberId": "pn_bright_1",
        "customer": {"number": CALLER_NUMBER},
        "phoneNumber": {"number": PRACTICE_NUMBER},
    }


async def test_health(client):
    res = await client.get("/")
    assert res.status_code == 200


async def test_secret_mismatch_is_rejected_without_side_effects(client, practice):
    body = {"message": {"type": "end-of-call-report", "call": _call(), "durationSeconds": 60}}

    res = await client.post("/api/webhooks/vapi", json=body, headers={"x-vapi-secret": "wrong"})
    assert res.status_code == 401
    res = await client.post("/api/webhooks/vapi", json=body)
    assert res.status_code == 401
    assert await Call.all().count() == 0


async def test_missing_configured_secret_fails_closed(client, practice, settings):
    settings.vapi_webhook_secret = None
    res = await client.post("/api/webhooks/vapi", json={"message": {"type": "status-update"}}, headers=HEADERS)
    assert res.status_code == 401


async def test_assistant_request_returns_practice_config(client, practice):
    body = {"message": {"type": "assistant-request", "call": _call()}}
    res = await client.post("/api/webhooks/vapi", json=body, headers=HEADERS)

    assert res.status_code == 201
    assistant = res.json()["assistant"]
    assert assistant["name"] == "Bright Smiles Dental"
    assert assistant["metadata"] == {"practiceId": practice.id}
    assert "Bright Smiles Dental" in assistant["model"]["messages"][0]["content"]


async def test_assistant_request_without_tenant_returns_empty(client, db):
    body = {"message": {"type": "assistant-request", "call": {"customer": {"number": CALLER_NUMBER}}}}
    res = await client.post("/api/webhooks/vapi", json=body, headers=HEADERS)
    assert res.status_code == 201
    assert res.json() == {}


async def test_tool_calls_batch(client, practice, calendar):
    body = {
        "message": {
            "type": "tool-calls",
            "call": _call(),
            "toolCallList": [
                {"id": "tc_1", "function": {"name": "checkAvailability", "arguments": json.dumps(
                    {"startTime": "2026-11-02T00:00:00Z", "endTime": "2026-11-03T00:00:00Z"})}},
                {"id": "tc_2", "function": {"name": "bookAppointment", "arguments": {
                    "name": "Dana Whitfield", "email": "dana@example.com",
                    "startTime": "2026-11-02T15:00:00Z"}}},
                {"id": "tc_3", "function": {"name": "transferCall", "arguments": {}}},
            ],
        }
    }
    res = await client.post("/api/webhooks/vapi", json=body, headers=HEADERS)

    assert res.status_code == 200
    results = {r["toolCallId"]: r for r in res.json()["results"]}
    assert set(results) == {"tc_1", "tc_2", "tc_3"}
    assert json.loads(results["tc_1"]["result"])["slots"] == calendar.slots
    assert json.loads(results["tc_2"]["result"]) == {"success": True, "bookingId": "9001"}
    assert results["tc_3"]["error"] == "Unknown tool: transferCall"

    # phone falls back to the caller's number
    assert calendar.created[0]["phone"] == CALLER_NUMBER
    booking = await Booking.get(external_call_id="call_vapi_1")
    assert booking.practice_id == practice.id


async def test_booking_then_end_of_call_links_and_skips_lead(client, practice):
    book = {
        "message": {
            "type": "tool-calls",
            "call": _call(),
            "toolCalls": [{"id": "tc_1", "function": {"name": "bookAppointment", "arguments": {
                "name": "Dana Whitfield", "email": "dana@example.com", "startTime": "2026-11-02T15:00:00Z"}}}],
        }
    }
    await client.post("/api/webhooks/vapi", json=book, headers=HEADERS)

    report = {"message": {"type": "end-of-call-report", "call": _call(), "durationSeconds": 180}}
    res = await client.post("/api/webhooks/vapi", json=report, headers=HEADERS)
    assert res.json() == {"received": True}

    call = await Call.get(external_call_id="call_vapi_1")
    booking = await Booking.get(external_call_id="call_vapi_1")
    assert booking.call_id == call.id
    assert await Lead.all().count() == 0


async def test_end_of_call_redelivery_is_idempotent(client, practice):
    report = {
        "message": {
            "type": "end-of-call-report",
            "call": _call("call_vapi_2"),
            "durationSeconds": 45,
            "analysis": {"summary": "Patient asked about pricing but did not book."},
        }
    }
    for _ in range(3):
        res = await client.post("/api/webhooks/vapi", json=report, headers=HEADERS)
        assert res.status_code == 200

    assert await Call.filter(external_call_id="call_vapi_2").count() == 1
    assert await Lead.all().count() == 1


async def test_other_events_are_acknowledged(client, db):
    res = await client.post("/api/webhooks/vapi", json={"message": {"type": "status-update"}}, headers=HEADERS)
    assert res.json() == {"received": True}

    res = await client.post("/api/webhooks/vapi", content=b"", headers=HEADERS)
    assert res.json() == {"received": True}
