import json

import httpx
import pytest

from helpers.calcom_client import CalcomClient, CalendarError, calendar_for_practice
from helpers.settings import Settings


def _client(handler, **kw):
    return CalcomClient("cal_key", "123", base_url="https://cal.test/v1", transport=httpx.MockTransport(handler), **kw)


async def test_get_slots_sends_event_type_and_key():
    seen = {}

    def handler(request: httpx.Request):
        seen["url"] = request.url
        return httpx.Response(200, json={"slots": {"2026-11-02": [{"time": "2026-11-02T15:00:00Z"}]}})

    slots = await _client(handler).get_slots("2026-11-02T00:00:00Z", "2026-11-03T00:00:00Z")

    assert slots == {"2026-11-02": [{"time": "2026-11-02T15:00:00Z"}]}
    assert seen["url"].path == "/v1/slots"
    assert seen["url"].params["apiKey"] == "cal_key"
    assert seen["url"].params["eventTypeId"] == "123"


async def test_create_booking_payload():
    captured = {}

    def handler(request: httpx.Request):
        captured.update(json.loads(request.content))
        return httpx.Response(200, json={"id": 555, "uid": "abc"})

    data = await _client(handler).create_booking(
        name="Dana", email="dana@example.com", phone="+16502530000", start_time="2026-11-02T15:00:00Z"
    )

    assert data["id"] == 555
    assert captured["eventTypeId"] == 123
    assert captured["responses"]["location"] == {"optionValue": "+16502530000", "value": "phone"}
    assert captured["timeZone"] == "UTC"


async def test_http_error_and_missing_id_raise():
    with pytest.raises(CalendarError, match="400"):
        await _client(lambda r: httpx.Response(400, text="bad slot")).get_slots("a", "b")
    with pytest.raises(CalendarError, match="no id"):
        await _client(lambda r: httpx.Response(200, json={})).create_booking(
            name="x", email="x@example.com", phone=None, start_time="t"
        )


async def test_timeout_becomes_calendar_error():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(CalendarError, match="timed out"):
        await _client(handler, timeout=0.1).get_slots("a", "b")


async def test_unconfigured_client_raises():
    with pytest.raises(CalendarError, match="not configured"):
        await CalcomClient(None, None).get_slots("a", "b")


def test_practice_credentials_win_over_env():
    settings = Settings(cal_api_key="env_key", cal_event_type_id="1")

    class P:
        id = 1
        calcom_api_key = "practice_key"
        calcom_event_type_id = None

    client = calendar_for_practice(P(), settings)
    assert (client.api_key, client.event_type_id) == ("practice_key", "1")
    assert calendar_for_practice(None, settings).api_key == "env_key"
