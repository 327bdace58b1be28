import pytest
from httpx import ASGITransport, AsyncClient
from tortoise import Tortoise, connections

from helpers.calcom_client import CalendarError
from helpers.dependencies import get_calendar_factory, get_sms_sender
from helpers.settings import Settings, get_settings
from helpers.sms_helper import SmsError
from helpers.tortoise_config import MODEL_MODULES
from models.phone_number import PhoneNumber, PhoneNumberStatus
from models.practice import Practice

PRACTICE_NUMBER = "+14158675309"
CALLER_NUMBER = "+16502530000"
PATIENT_NUMBER = "+12127363100"
WEBHOOK_SECRET = "test-secret"


class FakeCalendar:
    """Stands in for CalcomClient; records every call."""

    configured = True

    def __init__(self, slots=None, booking_id=9001, error=None):
        self.slots = slots if slots is not None else [{"time": "2026-11-02T15:00:00Z"}]
        self.booking_id = booking_id
        self.error = error
        self.slot_requests = []
        self.created = []
        self.cancelled = []

    async def get_slots(self, start_time, end_time):
        self.slot_requests.append((start_time, end_time))
        if self.error:
            raise self.error
        return self.slots

    async def create_booking(self, *, name, email, phone, start_time, time_zone="UTC"):
        self.created.append(
            {"name": name, "email": email, "phone": phone, "start": start_time, "timeZone": time_zone}
        )
        if self.error:
            raise self.error
        return {"id": self.booking_id, "startTime": start_time}

    async def cancel_booking(self, booking_id, reason=None):
        self.cancelled.append((booking_id, reason))
        if self.error:
            raise self.error


class FakeSmsSender:
    def __init__(self, fail=False):
        self.fail = fail
        self.sent = []

    async def send(self, body, from_number, to_number):
        if self.fail:
            raise SmsError("Twilio error 21610: unsubscribed recipient")
        self.sent.append({"body": body, "from": from_number, "to": to_number})
        return f"SM{len(self.sent):032d}"


@pytest.fixture
async def db():
    await Tortoise.init(db_url="sqlite://:memory:", modules={"models": MODEL_MODULES})
    await Tortoise.generate_schemas()
    yield
    await connections.close_all()


@pytest.fixture
def settings():
    return Settings(
        vapi_webhook_secret=WEBHOOK_SECRET,
        api_public_base="https://receptionist.example.com",
        twilio_account_sid="AC" + "0" * 32,
        twilio_auth_token="twilio-token",
        collaborator_timeout_seconds=5.0,
    )


@pytest.fixture
def calendar():
    return FakeCalendar()


@pytest.fixture
def sms_sender():
    return FakeSmsSender()


@pytest.fixture
async def practice(db):
    p = await Practice.create(
        name="Bright Smiles Dental",
        phone_number="(415) 867-5309",
        forwarding_number="415.867.5300",
        ai_greeting="Thanks for calling Bright Smiles, this is Jennifer.",
    )
    await PhoneNumber.create(
        practice=p,
        phone_number=PRACTICE_NUMBER,
        vapi_phone_number_id="pn_bright_1",
        vapi_assistant_id="asst_bright_1",
        status=PhoneNumberStatus.ACTIVE,
        is_primary=True,
    )
    return p


@pytest.fixture
async def client(db, settings, calendar, sms_sender):
    from main import app

    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_sms_sender] = lambda: sms_sender
    app.dependency_overrides[get_calendar_factory] = lambda: (lambda practice: calendar)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


def calendar_failure(msg="Cal.com API error 503: upstream unavailable"):
    return CalendarError(msg)
