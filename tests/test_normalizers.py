import pytest

from helpers.Normalizers import normalize_phone, normalize_timezone


@pytest.mark.parametrize(
    "raw",
    ["(415) 867-5309", "415.867.5309", "+1 415 867 5309", "14158675309", "4158675309"],
)
def test_phone_formats_collapse_to_e164(raw):
    assert normalize_phone(raw) == "+14158675309"


def test_phone_empty_is_none():
    assert normalize_phone(None) is None
    assert normalize_phone("   ") is None
    assert normalize_phone("n/a") is None


def test_phone_respects_default_region():
    assert normalize_phone("020 7946 0018", "GB") == "+442079460018"


def test_timezone_passthrough_and_aliases():
    assert normalize_timezone("America/Chicago") == "America/Chicago"
    assert normalize_timezone("Eastern Time") == "America/New_York"
    assert normalize_timezone("america los_angeles") == "America/Los_Angeles"
    assert normalize_timezone("Mars/Olympus") == "UTC"
    assert normalize_timezone(None) == "UTC"
