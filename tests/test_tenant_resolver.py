from conftest import CALLER_NUMBER, PRACTICE_NUMBER
from helpers.tenant_resolver import resolve_phone_row, resolve_tenant_by_number, resolve_tenant_for_call


async def test_by_destination_or_forwarding_number(practice):
    assert (await resolve_tenant_by_number("415-867-5309")).id == practice.id
    assert (await resolve_tenant_by_number("+1 (415) 867 5300")).id == practice.id
    assert await resolve_tenant_by_number(CALLER_NUMBER) is None
    assert await resolve_tenant_by_number("") is None


async def test_phone_row_lookup(practice):
    row = await resolve_phone_row("4158675309")
    assert row.practice.id == practice.id
    assert await resolve_phone_row("+13125550199") is None


async def test_in_call_resolution_order(practice):
    by_resource = {"call": {"phoneNumberId": "pn_bright_1"}}
    by_assistant = {"call": {"assistantId": "asst_bright_1"}}
    by_dialed = {"phoneNumber": {"number": PRACTICE_NUMBER}}
    by_customer = {"call": {"customer": {"number": "(415) 867-5309"}}}
    unknown = {"call": {"phoneNumberId": "pn_other", "customer": {"number": CALLER_NUMBER}}}

    for message in (by_resource, by_assistant, by_dialed, by_customer):
        assert (await resolve_tenant_for_call(message)).id == practice.id
    assert await resolve_tenant_for_call(unknown) is None


async def test_national_numbers_use_given_region(practice):
    from models.phone_number import PhoneNumber

    await PhoneNumber.create(practice=practice, phone_number="+442079460018")
    assert await resolve_phone_row("020 7946 0018") is None
    row = await resolve_phone_row("020 7946 0018", "GB")
    assert row.practice.id == practice.id
    message = {"phoneNumber": {"number": "020 7946 0018"}}
    assert (await resolve_tenant_for_call(message, "GB")).id == practice.id
