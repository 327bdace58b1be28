# helpers/tenant_resolver.py
from typing import Any, Dict, Optional

from tortoise.expressions import Q

from helpers.Normalizers import normalize_phone
from models.phone_number import PhoneNumber
from models.practice import Practice


def _norm(number: Optional[str], region: str) -> Optional[str]:
    return normalize_phone(number, region)


async def resolve_tenant_by_number(number: Optional[str], region: str = "US") -> Optional[Practice]:
    """
    Practice whose destination or forwarding number equals `number` (both sides E.164).
    None is a normal outcome; callers fall back to generic behaviour.
    """
    n = _norm(number, region)
    if not n:
        return None
    return await Practice.filter(Q(phone_number=n) | Q(forwarding_number=n)).order_by("id").first()


async def resolve_phone_row(number: Optional[str], region: str = "US") -> Optional[PhoneNumber]:
    """Provisioned PhoneNumber row (with its practice loaded) for an inbound SMS `To`."""
    n = _norm(number, region)
    if not n:
        return None
    return await PhoneNumber.filter(phone_number=n).order_by("-is_primary", "id").prefetch_related("practice").first()


async def resolve_tenant_for_call(message: Dict[str, Any], region: str = "US") -> Optional[Practice]:
    """
    Tenant for an in-call Vapi event. Tries, in order: the Vapi phone-number id, the
    assistant id, the dialed number, then the caller's number.
    """
    call = message.get("call") or {}
    phone_obj = message.get("phoneNumber") or call.get("phoneNumber") or {}

    phone_number_id = call.get("phoneNumberId") or phone_obj.get("id")
    if phone_number_id:
        row = await PhoneNumber.filter(vapi_phone_number_id=phone_number_id).prefetch_related("practice").first()
        if row:
            return row.practice

    assistant_id = call.get("assistantId") or (message.get("assistant") or {}).get("id")
    if assistant_id:
        row = await PhoneNumber.filter(vapi_assistant_id=assistant_id).prefetch_related("practice").first()
        if row:
            return row.practice

    dialed = phone_obj.get("number")
    if dialed:
        practice = await resolve_tenant_by_number(dialed, region)
        if practice:
            return practice
        row = await resolve_phone_row(dialed, region)
        if row:
            return row.practice

    customer = message.get("customer") or call.get("customer") or {}
    return await resolve_tenant_by_number(customer.get("number"), region)
