# controllers/vapi_server_url.py
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from json import JSONDecodeError
from typing import Annotated
import json

from helpers.call_reconciler import reconcile_end_of_call
from helpers.dependencies import (
    CalendarFactory,
    get_calendar_factory,
    get_sms_sender,
    verify_vapi_secret,
)
from helpers.log_helper import get_logger, mask_phone
from helpers.settings import Settings, get_settings
from helpers.sms_helper import SmsSender
from helpers.tenant_resolver import resolve_tenant_for_call
from helpers.tool_dispatcher import ToolContext, dispatch_tool_calls, extract_tool_calls
from helpers.vapi_helper import load_assistant_config

router = APIRouter()
log = get_logger("vapi_webhook")


async def parse_incoming_body(req: Request) -> dict:
    """
    Safely parse JSON/form bodies. Returns {} on empty/invalid payloads.
    Never throws JSONDecodeError.
    """
    ctype = (req.headers.get("content-type") or "").lower()

    if "application/json" in ctype:
        try:
            data = await req.json()
            return data if isinstance(data, dict) else {}
        except (JSONDecodeError, ValueError) as e:
            log.warning("Invalid JSON body: %s", e)
            return {}

    if "application/x-www-form-urlencoded" in ctype or "multipart/form-data" in ctype:
        form = await req.form()
        # some senders wrap the json envelope in a `payload` field
        if "payload" in form:
            try:
                return json.loads(form["payload"])
            except (JSONDecodeError, TypeError) as e:
                log.warning("Invalid JSON in form payload: %s", e)
        return dict(form)

    # no/incorrect content-type
    raw = await req.body()
    if not raw:
        return {}
    try:
        data = json.loads(raw.decode("utf-8"))
    except (JSONDecodeError, UnicodeDecodeError) as e:
        log.warning("Raw body not JSON: %s", e)
        return {}
    return data if isinstance(data, dict) else {}


async def _assistant_request(msg: dict, settings: Settings):
    practice = await resolve_tenant_for_call(msg, settings.default_sms_region)
    if not practice:
        customer = (msg.get("call") or {}).get("customer") or msg.get("customer") or {}
        log.warning("[assistant-request] no practice for caller=%s; using platform defaults", mask_phone(customer.get("number")))
        return JSONResponse({}, status_code=201)

    config = await load_assistant_config(practice, settings)
    log.info("[assistant-request] returning config for practice=%s", practice.id)
    return JSONResponse({"assistant": config}, status_code=201)


async def _tool_calls(msg: dict, settings: Settings, sms_sender: SmsSender, calendar_factory: CalendarFactory):
    call = msg.get("call") or {}
    customer = call.get("customer") or msg.get("customer") or {}
    practice = await resolve_tenant_for_call(msg, settings.default_sms_region)

    ctx = ToolContext(
        practice=practice,
        external_call_id=call.get("id"),
        caller_number=customer.get("number"),
        calendar=calendar_factory(practice),
        sms_sender=sms_sender,
        settings=settings,
    )
    tool_calls = extract_tool_calls(msg)
    log.info("[tool-calls] %s call(s) call=%s practice=%s", len(tool_calls), ctx.external_call_id, getattr(practice, "id", None))
    results = await dispatch_tool_calls(tool_calls, ctx)
    return {"results": results}


@router.post("/webhooks/vapi", dependencies=[Depends(verify_vapi_secret)])
async def vapi_server_url(
    req: Request,
    settings: Annotated[Settings, Depends(get_settings)],
    sms_sender: Annotated[SmsSender, Depends(get_sms_sender)],
    calendar_factory: Annotated[CalendarFactory, Depends(get_calendar_factory)],
):
    body = await parse_incoming_body(req)
    msg = (body or {}).get("message") or {}
    msg_type = msg.get("type")
    log.info("[vapi] received %s call=%s", msg_type or "<empty>", (msg.get("call") or {}).get("id"))

    if msg_type == "assistant-request":
        return await _assistant_request(msg, settings)

    if msg_type == "tool-calls":
        return await _tool_calls(msg, settings, sms_sender, calendar_factory)

    if msg_type == "end-of-call-report":
        # a failed Call upsert propagates as a 500 so Vapi retries the delivery
        await reconcile_end_of_call(msg, settings.default_sms_region)

    return {"received": True}
