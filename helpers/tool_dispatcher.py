# helpers/tool_dispatcher.py
import asyncio
import json
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from helpers.booking_helper import book_appointment, check_availability
from helpers.calcom_client import CalcomClient
from helpers.log_helper import get_logger
from helpers.settings import Settings
from helpers.sms_helper import SmsSender
from models.practice import Practice

log = get_logger("vapi_tools")


@dataclass
class ToolContext:
    practice: Optional[Practice]
    external_call_id: Optional[str]
    caller_number: Optional[str]
    calendar: CalcomClient
    sms_sender: Optional[SmsSender]
    settings: Settings


def extract_tool_calls(message: Dict[str, Any]) -> List[Dict[str, Any]]:
    calls = message.get("toolCallList") or message.get("toolCalls") or []
    return [c for c in calls if isinstance(c, dict)]


def parse_tool_arguments(tool_call: Dict[str, Any]) -> Dict[str, Any]:
    """`function.arguments` may arrive as an object or a JSON string; `parameters` is the older shape."""
    fn = tool_call.get("function") or {}
    raw = fn.get("arguments")
    if raw is None:
        raw = tool_call.get("parameters") or fn.get("parameters")
    if raw is None or raw == "":
        return {}
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid tool arguments: {e.msg}") from e
    if not isinstance(raw, dict):
        raise ValueError("Tool arguments must be an object")
    return raw


async def _check_availability(ctx: ToolContext, args: Dict[str, Any]) -> Dict[str, Any]:
    return await check_availability(ctx.calendar, args, timeout=ctx.settings.collaborator_timeout_seconds)


async def _book_appointment(ctx: ToolContext, args: Dict[str, Any]) -> Dict[str, Any]:
    return await book_appointment(
        practice=ctx.practice,
        args=args,
        external_call_id=ctx.external_call_id,
        caller_number=ctx.caller_number,
        calendar=ctx.calendar,
        sms_sender=ctx.sms_sender,
        settings=ctx.settings,
    )


TOOL_HANDLERS: Dict[str, Callable[[ToolContext, Dict[str, Any]], Any]] = {
    "checkAvailability": _check_availability,
    "bookAppointment": _book_appointment,
}


async def run_tool_call(tool_call: Dict[str, Any], ctx: ToolContext) -> Dict[str, Any]:
    """One result entry per tool call. Failures are reported in the entry, never raised."""
    tool_call_id = tool_call.get("id")
    name = (tool_call.get("function") or {}).get("name") or tool_call.get("name")

    handler = TOOL_HANDLERS.get(name)
    if handler is None:
        log.warning("[tools] unknown tool=%s call=%s", name, ctx.external_call_id)
        return {"toolCallId": tool_call_id, "error": f"Unknown tool: {name}"}

    try:
        args = parse_tool_arguments(tool_call)
        result = await handler(ctx, args)
    except Exception as e:
        log.warning("[tools] %s failed call=%s: %s", name, ctx.external_call_id, e)
        return {"toolCallId": tool_call_id, "error": str(e) or e.__class__.__name__}

    return {"toolCallId": tool_call_id, "result": json.dumps(result, default=str)}


async def dispatch_tool_calls(tool_calls: List[Dict[str, Any]], ctx: ToolContext) -> List[Dict[str, Any]]:
    """Runs a batch concurrently; results keep the order of the incoming list."""
    if not tool_calls:
        return []
    return list(await asyncio.gather(*(run_tool_call(tc, ctx) for tc in tool_calls)))
