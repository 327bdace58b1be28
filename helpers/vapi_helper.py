# helpers/vapi_helper.py
"""
Assistant configuration for inbound calls.

Vapi asks for instructions at the start of every inbound call (`assistant-request`);
the answer is built here from the practice's stored preferences. Everything below the
`load_assistant_config` loader is a pure function of the practice row and its knowledge
entries, so identical state always renders an identical assistant.
"""
from typing import Any, Dict, List, Optional, Sequence

from helpers.settings import Settings
from models.practice import AiTone, KnowledgeEntry, Practice

# ------------------ Voices ------------------

VOICE_MAP: Dict[str, Dict[str, str]] = {
    "jennifer": {"provider": "11labs", "voiceId": "21m00Tcm4TlvDq8ikWAM"},
    "mark": {"provider": "11labs", "voiceId": "TxGEqnHWrfWFTfGW9XjX"},
    "sarah": {"provider": "11labs", "voiceId": "EXAVITQu4vr4xnSDxMaL"},
    "david": {"provider": "11labs", "voiceId": "ErXwobaYiN019PkySvjV"},
}
DEFAULT_VOICE = VOICE_MAP["jennifer"]
DEFAULT_VOICE_PROVIDER = "11labs"

DEFAULT_GREETING = "Hello! How can I help you today?"
DEFAULT_OFFICE_HOURS = {"start": "09:00", "end": "17:00"}

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

TONE_CLAUSES = {
    AiTone.FRIENDLY.value: "Be very warm, friendly, and upbeat while staying helpful. ",
    AiTone.EMPATHETIC.value: "Be deeply understanding and patient. Many callers may be in pain or anxious. ",
}
DEFAULT_TONE_CLAUSE = "Be professional, concise, and polite. "


def resolve_voice(practice: Practice) -> Dict[str, Any]:
    preset = (practice.ai_voice or "").strip().lower()
    if preset in VOICE_MAP:
        voice = dict(VOICE_MAP[preset])
    elif practice.ai_voice:
        voice = {
            "provider": practice.ai_voice_provider or DEFAULT_VOICE_PROVIDER,
            "voiceId": practice.ai_voice,
        }
    else:
        voice = dict(DEFAULT_VOICE)
    voice.update({"stability": 0.5, "similarityBoost": 0.75})
    return voice


# ------------------ Prompt ------------------

def _clean_keywords(values: Optional[Sequence[Any]]) -> List[str]:
    out = []
    for v in values or []:
        s = str(v).strip()
        if s:
            out.append(s)
    return out


def _tone_value(tone: Any) -> str:
    return getattr(tone, "value", tone) or AiTone.PROFESSIONAL.value


def _day_hours(name: str, entry: Any) -> str:
    label = name.capitalize()
    if not isinstance(entry, dict):
        return f"{label} {entry}"
    if entry.get("isOpen") is False:
        return f"{label} closed"
    open_at = entry.get("open") or entry.get("start") or DEFAULT_OFFICE_HOURS["start"]
    close_at = entry.get("close") or entry.get("end") or DEFAULT_OFFICE_HOURS["end"]
    text = f"{label} {open_at}-{close_at}"
    breaks = [b for b in entry.get("breaks") or [] if isinstance(b, dict)]
    if breaks:
        spans = ", ".join(f"{b.get('start')}-{b.get('end')}" for b in breaks)
        text += f" (closed {spans})"
    return text


def office_hours_statement(office_hours: Optional[Dict[str, Any]]) -> str:
    hours = office_hours or DEFAULT_OFFICE_HOURS
    if "start" in hours or "end" in hours:
        start = hours.get("start") or DEFAULT_OFFICE_HOURS["start"]
        end = hours.get("end") or DEFAULT_OFFICE_HOURS["end"]
        return f"The office is open from {start} to {end}."

    by_day = {str(k).lower(): v for k, v in hours.items()}
    ordered = [d for d in WEEKDAYS if d in by_day]
    ordered += sorted(d for d in by_day if d not in WEEKDAYS)
    if not ordered:
        return office_hours_statement(None)
    return "The office hours are: " + "; ".join(_day_hours(d, by_day[d]) for d in ordered) + "."


def _knowledge_lines(entries: Sequence[KnowledgeEntry]) -> List[str]:
    lines = []
    for entry in entries:
        content = (entry.content or "").strip()
        if not content:
            continue
        if entry.question:
            lines.append(f"Q: {entry.question.strip()}\nA: {content}")
        else:
            lines.append(f"- [{entry.category}] {content}")
    return lines


def generate_system_prompt(practice: Practice, knowledge_entries: Sequence[KnowledgeEntry] = ()) -> str:
    greeting = practice.ai_greeting or DEFAULT_GREETING
    tone = _tone_value(practice.ai_tone)
    transfer_keywords = _clean_keywords(practice.transfer_keywords)
    emergency_keywords = _clean_keywords(practice.emergency_keywords)

    prompt = f"You are an AI receptionist for {practice.name or 'a dental office'}. "
    prompt += "Your role is to help patients schedule appointments and answer basic questions. "
    prompt += TONE_CLAUSES.get(tone, DEFAULT_TONE_CLAUSE)

    rules = [
        "Verify if the caller is a new or existing patient.",
        "If they want to book, use the 'checkAvailability' tool to find open times "
        "and the 'bookAppointment' tool to book the chosen slot.",
        office_hours_statement(practice.office_hours),
    ]
    if transfer_keywords:
        phrases = ", ".join(f'"{k}"' for k in transfer_keywords)
        rules.append(
            f"If the caller says any of these phrases: [{phrases}], or asks for a real person, "
            "immediately transfer the call by ending the conversation with the reason \"transfer\"."
        )
    if emergency_keywords:
        phrases = ", ".join(f'"{k}"' for k in emergency_keywords)
        rules.append(
            f"If the caller mentions any of [{phrases}], treat it as an emergency: advise them to "
            "call 911 if it is life-threatening, otherwise offer the earliest available appointment."
        )

    prompt += "\n\nCORE RULES:\n"
    prompt += "".join(f"{i}. {rule}\n" for i, rule in enumerate(rules, start=1))

    kb = _knowledge_lines(knowledge_entries)
    if kb:
        prompt += "\nKNOWLEDGE BASE:\n" + "\n".join(kb) + "\n"

    prompt += f'\nYour first message to the user is: "{greeting}"'
    return prompt


# ------------------ Tools ------------------

def tool_definitions() -> List[Dict[str, Any]]:
    return [
        {
            "type": "function",
            "function": {
                "name": "checkAvailability",
                "description": "Check available appointment slots for a given time range.",
                "parameters": {
                    "type": "object",
                    "properties": {
                        "startTime": {"type": "string", "description": "ISO 8601 start time"},
                        "endTime": {"type": "string", "description": "ISO 8601 end time"},
                    },
                    "required": ["startTime", "endTime"],
                },
            },
        },
        {
            "type": "function",
            "function": {
                "name": "bookAppointment",
                "description": "Book an appointment for the patient.",
                "parameters": {
                    "type": "object",
                    "properties": {
                        "name": {"type": "string", "description": "Patient's full name"},
                        "email": {"type": "string", "description": "Patient's email address"},
                        "phone": {"type": "string", "description": "Patient's phone number for SMS confirmation"},
                        "startTime": {"type": "string", "description": "ISO 8601 start time"},
                        "timeZone": {"type": "string", "description": "IANA timezone (default UTC)"},
                    },
                    "required": ["name", "email", "phone", "startTime"],
                },
            },
        },
    ]


# ------------------ Payload ------------------

def build_assistant_config(
    practice: Practice,
    knowledge_entries: Sequence[KnowledgeEntry],
    settings: Settings,
) -> Dict[str, Any]:
    config: Dict[str, Any] = {
        "name": practice.name,
        "firstMessage": practice.ai_greeting or DEFAULT_GREETING,
        "firstMessageMode": "assistant-speaks-first",
        "voice": resolve_voice(practice),
        "model": {
            "provider": settings.assistant_model_provider,
            "model": settings.assistant_model,
            "messages": [
                {"role": "system", "content": generate_system_prompt(practice, knowledge_entries)}
            ],
            "tools": tool_definitions(),
        },
        "serverUrl": settings.vapi_server_url,
        "metadata": {"practiceId": practice.id},
    }
    if settings.vapi_webhook_secret:
        config["serverUrlSecret"] = settings.vapi_webhook_secret
    return config


async def load_assistant_config(practice: Practice, settings: Settings) -> Dict[str, Any]:
    entries = await KnowledgeEntry.filter(practice_id=practice.id).order_by("position", "id")
    return build_assistant_config(practice, entries, settings)
