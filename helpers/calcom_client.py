# helpers/calcom_client.py
from typing import Any, Dict, List, Optional

import httpx

from helpers.log_helper import get_logger
from helpers.settings import Settings

log = get_logger("calcom")


class CalendarError(Exception):
    """Cal.com unreachable, misconfigured, timed out, or rejected the request."""


def _headers_json() -> Dict[str, str]:
    return {"Accept": "application/json", "Content-Type": "application/json"}


class CalcomClient:
    """
    Thin async wrapper over the Cal.com v1 REST API.
    One instance per practice credential pair; every request is bounded by `timeout`.
    """

    def __init__(
        self,
        api_key: Optional[str],
        event_type_id: Optional[str],
        *,
        base_url: str = "https://api.cal.com/v1",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.event_type_id = event_type_id
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.event_type_id)

    def _require_configured(self) -> None:
        if not self.configured:
            raise CalendarError("Cal.com integration not configured")

    async def _request(self, method: str, path: str, *, params: Optional[dict] = None, json: Optional[dict] = None) -> Any:
        query = {"apiKey": self.api_key, **(params or {})}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                res = await client.request(
                    method, f"{self.base_url}{path}", params=query, json=json, headers=_headers_json()
                )
        except httpx.TimeoutException as e:
            raise CalendarError(f"Cal.com request timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise CalendarError(f"Cal.com request failed: {e}") from e

        if res.status_code >= 400:
            raise CalendarError(f"Cal.com API error {res.status_code}: {res.text[:300]}")
        if not res.content:
            return {}
        try:
            return res.json()
        except ValueError as e:
            raise CalendarError("Cal.com returned a non-JSON body") from e

    async def get_slots(self, start_time: str, end_time: str) -> List[Any] | Dict[str, Any]:
        """Raw slot payload for the configured event type; Cal.com is authoritative."""
        self._require_configured()
        data = await self._request(
            "GET",
            "/slots",
            params={"startTime": start_time, "endTime": end_time, "eventTypeId": self.event_type_id},
        )
        return data.get("slots") or []

    async def create_booking(
        self,
        *,
        name: str,
        email: str,
        phone: Optional[str],
        start_time: str,
        time_zone: str = "UTC",
    ) -> Dict[str, Any]:
        self._require_configured()
        try:
            event_type_id: Any = int(self.event_type_id)
        except (TypeError, ValueError):
            event_type_id = self.event_type_id
        payload = {
            "eventTypeId": event_type_id,
            "start": start_time,
            "responses": {
                "name": name,
                "email": email,
                "location": {"optionValue": phone or "", "value": "phone"},
            },
            "timeZone": time_zone,
            "language": "en",
            "metadata": {},
        }
        data = await self._request("POST", "/bookings", json=payload)
        if not isinstance(data, dict) or data.get("id") is None:
            raise CalendarError("Cal.com booking response had no id")
        return data

    async def cancel_booking(self, booking_id: str, reason: Optional[str] = None) -> None:
        self._require_configured()
        params = {"cancellationReason": reason} if reason else None
        await self._request("DELETE", f"/bookings/{booking_id}/cancel", params=params)


def calendar_for_practice(practice, settings: Settings) -> CalcomClient:
    """Practice credentials win; environment credentials are the fallback."""
    api_key = getattr(practice, "calcom_api_key", None) or settings.cal_api_key
    event_type_id = getattr(practice, "calcom_event_type_id", None) or settings.cal_event_type_id
    if not (api_key and event_type_id):
        log.warning("Cal.com not configured for practice=%s", getattr(practice, "id", None))
    return CalcomClient(
        api_key,
        event_type_id,
        base_url=settings.calcom_api_base,
        timeout=settings.collaborator_timeout_seconds,
    )
