# helpers/sms_helper.py
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlparse

from starlette.concurrency import run_in_threadpool
from twilio.base.exceptions import TwilioRestException
from twilio.http.http_client import TwilioHttpClient
from twilio.rest import Client

from helpers.log_helper import get_logger, mask_phone
from helpers.settings import Settings
from models.message import Message, MessageDirection

log = get_logger("twilio_sms")


class SmsError(Exception):
    """Twilio rejected the send, timed out, or isn't configured."""


class SmsSender:
    """Sends SMS through Twilio. The blocking SDK call runs in the threadpool."""

    def __init__(
        self,
        account_sid: Optional[str],
        auth_token: Optional[str],
        *,
        timeout: float = 10.0,
        status_callback: Optional[str] = None,
        client: Optional[Client] = None,
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.timeout = timeout
        self.status_callback = status_callback
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "SmsSender":
        return cls(
            settings.twilio_account_sid,
            settings.twilio_auth_token,
            timeout=settings.collaborator_timeout_seconds,
            status_callback=build_status_callback_url(settings),
        )

    def _get_client(self) -> Client:
        if self._client is None:
            if not self.account_sid or not self.auth_token:
                raise SmsError("Twilio credentials not configured")
            self._client = Client(
                self.account_sid,
                self.auth_token,
                http_client=TwilioHttpClient(timeout=self.timeout),
            )
        return self._client

    async def send(self, body: str, from_number: str, to_number: str) -> Optional[str]:
        """Returns the Twilio message sid."""
        client = self._get_client()

        def _send():
            return client.messages.create(
                body=body,
                from_=from_number,
                to=to_number,
                status_callback=self.status_callback if self.status_callback else None,
            )

        try:
            msg = await run_in_threadpool(_send)
        except TwilioRestException as e:
            raise SmsError(f"Twilio error {getattr(e, 'code', None)}: {getattr(e, 'msg', str(e))}") from e
        except Exception as e:
            # requests timeouts / connection errors surface here
            raise SmsError(f"Twilio send failed: {e}") from e
        return getattr(msg, "sid", None)


def build_status_callback_url(settings: Settings) -> Optional[str]:
    """Public StatusCallback URL, or None when the base is localhost."""
    base = settings.api_public_base
    if not base:
        return None
    candidate = f"{base.rstrip('/')}/api/webhooks/twilio/sms-status"
    p = urlparse(candidate)
    if p.scheme not in ("http", "https") or not p.netloc:
        return None
    if (p.hostname or "") in ("localhost", "127.0.0.1", "::1"):
        return None
    return candidate


async def send_practice_sms(
    sender: SmsSender,
    *,
    practice,
    from_number: str,
    to_number: str,
    body: str,
    patient=None,
    related_type: Optional[str] = None,
    related_id: Optional[str] = None,
) -> Optional[Message]:
    """
    Send an SMS on behalf of a practice and record the attempt.
    Never raises: a failed send is logged and stored with status 'failed'.
    """
    sid = None
    error = None
    try:
        sid = await sender.send(body, from_number, to_number)
    except SmsError as e:
        error = str(e)
        log.warning("[outbound] send failed practice=%s to=%s: %s", practice.id, mask_phone(to_number), e)

    try:
        return await Message.create(
            practice=practice,
            patient=patient,
            direction=MessageDirection.OUTBOUND,
            from_address=from_number,
            to_address=to_number,
            body=(body or "")[:1600],
            provider="twilio",
            provider_message_id=sid,
            status="failed" if error else "sent",
            error_message=error,
            related_type=related_type,
            related_id=related_id,
            sent_at=None if error else datetime.now(timezone.utc),
        )
    except Exception:
        log.exception("[outbound] could not store message log practice=%s", practice.id)
        return None
