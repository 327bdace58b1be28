# models/call_log.py
from tortoise import fields
from tortoise.models import Model

from helpers.Normalizers import normalize_phone
from helpers.settings import get_settings

ALLOWED_DIRECTIONS = {"inbound", "outbound"}


def normalize_direction(value: str | None) -> str | None:
    if not value:
        return None
    v = value.strip().lower()
    norm_map = {
        "inbound": "inbound",
        "inboundphonecall": "inbound",
        "webcall": "inbound",
        "outbound": "outbound",
        "outboundphonecall": "outbound",
    }
    return norm_map.get(v, None)


class Call(Model):
    id = fields.IntField(primary_key=True)
    practice = fields.ForeignKeyField(
        "models.Practice", related_name="calls", null=True, on_delete=fields.CASCADE
    )

    # vapi call id, the idempotency key for end-of-call deliveries
    external_call_id = fields.CharField(max_length=191, unique=True)
    assistant_id = fields.CharField(max_length=191, null=True)

    caller_number = fields.CharField(max_length=32, null=True, index=True)
    status = fields.CharField(max_length=50, null=True)
    direction = fields.CharField(max_length=16, null=True)

    # timings
    started_at = fields.DatetimeField(null=True)
    ended_at = fields.DatetimeField(null=True)
    duration_seconds = fields.IntField(default=0)

    # costs/reasons
    cost = fields.DecimalField(max_digits=10, decimal_places=4, null=True)
    ended_reason = fields.CharField(max_length=100, null=True)

    # blobs/links
    summary = fields.TextField(null=True)
    transcript = fields.TextField(null=True)
    recording_url = fields.CharField(max_length=1000, null=True)

    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "calls"

    async def save(self, *args, **kwargs):
        self.caller_number = normalize_phone(self.caller_number, get_settings().default_sms_region)
        if self.direction:
            norm = normalize_direction(self.direction)
            if norm not in ALLOWED_DIRECTIONS:
                raise ValueError(f"Invalid direction '{self.direction}'. Allowed: {sorted(ALLOWED_DIRECTIONS)}")
            self.direction = norm
        await super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"<Call #{self.id} {self.external_call_id}>"
