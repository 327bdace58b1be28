from enum import Enum

from tortoise import fields, models
from tortoise.indexes import Index


class BookingStatus(str, Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    SCHEDULED = "scheduled"


class Booking(models.Model):
    id = fields.UUIDField(primary_key=True)

    practice = fields.ForeignKeyField(
        "models.Practice", related_name="bookings", null=True, on_delete=fields.CASCADE
    )
    patient = fields.ForeignKeyField(
        "models.Patient", related_name="bookings", null=True, on_delete=fields.SET_NULL
    )

    # Vapi call id captured mid-call, before any Call row exists.
    external_call_id = fields.CharField(max_length=191, null=True)
    # Resolved to the internal Call once the end-of-call report lands.
    call = fields.ForeignKeyField(
        "models.Call", related_name="bookings", null=True, on_delete=fields.SET_NULL
    )

    start_time = fields.DatetimeField()
    end_time = fields.DatetimeField()
    timezone = fields.CharField(max_length=64, default="UTC")
    status = fields.CharEnumField(BookingStatus, default=BookingStatus.CONFIRMED)
    appointment_type = fields.CharField(max_length=64, default="consultation")
    calendar_event_id = fields.CharField(max_length=191, null=True)

    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "bookings"
        indexes = [
            Index(fields=["external_call_id"]),
            Index(fields=["patient_id", "status"]),
            Index(fields=["practice_id", "start_time"]),
        ]
