from enum import Enum

from tortoise import fields, models

from helpers.Normalizers import normalize_phone
from helpers.settings import get_settings


class PhoneNumberStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"


class PhoneNumber(models.Model):
    id = fields.IntField(primary_key=True)
    practice = fields.ForeignKeyField(
        "models.Practice", related_name="phone_numbers", on_delete=fields.CASCADE
    )
    phone_number = fields.CharField(max_length=32, index=True)
    twilio_sid = fields.CharField(max_length=64, null=True)
    vapi_phone_number_id = fields.CharField(max_length=255, null=True, index=True)
    vapi_assistant_id = fields.CharField(max_length=255, null=True, index=True)
    status = fields.CharEnumField(PhoneNumberStatus, default=PhoneNumberStatus.PENDING)
    # at most one primary per practice, kept by application code
    is_primary = fields.BooleanField(default=False)

    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "phone_numbers"

    async def save(self, *args, **kwargs):
        # placeholder rows carry 'PENDING' until the number is provisioned
        if self.phone_number and self.phone_number != "PENDING":
            self.phone_number = normalize_phone(self.phone_number, get_settings().default_sms_region)
        await super().save(*args, **kwargs)
