from enum import Enum

from tortoise import fields, models

from helpers.Normalizers import normalize_phone
from helpers.settings import get_settings


class PatientType(str, Enum):
    NEW = "new"
    EXISTING = "existing"


class Patient(models.Model):
    id = fields.IntField(primary_key=True)
    practice = fields.ForeignKeyField(
        "models.Practice", related_name="patients", on_delete=fields.CASCADE
    )
    first_name = fields.CharField(max_length=255)
    last_name = fields.CharField(max_length=255, default="Unknown")
    phone = fields.CharField(max_length=32, null=True)
    email = fields.CharField(max_length=320, null=True)
    patient_type = fields.CharEnumField(PatientType, default=PatientType.NEW)
    source = fields.CharField(max_length=32, null=True)

    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "patients"
        indexes = (("practice_id", "phone"), ("practice_id", "email"))

    async def save(self, *args, **kwargs):
        self.phone = normalize_phone(self.phone, get_settings().default_sms_region)
        if self.email:
            self.email = self.email.strip().lower()
        await super().save(*args, **kwargs)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
