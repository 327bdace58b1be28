from enum import Enum

from tortoise import fields, models

from helpers.Normalizers import normalize_phone
from helpers.settings import get_settings


class AiTone(str, Enum):
    PROFESSIONAL = "professional"
    FRIENDLY = "friendly"
    CASUAL = "casual"
    EMPATHETIC = "empathetic"


class Practice(models.Model):
    id = fields.IntField(primary_key=True)
    name = fields.CharField(max_length=255)

    # inbound routing number + the office line calls are forwarded from
    phone_number = fields.CharField(max_length=32, null=True, index=True)
    forwarding_number = fields.CharField(max_length=32, null=True, index=True)
    timezone = fields.CharField(max_length=64, default="UTC")

    # AI preferences
    ai_voice = fields.CharField(max_length=128, null=True)
    ai_voice_provider = fields.CharField(max_length=32, null=True)
    ai_tone = fields.CharEnumField(AiTone, default=AiTone.PROFESSIONAL)
    ai_greeting = fields.TextField(null=True)
    transfer_keywords = fields.JSONField(default=list)
    emergency_keywords = fields.JSONField(default=list)
    office_hours = fields.JSONField(null=True)

    # Cal.com
    calcom_api_key = fields.CharField(max_length=255, null=True)
    calcom_event_type_id = fields.CharField(max_length=64, null=True)

    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    knowledge_entries: fields.ReverseRelation["KnowledgeEntry"]
    phone_numbers: fields.ReverseRelation["PhoneNumber"]

    class Meta:
        table = "practices"

    async def save(self, *args, **kwargs):
        region = get_settings().default_sms_region
        self.phone_number = normalize_phone(self.phone_number, region)
        self.forwarding_number = normalize_phone(self.forwarding_number, region)
        await super().save(*args, **kwargs)

    async def primary_number(self):
        """Active primary line, else any active line, else None."""
        active = self.phone_numbers.filter(status="active")
        row = await active.filter(is_primary=True).first()
        if row is None:
            row = await active.order_by("id").first()
        return row

    def __str__(self) -> str:
        return f"<Practice #{self.id} {self.name}>"


class KnowledgeEntry(models.Model):
    id = fields.IntField(primary_key=True)
    practice = fields.ForeignKeyField(
        "models.Practice", related_name="knowledge_entries", on_delete=fields.CASCADE
    )
    category = fields.CharField(max_length=64)
    question = fields.TextField(null=True)
    content = fields.TextField()
    position = fields.IntField(default=0)

    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "knowledge_base"
        ordering = ["position", "id"]
