from enum import Enum

from tortoise import fields
from tortoise.models import Model


class MessageDirection(str, Enum):
    INBOUND = "inbound"
    OUTBOUND = "outbound"


class Message(Model):
    """SMS audit log, one row per inbound message or outbound attempt."""

    id = fields.IntField(primary_key=True)
    practice = fields.ForeignKeyField("models.Practice", related_name="messages", on_delete=fields.CASCADE)
    patient = fields.ForeignKeyField("models.Patient", related_name="messages", null=True, on_delete=fields.SET_NULL)

    message_type = fields.CharField(max_length=16, default="sms")
    direction = fields.CharEnumField(MessageDirection)
    from_address = fields.CharField(max_length=32)
    to_address = fields.CharField(max_length=32)
    body = fields.TextField()

    provider = fields.CharField(max_length=32, default="twilio")
    provider_message_id = fields.CharField(max_length=64, null=True, index=True)
    # received | sent | failed | queued | delivered | undelivered
    status = fields.CharField(max_length=24)
    error_message = fields.TextField(null=True)

    related_type = fields.CharField(max_length=32, null=True)
    related_id = fields.CharField(max_length=64, null=True)

    sent_at = fields.DatetimeField(null=True)
    received_at = fields.DatetimeField(null=True)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "messages"
        indexes = (("practice_id", "created_at"),)
