from enum import Enum

from tortoise import fields
from tortoise.models import Model


class LeadStatus(str, Enum):
    NEW = "new"
    CONTACTED = "contacted"
    INTERESTED = "interested"
    SCHEDULED = "scheduled"
    LOST = "lost"


class LeadPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Lead(Model):
    id = fields.IntField(primary_key=True)

    practice = fields.ForeignKeyField(
        "models.Practice", related_name="leads", null=True, on_delete=fields.CASCADE
    )
    # one auto-generated lead per call at most
    call = fields.OneToOneField(
        "models.Call", related_name="lead", null=True, on_delete=fields.SET_NULL
    )
    patient = fields.ForeignKeyField(
        "models.Patient", related_name="leads", null=True, on_delete=fields.SET_NULL
    )

    status = fields.CharEnumField(LeadStatus, default=LeadStatus.NEW)
    priority = fields.CharEnumField(LeadPriority, default=LeadPriority.MEDIUM)
    expected_value = fields.DecimalField(max_digits=10, decimal_places=2, null=True)
    notes = fields.TextField(null=True)
    source = fields.CharField(max_length=32, default="manual", index=True)

    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "leads"
        indexes = (("practice_id", "status"),)

    def __str__(self) -> str:
        return f"<Lead #{self.id} {self.source} ({self.status})>"
