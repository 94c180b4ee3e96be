"""
Activity recording helper.

Adds an ``ActivityLogModel`` row to the caller's session without
committing, so the entry lands in the same transaction as the change it
describes.
"""

from enum import Enum
from uuid import UUID

from sqlalchemy.orm import Session

from freight_kernel.logging_config import get_logger
from freight_modules.access.models import UserProfile
from freight_modules.access.permissions import normalize_activity_role
from freight_modules.activity.orm import ActivityLogModel

logger = get_logger("modules.activity.recorder")


class ActivityType(str, Enum):
    INVOICE_PAID = "invoice_paid"
    PAYMENT_DELETED = "payment_deleted"
    COSTS_CONFIRMED = "costs_confirmed"
    PJO_CONVERTED = "pjo_converted"


def record_activity(
    session: Session,
    action_type: ActivityType,
    document_type: str,
    document_id: UUID,
    actor: UserProfile | None,
    document_number: str | None = None,
) -> ActivityLogModel:
    entry = ActivityLogModel(
        action_type=action_type.value,
        document_type=document_type,
        document_id=document_id,
        document_number=document_number,
        actor_id=actor.id if actor is not None else None,
        actor_name=actor.email if actor is not None else None,
        actor_role=normalize_activity_role(actor.role if actor is not None else None),
        created_by_id=actor.id if actor is not None else None,
    )
    session.add(entry)
    logger.debug("activity_recorded", extra={
        "action_type": action_type.value,
        "document_type": document_type,
        "document_id": str(document_id),
    })
    return entry
