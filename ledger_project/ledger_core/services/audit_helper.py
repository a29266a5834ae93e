import datetime
from decimal import Decimal
from typing import Optional

from ..models import AuditLog, Company


def _jsonable(value):
    # JSONField can't store Decimal/date, keep them as exact strings
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    return value


def log_action(
    *,
    action: str,
    instance,
    user=None,
    company: Optional[Company] = None,
    changes: dict | None = None,
):
    """
    Central audit logger for ledger mutations.
    Runs inside the caller's transaction, so a rolled-back settlement
    leaves no audit row behind.
    """

    if not company:
        company = getattr(instance, "company", None)

    return AuditLog.objects.create(
        company=company,
        user=user,
        action=action,
        object_type=instance.__class__.__name__,
        object_id=str(instance.pk),
        changes=_jsonable(changes) if changes is not None else None,
    )
