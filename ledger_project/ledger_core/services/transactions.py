import logging

from django.core.exceptions import ValidationError
from django.utils import timezone

from ..exceptions import NotFoundError
from ..models import OBLIGATION_MODELS
from .allocation import derive_bank_reference
from .amounts import money
from .audit_helper import log_action
from .payment import run_atomically, schedule_balance_refresh
from .settlement import snapshot_target

logger = logging.getLogger(__name__)


def _model_for(kind):
    try:
        return OBLIGATION_MODELS[kind]
    except KeyError:
        raise ValidationError(f"Invalid transaction type: {kind!r}")


def _lock_transaction(company, model, transaction_id):
    try:
        return (
            model.objects.live()
            .filter(company=company)
            .select_for_update()
            .get(pk=transaction_id)
        )
    except (model.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"{model.KIND.capitalize()} not found: {transaction_id}")


def _settling_bank_id(row, state):
    """Account a row counts as settled through: its current reference, else the latest payment."""
    if state.bank_account_id is not None:
        return state.bank_account_id
    # reversal removes allocation rows, so every remaining one belongs to a live payment
    latest = row.allocations.select_related("payment").order_by("-pk").first()
    return latest.payment.bank_account_id if latest else None


def update_transaction_total(company, kind, transaction_id, new_total, user=None):
    """
    Change a sale/purchase/expense/income total after payments were made.
    Payments already applied stay applied; only remaining/status move.
    """
    model = _model_for(kind)
    new_total = money(new_total, "total")
    if new_total < 0:
        raise ValidationError("Total amount cannot be negative")

    def operation():
        row = _lock_transaction(company, model, transaction_id)
        if new_total < row.paid_amount:
            raise ValidationError(
                f"New total {new_total} is below the {row.paid_amount} already paid "
                f"against {row.label()}"
            )
        state = snapshot_target(row)
        old_total = row.total_amount

        setattr(row, model.TOTAL_FIELD, new_total)
        row.remaining_amount = new_total - row.paid_amount
        is_paid = row.remaining_amount <= 0
        row.status = "paid" if is_paid else "pending"
        row.bank_account_id = derive_bank_reference(state, is_paid, _settling_bank_id(row, state))
        row.save()

        log_action(action="update", instance=row, user=user, changes={
            "old_total": old_total,
            "total": new_total,
            "remaining_amount": row.remaining_amount,
            "status": row.status,
        })
        if row.contact_id:
            schedule_balance_refresh(company, [row.contact_id])
        return row

    row = run_atomically(operation, f"Update {kind} total")
    logger.info("%s total set to %s, remaining %s", row.label(), row.total_amount,
                row.remaining_amount)
    return row


def soft_delete_transaction(company, kind, transaction_id, user=None):
    """Soft-delete a sale or purchase nothing is allocated to any more."""
    model = _model_for(kind)
    if not model.SOFT_DELETE:
        raise ValidationError(f"{kind.capitalize()} records cannot be soft-deleted")

    def operation():
        row = _lock_transaction(company, model, transaction_id)
        # reversal drops allocation rows, so any row left belongs to a live payment
        if row.allocations.exists():
            raise ValidationError(
                f"Cannot delete {row.label()} with applied payments, delete the payments first")
        row.deleted_at = timezone.now()
        row.deleted_by = user
        row.save(update_fields=["deleted_at", "deleted_by", "updated_at"])

        log_action(action="delete", instance=row, user=user,
                   changes={"remaining_amount": row.remaining_amount})
        schedule_balance_refresh(company, [row.contact_id])
        return row

    row = run_atomically(operation, f"Delete {kind}")
    logger.info("Soft-deleted %s", row.label())
    return row
