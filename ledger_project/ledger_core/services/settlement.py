from typing import List, Mapping

from django.conf import settings
from django.core.exceptions import ValidationError

from ..exceptions import InsufficientBalanceError
from ..models import BankAccount, Contact, Payment, PaymentAllocation
from .allocation import AllocationPlan, AllocationTarget, TargetState, TargetUpdate
from .amounts import ZERO


# ----------------------------
# Row <-> planner state
# ----------------------------
def snapshot_target(row) -> TargetState:
    """Freeze the settlement-relevant fields of a locked transaction row."""
    return TargetState(
        kind=row.KIND,
        id=row.pk,
        total=row.total_amount,
        paid=row.paid_amount,
        remaining=row.remaining_amount,
        status=row.status,
        bank_account_id=row.bank_account_id,
        has_contact=row.contact_id is not None,
    )


def apply_target_update(row, update: TargetUpdate):
    row.paid_amount = update.paid
    row.remaining_amount = update.remaining
    row.status = update.status
    row.bank_account_id = update.bank_account_id
    # save() runs full_clean(), so conservation is re-checked on every write
    row.save(update_fields=[
        "paid_amount", "remaining_amount", "status", "bank_account", "updated_at"])


def apply_baseline(contact: Contact, balance):
    contact.opening_balance = balance.amount
    contact.opening_balance_type = balance.direction
    contact.save(update_fields=["opening_balance", "opening_balance_type"])


def move_bank_balance(bank_account: BankAccount, delta, *, enforce_floor=False):
    """Apply a signed delta; optionally refuse to go below zero."""
    new_balance = bank_account.current_balance + delta
    if enforce_floor and delta < 0 and new_balance < 0:
        raise InsufficientBalanceError(
            f"Insufficient balance in {bank_account}: "
            f"{bank_account.current_balance} available, {-delta} required"
        )
    if delta:
        bank_account.apply_delta(delta)
    return bank_account.current_balance


# ----------------------------
# Settlement executor
# ----------------------------
def apply_settlement(payment: Payment, plan: AllocationPlan, contact: Contact,
                     bank_account: BankAccount,
                     rows: Mapping[AllocationTarget, object]) -> List[PaymentAllocation]:
    """
    Write an AllocationPlan: bank balance, contact baseline, every target
    transaction, the Payment row and its allocation rows.
    All rows must already be locked inside the caller's transaction.
    """
    if not bank_account.is_active:
        raise ValidationError(f"Bank account {bank_account} is inactive")

    totals = plan.totals
    move_bank_balance(
        bank_account,
        totals.bank_impact,
        enforce_floor=not settings.LEDGER_ALLOW_NEGATIVE_BANK_BALANCE,
    )

    if plan.baseline_after is not None:
        apply_baseline(contact, plan.baseline_after)

    for target, update in plan.target_updates.items():
        apply_target_update(rows[target], update)

    request = plan.request
    payment.amount = totals.original_amount
    payment.payment_type = totals.payment_type
    payment.adjustment_type = request.adjustment_type
    payment.adjustment_value = request.adjustment_value
    payment.save()

    allocations = []
    for leg in request.allocations:
        allocation = PaymentAllocation(
            company_id=payment.company_id,
            payment=payment,
            balance_type=leg.direction,
            amount=leg.amount or _reference_total(rows.get(leg.target)),
            paid_amount=leg.paid_amount,
        )
        allocation.set_target(leg.target)
        allocation.clean()
        allocations.append(allocation)
    # one INSERT for the whole set, shape is enforced by the check constraint
    return PaymentAllocation.objects.bulk_create(allocations)


def _reference_total(row):
    return row.total_amount if row is not None else ZERO
