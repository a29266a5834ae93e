"""
Reversal: undo exactly what a payment's settlement wrote.

Everything is derived from the stored allocation rows and the payment's
stored adjustment, never from the caller's input.
"""
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Dict, Iterable, Mapping, Optional

from .allocation import (AllocationTarget, PaymentTotals, TargetState, TargetUpdate,
                         compute_totals, derive_bank_reference)
from .amounts import ZERO, Balance, shift_balance
from .settlement import apply_baseline, apply_target_update, move_bank_balance


@dataclass(frozen=True)
class ReversalPlan:
    totals: PaymentTotals
    # signed delta that undoes the settlement's bank impact
    bank_delta: Decimal
    baseline_after: Optional[Balance]
    target_updates: Dict[AllocationTarget, TargetUpdate] = field(default_factory=dict)


def _unsettle_target(state: TargetState, paid_amount) -> TargetUpdate:
    # clamp at zero so paid + remaining == total survives any drift
    new_paid = max(ZERO, state.paid - paid_amount)
    new_remaining = state.total - new_paid
    is_paid = new_remaining <= 0
    return TargetUpdate(
        paid=new_paid,
        remaining=new_remaining,
        status="paid" if is_paid else "pending",
        # a zero-value allocation leaves a paid transaction paid, reference included
        bank_account_id=derive_bank_reference(state, is_paid, state.bank_account_id),
    )


def plan_reversal(payment, allocations: Iterable, baseline: Balance,
                  targets: Mapping[AllocationTarget, TargetState]) -> ReversalPlan:
    allocations = list(allocations)
    totals = compute_totals(
        ((a.balance_type, a.paid_amount) for a in allocations),
        payment.adjustment_type,
        payment.adjustment_value,
    )

    states = dict(targets)
    updates = {}
    baseline_after = None
    running_baseline = baseline

    for allocation in allocations:
        target = allocation.target
        if target.is_current_balance:
            running_baseline = shift_balance(
                running_baseline, allocation.balance_type, allocation.paid_amount,
                reverse=True,
            )
            baseline_after = running_baseline
            continue

        state = states.get(target)
        if state is None:
            # the transaction was hard-deleted or soft-deleted since, nothing to restore
            continue
        update = _unsettle_target(state, allocation.paid_amount)
        states[target] = replace(
            state,
            paid=update.paid,
            remaining=update.remaining,
            status=update.status,
            bank_account_id=update.bank_account_id,
        )
        updates[target] = update

    return ReversalPlan(
        totals=totals,
        bank_delta=-totals.bank_impact,
        baseline_after=baseline_after,
        target_updates=updates,
    )


def apply_reversal(payment, plan: ReversalPlan, contact, bank_account,
                   rows: Mapping[AllocationTarget, object]):
    """
    Write a ReversalPlan and drop the payment's allocation rows.
    Reversal never checks the bank floor: undoing a receipt may push an
    account negative.
    """
    move_bank_balance(bank_account, plan.bank_delta)

    if plan.baseline_after is not None:
        apply_baseline(contact, plan.baseline_after)

    for target, update in plan.target_updates.items():
        apply_target_update(rows[target], update)

    # QuerySet.delete() skips Model.save(), allocations stay write-once
    payment.allocations.all().delete()
