"""
Allocation planner.

Turns a payment request into an AllocationPlan without touching the
database: bank impact, contact baseline after settlement, and the new
paid/remaining/status/bank reference of every target transaction.
The executors in settlement.py and reversal.py do the writes.
"""
import datetime
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Dict, Iterable, Mapping, Optional, Tuple

from django.core.exceptions import ValidationError
from django.utils.dateparse import parse_date

from ..exceptions import NotFoundError
from ..models.payment import ALLOCATION_TARGET_FIELDS, CURRENT_BALANCE
from .amounts import (DIRECTIONS, PAYABLE, RECEIVABLE, ZERO, Balance, money,
                      shift_balance)

TRANSACTION_KINDS = tuple(ALLOCATION_TARGET_FIELDS)
ALLOCATION_KINDS = TRANSACTION_KINDS + (CURRENT_BALANCE,)

# Which way each kind points when the caller doesn't say
NATURAL_DIRECTION = {
    "sale": RECEIVABLE,
    "income": RECEIVABLE,
    "purchase": PAYABLE,
    "expense": PAYABLE,
}

ADJUSTMENT_TYPES = ("none", "discount", "extra_receipt", "surcharge")


@dataclass(frozen=True)
class AllocationTarget:
    """Tagged union: a transaction of some kind, or the current balance (id None)."""
    kind: str
    id: Optional[int] = None

    @property
    def is_current_balance(self):
        return self.kind == CURRENT_BALANCE

    def __str__(self):
        return self.kind if self.is_current_balance else f"{self.kind}#{self.id}"


@dataclass(frozen=True)
class AllocationRequest:
    target: AllocationTarget
    direction: str
    paid_amount: Decimal
    # reference total shown to the user when the allocation was made
    amount: Decimal = ZERO


@dataclass(frozen=True)
class PaymentRequest:
    contact_id: int
    bank_account_id: int
    date: datetime.date
    allocations: Tuple[AllocationRequest, ...]
    adjustment_type: str = "none"
    adjustment_value: Decimal = ZERO
    description: Optional[str] = None

    @classmethod
    def from_payload(cls, *, contact_id, bank_account_id, date, allocations,
                     adjustment_type=None, adjustment_value=None, description=None):
        """Validate raw input. Raises ValidationError before any lock is taken."""
        if not contact_id or not bank_account_id or not date or not allocations:
            raise ValidationError("Required fields are missing")

        adjustment_type = adjustment_type or "none"
        if adjustment_type not in ADJUSTMENT_TYPES:
            raise ValidationError("Invalid adjustment type")
        adjustment_value = money(adjustment_value, "adjustment value")
        if adjustment_value < 0:
            raise ValidationError("Adjustment value cannot be negative")

        parsed = tuple(parse_allocation(raw) for raw in allocations)
        if sum(1 for a in parsed if a.target.is_current_balance) > 1:
            raise ValidationError("Only one current-balance allocation is allowed")

        return cls(
            contact_id=parse_id(contact_id, "contact"),
            bank_account_id=parse_id(bank_account_id, "bank account"),
            date=parse_ledger_date(date),
            allocations=parsed,
            adjustment_type=adjustment_type,
            adjustment_value=adjustment_value,
            description=description,
        )

    @property
    def transaction_targets(self):
        return {a.target for a in self.allocations if not a.target.is_current_balance}


def parse_id(value, label):
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {label} id: {value!r}")


def parse_ledger_date(value):
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    try:
        parsed = parse_date(str(value))
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError(f"Invalid date: {value!r}")
    return parsed


def parse_allocation(raw) -> AllocationRequest:
    """
    Accept an AllocationRequest or a payload dict:
    {transactionId, transactionType, type, paidAmount, amount}
    """
    if isinstance(raw, AllocationRequest):
        return raw
    if not isinstance(raw, Mapping):
        raise ValidationError(f"Invalid allocation: {raw!r}")

    transaction_id = raw.get("transactionId")
    kind = raw.get("transactionType")
    if transaction_id == CURRENT_BALANCE:
        kind = CURRENT_BALANCE
    if kind not in ALLOCATION_KINDS:
        raise ValidationError(f"Invalid transaction type: {kind!r}")

    if kind == CURRENT_BALANCE:
        target = AllocationTarget(CURRENT_BALANCE)
    else:
        if transaction_id in (None, ""):
            raise ValidationError("Allocation is missing transactionId")
        target = AllocationTarget(kind, parse_id(transaction_id, kind))

    direction = raw.get("type") or NATURAL_DIRECTION.get(kind, PAYABLE)
    if direction not in DIRECTIONS:
        raise ValidationError(f"Invalid balance type: {direction!r}")

    paid_amount = money(raw.get("paidAmount"), "paid amount")
    if paid_amount < 0:
        raise ValidationError("Paid amount cannot be negative")

    return AllocationRequest(
        target=target,
        direction=direction,
        paid_amount=paid_amount,
        amount=money(raw.get("amount"), "amount"),
    )


# ----------------------------
# Totals and adjustments
# ----------------------------
@dataclass(frozen=True)
class PaymentTotals:
    receivable: Decimal
    payable: Decimal
    net_amount: Decimal
    payment_type: str
    absolute_net: Decimal
    original_amount: Decimal
    adjusted_amount: Decimal
    # signed delta for the bank account
    bank_impact: Decimal


def compute_totals(legs: Iterable[Tuple[str, Decimal]], adjustment_type=None,
                   adjustment_value=None) -> PaymentTotals:
    """
    legs: (direction, paid_amount) pairs. Shared by settlement and reversal
    so both sides derive the bank impact from the same formula.
    """
    adjustment_type = adjustment_type or "none"
    if adjustment_type not in ADJUSTMENT_TYPES:
        raise ValidationError("Invalid adjustment type")
    adjustment_value = money(adjustment_value, "adjustment value")

    receivable = ZERO
    payable = ZERO
    for direction, paid in legs:
        if direction == RECEIVABLE:
            receivable += money(paid)
        else:
            payable += money(paid)

    net_amount = receivable - payable
    # payable-dominant means money leaves the business
    payment_type = "receipt" if net_amount >= 0 else "payment"
    absolute_net = abs(net_amount)

    original_amount = absolute_net
    adjusted_amount = absolute_net
    impact = absolute_net
    if adjustment_type == "discount":
        adjusted_amount = max(ZERO, absolute_net - adjustment_value)
        impact = adjusted_amount
    elif adjustment_type in ("extra_receipt", "surcharge"):
        original_amount = absolute_net + adjustment_value
        impact = original_amount

    bank_impact = -impact if payment_type == "payment" else impact

    return PaymentTotals(
        receivable=receivable,
        payable=payable,
        net_amount=net_amount,
        payment_type=payment_type,
        absolute_net=absolute_net,
        original_amount=original_amount,
        adjusted_amount=adjusted_amount,
        bank_impact=bank_impact,
    )


# ----------------------------
# Target transactions
# ----------------------------
@dataclass(frozen=True)
class TargetState:
    """Settlement-relevant snapshot of one locked transaction row."""
    kind: str
    id: int
    total: Decimal
    paid: Decimal
    remaining: Decimal
    status: str
    bank_account_id: Optional[int]
    has_contact: bool = True


@dataclass(frozen=True)
class TargetUpdate:
    paid: Decimal
    remaining: Decimal
    status: str
    bank_account_id: Optional[int]


def derive_bank_reference(state: TargetState, is_paid: bool, settling_bank_id) -> Optional[int]:
    """
    A transaction points at a bank account only while fully paid through it.
    Incomes without a contact were booked straight into a bank account
    and keep their reference whatever happens.
    """
    if state.kind == "income" and not state.has_contact:
        return state.bank_account_id
    return settling_bank_id if is_paid else None


def _settle_target(state: TargetState, paid_amount, settling_bank_id):
    new_paid = state.paid + paid_amount
    if new_paid > state.total:
        raise ValidationError(
            f"Payment exceeds {state.kind} #{state.id} remaining amount "
            f"({state.remaining})"
        )
    new_remaining = max(ZERO, state.total - new_paid)
    is_paid = new_remaining <= 0
    return TargetUpdate(
        paid=new_paid,
        remaining=new_remaining,
        status="paid" if is_paid else "pending",
        bank_account_id=derive_bank_reference(state, is_paid, settling_bank_id),
    )


@dataclass(frozen=True)
class AllocationPlan:
    request: PaymentRequest
    totals: PaymentTotals
    # None when the request has no current-balance allocation
    baseline_after: Optional[Balance]
    target_updates: Dict[AllocationTarget, TargetUpdate] = field(default_factory=dict)


def plan_payment(request: PaymentRequest, baseline: Balance,
                 targets: Mapping[AllocationTarget, TargetState]) -> AllocationPlan:
    """
    Compute everything a settlement will write. `targets` holds the current
    state of every referenced transaction (rows already locked by the caller).
    """
    totals = compute_totals(
        ((a.direction, a.paid_amount) for a in request.allocations),
        request.adjustment_type,
        request.adjustment_value,
    )

    states = dict(targets)
    updates = {}
    baseline_after = None

    for allocation in request.allocations:
        target = allocation.target
        if target.is_current_balance:
            baseline_after = shift_balance(
                baseline, allocation.direction, allocation.paid_amount)
            continue

        state = states.get(target)
        if state is None:
            raise NotFoundError(f"Transaction {target} not found")

        update = _settle_target(state, allocation.paid_amount, request.bank_account_id)
        # the same transaction may appear twice, later legs see earlier ones
        states[target] = replace(
            state,
            paid=update.paid,
            remaining=update.remaining,
            status=update.status,
            bank_account_id=update.bank_account_id,
        )
        updates[target] = update

    return AllocationPlan(
        request=request,
        totals=totals,
        baseline_after=baseline_after,
        target_updates=updates,
    )
