from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict

from django.db.models import DecimalField, Sum, Value
from django.db.models.functions import Coalesce
from django.utils import timezone

from ..exceptions import NotFoundError
from ..models import CURRENT_BALANCE, OBLIGATION_MODELS, Contact
from .amounts import ZERO, Balance, from_signed, to_signed

# Pending payables push the signed balance up, pending receivables pull it down
KIND_SIGN = {
    "purchase": 1,
    "expense": 1,
    "sale": -1,
    "income": -1,
}

# Column each kind is dated by when listed
DATE_FIELDS = {
    "sale": "invoice_date",
    "purchase": "invoice_date",
    "expense": "date",
    "income": "date",
}


@dataclass(frozen=True)
class ContactBalance:
    amount: Decimal
    direction: str
    breakdown: Dict[str, Decimal] = field(default_factory=dict)


def _get_contact(company, contact_id):
    try:
        return Contact.objects.for_company(company).get(
            pk=contact_id, deleted_at__isnull=True)
    except (Contact.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"Contact not found: {contact_id}")


def _pending_queryset(model, company, contact_id):
    return model.objects.live().filter(
        company=company, contact_id=contact_id, status="pending")


def _pending_total(model, company, contact_id):
    agg = _pending_queryset(model, company, contact_id).aggregate(
        total=Coalesce(
            Sum("remaining_amount"),
            Value(ZERO),
            output_field=DecimalField(max_digits=18, decimal_places=2),
        )
    )
    return agg["total"]


def balance_from_baseline(company, contact) -> ContactBalance:
    """
    Baseline + every pending transaction, one aggregate per kind.
    Read-only: the same database state always gives the same answer.
    """
    baseline = to_signed(Balance(contact.opening_balance, contact.opening_balance_type))
    breakdown = {"baseline": baseline}
    signed = baseline
    for kind, model in OBLIGATION_MODELS.items():
        pending = _pending_total(model, company, contact.pk)
        breakdown[kind] = pending
        signed += KIND_SIGN[kind] * pending
    breakdown["signed"] = signed

    result = from_signed(signed)
    return ContactBalance(result.amount, result.direction, breakdown)


def compute_contact_balance(company, contact_id) -> ContactBalance:
    contact = _get_contact(company, contact_id)
    return balance_from_baseline(company, contact)


# Name used by callers outside the settlement engine
get_contact_balance = compute_contact_balance


def get_pending_transactions(company, contact_id):
    """
    Everything a new payment could be allocated to, shaped like the
    allocation payload so a client can post entries straight back.

    The current-balance entry is the computed balance, which already
    includes every pending row listed after it. Settle either that entry
    or the rows in full, never both, or the rows are paid twice.
    """
    contact = _get_contact(company, contact_id)
    balance = balance_from_baseline(company, contact)

    entries = []
    if balance.amount > 0:
        entries.append({
            "transactionId": CURRENT_BALANCE,
            "transactionType": CURRENT_BALANCE,
            "type": balance.direction,
            "amount": balance.amount,
            "paidAmount": ZERO,
            "pendingAmount": balance.amount,
            "description": "Current balance",
            "date": None,
        })

    total_pending = ZERO
    for kind, model in OBLIGATION_MODELS.items():
        date_field = DATE_FIELDS[kind]
        rows = _pending_queryset(model, company, contact.pk).order_by(date_field, "pk")
        for row in rows:
            total_pending += row.remaining_amount
            entries.append({
                "transactionId": row.pk,
                "transactionType": kind,
                "type": model.DIRECTION,
                "amount": row.total_amount,
                "paidAmount": row.paid_amount,
                "pendingAmount": row.remaining_amount,
                "description": row.label(),
                "date": getattr(row, date_field),
            })

    return {
        "contact": contact,
        "transactions": entries,
        "summary": {
            "totalPending": total_pending,
            "currentBalance": balance.amount,
            "balanceType": balance.direction,
        },
    }


def refresh_contact_snapshot(company, contact_id) -> ContactBalance:
    """Store the computed balance in the contact's cached snapshot columns."""
    balance = compute_contact_balance(company, contact_id)
    # update() leaves the ledger columns alone even if the row is being settled
    Contact.objects.filter(pk=contact_id).update(
        current_balance=balance.amount,
        current_balance_type=balance.direction,
        balance_updated_at=timezone.now(),
    )
    return balance
