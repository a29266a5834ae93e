"""
Payment lifecycle: create, update and delete payments.

Every operation runs in one transaction.atomic() block:
lock rows -> (reverse the old settlement) -> plan -> settle -> audit.
Nothing is committed unless the whole sequence succeeds.
"""
import logging
from functools import partial

from django.db import OperationalError, transaction
from django.utils import timezone

from ..exceptions import ConcurrencyConflict, NotFoundError
from ..models import Company, Payment
from .allocation import PaymentRequest, compute_totals, plan_payment
from .amounts import Balance
from .audit_helper import log_action
from .locking import lock_ledger_rows
from .reversal import apply_reversal, plan_reversal
from .settlement import apply_settlement, snapshot_target

logger = logging.getLogger(__name__)

PAYMENT_NUMBER_PREFIX = "PY"


# ----------------------------
# Helpers
# ----------------------------
def next_document_number(model, field, company, prefix, year=None):
    """
    Sequential per company per year, e.g. PY-2025-0007.
    Must run inside transaction.atomic(): the company row is locked so
    two documents of one company are never numbered at the same time.
    """
    year = year or timezone.now().year
    stem = f"{prefix}-{year}-"
    Company.objects.select_for_update().filter(pk=company.pk).first()
    numbers = model.objects.for_company(company).filter(
        **{f"{field}__startswith": stem}).values_list(field, flat=True)
    # follow the highest number, purged rows leave gaps
    last = max(
        (int(number[len(stem):]) for number in numbers if number[len(stem):].isdigit()),
        default=0,
    )
    return f"{stem}{last + 1:04d}"


def run_atomically(operation, label):
    """Run `operation` in one transaction, lock failures become ConcurrencyConflict."""
    try:
        with transaction.atomic():
            return operation()
    except OperationalError as exc:
        logger.warning("%s hit a database lock conflict: %s", label, exc)
        raise ConcurrencyConflict(f"{label} conflicted with a concurrent update, retry") from exc


def _enqueue_balance_refresh(company_id, contact_ids):
    # import lazily, tasks imports services
    from ..tasks import refresh_contact_balance

    for contact_id in sorted(contact_ids):
        try:
            refresh_contact_balance.delay(company_id, contact_id)
        except Exception:
            # the ledger is committed already, the snapshot can catch up later
            logger.exception("Could not enqueue balance refresh for contact %s", contact_id)


def schedule_balance_refresh(company, contact_ids):
    transaction.on_commit(partial(_enqueue_balance_refresh, company.pk, set(contact_ids)))


def _lock_live_payment(company, payment_id):
    try:
        return (
            Payment.objects.for_company(company)
            .select_for_update()
            .get(pk=payment_id, deleted_at__isnull=True)
        )
    except (Payment.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"Payment not found: {payment_id}")


def _ensure_targets_belong_to(contact, request, rows):
    for target in request.transaction_targets:
        row = rows.transactions[target]
        # contactless expenses/incomes may be settled by any contact's payment
        if row.contact_id is not None and row.contact_id != contact.pk:
            raise NotFoundError(f"{row.label()} does not belong to {contact}")


def _settle(payment, request, rows):
    contact = rows.contacts[request.contact_id]
    bank_account = rows.bank_accounts[request.bank_account_id]
    if contact.deleted_at is not None:
        raise NotFoundError(f"Contact not found: {request.contact_id}")
    _ensure_targets_belong_to(contact, request, rows)

    targets = {
        target: snapshot_target(rows.transactions[target])
        for target in request.transaction_targets
    }
    baseline = Balance(contact.opening_balance, contact.opening_balance_type)
    plan = plan_payment(request, baseline, targets)

    payment.contact = contact
    payment.bank_account = bank_account
    payment.date = request.date
    if request.description is not None:
        payment.description = request.description
    allocations = apply_settlement(payment, plan, contact, bank_account, rows.transactions)
    return plan, allocations


def _reverse(payment, allocations, rows):
    contact = rows.contacts[payment.contact_id]
    bank_account = rows.bank_accounts[payment.bank_account_id]
    targets = {
        a.target: snapshot_target(rows.transactions[a.target])
        for a in allocations
        if a.target in rows.transactions
    }
    baseline = Balance(contact.opening_balance, contact.opening_balance_type)
    plan = plan_reversal(payment, allocations, baseline, targets)
    apply_reversal(payment, plan, contact, bank_account, rows.transactions)
    return plan


def _lock_for_reversal(company, payment, extra_contact_ids=(), extra_bank_ids=(), extra_targets=()):
    allocations = list(payment.allocations.select_for_update().order_by("pk"))
    old_targets = {a.target for a in allocations}
    rows = lock_ledger_rows(
        company,
        {payment.contact_id, *extra_contact_ids},
        {payment.bank_account_id, *extra_bank_ids},
        old_targets | set(extra_targets),
    )
    return allocations, rows


def _payment_changes(payment, plan):
    totals = plan.totals
    return {
        "payment_number": payment.payment_number,
        "contact_id": payment.contact_id,
        "bank_account_id": payment.bank_account_id,
        "date": payment.date,
        "amount": payment.amount,
        "payment_type": payment.payment_type,
        "adjustment_type": payment.adjustment_type,
        "adjustment_value": payment.adjustment_value,
        "bank_impact": totals.bank_impact,
        "allocations": [
            {"target": str(a.target), "type": a.direction, "paid_amount": a.paid_amount}
            for a in plan.request.allocations
        ],
    }


# ----------------------------
# Lifecycle
# ----------------------------
def create_payment(company, *, contact_id, bank_account_id, date, allocations,
                   adjustment_type=None, adjustment_value=None, description=None,
                   user=None) -> Payment:
    """
    Record a payment and settle every allocation against it.
    Raises ValidationError before any lock when the input is malformed.
    """
    request = PaymentRequest.from_payload(
        contact_id=contact_id,
        bank_account_id=bank_account_id,
        date=date,
        allocations=allocations,
        adjustment_type=adjustment_type,
        adjustment_value=adjustment_value,
        description=description,
    )

    def operation():
        rows = lock_ledger_rows(
            company, [request.contact_id], [request.bank_account_id],
            request.transaction_targets)
        payment = Payment(
            company=company,
            payment_number=next_document_number(
                Payment, "payment_number", company, PAYMENT_NUMBER_PREFIX),
            created_by=user,
        )
        plan, _ = _settle(payment, request, rows)
        log_action(action="create", instance=payment, user=user,
                   changes=_payment_changes(payment, plan))
        schedule_balance_refresh(company, [request.contact_id])
        return payment, plan

    payment, plan = run_atomically(operation, "Create payment")
    logger.info(
        "Created %s: %s %s, bank impact %s, %d allocation(s)",
        payment.payment_number, payment.payment_type, payment.amount,
        plan.totals.bank_impact, len(request.allocations),
    )
    return payment


def update_payment(company, payment_id, *, contact_id, bank_account_id, date,
                   allocations, adjustment_type=None, adjustment_value=None,
                   description=None, user=None) -> Payment:
    """
    Reverse the payment's current settlement and settle the new input in
    its place. The payment keeps its id and number.
    """
    request = PaymentRequest.from_payload(
        contact_id=contact_id,
        bank_account_id=bank_account_id,
        date=date,
        allocations=allocations,
        adjustment_type=adjustment_type,
        adjustment_value=adjustment_value,
        description=description,
    )

    def operation():
        payment = _lock_live_payment(company, payment_id)
        old_allocations, rows = _lock_for_reversal(
            company, payment,
            extra_contact_ids=[request.contact_id],
            extra_bank_ids=[request.bank_account_id],
            extra_targets=request.transaction_targets,
        )
        old_contact_id = payment.contact_id
        reversal = _reverse(payment, old_allocations, rows)
        plan, _ = _settle(payment, request, rows)

        changes = _payment_changes(payment, plan)
        changes["reversed_bank_impact"] = reversal.totals.bank_impact
        log_action(action="update", instance=payment, user=user, changes=changes)
        schedule_balance_refresh(company, [old_contact_id, request.contact_id])
        return payment, plan

    payment, plan = run_atomically(operation, "Update payment")
    logger.info(
        "Updated %s: %s %s, bank impact %s, %d allocation(s)",
        payment.payment_number, payment.payment_type, payment.amount,
        plan.totals.bank_impact, len(request.allocations),
    )
    return payment


def delete_payment(company, payment_id, user=None) -> Payment:
    """Reverse the settlement and soft-delete the payment. Deleted is terminal."""

    def operation():
        payment = _lock_live_payment(company, payment_id)
        allocations, rows = _lock_for_reversal(company, payment)
        reversal = _reverse(payment, allocations, rows)

        payment.deleted_at = timezone.now()
        payment.deleted_by = user
        payment.save(update_fields=["deleted_at", "deleted_by", "updated_at"])

        log_action(action="delete", instance=payment, user=user, changes={
            "payment_number": payment.payment_number,
            "reversed_bank_impact": reversal.totals.bank_impact,
            "allocations_removed": len(allocations),
        })
        schedule_balance_refresh(company, [payment.contact_id])
        return payment, reversal

    payment, reversal = run_atomically(operation, "Delete payment")
    logger.info(
        "Deleted %s, bank impact %s reversed",
        payment.payment_number, reversal.totals.bank_impact,
    )
    return payment


# ----------------------------
# Reads
# ----------------------------
def get_payment_details(company, payment_id):
    """Payment with its allocations and the totals they imply."""
    try:
        payment = (
            Payment.objects.for_company(company)
            .select_related("contact", "bank_account")
            .get(pk=payment_id)
        )
    except (Payment.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"Payment not found: {payment_id}")

    allocations = list(
        payment.allocations.select_related("sale", "purchase", "expense", "income")
        .order_by("pk")
    )
    totals = compute_totals(
        ((a.balance_type, a.paid_amount) for a in allocations),
        payment.adjustment_type,
        payment.adjustment_value,
    )
    return {
        "payment": payment,
        "allocations": [
            {
                "transactionId": a.target.id if a.target.id is not None else a.target.kind,
                "transactionType": a.allocation_type,
                "type": a.balance_type,
                "amount": a.amount,
                "paidAmount": a.paid_amount,
                "description": _allocation_label(a),
            }
            for a in allocations
        ],
        "totals": totals,
    }


def _allocation_label(allocation):
    target = allocation.target
    if target.is_current_balance:
        return "Current balance"
    return getattr(allocation, target.kind).label()


def list_payments(company, contact_id=None, payment_type=None, start_date=None,
                  end_date=None, include_deleted=False):
    qs = Payment.objects.for_company(company).select_related("contact", "bank_account")
    if not include_deleted:
        qs = qs.alive()
    if contact_id:
        qs = qs.filter(contact_id=contact_id)
    if payment_type:
        qs = qs.filter(payment_type=payment_type)
    if start_date:
        qs = qs.filter(date__gte=start_date)
    if end_date:
        qs = qs.filter(date__lte=end_date)
    return qs.order_by("-date", "-pk")
