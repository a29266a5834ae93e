import logging

from django.core.exceptions import ValidationError
from django.db.models import Q
from django.utils import timezone

from ..exceptions import InsufficientBalanceError, NotFoundError
from ..models import BankTransfer
from .allocation import parse_id, parse_ledger_date
from .amounts import money
from .audit_helper import log_action
from .locking import lock_ledger_rows
from .payment import next_document_number, run_atomically

logger = logging.getLogger(__name__)

TRANSFER_NUMBER_PREFIX = "BT"


def _validate_transfer(from_bank_id, to_bank_id, date, amount):
    if not from_bank_id or not to_bank_id or not date or amount in (None, ""):
        raise ValidationError("Required fields are missing")
    from_bank_id = parse_id(from_bank_id, "bank account")
    to_bank_id = parse_id(to_bank_id, "bank account")
    if from_bank_id == to_bank_id:
        raise ValidationError("Cannot transfer to the same account")
    amount = money(amount)
    if amount <= 0:
        raise ValidationError("Transfer amount must be greater than zero")
    return from_bank_id, to_bank_id, parse_ledger_date(date), amount


def _move(from_bank, to_bank, amount):
    if not from_bank.is_active or not to_bank.is_active:
        raise ValidationError("Transfers need two active bank accounts")
    # transfers never overdraw, whatever LEDGER_ALLOW_NEGATIVE_BANK_BALANCE says
    if from_bank.current_balance < amount:
        raise InsufficientBalanceError(
            f"Insufficient balance in {from_bank}: "
            f"{from_bank.current_balance} available, {amount} required"
        )
    from_bank.apply_delta(-amount)
    to_bank.apply_delta(amount)


def _unmove(from_bank, to_bank, amount):
    from_bank.apply_delta(amount)
    to_bank.apply_delta(-amount)


def _lock_live_transfer(company, transfer_id):
    try:
        return (
            BankTransfer.objects.for_company(company)
            .select_for_update()
            .get(pk=transfer_id, deleted_at__isnull=True)
        )
    except (BankTransfer.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"Transfer not found: {transfer_id}")


def create_bank_transfer(company, *, from_bank_id, to_bank_id, date, amount,
                         description=None, reference_number=None, user=None):
    from_bank_id, to_bank_id, date, amount = _validate_transfer(
        from_bank_id, to_bank_id, date, amount)

    def operation():
        # both accounts locked in id order
        banks = lock_ledger_rows(company, bank_account_ids=[from_bank_id, to_bank_id]).bank_accounts
        from_bank, to_bank = banks[from_bank_id], banks[to_bank_id]
        _move(from_bank, to_bank, amount)

        transfer = BankTransfer.objects.create(
            company=company,
            transfer_number=next_document_number(
                BankTransfer, "transfer_number", company, TRANSFER_NUMBER_PREFIX),
            from_bank=from_bank,
            to_bank=to_bank,
            date=date,
            amount=amount,
            description=description,
            reference_number=reference_number,
            created_by=user,
        )
        log_action(action="create", instance=transfer, user=user, changes={
            "transfer_number": transfer.transfer_number,
            "from_bank_id": from_bank_id,
            "to_bank_id": to_bank_id,
            "amount": amount,
        })
        return transfer

    transfer = run_atomically(operation, "Create bank transfer")
    logger.info("Created %s: %s from %s to %s",
                transfer.transfer_number, amount, from_bank_id, to_bank_id)
    return transfer


def update_bank_transfer(company, transfer_id, *, from_bank_id=None, to_bank_id=None,
                         date=None, amount=None, description=None,
                         reference_number=None, user=None):
    """
    Omitted fields keep their current value. The old transfer is fully
    undone before the new one is checked and applied.
    """
    if from_bank_id and to_bank_id and str(from_bank_id) == str(to_bank_id):
        raise ValidationError("Cannot transfer to the same account")

    def operation():
        transfer = _lock_live_transfer(company, transfer_id)
        new_from, new_to, new_date, new_amount = _validate_transfer(
            from_bank_id or transfer.from_bank_id,
            to_bank_id or transfer.to_bank_id,
            date or transfer.date,
            transfer.amount if amount in (None, "") else amount,
        )
        banks = lock_ledger_rows(
            company,
            bank_account_ids={transfer.from_bank_id, transfer.to_bank_id, new_from, new_to},
        ).bank_accounts

        old_amount = transfer.amount
        _unmove(banks[transfer.from_bank_id], banks[transfer.to_bank_id], old_amount)
        _move(banks[new_from], banks[new_to], new_amount)

        transfer.from_bank = banks[new_from]
        transfer.to_bank = banks[new_to]
        transfer.date = new_date
        transfer.amount = new_amount
        if description is not None:
            transfer.description = description
        if reference_number is not None:
            transfer.reference_number = reference_number
        transfer.save()

        log_action(action="update", instance=transfer, user=user, changes={
            "transfer_number": transfer.transfer_number,
            "from_bank_id": new_from,
            "to_bank_id": new_to,
            "old_amount": old_amount,
            "amount": new_amount,
        })
        return transfer

    transfer = run_atomically(operation, "Update bank transfer")
    logger.info("Updated %s: %s from %s to %s", transfer.transfer_number,
                transfer.amount, transfer.from_bank_id, transfer.to_bank_id)
    return transfer


def delete_bank_transfer(company, transfer_id, user=None):
    """Give the money back to the source account and soft-delete the transfer."""

    def operation():
        transfer = _lock_live_transfer(company, transfer_id)
        banks = lock_ledger_rows(
            company, bank_account_ids=[transfer.from_bank_id, transfer.to_bank_id],
        ).bank_accounts
        _unmove(banks[transfer.from_bank_id], banks[transfer.to_bank_id], transfer.amount)

        transfer.deleted_at = timezone.now()
        transfer.deleted_by = user
        transfer.save(update_fields=["deleted_at", "deleted_by", "updated_at"])
        log_action(action="delete", instance=transfer, user=user, changes={
            "transfer_number": transfer.transfer_number,
            "amount": transfer.amount,
        })
        return transfer

    transfer = run_atomically(operation, "Delete bank transfer")
    logger.info("Deleted %s, %s returned to %s",
                transfer.transfer_number, transfer.amount, transfer.from_bank_id)
    return transfer


def list_bank_transfers(company, bank_account_id=None, start_date=None, end_date=None):
    qs = (
        BankTransfer.objects.for_company(company)
        .alive()
        .select_related("from_bank", "to_bank")
    )
    if bank_account_id:
        qs = qs.filter(Q(from_bank_id=bank_account_id) | Q(to_bank_id=bank_account_id))
    if start_date:
        qs = qs.filter(date__gte=start_date)
    if end_date:
        qs = qs.filter(date__lte=end_date)
    return qs.order_by("-date", "-pk")
