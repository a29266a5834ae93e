from dataclasses import dataclass, field
from typing import Dict, Iterable

from ..exceptions import NotFoundError
from ..models import OBLIGATION_MODELS, BankAccount, Contact
from .allocation import TRANSACTION_KINDS, AllocationTarget


@dataclass
class LockedRows:
    contacts: Dict[int, Contact] = field(default_factory=dict)
    bank_accounts: Dict[int, BankAccount] = field(default_factory=dict)
    transactions: Dict[AllocationTarget, object] = field(default_factory=dict)


def _lock_by_id(queryset, ids, label):
    ids = sorted(set(ids))
    if not ids:
        return {}
    rows = {
        row.pk: row
        for row in queryset.select_for_update().filter(pk__in=ids).order_by("pk")
    }
    missing = [pk for pk in ids if pk not in rows]
    if missing:
        raise NotFoundError(f"{label} not found: {', '.join(map(str, missing))}")
    return rows


def lock_ledger_rows(company, contact_ids: Iterable[int] = (),
                     bank_account_ids: Iterable[int] = (),
                     targets: Iterable[AllocationTarget] = ()) -> LockedRows:
    """
    Lock every row a settlement or reversal will touch, always in the same
    order: contacts, then bank accounts, then transactions kind by kind,
    each sorted by id. Must run inside transaction.atomic().
    The company row is locked after these, only while numbering a new document.
    One query per table keeps lock hold time short for large allocation sets.
    """
    locked = LockedRows()
    locked.contacts = _lock_by_id(
        Contact.objects.for_company(company), contact_ids, "Contact")
    locked.bank_accounts = _lock_by_id(
        BankAccount.objects.for_company(company), bank_account_ids, "Bank account")

    wanted = {}
    for target in targets:
        if not target.is_current_balance:
            wanted.setdefault(target.kind, set()).add(target.id)

    for kind in TRANSACTION_KINDS:
        if kind not in wanted:
            continue
        model = OBLIGATION_MODELS[kind]
        rows = _lock_by_id(
            model.objects.live().filter(company=company), wanted[kind], kind.capitalize())
        for pk, row in rows.items():
            locked.transactions[AllocationTarget(kind, pk)] = row

    return locked
