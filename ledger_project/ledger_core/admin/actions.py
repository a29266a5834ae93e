from django.contrib import admin, messages
from django.core.exceptions import ValidationError
from django.utils.translation import gettext_lazy as _

from ledger_core.exceptions import LedgerError
from ledger_core.services.payment import delete_payment
from ledger_core.services.transfer import delete_bank_transfer
from ledger_core.tasks import refresh_contact_balance

# ---------- Admin actions ----------


@admin.action(description="Reverse and delete selected payments")
def reverse_payments(modeladmin, request, queryset):
    """
    Each payment is reversed in its own transaction, one failure
    doesn't stop the rest of the batch.
    """
    success = 0
    failures = 0
    for payment in queryset.filter(deleted_at__isnull=True):
        try:
            delete_payment(payment.company, payment.pk, user=request.user)
            success += 1
        except (ValidationError, LedgerError) as exc:
            failures += 1
            modeladmin.message_user(
                request,
                _("Could not reverse %(number)s: %(err)s") % {
                    "number": payment.payment_number, "err": exc},
                level=messages.ERROR,
            )

    # Final summary message
    modeladmin.message_user(
        request,
        _("Reversed %(success)d payment(s). %(failures)d failed.") % {
            "success": success,
            "failures": failures,
        },
        level=messages.SUCCESS if failures == 0 else messages.WARNING,
    )


@admin.action(description="Reverse and delete selected transfers")
def reverse_transfers(modeladmin, request, queryset):
    for transfer in queryset.filter(deleted_at__isnull=True):
        try:
            delete_bank_transfer(transfer.company, transfer.pk, user=request.user)
        except (ValidationError, LedgerError) as exc:
            modeladmin.message_user(
                request, f"{transfer}: {exc}", level=messages.ERROR)


""" Queue a snapshot refresh for each selected contact """


@admin.action(description="Refresh cached balance of selected contacts")
def refresh_balances(modeladmin, request, queryset):
    count = 0
    for contact in queryset:
        refresh_contact_balance.delay(contact.company_id, contact.pk)
        count += 1
    modeladmin.message_user(request, f"Queued balance refresh for {count} contact(s)")
