from django.contrib import admin

from ledger_core.models import PaymentAllocation

from .mixins import TenantAdminMixin

# ---------- Inline admin classes ----------


class PaymentAllocationInline(
    TenantAdminMixin,
    admin.TabularInline
    # shows related objects in table format (rows under parent form)
):
    """Show allocation rows on the Payment page, never editable"""

    model = PaymentAllocation
    extra = 0  # don’t show “empty” rows by default (prevents clutter)
    can_delete = False
    fields = (
        "allocation_type",
        "sale",
        "purchase",
        "expense",
        "income",
        "balance_type",
        "amount",
        "paid_amount",
    )
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        # allocations are written by the settlement engine only
        return False
