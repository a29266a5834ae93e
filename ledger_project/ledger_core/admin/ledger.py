from django.contrib import admin

from ledger_core.models import (Contact, Expense, Income, Payment,
                                PaymentAllocation, Purchase, Sale)

from .actions import refresh_balances, reverse_payments
from .forms import ObligationForm
from .inlines import PaymentAllocationInline
from .mixins import TenantAdminMixin
from .ReadOnly import ReadOnlyAdmin

# Settlement state, maintained by the settlement engine only
SETTLEMENT_FIELDS = ("paid_amount", "remaining_amount", "status", "bank_account")


# Register `Contact` model
@admin.register(Contact)
class ContactAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("id", "company", "name", "contact_type", "opening_balance",
                    "opening_balance_type", "current_balance", "current_balance_type")
    list_filter = ("company", "contact_type")
    search_fields = ("name", "email")
    # snapshot columns are written by the refresh task
    readonly_fields = ("current_balance", "current_balance_type", "balance_updated_at")
    actions = [refresh_balances]


class ObligationAdmin(TenantAdminMixin, admin.ModelAdmin):
    """Shared admin for sales, purchases, expenses and incomes."""
    form = ObligationForm
    list_filter = ("company", "status")

    def get_readonly_fields(self, request, obj=None):
        fields = list(SETTLEMENT_FIELDS)
        if obj is not None:
            # a total change must keep paid + remaining == total,
            # services.transactions.update_transaction_total does that
            fields.append(self.model.TOTAL_FIELD)
        return fields

    # Fetch everything in one SQL join
    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("company", "contact", "bank_account")


@admin.register(Sale)
class SaleAdmin(ObligationAdmin):
    list_display = ("invoice_number", "company", "contact", "invoice_date",
                    "net_receivable", "paid_amount", "remaining_amount", "status")
    search_fields = ("invoice_number", "contact__name")


@admin.register(Purchase)
class PurchaseAdmin(ObligationAdmin):
    list_display = ("invoice_number", "company", "contact", "invoice_date",
                    "net_payable", "paid_amount", "remaining_amount", "status")
    search_fields = ("invoice_number", "contact__name")


@admin.register(Expense)
class ExpenseAdmin(ObligationAdmin):
    list_display = ("id", "company", "contact", "date", "amount",
                    "paid_amount", "remaining_amount", "status")
    search_fields = ("notes", "contact__name")


@admin.register(Income)
class IncomeAdmin(ObligationAdmin):
    list_display = ("id", "company", "contact", "date", "amount",
                    "paid_amount", "remaining_amount", "status")
    search_fields = ("notes", "contact__name")


# Register `Payment` model; payments are recorded through services.payment
@admin.register(Payment)
class PaymentAdmin(TenantAdminMixin, ReadOnlyAdmin):
    list_display = ("payment_number", "company", "contact", "bank_account", "date",
                    "payment_type", "amount", "adjustment_type", "deleted_at")
    list_filter = ("company", "payment_type", "adjustment_type", "date")
    search_fields = ("payment_number", "contact__name")
    inlines = [PaymentAllocationInline]
    actions = [reverse_payments]

    # Fetch everything in one SQL join
    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("company", "contact", "bank_account")


@admin.register(PaymentAllocation)
class PaymentAllocationAdmin(TenantAdminMixin, ReadOnlyAdmin):
    list_display = ("id", "payment", "allocation_type", "balance_type",
                    "amount", "paid_amount")
    search_fields = ("payment__payment_number",)

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("payment")
