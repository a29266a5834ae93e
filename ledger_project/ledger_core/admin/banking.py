from django.contrib import admin

from ledger_core.models import BankAccount, BankTransfer

from .actions import reverse_transfers
from .mixins import TenantAdminMixin
from .ReadOnly import ReadOnlyAdmin


# Register `BankAccount` model
@admin.register(BankAccount)
class BankAccountAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("id", "company", "name", "account_type", "account_number_masked",
                    "current_balance", "is_active")
    list_filter = ("company", "account_type", "is_active")
    search_fields = ("name", "account_number_masked")

    # Only settlements, reversals and transfers move the running balance
    def get_readonly_fields(self, request, obj=None):
        if obj is None:
            return ("current_balance",)
        return ("opening_balance", "current_balance", "created_at")

    def save_model(self, request, obj, form, change):
        if not change:
            obj.current_balance = obj.opening_balance
        super().save_model(request, obj, form, change)


# Register `BankTransfer` model; create/update go through services.transfer
@admin.register(BankTransfer)
class BankTransferAdmin(TenantAdminMixin, ReadOnlyAdmin):
    list_display = ("transfer_number", "company", "date", "from_bank", "to_bank",
                    "amount", "deleted_at")
    list_filter = ("company", "date")
    search_fields = ("transfer_number", "reference_number")
    actions = [reverse_transfers]

    # Fetch everything in one SQL join
    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("company", "from_bank", "to_bank")
