from decimal import Decimal
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from ..managers import TenantManager
from .company import Company

BANK_ACCOUNT_TYPES = [
    ("bank", "Bank"),
    ("cash", "Cash"),
]


# ---------- Banking ----------


class BankAccount(models.Model):  # Represents bank account or cash box the company maintains
    # Belongs to a Company (multi-tenant)
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    name = models.CharField(
        max_length=200
    )  # e.g. "Checking Account", "Petty Cash"
    account_type = models.CharField(
        max_length=20, choices=BANK_ACCOUNT_TYPES, default="bank"
    )
    # Partial account number for display/security
    account_number_masked = models.CharField(
        max_length=50, null=True, blank=True)

    opening_balance = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    # Signed running total, only ever moved by additive deltas
    # from settlements, reversals and transfers
    current_balance = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        # A company cannot have two accounts with the same name
        constraints = [
            models.UniqueConstraint(
                fields=["company", "name"], name="uq_company_bankaccount_name"
            ),
        ]
        indexes = [models.Index(fields=["company", "name"], name="bankaccount_company_name_idx")]

    def __str__(self):
        # Show name + masked number for clarity
        if self.account_number_masked:
            return f"{self.name} ({self.account_number_masked})"
        return self.name

    def apply_delta(self, delta):
        """Move the running balance by a signed amount and persist it.
        Caller must hold the row lock."""
        self.current_balance = self.current_balance + delta
        self.save(update_fields=["current_balance"])
        return self.current_balance


class BankTransfer(models.Model):  # Moves money between two accounts of one company
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    # e.g. "BT-2025-0001", sequential per company per year
    transfer_number = models.CharField(max_length=32)
    from_bank = models.ForeignKey(
        BankAccount, on_delete=models.PROTECT, related_name="outgoing_transfers"
    )
    to_bank = models.ForeignKey(
        BankAccount, on_delete=models.PROTECT, related_name="incoming_transfers"
    )
    date = models.DateField()
    amount = models.DecimalField(max_digits=18, decimal_places=2)
    description = models.TextField(null=True, blank=True)
    reference_number = models.CharField(max_length=100, null=True, blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True,
        on_delete=models.SET_NULL, related_name="+",
    )
    deleted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True,
        on_delete=models.SET_NULL, related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["company", "date"], name="transfer_company_date_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "transfer_number"], name="uq_transfer_company_number"
            ),
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="transfer_positive_amount",
            ),
            models.CheckConstraint(
                condition=~models.Q(from_bank=models.F("to_bank")),
                name="transfer_distinct_accounts",
            ),
        ]

    def __str__(self):
        return f"{self.transfer_number}: {self.from_bank} → {self.to_bank} ({self.amount})"

    def clean(self):
        # Tenancy check on both legs
        if self.from_bank_id and self.from_bank.company_id != self.company_id:
            raise ValidationError("Source account must belong to the same company.")
        if self.to_bank_id and self.to_bank.company_id != self.company_id:
            raise ValidationError("Destination account must belong to the same company.")
        if self.from_bank_id and self.from_bank_id == self.to_bank_id:
            raise ValidationError("Cannot transfer to the same account")

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
