from decimal import Decimal
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from ..managers import TenantManager
from .banking import BankAccount
from .company import Company
from .contact import BALANCE_TYPE_CHOICES, Contact
from .obligation import Expense, Income, Purchase, Sale

PAYMENT_TYPE_CHOICES = [
    ("payment", "Payment"),  # money leaves the bank account
    ("receipt", "Receipt"),  # money comes into the bank account
]

ADJUSTMENT_TYPE_CHOICES = [
    ("none", "None"),
    ("discount", "Discount"),
    ("extra_receipt", "Extra receipt"),
    ("surcharge", "Surcharge"),
]

CURRENT_BALANCE = "current-balance"

ALLOCATION_TYPE_CHOICES = [
    ("sale", "Sale"),
    ("purchase", "Purchase"),
    ("expense", "Expense"),
    ("income", "Income"),
    (CURRENT_BALANCE, "Current balance"),
]

# allocation_type -> FK column that must be the only one set
ALLOCATION_TARGET_FIELDS = {
    "sale": "sale",
    "purchase": "purchase",
    "expense": "expense",
    "income": "income",
}


def allocation_target_condition():
    """Exactly one target FK is set and it matches allocation_type,
    or none is set for a current-balance allocation."""
    fields = list(ALLOCATION_TARGET_FIELDS.values())
    condition = models.Q(
        allocation_type=CURRENT_BALANCE, **{f"{other}__isnull": True for other in fields}
    )
    for kind, field in ALLOCATION_TARGET_FIELDS.items():
        condition |= models.Q(
            allocation_type=kind, **{f"{other}__isnull": other != field for other in fields}
        )
    return condition


# ---------- Payments ----------
class Payment(models.Model):  # One settlement event against a contact
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    contact = models.ForeignKey(
        Contact, on_delete=models.PROTECT, related_name="payments"
    )
    bank_account = models.ForeignKey(
        BankAccount, on_delete=models.PROTECT, related_name="payments"
    )
    # e.g. "PY-2025-0001", sequential per company per year
    payment_number = models.CharField(max_length=32)
    date = models.DateField()

    # Always the pre-adjustment ("original") magnitude
    amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    payment_type = models.CharField(max_length=10, choices=PAYMENT_TYPE_CHOICES)
    description = models.TextField(null=True, blank=True)

    adjustment_type = models.CharField(
        max_length=20, choices=ADJUSTMENT_TYPE_CHOICES, default="none"
    )
    adjustment_value = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )

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
    # Terminal state: a deleted payment is never touched again
    deleted_at = models.DateTimeField(null=True, blank=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["company", "contact"], name="payment_company_contact_idx"),
            models.Index(fields=["company", "date"], name="payment_company_date_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "payment_number"], name="uq_payment_company_number"
            ),
            models.CheckConstraint(
                condition=models.Q(amount__gte=0) & models.Q(adjustment_value__gte=0),
                name="payment_non_negative_amounts",
            ),
        ]

    def __str__(self):
        return f"{self.payment_number} ({self.payment_type} {self.amount})"

    @property
    def is_deleted(self):
        return self.deleted_at is not None

    def clean(self):
        # Tenancy checks
        if self.contact_id and self.contact.company_id != self.company_id:
            raise ValidationError("Contact must belong to the same company.")
        if self.bank_account_id and self.bank_account.company_id != self.company_id:
            raise ValidationError("Bank account must belong to the same company.")

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)


class PaymentAllocation(
    models.Model
):  # Portion of one payment applied to one obligation or to the current balance
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    payment = models.ForeignKey(
        Payment, on_delete=models.CASCADE, related_name="allocations"
    )
    allocation_type = models.CharField(
        max_length=20, choices=ALLOCATION_TYPE_CHOICES
    )

    # Storage shape of the tagged union, read it through .target
    sale = models.ForeignKey(
        Sale, null=True, blank=True, on_delete=models.PROTECT, related_name="allocations"
    )
    purchase = models.ForeignKey(
        Purchase, null=True, blank=True, on_delete=models.PROTECT, related_name="allocations"
    )
    expense = models.ForeignKey(
        Expense, null=True, blank=True, on_delete=models.PROTECT, related_name="allocations"
    )
    income = models.ForeignKey(
        Income, null=True, blank=True, on_delete=models.PROTECT, related_name="allocations"
    )

    # Direction this allocation settles
    balance_type = models.CharField(max_length=20, choices=BALANCE_TYPE_CHOICES)
    # Reference total of the target at allocation time
    amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    # Amount actually applied
    paid_amount = models.DecimalField(max_digits=18, decimal_places=2)
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["company", "payment"], name="allocation_company_payment_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(paid_amount__gte=0),
                name="allocation_non_negative_paid",
            ),
            models.CheckConstraint(
                condition=allocation_target_condition(),
                name="allocation_single_target",
            ),
        ]

    def __str__(self):
        return f"{self.payment.payment_number} → {self.allocation_type} Amt: ({self.paid_amount})"

    @property
    def target(self):
        """The allocation target as (kind, id); id is None for the current balance."""
        from ..services.allocation import AllocationTarget

        field = ALLOCATION_TARGET_FIELDS.get(self.allocation_type)
        target_id = getattr(self, f"{field}_id") if field else None
        return AllocationTarget(self.allocation_type, target_id)

    def set_target(self, target):
        """Fill the storage columns from an AllocationTarget."""
        self.allocation_type = target.kind
        for kind, field in ALLOCATION_TARGET_FIELDS.items():
            setattr(self, f"{field}_id", target.id if kind == target.kind else None)

    def clean(self):
        if self.paid_amount is not None and self.paid_amount < 0:
            raise ValidationError("Allocated amount must be non-negative")
        # Prevent cross-company contamination
        if self.payment_id and self.payment.company_id != self.company_id:
            raise ValidationError("Payment must belong to the same company.")

    def save(self, *args, **kwargs):
        # Allocations are write-once, edits go through delete-and-recreate
        if self.pk and not self._state.adding:
            raise ValidationError("Payment allocations are immutable once written.")
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
