from decimal import Decimal
from django.core.exceptions import ValidationError
from django.db import models

from ..managers import TenantManager
from .company import Company

# Direction of a balance, never a signed number in a persisted field
BALANCE_TYPE_CHOICES = [
    ("payable", "Payable"),        # the business owes the contact
    ("receivable", "Receivable"),  # the contact owes the business
]

CONTACT_TYPE_CHOICES = [
    ("customer", "Customer"),
    ("vendor", "Vendor"),
]


# ---------- Contact ----------
# Customer or vendor the business trades with
class Contact(models.Model):
    company = models.ForeignKey(Company, on_delete=models.CASCADE)

    name = models.CharField(max_length=200)
    contact_type = models.CharField(
        max_length=20, choices=CONTACT_TYPE_CHOICES, default="customer"
    )
    email = models.EmailField(null=True, blank=True)

    # Baseline balance, magnitude + direction.
    # Current-balance allocations settle against this pair.
    opening_balance = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    opening_balance_type = models.CharField(
        max_length=20, choices=BALANCE_TYPE_CHOICES, default="payable"
    )

    # Snapshot written by the refresh task, not authoritative.
    # services.balance.compute_contact_balance is the source of truth.
    current_balance = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    current_balance_type = models.CharField(
        max_length=20, choices=BALANCE_TYPE_CHOICES, default="payable"
    )
    balance_updated_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["company", "name"], name="contact_company_name_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(opening_balance__gte=0)
                & models.Q(current_balance__gte=0),
                name="contact_non_negative_balances",
            ),
        ]

    def __str__(self):
        return self.name

    def clean(self):
        if self.opening_balance is not None and self.opening_balance < 0:
            raise ValidationError(
                "Opening balance is a magnitude, use opening_balance_type for direction")

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
