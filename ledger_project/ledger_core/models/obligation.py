from decimal import Decimal
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from ..managers import ObligationManager
from .banking import BankAccount
from .company import Company
from .contact import Contact

OBLIGATION_STATUS_CHOICES = [
    ("pending", "Pending"),
    ("paid", "Paid"),
]


# ---------- Obligation transactions ----------
# Sales, purchases, expenses and incomes all carry the same settlement
# state: paid_amount + remaining_amount == total, status follows remaining.


class ObligationTransaction(models.Model):
    KIND = None           # "sale", "purchase", "expense", "income"
    DIRECTION = None      # "receivable" or "payable"
    TOTAL_FIELD = None    # name of the column holding the total amount
    SOFT_DELETE = False   # True when the model has deleted_at

    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    contact = models.ForeignKey(
        Contact,
        # prevent deleting a contact who still has transactions
        on_delete=models.PROTECT,
        related_name="%(class)ss",
    )

    paid_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    remaining_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    status = models.CharField(
        max_length=10, choices=OBLIGATION_STATUS_CHOICES, default="pending"
    )

    # Set only while fully paid, to the account that settled it.
    # Maintained by the settlement and reversal executors.
    bank_account = models.ForeignKey(
        BankAccount,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="settled_%(class)ss",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ObligationManager()

    class Meta:
        abstract = True

    @property
    def total_amount(self):
        return getattr(self, self.TOTAL_FIELD) or Decimal("0.00")

    @property
    def is_paid(self):
        return self.status == "paid"

    def label(self):
        return f"{self.KIND.capitalize()}#{self.pk}"

    def clean(self):
        total = self.total_amount
        if total < 0:
            raise ValidationError("Total amount cannot be negative")
        if self.paid_amount < 0 or self.remaining_amount < 0:
            raise ValidationError("Paid and remaining amounts must be >= 0")
        # Conservation: every unit of the total is either paid or remaining
        if self.paid_amount + self.remaining_amount != total:
            raise ValidationError(
                f"paid_amount ({self.paid_amount}) + remaining_amount "
                f"({self.remaining_amount}) must equal total ({total})"
            )
        expected_status = "paid" if self.remaining_amount <= 0 else "pending"
        if self.status != expected_status:
            raise ValidationError(
                f"Status must be '{expected_status}' when remaining is {self.remaining_amount}"
            )
        # Tenant safety check
        contact_id = getattr(self, "contact_id", None)
        if contact_id and self.contact.company_id != self.company_id:
            raise ValidationError("Contact must belong to the same company.")
        if self.bank_account_id and self.bank_account.company_id != self.company_id:
            raise ValidationError("Bank account must belong to the same company.")

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)


class Sale(ObligationTransaction):  # Sales invoice, the contact owes the business
    KIND = "sale"
    DIRECTION = "receivable"
    TOTAL_FIELD = "net_receivable"
    SOFT_DELETE = True

    invoice_number = models.CharField(max_length=64)
    invoice_date = models.DateField()
    net_receivable = models.DecimalField(max_digits=18, decimal_places=2)

    deleted_at = models.DateTimeField(null=True, blank=True)
    deleted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True,
        on_delete=models.SET_NULL, related_name="+",
    )

    class Meta:
        indexes = [
            models.Index(fields=["company", "contact", "status"], name="sale_contact_status_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "invoice_number"], name="uq_sale_company_number"
            ),
        ]

    def __str__(self):
        return f"Sale: {self.invoice_number}"

    def label(self):
        return f"Sale#{self.invoice_number}"


class Purchase(ObligationTransaction):  # Purchase invoice, the business owes the contact
    KIND = "purchase"
    DIRECTION = "payable"
    TOTAL_FIELD = "net_payable"
    SOFT_DELETE = True

    invoice_number = models.CharField(max_length=64)
    invoice_date = models.DateField()
    net_payable = models.DecimalField(max_digits=18, decimal_places=2)

    deleted_at = models.DateTimeField(null=True, blank=True)
    deleted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True,
        on_delete=models.SET_NULL, related_name="+",
    )

    class Meta:
        indexes = [
            models.Index(fields=["company", "contact", "status"], name="purchase_contact_status_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "invoice_number"], name="uq_purchase_company_number"
            ),
        ]

    def __str__(self):
        return f"Purchase: {self.invoice_number}"

    def label(self):
        return f"Purchase#{self.invoice_number}"


class Expense(ObligationTransaction):
    KIND = "expense"
    DIRECTION = "payable"
    TOTAL_FIELD = "amount"

    # Expenses paid straight from a bank account have no contact
    contact = models.ForeignKey(
        Contact,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="expenses",
    )
    date = models.DateField()
    amount = models.DecimalField(max_digits=18, decimal_places=2)
    notes = models.TextField(null=True, blank=True)

    class Meta:
        indexes = [
            models.Index(fields=["company", "contact", "status"], name="expense_contact_status_idx"),
        ]

    def __str__(self):
        return f"Expense: {self.pk} ({self.amount})"


class Income(ObligationTransaction):
    KIND = "income"
    DIRECTION = "receivable"
    TOTAL_FIELD = "amount"

    # Direct bank incomes have no contact and keep their bank reference
    contact = models.ForeignKey(
        Contact,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="incomes",
    )
    date = models.DateField()
    amount = models.DecimalField(max_digits=18, decimal_places=2)
    notes = models.TextField(null=True, blank=True)

    class Meta:
        indexes = [
            models.Index(fields=["company", "contact", "status"], name="income_contact_status_idx"),
        ]

    def __str__(self):
        return f"Income: {self.pk} ({self.amount})"


# Lookup used wherever a kind string has to become a model class
OBLIGATION_MODELS = {
    model.KIND: model for model in (Sale, Purchase, Expense, Income)
}
