from django.conf import settings  # To access global project settings
from django.core.exceptions import ValidationError
from django.db import models
from ..managers import TenantManager
from .company import Company


# ---------- Audit / Event log ----------
class AuditLog(
    models.Model
):  # Trail of every ledger mutation (payments, transfers, transaction edits)
    company = models.ForeignKey(
        Company,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
    )
    # Nullable in case the action was automated
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL
    )
    # Common choices: create, update, delete
    action = models.CharField(max_length=50)
    # e.g. "Payment", "BankTransfer", "Sale"
    object_type = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    # Before/after details of what changed, in JSON format
    changes = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["company", "user"], name="auditlog_company_user_idx"),
            models.Index(fields=["company", "created_at"], name="auditlog_company_created_idx"),
        ]

    def __str__(self):
        time = self.created_at
        return f"[{time:%Y-%m-%d %H:%M}] {self.user} {self.action} {self.object_type}({self.object_id})"

    def clean(self):
        # Ensure the user is a member of the company being logged
        if self.user and self.company:
            if not self.user.memberships.filter(
                company=self.company, is_active=True
            ).exists():
                raise ValidationError(
                    "AuditLog.user must be a member of AuditLog.company"
                )

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
