from decimal import Decimal
from django.db import models

# -----------------------------------------
# Enforce tenant scoping across all models
# that belong to a company
# -----------------------------------------
class TenantQuerySet(models.QuerySet):
    def for_company(self, company):         # Add queryset helper
        return self.filter(company=company) # Apply filter

    def active(self, company):
        return self.filter(
                            company=company, # enforce tenant scoping
                            is_active=True   # only fetch active records
                        )
    # Enables query:
    # BankAccount.objects.active(request.company)

    def alive(self):
        # Soft-deleted rows keep their history but drop out of every ledger query
        return self.filter(deleted_at__isnull=True)


# Attach TenantQuerySet to .objects
class TenantManager(models.Manager):

    def get_queryset(self): # ensure every model gets TenantQuerySet(so .for_company() is always available)
        return TenantQuerySet(self.model, using=self._db)

    def for_company(self, company): # can call for_company() directly on objects
        return self.get_queryset().for_company(company)

    def active(self, company):
        return self.get_queryset().active(company)

    def alive(self):
        return self.get_queryset().alive()


# Create a sale/purchase/expense/income that nothing has been paid against yet
class ObligationManager(TenantManager):
    def create_pending(self, **kwargs):
        total = Decimal(kwargs[self.model.TOTAL_FIELD])
        paid = Decimal(kwargs.pop("paid_amount", Decimal("0.00")))
        remaining = total - paid
        kwargs["paid_amount"] = paid
        kwargs["remaining_amount"] = remaining
        kwargs["status"] = "pending" if remaining > 0 else "paid"
        return super().create(**kwargs)

    def live(self):
        # Sales and purchases are soft-deleted, expenses and incomes are not
        qs = self.get_queryset()
        if self.model.SOFT_DELETE:
            qs = qs.alive()
        return qs
