from decimal import Decimal

from django import forms

# -----------------------------
# Custom admin forms
# ----------------------------


class ObligationForm(forms.ModelForm):
    """
    Settlement columns are read-only in the admin, so a new
    sale/purchase/expense/income starts unpaid before model validation
    checks paid + remaining == total.
    """

    def clean(self):
        cleaned_data = super().clean()
        if self.instance.pk is None:
            total = cleaned_data.get(self._meta.model.TOTAL_FIELD) or Decimal("0.00")
            self.instance.paid_amount = Decimal("0.00")
            self.instance.remaining_amount = total
            self.instance.status = "pending" if total > 0 else "paid"
        return cleaned_data
