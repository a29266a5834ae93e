from django.core.exceptions import ValidationError
from django.db.models.signals import pre_delete
from django.dispatch import receiver

from .models import BankTransfer, Payment

# Obligations with applied payments need no receiver here:
# the PROTECT foreign keys on PaymentAllocation already refuse the delete.

"""Block hard deletion of a payment that was never reversed."""


# pre_delete signal auto-fires just before Django deletes a model instance
@receiver(pre_delete, sender=Payment)
def prevent_delete_live_payment(sender, instance, **kwargs):
    if instance.deleted_at is None:
        raise ValidationError(
            "Cannot delete a live payment, use delete_payment() to reverse it first.")


"""Block hard deletion of a transfer whose money is still moved."""


@receiver(pre_delete, sender=BankTransfer)
def prevent_delete_live_transfer(sender, instance, **kwargs):
    if instance.deleted_at is None:
        raise ValidationError(
            "Cannot delete a live transfer, use delete_bank_transfer() to reverse it first.")
