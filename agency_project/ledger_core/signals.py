from django.core.exceptions import ValidationError
from django.db.models.signals import pre_delete
from django.dispatch import receiver

from .models import Account, Salary, Transaction

"""Block deletion if the account has ever carried a transaction."""


@receiver(pre_delete, sender=Account)
def prevent_delete_account_with_transactions(sender, instance, **kwargs):
    if Transaction.objects.filter(account=instance).exists():
        raise ValidationError(
            "Cannot delete an account that has transaction history.")


"""Block deletion of a salary that has already been paid."""


@receiver(pre_delete, sender=Salary)
def prevent_delete_paid_salary(sender, instance, **kwargs):
    if instance.status == "paid":
        raise ValidationError("Cannot delete a paid salary.")
