from django.db import models
from django.db.models import F

# -----------------------------------------
# Scope ledger rows by business unit and
# by settlement state
# -----------------------------------------


# Define subclass of Django’s QuerySet
class BusinessQuerySet(models.QuerySet):
    def for_business(self, business):  # Add queryset helper
        # "all" (or nothing) means no business filter
        if not business or business == "all":
            return self
        return self.filter(business=business)  # Apply filter


# Attach BusinessQuerySet to .objects
class BusinessManager(models.Manager):
    def get_queryset(self):
        return BusinessQuerySet(self.model, using=self._db)

    def for_business(self, business):
        return self.get_queryset().for_business(business)

    # every model using BusinessManager can call:
    # Transaction.objects.for_business("isp")


class ObligationQuerySet(BusinessQuerySet):
    # Everything not yet fully settled;
    # rows discounted down to zero have nothing left to settle
    def open(self):
        return self.exclude(status="paid").filter(amount__gt=0)

    def for_party(self, party):
        return self.filter(party=party)

    # Settlement order: missing due date first,
    # then earliest due date, then creation order
    def in_settlement_order(self):
        return self.order_by(
            F("due_date").asc(nulls_first=True), "created_at", "pk"
        )


class ObligationManager(BusinessManager):
    def get_queryset(self):
        return ObligationQuerySet(self.model, using=self._db)

    def open(self):
        return self.get_queryset().open()

    def for_party(self, party):
        return self.get_queryset().for_party(party)

    # Receivable.objects.open().for_party(customer).in_settlement_order()
