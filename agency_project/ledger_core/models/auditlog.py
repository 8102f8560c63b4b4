from django.conf import settings  # To access global project settings
from django.db import models


# ---------- Audit / Event log ----------
class AuditLog(
    models.Model
):  # Gives accountability and traceability across the ledger
    # Which user performed the action
    # (Nullable for automated runs, e.g. the reconciliation task)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL
    )
    # Type of event being logged
    action = models.CharField(
        max_length=50
    )  # record_payment, update, delete, pay_salary, reconcile...
    # What kind of object was affected
    object_type = models.CharField(
        max_length=100
    )  # (e.g., "Customer", "Payable", "Salary")
    object_id = models.CharField(max_length=100)
    # Amounts and before/after values, in JSON format
    changes = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["object_type", "object_id"], name="ix_audit_object"),
            models.Index(fields=["created_at"], name="ix_audit_created"),
        ]

    def __str__(self):
        time = self.created_at
        usr = self.user
        return f"[{time:%Y-%m-%d %H:%M}] {usr} {self.action} {self.object_type}({self.object_id})"
