import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task  # register this function as a Celery task
def reconcile_party_balances(fix=False):
    # import lazily to avoid circular imports at module import time
    from .services.reconciliation import \
        reconcile_party_balances as reconcile

    drifted = reconcile(fix=fix)
    logger.info("Balance reconciliation finished: %s drifted, fix=%s",
                len(drifted), fix)
    # Decimal is not JSON serializable for the result backend
    return [{**row, "drift": str(row["drift"])} for row in drifted]
