import logging

from celery import shared_task
from django.db import OperationalError

logger = logging.getLogger(__name__)


# Snapshot refreshes run after commit; failing here never touches the ledger
@shared_task(
    autoretry_for=(OperationalError,),
    retry_backoff=True,
    max_retries=5,
)  # register this function as a Celery task
def refresh_contact_balance(company_id, contact_id):
    # import lazily to avoid circular imports at module import time
    from .exceptions import NotFoundError
    from .models import Company
    from .services.balance import refresh_contact_snapshot

    company = Company.objects.filter(pk=company_id).first()
    if company is None:
        logger.warning("Skipping balance refresh, company %s is gone", company_id)
        return None
    try:
        balance = refresh_contact_snapshot(company, contact_id)
    except NotFoundError:
        # contact deleted between commit and task run
        logger.warning("Skipping balance refresh, contact %s not found", contact_id)
        return None
    logger.debug("Contact %s balance is %s %s", contact_id, balance.amount, balance.direction)
    return {"amount": str(balance.amount), "direction": balance.direction}


@shared_task(
    autoretry_for=(OperationalError,),
    retry_backoff=True,
    max_retries=5,
)
def recompute_company_balances(company_id):
    """Refresh the cached balance of every live contact of a company."""
    from .models import Company, Contact
    from .services.balance import refresh_contact_snapshot

    company = Company.objects.get(pk=company_id)
    contact_ids = list(
        Contact.objects.for_company(company)
        .filter(deleted_at__isnull=True)
        .values_list("pk", flat=True)
    )
    for contact_id in contact_ids:
        refresh_contact_snapshot(company, contact_id)
    logger.info("Refreshed %d contact balance(s) for company %s", len(contact_ids), company_id)
    return len(contact_ids)
