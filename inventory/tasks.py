import logging

from celery import shared_task

from configurations.tasks import notify_on_commit
from inventory.services import inventory_service

logger = logging.getLogger(__name__)


@shared_task
def scan_low_stock():
    """Periodic check, raises one low_stock notification per product under its reorder level"""
    products = inventory_service.get_low_stock()
    for product in products:
        notify_on_commit('inventory.low_stock', product)
    logger.info("Low stock scan found %s products", len(products))
    return [product['sku'] for product in products]
