import logging
from collections.abc import Iterable

from .interfaces import OrderItemRecord, OrderStoreGateway

logger = logging.getLogger(__name__)


def all_approved_extracted(items: Iterable[OrderItemRecord], approved_status: str) -> bool:
    """True iff at least one item is approved and every approved item is extracted."""
    approved = [item for item in items if item.order_item_status == approved_status]
    if not approved:
        return False
    return all(item.png_extracted for item in approved)


class CompletionAggregator:
    """Tracks per-item extraction and decides when an order is finished.

    Completion is recomputed from the store on every call. Two sibling items
    finishing together may both see a complete order; enable
    ``notify_once`` to have the store arbitrate which of them notifies.
    """

    def __init__(
        self,
        store: OrderStoreGateway,
        *,
        approved_status: str,
        notify_once: bool = False,
    ) -> None:
        self._store = store
        self._approved_status = approved_status
        self._notify_once = notify_once

    def mark_extracted(self, order_item_id: str) -> None:
        self._store.mark_extracted(order_item_id)
        logger.info("Updated pngExtracted=true for orderItem: %s", order_item_id)

    def is_order_complete(self, order_id: str) -> bool:
        items = self._store.list_items(order_id)
        complete = all_approved_extracted(items, self._approved_status)
        if complete:
            logger.info("All order items for orderId %s have been processed", order_id)
        else:
            logger.info("Not all order items for orderId %s have been processed", order_id)
        return complete

    def should_notify(self, order_id: str) -> bool:
        if not self._notify_once:
            return True
        claimed = self._store.claim_notification(order_id)
        if not claimed:
            logger.info("Completion of order %s was already announced", order_id)
        return claimed
