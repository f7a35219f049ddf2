import logging
from typing import Iterable, Protocol

logger = logging.getLogger(__name__)


class InventoryGateway(Protocol):
    def restore(self, items: Iterable) -> None:
        """Return the quantities of the given order items to stock."""
        ...


class LoggingInventoryGateway:
    """Default gateway: the catalog service is external, so only record the request."""

    def restore(self, items):
        for oi in items:
            logger.info("Inventory restore requested for product %s qty %s", oi.product_id, oi.quantity)
