"""Order cancellation — command and handler.

The owner or an admin may cancel while the order is pending or confirmed.
Stock for every line is restored before the cancelled entry is appended;
both writes commit in the same Unit of Work.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.access import Role, require_owner_or_role
from ordering.domain import ordering
from ordering.inventory.ledger import StockLine, restore_stock
from ordering.order.order import Order

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    actor_id = Identifier(required=True)
    actor_role = String(required=True, max_length=20)
    reason = String(max_length=500)


@ordering.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        require_owner_or_role(order, command.actor_id, command.actor_role, Role.ADMIN.value)
        order.assert_can_cancel()

        restore_stock(
            [StockLine(product_id=str(item.product_id), quantity=item.quantity) for item in order.items],
            reference=f"cancel:{order.order_number}",
        )
        order.cancel(reason=command.reason, cancelled_by=command.actor_role)
        repo.add(order)

        logger.info(
            "order_cancelled",
            order_id=str(order.id),
            order_number=order.order_number,
            cancelled_by=command.actor_role,
            reason=command.reason,
        )
