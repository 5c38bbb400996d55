"""Order status updates by staff — command and handler.

Admins and moderators append tracking entries. The transition is not
checked: the new status is taken as given.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.access import STAFF_ROLES, require_role
from ordering.domain import ordering
from ordering.order.order import Order

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class UpdateOrderStatus:
    order_id = Identifier(required=True)
    actor_role = String(required=True, max_length=20)
    status = String(required=True, max_length=30)
    message = String(required=True, max_length=500)
    location = String(max_length=255)
    tracking_number = String(max_length=255)
    carrier = String(max_length=100)


@ordering.command_handler(part_of=Order)
class UpdateOrderStatusHandler:
    @handle(UpdateOrderStatus)
    def update_order_status(self, command):
        require_role(command.actor_role, *STAFF_ROLES)

        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        previous_status = order.status
        order.add_tracking_update(
            command.status,
            command.message,
            location=command.location,
            tracking_number=command.tracking_number,
            carrier=command.carrier,
        )
        repo.add(order)

        logger.info(
            "order_status_updated",
            order_id=str(order.id),
            order_number=order.order_number,
            previous_status=previous_status,
            new_status=command.status,
            tracking_number=order.tracking_number,
        )
