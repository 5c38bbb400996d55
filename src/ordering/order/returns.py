"""Order returns — command and handler.

Only the customer who placed a delivered order can request a return, and
only within the return window. A return is bookkeeping only: stock is not
adjusted.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.errors import Forbidden
from ordering.order.order import Order

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class RequestReturn:
    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    reason = String(required=True, max_length=500)


@ordering.command_handler(part_of=Order)
class ReturnHandler:
    @handle(RequestReturn)
    def request_return(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        if not order.is_owned_by(command.customer_id):
            raise Forbidden("Access denied. You can only return your own orders.")

        order.request_return(reason=command.reason)
        repo.add(order)

        # TODO: decide whether returned items go back into stock (currently bookkeeping only)
        logger.info("return_requested", order_id=str(order.id), order_number=order.order_number)
