"""Order payment — command and handler.

The order total is charged once through the payment gateway. The outcome,
completed or failed, is recorded on the order either way; a failed charge
is not retried here. The customer may pay again later, which draws a new
transaction.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.access import Role, require_owner_or_role
from ordering.domain import ordering
from ordering.order.order import Order, PaymentMethod
from ordering.payment import get_gateway

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class PayOrder:
    order_id = Identifier(required=True)
    actor_id = Identifier(required=True)
    actor_role = String(required=True, max_length=20)
    payment_method = String(required=True, max_length=30)


@ordering.command_handler(part_of=Order)
class PayOrderHandler:
    @handle(PayOrder)
    def pay_order(self, command):
        try:
            payment_method = PaymentMethod(command.payment_method).value
        except ValueError as exc:
            raise ValidationError({"payment_method": ["Invalid payment method"]}) from exc

        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        require_owner_or_role(order, command.actor_id, command.actor_role, Role.ADMIN.value)
        order.assert_can_pay()

        result = get_gateway().charge(
            amount=order.pricing.grand_total,
            currency=order.pricing.currency,
            payment_method=payment_method,
            reference=order.order_number,
        )
        order.record_payment(
            transaction_id=result.transaction_id,
            payment_method=payment_method,
            succeeded=result.success,
            failure_reason=result.failure_reason,
        )
        repo.add(order)

        log = logger.info if result.success else logger.warning
        log(
            "payment_recorded",
            order_id=str(order.id),
            order_number=order.order_number,
            transaction_id=result.transaction_id,
            payment_status=order.payment_status,
            amount=result.amount,
        )
        return result
