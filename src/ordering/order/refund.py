"""Refund processing — command and handler.

Refunds are bookkeeping: the reversal itself is authorized with the payment
provider beforehand, and the order is found by the transaction id of its
recorded payment. Only admins may process refunds.
"""

import secrets
from datetime import UTC, datetime

import structlog
from protean import handle
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from ordering.access import Role, require_role
from ordering.domain import ordering
from ordering.order.order import Order

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class ProcessRefund:
    transaction_id = String(required=True, max_length=255)
    amount = Float(required=True)
    reason = String(required=True, max_length=500)
    actor_id = Identifier()
    actor_role = String(required=True, max_length=20)


@ordering.command_handler(part_of=Order)
class ProcessRefundHandler:
    @handle(ProcessRefund)
    def process_refund(self, command):
        require_role(command.actor_role, Role.ADMIN.value)

        repo = current_domain.repository_for(Order)
        order = repo.find_by_transaction(command.transaction_id)

        now = datetime.now(UTC)
        order.process_refund(command.amount, reason=command.reason, now=now)
        repo.add(order)

        refund_id = f"rf_{int(now.timestamp() * 1000)}_{secrets.token_hex(5)[:9]}"
        logger.info(
            "refund_processed",
            refund_id=refund_id,
            order_id=str(order.id),
            order_number=order.order_number,
            amount=command.amount,
            total_refunded=order.refund_amount,
            payment_status=order.payment_status,
        )
        return {
            "refund_id": refund_id,
            "order_id": str(order.id),
            "order_number": order.order_number,
            "original_transaction_id": command.transaction_id,
            "amount": command.amount,
            "currency": order.pricing.currency,
            "reason": command.reason,
            "total_refunded": order.refund_amount,
            "payment_status": order.payment_status,
            "processed_at": now,
        }
