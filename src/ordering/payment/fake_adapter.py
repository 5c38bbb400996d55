"""Fake payment gateway for development and tests.

Charges succeed unless the gateway is configured to decline. Every call is
recorded in ``calls`` so tests can assert on what was charged.
"""

import secrets
from datetime import UTC, datetime

from ordering.payment.port import ChargeResult, PaymentGateway


class FakeGateway(PaymentGateway):
    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Insufficient funds or card declined"
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Insufficient funds or card declined") -> None:
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def charge(
        self,
        amount: float,
        currency: str,
        payment_method: str,
        reference: str,
    ) -> ChargeResult:
        self.calls.append(
            {
                "method": "charge",
                "amount": amount,
                "currency": currency,
                "payment_method": payment_method,
                "reference": reference,
            }
        )

        millis = int(datetime.now(UTC).timestamp() * 1000)
        transaction_id = f"tx_{millis}_{secrets.token_hex(5)[:9]}"
        if self.should_succeed:
            return ChargeResult(
                success=True,
                transaction_id=transaction_id,
                status="completed",
                amount=amount,
                currency=currency,
            )
        return ChargeResult(
            success=False,
            transaction_id=transaction_id,
            status="failed",
            amount=amount,
            currency=currency,
            failure_reason=self.failure_reason,
        )
