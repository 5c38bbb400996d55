"""Payment gateway port.

The storefront never talks to a payment provider directly: checkout payment
goes through this interface, and the provider answers synchronously with a
transaction id and a completed or failed status.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ChargeResult:
    """Outcome of one charge attempt."""

    success: bool
    transaction_id: str
    status: str
    amount: float
    currency: str
    failure_reason: str | None = None


class PaymentGateway(ABC):
    @abstractmethod
    def charge(
        self,
        amount: float,
        currency: str,
        payment_method: str,
        reference: str,
    ) -> ChargeResult:
        """Charge ``amount`` for the order identified by ``reference``."""
        ...
