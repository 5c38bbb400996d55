"""Payment gateway factory.

``get_gateway()`` returns the active gateway, a ``FakeGateway`` unless one
was installed with ``set_gateway()``.
"""

from ordering.payment.fake_adapter import FakeGateway
from ordering.payment.port import PaymentGateway

_current_gateway: PaymentGateway | None = None


def get_gateway() -> PaymentGateway:
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = FakeGateway()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    global _current_gateway
    _current_gateway = None
