"""Business configuration for pricing, cart limits, returns and order numbering.

The active policy is built once from ``STOREFRONT_*`` environment variables
on top of the defaults below. ``set_policy()`` swaps it (tests use this),
``reset_policy()`` goes back to the environment-derived one.
"""

import os
from enum import Enum

from pydantic import BaseModel, Field


class ShippingMethod(Enum):
    STANDARD = "standard"
    EXPRESS = "express"
    OVERNIGHT = "overnight"


class PricingPolicy(BaseModel):
    tax_rate: float = Field(default=0.08, ge=0)
    free_shipping_threshold: float = Field(default=50.0, ge=0)
    # Flat fee per method below the free-shipping threshold
    shipping_rates: dict[str, float] = {
        ShippingMethod.STANDARD.value: 9.99,
        ShippingMethod.EXPRESS.value: 19.99,
        ShippingMethod.OVERNIGHT.value: 29.99,
    }
    # Reduced fee per method at or above the threshold
    shipping_surcharges: dict[str, float] = {
        ShippingMethod.STANDARD.value: 0.0,
        ShippingMethod.EXPRESS.value: 10.0,
        ShippingMethod.OVERNIGHT.value: 20.0,
    }
    delivery_days: dict[str, int] = {
        ShippingMethod.STANDARD.value: 7,
        ShippingMethod.EXPRESS.value: 3,
        ShippingMethod.OVERNIGHT.value: 1,
    }
    max_line_quantity: int = Field(default=10, ge=1)
    return_window_days: int = Field(default=30, ge=0)
    order_number_prefix: str = "TC"
    order_number_attempts: int = Field(default=5, ge=1)
    currency: str = Field(default="USD", max_length=3)

    model_config = {"frozen": True}


_ENV_OVERRIDES = {
    "STOREFRONT_TAX_RATE": ("tax_rate", float),
    "STOREFRONT_FREE_SHIPPING_THRESHOLD": ("free_shipping_threshold", float),
    "STOREFRONT_MAX_LINE_QUANTITY": ("max_line_quantity", int),
    "STOREFRONT_RETURN_WINDOW_DAYS": ("return_window_days", int),
    "STOREFRONT_ORDER_NUMBER_PREFIX": ("order_number_prefix", str),
    "STOREFRONT_CURRENCY": ("currency", str),
}

_current_policy: PricingPolicy | None = None


def load_policy_from_env() -> PricingPolicy:
    overrides = {}
    for env_var, (field_name, cast) in _ENV_OVERRIDES.items():
        raw = os.getenv(env_var)
        if raw is not None and raw != "":
            overrides[field_name] = cast(raw)
    return PricingPolicy(**overrides)


def get_policy() -> PricingPolicy:
    """Return the active policy, loading it from the environment on first use."""
    global _current_policy
    if _current_policy is None:
        _current_policy = load_policy_from_env()
    return _current_policy


def set_policy(policy: PricingPolicy) -> None:
    global _current_policy
    _current_policy = policy


def reset_policy() -> None:
    global _current_policy
    _current_policy = None
