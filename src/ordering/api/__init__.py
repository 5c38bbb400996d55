"""Storefront API package."""

from ordering.api.routes import cart_router, order_router, payment_router, product_router

__all__ = ["cart_router", "order_router", "payment_router", "product_router"]
