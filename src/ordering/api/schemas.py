"""Pydantic request/response schemas for the storefront API.

These are external contracts — separate from internal Protean commands.
Quantity ranges and business rules are checked by the domain so that every
rule violation is reported the same way.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(BaseModel):
    first_name: str
    last_name: str
    company: str | None = None
    address1: str
    address2: str | None = None
    city: str
    state: str
    postal_code: str
    country: str = "United States"
    phone: str | None = None


class LineSchema(BaseModel):
    product_id: str
    quantity: int


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    product_id: str
    quantity: int = 1
    expected_revision: int | None = None

    model_config = {"json_schema_extra": {"examples": [{"product_id": "prod-001", "quantity": 2}]}}


class UpdateCartItemRequest(BaseModel):
    quantity: int
    expected_revision: int | None = None


class MergeCartRequest(BaseModel):
    items: list[LineSchema]
    expected_revision: int | None = None


class CartLineResponse(BaseModel):
    product_id: str
    name: str
    sku: str
    unit_price: float
    quantity: int
    line_subtotal: float
    stock_status: str
    image_url: str | None = None


class CartSummaryResponse(BaseModel):
    customer_id: str
    revision: int
    items: list[CartLineResponse]
    item_count: int
    subtotal: float
    shipping: float
    tax: float
    total: float


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class PlaceOrderRequest(BaseModel):
    items: list[LineSchema] | None = None
    shipping_address: AddressSchema
    billing_address: AddressSchema | None = None
    shipping_method: str = "standard"
    coupon_code: str | None = None
    notes: str | None = Field(default=None, max_length=1000)
    is_gift: bool = False
    gift_message: str | None = Field(default=None, max_length=500)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "items": [{"product_id": "prod-001", "quantity": 2}],
                    "shipping_address": {
                        "first_name": "Ada",
                        "last_name": "Lovelace",
                        "address1": "12 Analytical Way",
                        "city": "Springfield",
                        "state": "IL",
                        "postal_code": "62701",
                    },
                    "shipping_method": "standard",
                    "coupon_code": "SAVE10",
                }
            ]
        }
    }


class CancelOrderRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class UpdateOrderStatusRequest(BaseModel):
    status: str
    message: str
    location: str | None = None
    tracking_number: str | None = None
    carrier: str | None = None


class RequestReturnRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=500)


class PayOrderRequest(BaseModel):
    payment_method: str = "credit_card"


class OrderLineResponse(BaseModel):
    product_id: str
    name: str
    sku: str
    unit_price: float
    quantity: int
    image_url: str | None = None
    line_total: float


class TrackingEntryResponse(BaseModel):
    status: str
    message: str
    timestamp: datetime
    location: str | None = None


class OrderResponse(BaseModel):
    id: str
    order_number: str
    customer_id: str
    status: str
    items: list[OrderLineResponse]
    item_count: int
    subtotal: float
    shipping: float
    tax: float
    discount: float
    total: float
    currency: str
    shipping_address: AddressSchema | None = None
    billing_address: AddressSchema | None = None
    shipping_method: str
    coupon_code: str | None = None
    notes: str | None = None
    is_gift: bool = False
    gift_message: str | None = None
    tracking_number: str | None = None
    carrier: str | None = None
    estimated_delivery: datetime | None = None
    tracking_history: list[TrackingEntryResponse]
    order_date: datetime | None = None
    shipped_date: datetime | None = None
    delivered_date: datetime | None = None
    cancelled_date: datetime | None = None
    cancellation_reason: str | None = None
    return_requested: bool = False
    return_reason: str | None = None
    return_date: datetime | None = None
    refund_amount: float = 0.0
    refund_date: datetime | None = None
    transaction_id: str | None = None
    payment_method: str | None = None
    payment_status: str | None = None
    can_cancel: bool
    can_return: bool


class PaginationResponse(BaseModel):
    page: int
    limit: int
    total: int
    pages: int
    has_next: bool
    has_prev: bool


class OrderListResponse(BaseModel):
    orders: list[OrderResponse]
    pagination: PaginationResponse


class OrderStatsResponse(BaseModel):
    total_orders: int
    total_revenue: float
    average_order_value: float
    total_items: int
    by_status: dict[str, int]


class PaymentResponse(BaseModel):
    transaction_id: str
    status: str
    amount: float
    currency: str
    payment_method: str


# ---------------------------------------------------------------------------
# Refunds
# ---------------------------------------------------------------------------
class ProcessRefundRequest(BaseModel):
    transaction_id: str = Field(min_length=1)
    amount: float
    reason: str = Field(min_length=1, max_length=500)


class RefundResponse(BaseModel):
    refund_id: str
    order_id: str
    order_number: str
    original_transaction_id: str
    amount: float
    currency: str
    reason: str
    total_refunded: float
    payment_status: str
    processed_at: datetime


# ---------------------------------------------------------------------------
# Products (catalogue collaborator surface)
# ---------------------------------------------------------------------------
class RegisterProductRequest(BaseModel):
    name: str
    sku: str
    price: float = Field(ge=0)
    stock: int = Field(default=0, ge=0)
    image_url: str | None = None
    low_stock_threshold: int = Field(default=5, ge=0)


class ReceiveStockRequest(BaseModel):
    quantity: int


class CorrectStockRequest(BaseModel):
    quantity: int
    note: str | None = None


class ProductIdResponse(BaseModel):
    product_id: str


class ProductStockResponse(BaseModel):
    product_id: str
    name: str
    sku: str
    price: float
    stock: int
    stock_status: str
    is_active: bool
