"""FastAPI routes for the storefront — cart, orders, refunds and product stock.

Every route takes the caller's ``RequestContext``; commands receive the
caller's id and role explicitly.
"""

import json

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from protean.utils.globals import current_domain

from ordering.access import Role, require_role
from ordering.api.context import RequestContext, get_request_context
from ordering.api.schemas import (
    AddToCartRequest,
    CancelOrderRequest,
    CartSummaryResponse,
    CorrectStockRequest,
    MergeCartRequest,
    OrderListResponse,
    OrderResponse,
    OrderStatsResponse,
    PaymentResponse,
    PayOrderRequest,
    PlaceOrderRequest,
    ProcessRefundRequest,
    ProductIdResponse,
    ProductStockResponse,
    ReceiveStockRequest,
    RefundResponse,
    RegisterProductRequest,
    RequestReturnRequest,
    UpdateCartItemRequest,
    UpdateOrderStatusRequest,
)
from ordering.cart.items import AddToCart, RemoveFromCart, UpdateCartItem
from ordering.cart.management import ClearCart, MergeLocalCart
from ordering.cart.summary import summarize_cart
from ordering.inventory.management import CorrectStock, ReceiveStock, RegisterProduct
from ordering.inventory.product import Product
from ordering.order.cancellation import CancelOrder
from ordering.order.creation import PlaceOrder
from ordering.order.payment import PayOrder
from ordering.order.queries import MAX_PAGE_SIZE, get_order, list_orders, order_stats
from ordering.order.refund import ProcessRefund
from ordering.order.returns import RequestReturn
from ordering.order.tracking import UpdateOrderStatus

# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.get("", response_model=CartSummaryResponse)
async def get_cart(
    shipping_method: str = "standard",
    ctx: RequestContext = Depends(get_request_context),
) -> CartSummaryResponse:
    return CartSummaryResponse(**summarize_cart(ctx.user_id, shipping_method=shipping_method))


@cart_router.post("/items", response_model=CartSummaryResponse)
async def add_cart_item(
    body: AddToCartRequest,
    ctx: RequestContext = Depends(get_request_context),
) -> CartSummaryResponse:
    command = AddToCart(
        customer_id=ctx.user_id,
        product_id=body.product_id,
        quantity=body.quantity,
        expected_revision=body.expected_revision,
    )
    current_domain.process(command, asynchronous=False)
    return CartSummaryResponse(**summarize_cart(ctx.user_id))


@cart_router.put("/items/{product_id}", response_model=CartSummaryResponse)
async def update_cart_item(
    product_id: str,
    body: UpdateCartItemRequest,
    ctx: RequestContext = Depends(get_request_context),
) -> CartSummaryResponse:
    command = UpdateCartItem(
        customer_id=ctx.user_id,
        product_id=product_id,
        quantity=body.quantity,
        expected_revision=body.expected_revision,
    )
    current_domain.process(command, asynchronous=False)
    return CartSummaryResponse(**summarize_cart(ctx.user_id))


@cart_router.delete("/items/{product_id}", response_model=CartSummaryResponse)
async def remove_cart_item(
    product_id: str,
    expected_revision: int | None = None,
    ctx: RequestContext = Depends(get_request_context),
) -> CartSummaryResponse:
    command = RemoveFromCart(
        customer_id=ctx.user_id,
        product_id=product_id,
        expected_revision=expected_revision,
    )
    current_domain.process(command, asynchronous=False)
    return CartSummaryResponse(**summarize_cart(ctx.user_id))


@cart_router.delete("", response_model=CartSummaryResponse)
async def clear_cart(
    expected_revision: int | None = None,
    ctx: RequestContext = Depends(get_request_context),
) -> CartSummaryResponse:
    command = ClearCart(customer_id=ctx.user_id, expected_revision=expected_revision)
    current_domain.process(command, asynchronous=False)
    return CartSummaryResponse(**summarize_cart(ctx.user_id))


@cart_router.post("/merge", response_model=CartSummaryResponse)
async def merge_cart(
    body: MergeCartRequest,
    ctx: RequestContext = Depends(get_request_context),
) -> CartSummaryResponse:
    command = MergeLocalCart(
        customer_id=ctx.user_id,
        local_items=json.dumps([item.model_dump() for item in body.items]),
        expected_revision=body.expected_revision,
    )
    current_domain.process(command, asynchronous=False)
    return CartSummaryResponse(**summarize_cart(ctx.user_id))


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderResponse)
async def place_order(
    body: PlaceOrderRequest,
    ctx: RequestContext = Depends(get_request_context),
) -> OrderResponse:
    command = PlaceOrder(
        customer_id=ctx.user_id,
        items=json.dumps([item.model_dump() for item in body.items]) if body.items else None,
        shipping_address=json.dumps(body.shipping_address.model_dump()),
        billing_address=json.dumps(body.billing_address.model_dump()) if body.billing_address else None,
        shipping_method=body.shipping_method,
        coupon_code=body.coupon_code,
        notes=body.notes,
        is_gift=body.is_gift,
        gift_message=body.gift_message,
    )
    order_id = current_domain.process(command, asynchronous=False)
    return OrderResponse(**get_order(order_id, ctx.user_id, ctx.role))


@order_router.get("", response_model=OrderListResponse)
async def get_orders(
    status: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=MAX_PAGE_SIZE),
    ctx: RequestContext = Depends(get_request_context),
) -> OrderListResponse:
    return OrderListResponse(**list_orders(ctx.user_id, ctx.role, status=status, page=page, limit=limit))


@order_router.get("/stats", response_model=OrderStatsResponse)
async def get_order_stats(ctx: RequestContext = Depends(get_request_context)) -> OrderStatsResponse:
    return OrderStatsResponse(**order_stats(ctx.role))


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order_detail(
    order_id: str,
    ctx: RequestContext = Depends(get_request_context),
) -> OrderResponse:
    return OrderResponse(**get_order(order_id, ctx.user_id, ctx.role))


@order_router.put("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: str,
    body: CancelOrderRequest | None = None,
    ctx: RequestContext = Depends(get_request_context),
) -> OrderResponse:
    command = CancelOrder(
        order_id=order_id,
        actor_id=ctx.user_id,
        actor_role=ctx.role,
        reason=body.reason if body else None,
    )
    current_domain.process(command, asynchronous=False)
    return OrderResponse(**get_order(order_id, ctx.user_id, ctx.role))


@order_router.put("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: str,
    body: UpdateOrderStatusRequest,
    ctx: RequestContext = Depends(get_request_context),
) -> OrderResponse:
    command = UpdateOrderStatus(
        order_id=order_id,
        actor_role=ctx.role,
        status=body.status,
        message=body.message,
        location=body.location,
        tracking_number=body.tracking_number,
        carrier=body.carrier,
    )
    current_domain.process(command, asynchronous=False)
    return OrderResponse(**get_order(order_id, ctx.user_id, ctx.role))


@order_router.post("/{order_id}/return", response_model=OrderResponse)
async def request_return(
    order_id: str,
    body: RequestReturnRequest,
    ctx: RequestContext = Depends(get_request_context),
) -> OrderResponse:
    command = RequestReturn(order_id=order_id, customer_id=ctx.user_id, reason=body.reason)
    current_domain.process(command, asynchronous=False)
    return OrderResponse(**get_order(order_id, ctx.user_id, ctx.role))


@order_router.post("/{order_id}/pay", response_model=PaymentResponse)
async def pay_order(
    order_id: str,
    body: PayOrderRequest,
    ctx: RequestContext = Depends(get_request_context),
):
    command = PayOrder(
        order_id=order_id,
        actor_id=ctx.user_id,
        actor_role=ctx.role,
        payment_method=body.payment_method,
    )
    result = current_domain.process(command, asynchronous=False)
    if not result.success:
        return JSONResponse(
            status_code=400,
            content={
                "error": "Payment processing failed",
                "code": "PAYMENT_DECLINED",
                "details": result.failure_reason,
                "transaction_id": result.transaction_id,
            },
        )
    return PaymentResponse(
        transaction_id=result.transaction_id,
        status=result.status,
        amount=result.amount,
        currency=result.currency,
        payment_method=body.payment_method,
    )


# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payment", tags=["payment"])


@payment_router.post("/refund", response_model=RefundResponse)
async def process_refund(
    body: ProcessRefundRequest,
    ctx: RequestContext = Depends(get_request_context),
) -> RefundResponse:
    command = ProcessRefund(
        transaction_id=body.transaction_id,
        amount=body.amount,
        reason=body.reason,
        actor_id=ctx.user_id,
        actor_role=ctx.role,
    )
    return RefundResponse(**current_domain.process(command, asynchronous=False))


# ---------------------------------------------------------------------------
# Product Router
# ---------------------------------------------------------------------------
product_router = APIRouter(prefix="/products", tags=["products"])


def _stock_view(product):
    return ProductStockResponse(
        product_id=str(product.id),
        name=product.name,
        sku=product.sku,
        price=product.price,
        stock=product.stock,
        stock_status=product.stock_status,
        is_active=product.is_active,
    )


@product_router.post("", status_code=201, response_model=ProductIdResponse)
async def register_product(
    body: RegisterProductRequest,
    ctx: RequestContext = Depends(get_request_context),
) -> ProductIdResponse:
    require_role(ctx.role, Role.ADMIN.value)
    command = RegisterProduct(**body.model_dump())
    product_id = current_domain.process(command, asynchronous=False)
    return ProductIdResponse(product_id=product_id)


@product_router.get("/{product_id}/stock", response_model=ProductStockResponse)
async def get_product_stock(
    product_id: str,
    ctx: RequestContext = Depends(get_request_context),  # noqa: ARG001
) -> ProductStockResponse:
    return _stock_view(current_domain.repository_for(Product).get(product_id))


@product_router.post("/{product_id}/stock", response_model=ProductStockResponse)
async def receive_stock(
    product_id: str,
    body: ReceiveStockRequest,
    ctx: RequestContext = Depends(get_request_context),
) -> ProductStockResponse:
    require_role(ctx.role, Role.ADMIN.value)
    current_domain.process(ReceiveStock(product_id=product_id, quantity=body.quantity), asynchronous=False)
    return _stock_view(current_domain.repository_for(Product).get(product_id))


@product_router.post("/{product_id}/stock-corrections", response_model=ProductStockResponse)
async def correct_stock(
    product_id: str,
    body: CorrectStockRequest,
    ctx: RequestContext = Depends(get_request_context),
) -> ProductStockResponse:
    """Write off damaged or miscounted units; stock stops at zero."""
    require_role(ctx.role, Role.ADMIN.value)
    current_domain.process(
        CorrectStock(product_id=product_id, quantity=body.quantity, note=body.note),
        asynchronous=False,
    )
    return _stock_view(current_domain.repository_for(Product).get(product_id))
