"""Cart summary — the cart priced against the current catalogue."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart
from ordering.inventory.product import Product
from ordering.pricing.calculator import calculate_pricing


def summarize_cart(customer_id, shipping_method="standard"):
    """Return items with line subtotals and the priced totals of a customer's cart.

    Lines whose product no longer exists are left out of the summary; they
    stay in the cart until removed, and checkout rejects them.
    """
    try:
        cart = current_domain.repository_for(ShoppingCart).get(customer_id)
    except ObjectNotFoundError:
        cart = ShoppingCart.create(customer_id=customer_id)

    product_repo = current_domain.repository_for(Product)
    items = []
    for line in cart.items:
        try:
            product = product_repo.get(line.product_id)
        except ObjectNotFoundError:
            continue
        items.append(
            {
                "product_id": str(product.id),
                "name": product.name,
                "sku": product.sku,
                "unit_price": product.price,
                "quantity": line.quantity,
                "line_subtotal": round(product.price * line.quantity, 2),
                "stock_status": product.stock_status,
                "image_url": product.image_url,
            }
        )

    summary = {
        "customer_id": str(customer_id),
        "revision": cart.revision or 0,
        "items": items,
        "item_count": sum(item["quantity"] for item in items),
        "subtotal": 0.0,
        "shipping": 0.0,
        "tax": 0.0,
        "total": 0.0,
    }
    if not items:
        return summary

    pricing = calculate_pricing(
        [(item["unit_price"], item["quantity"]) for item in items],
        shipping_method=shipping_method,
    ).pricing
    summary.update(
        subtotal=pricing.subtotal,
        shipping=pricing.shipping_cost,
        tax=pricing.tax_total,
        total=pricing.grand_total,
    )
    return summary
