"""Read side for shoppers: order history and order confirmation."""

import json

from protean.utils.globals import current_domain

from marketplace.order.order import Order
from marketplace.shared.errors import AccessDeniedError


def order_summary(order) -> dict:
    return {
        "id": str(order.id),
        "order_number": order.order_number,
        "status": order.status,
        "payment_status": order.payment_status,
        "total": order.total,
        "currency": order.currency,
        "created_at": order.created_at.isoformat() if order.created_at else None,
    }


def order_details(order) -> dict:
    address = order.shipping_address
    details = order_summary(order)
    details.update(
        {
            "subtotal": order.subtotal,
            "shipping": order.shipping,
            "payment_method": order.payment_method,
            "tracking_number": order.tracking_number,
            "customer_note": order.customer_note,
            "guest_email": order.guest_email,
            "shipping_address": {
                "label": address.label,
                "first_name": address.first_name,
                "last_name": address.last_name,
                "address1": address.address1,
                "address2": address.address2,
                "city": address.city,
                "state": address.state,
                "postal_code": address.postal_code,
                "country": address.country,
                "phone": address.phone,
                "latitude": address.latitude,
                "longitude": address.longitude,
            },
            "lines": [
                {
                    "product_id": str(line.product_id),
                    "variant_id": str(line.variant_id) if line.variant_id else None,
                    "product_name": line.product_name,
                    "quantity": line.quantity,
                    "price": line.price,
                    "total": line.total,
                    "variant": (
                        {
                            "sku": line.variant_sku,
                            "title": line.variant_title,
                            "options": json.loads(line.variant_options) if line.variant_options else [],
                            "price": line.variant_price,
                        }
                        if line.variant_id
                        else None
                    ),
                }
                for line in order.lines
            ],
        }
    )
    return details


def customer_orders(customer_id, limit=100) -> list[dict]:
    orders = current_domain.repository_for(Order).for_customer(customer_id, limit=limit)
    return [order_summary(order) for order in orders]


def order_confirmation(order_id, customer_id=None) -> dict:
    """Order details for its owner, or for anyone within 24 hours of a guest order."""
    order = current_domain.repository_for(Order).load(order_id)
    if not order.is_visible_to(customer_id):
        raise AccessDeniedError("Access denied")
    return order_details(order)
