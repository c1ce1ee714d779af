"""FastAPI routes for the storefront — cart, checkout, orders and products.

Authenticated shoppers are identified by the ``X-Customer-Id`` header and
their cart is stored server side. Guests carry their cart in the
``guest_cart`` cookie, which every cart route reads and writes back.
"""

import json

from fastapi import APIRouter, Depends, Header, Request, Response
from protean.utils.globals import current_domain

from marketplace.api.cookies import clear_guest_cart, read_guest_lines, write_guest_lines
from marketplace.api.identity import current_customer_id, require_customer_id
from marketplace.api.schemas import (
    AddToCartRequest,
    CartResponse,
    CartViewResponse,
    CreateOrderRequest,
    OrderConfirmationResponse,
    OrderCreatedResponse,
    OrderHistoryResponse,
    RemoveFromCartRequest,
    TrackViewRequest,
    TrackViewResponse,
    UpdateCartRequest,
    VariantListResponse,
)
from marketplace.cart.items import AddToCart, RemoveFromCart, UpdateCartItem, add_to_cart
from marketplace.cart.management import ClearCart, MergeGuestCart
from marketplace.cart.store import encode_lines, load_cart
from marketplace.cart.view import describe_cart
from marketplace.order.history import customer_orders, order_confirmation
from marketplace.order.placement import PlaceOrder, checkout
from marketplace.product.engagement import RecordProductView
from marketplace.product.product import Product


def _guest_items(request: Request, customer_id) -> str | None:
    if customer_id:
        return None
    return encode_lines(read_guest_lines(request))


def _cart_response(response: Response, customer_id, summary) -> CartResponse:
    if not customer_id:
        write_guest_lines(response, summary["items"])
    return CartResponse.model_validate(summary)


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(tags=["cart"])


@cart_router.post("/add-to-cart", response_model=CartResponse, response_model_exclude_none=True)
async def add_item(
    body: AddToCartRequest,
    request: Request,
    response: Response,
    customer_id: str | None = Depends(current_customer_id),
) -> CartResponse:
    command = AddToCart(
        customer_id=customer_id,
        guest_items=_guest_items(request, customer_id),
        product_id=body.product_id,
        variant_id=body.variant_id,
        quantity=body.quantity,
    )
    summary = add_to_cart(command)
    return _cart_response(response, customer_id, summary)


@cart_router.post("/update-cart", response_model=CartResponse, response_model_exclude_none=True)
async def update_item(
    body: UpdateCartRequest,
    request: Request,
    response: Response,
    customer_id: str | None = Depends(current_customer_id),
) -> CartResponse:
    command = UpdateCartItem(
        customer_id=customer_id,
        guest_items=_guest_items(request, customer_id),
        product_id=body.product_id,
        variant_id=body.variant_id,
        quantity=body.quantity,
    )
    summary = current_domain.process(command, asynchronous=False)
    return _cart_response(response, customer_id, summary)


@cart_router.post("/remove-from-cart", response_model=CartResponse, response_model_exclude_none=True)
async def remove_item(
    body: RemoveFromCartRequest,
    request: Request,
    response: Response,
    customer_id: str | None = Depends(current_customer_id),
) -> CartResponse:
    command = RemoveFromCart(
        customer_id=customer_id,
        guest_items=_guest_items(request, customer_id),
        product_id=body.product_id,
        variant_id=body.variant_id,
    )
    summary = current_domain.process(command, asynchronous=False)
    return _cart_response(response, customer_id, summary)


@cart_router.post("/clear-cart", response_model=CartResponse, response_model_exclude_none=True)
async def clear_cart(
    request: Request,
    response: Response,
    customer_id: str | None = Depends(current_customer_id),
) -> CartResponse:
    summary = current_domain.process(
        ClearCart(customer_id=customer_id, guest_items=_guest_items(request, customer_id)),
        asynchronous=False,
    )
    if not customer_id:
        clear_guest_cart(response)
    return CartResponse.model_validate(summary)


@cart_router.get("/cart", response_model=CartViewResponse)
async def view_cart(
    request: Request,
    customer_id: str | None = Depends(current_customer_id),
) -> CartViewResponse:
    cart = load_cart(customer_id, _guest_items(request, customer_id))
    return CartViewResponse.model_validate(describe_cart(cart))


@cart_router.post("/merge-cart", response_model=CartResponse, response_model_exclude_none=True)
async def merge_cart(
    request: Request,
    response: Response,
    customer_id: str = Depends(require_customer_id),
) -> CartResponse:
    # The guest cookie is dropped even when the merge fails part way.
    request.state.clear_guest_cart = True
    command = MergeGuestCart(
        customer_id=customer_id,
        guest_items=encode_lines(read_guest_lines(request)),
    )
    try:
        summary = current_domain.process(command, asynchronous=False)
    finally:
        clear_guest_cart(response)
    return CartResponse.model_validate(summary)


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(tags=["orders"])


@order_router.post("/create-order", status_code=201, response_model=OrderCreatedResponse)
async def create_order(
    body: CreateOrderRequest,
    request: Request,
    response: Response,
    customer_id: str | None = Depends(current_customer_id),
    idempotency_key: str | None = Header(default=None),
) -> OrderCreatedResponse:
    lines = [line.model_dump() for line in body.items] if body.items else []
    consumes_guest_cart = not customer_id and not lines
    if consumes_guest_cart:
        lines = read_guest_lines(request)

    command = PlaceOrder(
        customer_id=customer_id,
        guest_email=body.guest_email,
        items=json.dumps(lines) if lines else None,
        shipping_address=json.dumps(body.shipping_address.model_dump()),
        payment_method=body.payment_method,
        currency=body.currency,
        customer_note=body.customer_note,
        save_address=body.save_address,
        idempotency_key=idempotency_key,
    )
    receipt = checkout(command)

    if consumes_guest_cart:
        clear_guest_cart(response)

    return OrderCreatedResponse.model_validate(
        {
            "order": {
                "id": receipt["order_id"],
                "order_number": receipt["order_number"],
                "total": receipt["total"],
                "status": receipt["status"],
            }
        }
    )


@order_router.get("/user-orders", response_model=OrderHistoryResponse)
async def user_orders(customer_id: str = Depends(require_customer_id)) -> OrderHistoryResponse:
    return OrderHistoryResponse.model_validate({"orders": customer_orders(customer_id)})


@order_router.get("/order-confirmation/{order_id}", response_model=OrderConfirmationResponse)
async def confirmation(
    order_id: str,
    customer_id: str | None = Depends(current_customer_id),
) -> OrderConfirmationResponse:
    return OrderConfirmationResponse.model_validate({"order": order_confirmation(order_id, customer_id)})


# ---------------------------------------------------------------------------
# Product Router
# ---------------------------------------------------------------------------
product_router = APIRouter(tags=["products"])


@product_router.get("/products/{product_id}/variants", response_model=VariantListResponse)
async def list_variants(product_id: str) -> VariantListResponse:
    product = current_domain.repository_for(Product).load(product_id)
    variants = sorted(product.variants, key=lambda v: not v.is_default)
    return VariantListResponse.model_validate(
        {
            "product_id": str(product.id),
            "variants": [
                {
                    "id": str(v.id),
                    "sku": v.sku,
                    "title": v.title,
                    "options": v.option_list,
                    "price": v.price,
                    "stock_status": v.stock_status,
                    "is_default": bool(v.is_default),
                    "quantity": v.quantity,
                    "is_available": v.is_available,
                }
                for v in variants
            ],
        }
    )


@product_router.post("/track-view", response_model=TrackViewResponse)
async def track_view(body: TrackViewRequest) -> TrackViewResponse:
    view_count = current_domain.process(RecordProductView(product_id=body.product_id), asynchronous=False)
    return TrackViewResponse(view_count=view_count)
