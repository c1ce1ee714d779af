"""Pydantic request/response schemas for the storefront API.

These are the external contracts: camelCase on the wire, snake_case inside.
Quantity and product id checks reuse the wording of the domain errors so
clients see the same message whichever layer rejected the request.
"""

from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, BeforeValidator, Field
from pydantic.alias_generators import to_camel

_CAMEL = {"alias_generator": to_camel, "populate_by_name": True}


class CamelModel(BaseModel):
    model_config = dict(_CAMEL)


def _integer(message):
    def check(value):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(message)
        return value

    return BeforeValidator(check)


def _require_product_id(value):
    if not isinstance(value, str) or not value.strip():
        raise ValueError("Valid product ID is required")
    return value.strip()


# Validated even when omitted so a missing id gets the same message as a blank one.
ProductId = Annotated[str, BeforeValidator(_require_product_id), Field(validate_default=True)]
Quantity = Annotated[int, _integer("Quantity must be a positive integer")]
NewQuantity = Annotated[int, _integer("Quantity must be a non-negative integer")]


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class ShippingAddressSchema(CamelModel):
    label: str | None = None
    first_name: str
    last_name: str
    address1: str
    address2: str | None = None
    city: str
    state: str | None = None
    postal_code: str
    country: str
    phone: str | None = None
    latitude: float
    longitude: float
    is_default: bool = False


class OrderLineSchema(CamelModel):
    product_id: ProductId = None
    variant_id: str | None = None
    quantity: Quantity


# ---------------------------------------------------------------------------
# Cart Request Schemas
# ---------------------------------------------------------------------------
class AddToCartRequest(CamelModel):
    product_id: ProductId = None
    variant_id: str | None = None
    quantity: Quantity = 1

    model_config = {
        **_CAMEL,
        "json_schema_extra": {"examples": [{"productId": "prod-001", "variantId": None, "quantity": 2}]},
    }


class UpdateCartRequest(CamelModel):
    product_id: ProductId = None
    variant_id: str | None = None
    quantity: NewQuantity


class RemoveFromCartRequest(CamelModel):
    product_id: ProductId = None
    variant_id: str | None = None


class TrackViewRequest(CamelModel):
    product_id: ProductId = None


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class CreateOrderRequest(CamelModel):
    shipping_address: ShippingAddressSchema
    payment_method: str
    currency: str
    items: list[OrderLineSchema] | None = None
    guest_email: str | None = None
    customer_note: str | None = None
    save_address: bool = False

    model_config = {
        **_CAMEL,
        "json_schema_extra": {
            "examples": [
                {
                    "shippingAddress": {
                        "label": "Home",
                        "firstName": "Ada",
                        "lastName": "Lovelace",
                        "address1": "12 Analytical Row",
                        "city": "Kabul",
                        "postalCode": "1001",
                        "country": "AF",
                        "latitude": 34.5553,
                        "longitude": 69.2075,
                    },
                    "paymentMethod": "cod",
                    "currency": "USD",
                }
            ]
        },
    }


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class CartLineResponse(CamelModel):
    product_id: str
    variant_id: str | None = None
    quantity: int
    added_at: str | None = None


class CartResponse(CamelModel):
    item_count: int
    items: list[CartLineResponse]
    warnings: list[str] | None = None


class ProductSummaryResponse(CamelModel):
    id: str
    name: str
    slug: str | None = None
    price: float
    sale_price: float | None = None
    currency: str | None = None
    stock_status: str


class VariantSummaryResponse(CamelModel):
    id: str
    sku: str
    title: str | None = None
    options: list = Field(default_factory=list)
    price: float | None = None
    stock_status: str
    is_default: bool | None = None
    quantity: int | None = None
    is_available: bool | None = None


class CartViewLineResponse(CamelModel):
    product_id: str
    variant_id: str | None = None
    quantity: int
    added_at: str | None = None
    product: ProductSummaryResponse
    variant: VariantSummaryResponse | None = None
    unit_price: float
    line_total: float
    is_in_stock: bool
    available_quantity: int | None = None


class CartViewResponse(CamelModel):
    items: list[CartViewLineResponse]
    item_count: int
    subtotal: float
    is_empty: bool


class VariantListResponse(CamelModel):
    product_id: str
    variants: list[VariantSummaryResponse]


class TrackViewResponse(CamelModel):
    view_count: int


class OrderCreatedSchema(CamelModel):
    id: str
    order_number: str
    total: float
    status: str


class OrderCreatedResponse(CamelModel):
    order: OrderCreatedSchema


class OrderSummarySchema(CamelModel):
    id: str
    order_number: str
    status: str
    payment_status: str
    total: float
    currency: str
    created_at: datetime | None = None


class OrderHistoryResponse(CamelModel):
    orders: list[OrderSummarySchema]


class OrderLineVariantSchema(CamelModel):
    sku: str | None = None
    title: str | None = None
    options: list = Field(default_factory=list)
    price: float | None = None


class OrderLineDetailSchema(CamelModel):
    product_id: str
    variant_id: str | None = None
    product_name: str
    quantity: int
    price: float
    total: float
    variant: OrderLineVariantSchema | None = None


class ShippingAddressResponse(CamelModel):
    label: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    address1: str | None = None
    address2: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None
    phone: str | None = None
    latitude: float
    longitude: float


class OrderDetailSchema(OrderSummarySchema):
    subtotal: float
    shipping: float
    payment_method: str
    tracking_number: str | None = None
    customer_note: str | None = None
    guest_email: str | None = None
    shipping_address: ShippingAddressResponse
    lines: list[OrderLineDetailSchema]


class OrderConfirmationResponse(CamelModel):
    order: OrderDetailSchema
