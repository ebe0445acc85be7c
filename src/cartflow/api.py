"""FastAPI REST API for cartflow shopping sessions."""

from contextlib import contextmanager
from decimal import Decimal
from typing import Iterator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from . import __version__
from .cart import CartStore
from .checkout import CheckoutWizard
from .config import Settings
from .errors import (
    CartflowError,
    CheckoutBlockedError,
    CheckoutCompletedError,
    CheckoutNotStartedError,
    DuplicateLineItemError,
    InvalidCartFileError,
    InvalidLineItemError,
    InvalidTransitionError,
    OrderSubmissionError,
    OutOfStockError,
    SessionNotFoundError,
    StepValidationError,
    UnknownShippingMethodError,
)
from .fixtures import demo_items, demo_profile
from .models import SHIPPING_METHODS, CartLineItem, CustomerProfile, PriceBreakdown, _generate_id
from .sessions import Session, SessionRegistry

settings = Settings.from_env()
_registry = SessionRegistry(rules=settings.rules)


# --- Pydantic Schemas ---


class LineItemSchema(BaseModel):
    id: str
    product_id: str
    name: str
    unit_price: str
    quantity: int
    in_stock: bool
    image_url: Optional[str] = None
    line_total: str


class LineItemCreateRequest(BaseModel):
    """Request body for adding a line to the cart."""

    id: Optional[str] = Field(None, description="Line ID (generated if omitted)")
    product_id: str
    name: str
    unit_price: Decimal = Field(..., ge=0)
    quantity: int = Field(default=1, ge=1)
    in_stock: bool = True
    image_url: Optional[str] = None


class QuantityUpdateRequest(BaseModel):
    delta: int = Field(..., description="Change in quantity, e.g. 1 or -1")


class PromoRequest(BaseModel):
    code: str


class PromoSchema(BaseModel):
    code: str
    applied: bool


class TotalsSchema(BaseModel):
    subtotal: str
    discount: str
    shipping_fee: str
    tax: str
    total: str


class CartSchema(BaseModel):
    items: list[LineItemSchema]
    saved_for_later: list[LineItemSchema]
    promo: PromoSchema
    totals: TotalsSchema
    item_count: int
    can_checkout: bool


class ProfileSchema(BaseModel):
    full_name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    country: str = "United States"


class SessionCreateRequest(BaseModel):
    """Request body for creating a session."""

    items: list[LineItemCreateRequest] = Field(default_factory=list)
    profile: Optional[ProfileSchema] = None
    demo: bool = Field(default=False, description="Seed with the sample cart and profile")


class SessionSchema(BaseModel):
    id: str
    created_at: str
    cart: CartSchema
    checkout_step: Optional[str] = None


class ShippingAddressSchema(BaseModel):
    full_name: str
    email: str
    phone: str
    address: str
    city: str
    state: str
    zip_code: str
    country: str


class BillingAddressSchema(BaseModel):
    full_name: str
    address: str
    city: str
    state: str
    zip_code: str
    country: str


class ShippingAddressUpdateRequest(BaseModel):
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None


class BillingAddressUpdateRequest(BaseModel):
    full_name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None


class SameAsShippingRequest(BaseModel):
    value: bool


class ShippingMethodRequest(BaseModel):
    method_id: str


class EditStepRequest(BaseModel):
    step: str = Field(..., description="'shipping', 'billing', 'shipping-method' or 'payment'")


class ShippingMethodSchema(BaseModel):
    id: str
    label: str
    fee: str
    lead_time: str


class StepProgressSchema(BaseModel):
    step: str
    name: str
    reached: bool
    current: bool


class OrderConfirmationSchema(BaseModel):
    order_number: str
    placed_at: str
    email: str
    estimated_delivery: str
    total: str


class CheckoutSchema(BaseModel):
    step: str
    progress: list[StepProgressSchema]
    shipping_address: ShippingAddressSchema
    billing_address: BillingAddressSchema
    same_as_shipping: bool
    shipping_method: ShippingMethodSchema
    errors: dict[str, str]
    totals: TotalsSchema
    items: list[LineItemSchema]
    completed: bool
    confirmation: Optional[OrderConfirmationSchema] = None


# --- Helper Functions ---


def get_registry() -> SessionRegistry:
    """Get the global SessionRegistry."""
    return _registry


def get_session(session_id: str) -> Session:
    return get_registry().get(session_id)


@contextmanager
def locked_session(session_id: str) -> Iterator[Session]:
    """Look up a session and hold its lock for the rest of the request."""
    with get_session(session_id).lock() as session:
        yield session


def line_item_to_schema(item: CartLineItem) -> LineItemSchema:
    return LineItemSchema(
        id=item.id,
        product_id=item.product_id,
        name=item.name,
        unit_price=str(item.unit_price),
        quantity=item.quantity,
        in_stock=item.in_stock,
        image_url=item.image_url,
        line_total=str(item.line_total),
    )


def totals_to_schema(breakdown: PriceBreakdown) -> TotalsSchema:
    return TotalsSchema(**breakdown.rounded().to_dict())


def cart_to_schema(cart: CartStore) -> CartSchema:
    return CartSchema(
        items=[line_item_to_schema(i) for i in cart.active],
        saved_for_later=[line_item_to_schema(i) for i in cart.saved_for_later],
        promo=PromoSchema(**cart.promo.to_dict()),
        totals=totals_to_schema(cart.breakdown()),
        item_count=cart.item_count,
        can_checkout=not cart.is_empty and not cart.has_out_of_stock,
    )


def session_to_schema(session: Session) -> SessionSchema:
    return SessionSchema(
        id=session.id,
        created_at=session.created_at,
        cart=cart_to_schema(session.cart),
        checkout_step=session.checkout.step.value if session.checkout else None,
    )


def checkout_to_schema(wizard: CheckoutWizard) -> CheckoutSchema:
    confirmation = None
    if wizard.confirmation is not None:
        confirmation = OrderConfirmationSchema(**wizard.confirmation.to_dict())
    return CheckoutSchema(
        step=wizard.step.value,
        progress=[
            StepProgressSchema(step=p.step.value, name=p.name, reached=p.reached, current=p.current)
            for p in wizard.progress()
        ],
        shipping_address=ShippingAddressSchema(**wizard.shipping_address.to_dict()),
        billing_address=BillingAddressSchema(**wizard.billing_address.to_dict()),
        same_as_shipping=wizard.same_as_shipping,
        shipping_method=ShippingMethodSchema(**wizard.shipping_method.to_dict()),
        errors=dict(wizard.errors),
        totals=totals_to_schema(wizard.breakdown()),
        items=[line_item_to_schema(i) for i in wizard.items],
        completed=wizard.completed,
        confirmation=confirmation,
    )


def _line_from_request(request: LineItemCreateRequest) -> CartLineItem:
    return CartLineItem(
        id=request.id or _generate_id(),
        product_id=request.product_id,
        name=request.name,
        unit_price=request.unit_price,
        quantity=request.quantity,
        in_stock=request.in_stock,
        image_url=request.image_url,
    )


# --- FastAPI App ---


app = FastAPI(
    title="cartflow API",
    description="REST API for carts, pricing and checkout",
    version=__version__,
)

# CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Global Exception Handler ---


# Map exception types to HTTP status codes
ERROR_STATUS_CODES: dict[type, int] = {
    SessionNotFoundError: 404,
    CheckoutNotStartedError: 409,
    CheckoutCompletedError: 409,
    CheckoutBlockedError: 409,
    InvalidTransitionError: 409,
    OutOfStockError: 409,
    DuplicateLineItemError: 409,
    StepValidationError: 422,
    InvalidLineItemError: 400,
    UnknownShippingMethodError: 400,
    InvalidCartFileError: 400,
    OrderSubmissionError: 502,
}


@app.exception_handler(CartflowError)
async def cartflow_error_handler(request: Request, exc: CartflowError) -> JSONResponse:
    """Map CartflowError subclasses to appropriate HTTP responses."""
    status_code = ERROR_STATUS_CODES.get(type(exc), 500)
    content = {"detail": str(exc), "error_type": type(exc).__name__}
    if isinstance(exc, StepValidationError):
        content["field_errors"] = exc.field_errors
    return JSONResponse(status_code=status_code, content=content)


# --- Endpoints ---


@app.get("/api/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok", "session_count": len(get_registry())}


@app.get("/api/shipping-methods", response_model=list[ShippingMethodSchema])
def list_shipping_methods():
    return [ShippingMethodSchema(**m.to_dict()) for m in SHIPPING_METHODS.values()]


# --- Session Endpoints ---


@app.post("/api/sessions", response_model=SessionSchema, status_code=201)
def create_session(request: SessionCreateRequest):
    """Create a session, optionally seeded with cart lines or the demo cart."""
    items = [_line_from_request(i) for i in request.items]
    profile = CustomerProfile(**request.profile.model_dump()) if request.profile else None
    if request.demo:
        items = demo_items() + items
        profile = profile or demo_profile()
    session = get_registry().create(items=items, profile=profile)
    return session_to_schema(session)


@app.get("/api/sessions/{session_id}", response_model=SessionSchema)
def get_session_state(session_id: str):
    with locked_session(session_id) as session:
        return session_to_schema(session)


@app.delete("/api/sessions/{session_id}", response_model=SessionSchema)
def delete_session(session_id: str):
    """Abandon a session, discarding its cart and any checkout."""
    return session_to_schema(get_registry().delete(session_id))


# --- Cart Endpoints ---


@app.get("/api/sessions/{session_id}/cart", response_model=CartSchema)
def get_cart(session_id: str):
    with locked_session(session_id) as session:
        return cart_to_schema(session.cart)


@app.post("/api/sessions/{session_id}/cart/items", response_model=CartSchema, status_code=201)
def add_cart_item(session_id: str, request: LineItemCreateRequest):
    with locked_session(session_id) as session:
        session.cart.add_item(_line_from_request(request))
        return cart_to_schema(session.cart)


@app.patch("/api/sessions/{session_id}/cart/items/{line_id}", response_model=CartSchema)
def update_cart_item(session_id: str, line_id: str, request: QuantityUpdateRequest):
    """Change a line's quantity. Results below 1 and unknown ids are ignored."""
    with locked_session(session_id) as session:
        session.update_quantity(line_id, request.delta)
        return cart_to_schema(session.cart)


@app.delete("/api/sessions/{session_id}/cart/items/{line_id}", response_model=CartSchema)
def remove_cart_item(session_id: str, line_id: str):
    """Remove a line from the cart or the saved list."""
    with locked_session(session_id) as session:
        session.cart.remove(line_id)
        return cart_to_schema(session.cart)


@app.post("/api/sessions/{session_id}/cart/items/{line_id}/save-for-later", response_model=CartSchema)
def save_cart_item_for_later(session_id: str, line_id: str):
    with locked_session(session_id) as session:
        session.cart.save_for_later(line_id)
        return cart_to_schema(session.cart)


@app.post("/api/sessions/{session_id}/cart/saved/{line_id}/move-to-cart", response_model=CartSchema)
def move_saved_item_to_cart(session_id: str, line_id: str):
    with locked_session(session_id) as session:
        session.move_to_cart(line_id)
        return cart_to_schema(session.cart)


@app.post("/api/sessions/{session_id}/cart/promo", response_model=CartSchema)
def apply_promo_code(session_id: str, request: PromoRequest):
    """Apply a promo code. Blank codes and re-application change nothing."""
    with locked_session(session_id) as session:
        session.cart.apply_promo(request.code)
        return cart_to_schema(session.cart)


@app.delete("/api/sessions/{session_id}/cart/promo", response_model=CartSchema)
def clear_promo_code(session_id: str):
    with locked_session(session_id) as session:
        session.cart.clear_promo()
        return cart_to_schema(session.cart)


# --- Checkout Endpoints ---


@app.post("/api/sessions/{session_id}/checkout", response_model=CheckoutSchema, status_code=201)
def start_checkout(session_id: str):
    """Start a fresh checkout, abandoning any unfinished one."""
    with locked_session(session_id) as session:
        return checkout_to_schema(session.start_checkout())


@app.get("/api/sessions/{session_id}/checkout", response_model=CheckoutSchema)
def get_checkout(session_id: str):
    with locked_session(session_id) as session:
        return checkout_to_schema(session.require_checkout())


@app.patch("/api/sessions/{session_id}/checkout/shipping-address", response_model=CheckoutSchema)
def update_shipping_address(session_id: str, request: ShippingAddressUpdateRequest):
    with locked_session(session_id) as session:
        wizard = session.require_checkout()
        wizard.update_shipping(**request.model_dump(exclude_none=True))
        return checkout_to_schema(wizard)


@app.patch("/api/sessions/{session_id}/checkout/billing-address", response_model=CheckoutSchema)
def update_billing_address(session_id: str, request: BillingAddressUpdateRequest):
    with locked_session(session_id) as session:
        wizard = session.require_checkout()
        wizard.update_billing(**request.model_dump(exclude_none=True))
        return checkout_to_schema(wizard)


@app.put("/api/sessions/{session_id}/checkout/same-as-shipping", response_model=CheckoutSchema)
def set_same_as_shipping(session_id: str, request: SameAsShippingRequest):
    with locked_session(session_id) as session:
        wizard = session.require_checkout()
        wizard.set_same_as_shipping(request.value)
        return checkout_to_schema(wizard)


@app.put("/api/sessions/{session_id}/checkout/shipping-method", response_model=CheckoutSchema)
def select_shipping_method(session_id: str, request: ShippingMethodRequest):
    with locked_session(session_id) as session:
        wizard = session.require_checkout()
        wizard.select_shipping_method(request.method_id)
        return checkout_to_schema(wizard)


@app.post("/api/sessions/{session_id}/checkout/continue", response_model=CheckoutSchema)
def continue_checkout(session_id: str):
    """Validate the current step and advance. Invalid forms return 422 with field errors."""
    with locked_session(session_id) as session:
        wizard = session.require_checkout()
        wizard.continue_step()
        return checkout_to_schema(wizard)


@app.post("/api/sessions/{session_id}/checkout/back", response_model=CheckoutSchema)
def back_checkout(session_id: str):
    with locked_session(session_id) as session:
        wizard = session.require_checkout()
        wizard.back()
        return checkout_to_schema(wizard)


@app.post("/api/sessions/{session_id}/checkout/edit", response_model=CheckoutSchema)
def edit_checkout_step(session_id: str, request: EditStepRequest):
    """Jump from review back to an earlier step."""
    with locked_session(session_id) as session:
        wizard = session.require_checkout()
        wizard.edit(request.step)
        return checkout_to_schema(wizard)


@app.post("/api/sessions/{session_id}/checkout/place-order", response_model=OrderConfirmationSchema)
def place_order(session_id: str):
    with locked_session(session_id) as session:
        confirmation = session.place_order(get_registry().submitter)
        return OrderConfirmationSchema(**confirmation.to_dict())
