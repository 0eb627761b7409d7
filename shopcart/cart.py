# shopcart/cart.py
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from .auth import get_current_user
from .cart_engine import CartEngine, CartView
from .checkout import quote
from .config import get_settings
from .database import get_session
from .errors import NotFound
from .models import User
from .schemas import (
    AddToCartRequest, CartItemOut, CartOut, CartProductOut, CartResponse,
    QuoteResponse, UpdateQuantityRequest,
)

router = APIRouter(tags=["cart"])


def format_added_at(moment: datetime, tz_name: str) -> str:
    # stored as an absolute instant; some backends hand it back naive (UTC)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(ZoneInfo(tz_name)).isoformat(timespec="seconds")


def render_cart(view: CartView) -> CartOut:
    tz_name = get_settings().display_timezone
    items = []
    for item in view.cart.items:
        product = view.products.get(item.product_id)
        unit_price = view.unit_price(item.product_id)
        items.append(CartItemOut(
            product_id=item.product_id,
            quantity=item.quantity,
            added_at=format_added_at(item.added_at, tz_name),
            unit_price=float(unit_price),
            line_total=float(unit_price * item.quantity),
            product=CartProductOut(
                id=product.id,
                name=product.name,
                price=float(product.price),
                image_url=product.image_url,
                availability=product.availability,
            ) if product is not None else None,
        ))
    return CartOut(
        id=view.cart.id,
        items=items,
        total_price=float(view.total_price),
        updated_at=view.cart.updated_at,
    )


def get_cart_engine(session: AsyncSession = Depends(get_session)) -> CartEngine:
    return CartEngine(session)


# 🛒 Просмотр корзины
@router.get("/cart", response_model=CartResponse)
async def show_cart(
    engine: CartEngine = Depends(get_cart_engine),
    current_user: User = Depends(get_current_user),
):
    view = await engine.get_cart(current_user.id)
    return CartResponse(message="Cart fetched successfully", cart=render_cart(view))


@router.post("/add-to-cart", response_model=CartResponse)
async def add_to_cart(
    payload: AddToCartRequest,
    engine: CartEngine = Depends(get_cart_engine),
    current_user: User = Depends(get_current_user),
):
    view = await engine.add_item(current_user.id, payload.product_id, payload.quantity)
    return CartResponse(message="Item added to cart successfully", cart=render_cart(view))


@router.delete("/delete-product-from-cart/{product_id}", response_model=CartResponse)
async def delete_product_from_cart(
    product_id: str,
    engine: CartEngine = Depends(get_cart_engine),
    current_user: User = Depends(get_current_user),
):
    # an id that is not a number cannot be in anyone's cart
    if not product_id.isascii() or not product_id.isdigit():
        raise NotFound("Item not found in cart")
    view = await engine.remove_item(current_user.id, int(product_id))
    return CartResponse(message="Item removed from cart successfully", cart=render_cart(view))


@router.patch("/update-cart-quantity", response_model=CartResponse)
async def update_cart_quantity(
    payload: UpdateQuantityRequest,
    engine: CartEngine = Depends(get_cart_engine),
    current_user: User = Depends(get_current_user),
):
    view = await engine.adjust_quantity(current_user.id, payload.product_id, payload.action)
    return CartResponse(message="Quantity updated successfully", cart=render_cart(view))


# 🧾 Расчёт к оплате (без создания заказа)
@router.get("/buy-now", response_model=QuoteResponse)
async def buy_now(
    engine: CartEngine = Depends(get_cart_engine),
    current_user: User = Depends(get_current_user),
):
    city = current_user.city
    view = await engine.get_cart(current_user.id)
    q = quote(view.total_price, city)
    return QuoteResponse(
        cart=render_cart(view),
        total_price=float(q.total_price),
        shipping_charges=float(q.shipping_charge),
        billing_price=float(q.billing_price),
    )
