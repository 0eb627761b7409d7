"""Cart engine: line-item mutations and the derived cart total.

Every mutation is a read-modify-write of the user's cart row guarded by the
``carts.version`` column. The ORM turns the final flush into
``UPDATE carts ... WHERE id = :id AND version = :seen``; if another request
committed first the update matches no row, the transaction is rolled back and
the whole mutation is replayed against a freshly loaded cart.

The total is never taken from the client. It is recomputed from the current
catalog prices after each mutation and whenever a stale total is read.
"""
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Dict, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.exc import StaleDataError

from .catalog import Catalog
from .config import Settings, get_settings
from .errors import InternalFailure, InvalidArgument, InvalidOperation, NotFound
from .logging import get_logger
from .models import Cart, CartItem, Product, utcnow
from .users import UserDirectory

logger = get_logger(__name__)

CENTS = Decimal("0.01")
INCREASE = "increase"
DECREASE = "decrease"

_QUANTITY_RE = re.compile(r"\+?\d{1,12}")
QUANTITY_ERROR = "Quantity must be a positive number"
QUANTITY_TOO_LARGE = "Quantity is too large"
# cart_items.quantity is a 32-bit INTEGER column
MAX_QUANTITY = 2**31 - 1


def parse_quantity(raw) -> int:
    """Accept a positive int or a decimal-integer string such as ``"3"``."""
    if isinstance(raw, bool):
        raise InvalidArgument(QUANTITY_ERROR)
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, str) and _QUANTITY_RE.fullmatch(raw.strip()):
        value = int(raw.strip())
    elif isinstance(raw, str) and raw.strip().lstrip("+").isdigit():
        raise InvalidArgument(QUANTITY_TOO_LARGE)
    else:
        raise InvalidArgument(QUANTITY_ERROR)
    if value <= 0:
        raise InvalidArgument(QUANTITY_ERROR)
    if value > MAX_QUANTITY:
        raise InvalidArgument(QUANTITY_TOO_LARGE)
    return value


def _bounded(quantity: int) -> int:
    if quantity > MAX_QUANTITY:
        raise InvalidArgument(QUANTITY_TOO_LARGE)
    return quantity


@dataclass
class CartView:
    """A cart joined with the product rows its line items point at."""
    cart: Cart
    products: Dict[int, Product]

    @property
    def total_price(self) -> Decimal:
        return Decimal(self.cart.total_price)

    def unit_price(self, product_id: int) -> Decimal:
        product = self.products.get(product_id)
        return Decimal(product.price) if product is not None else Decimal("0")


Mutation = Callable[[Cart], None]


class CartEngine:
    def __init__(self, session: AsyncSession, settings: Optional[Settings] = None):
        self.session = session
        self.settings = settings or get_settings()
        self.catalog = Catalog(session)
        self.users = UserDirectory(session)

    # ------------------------------------------------------------------
    # operations
    # ------------------------------------------------------------------
    async def get_cart(self, user_id: int) -> CartView:
        return await self._apply(user_id, None)

    async def add_item(self, user_id: int, product_id: int, raw_quantity) -> CartView:
        quantity = parse_quantity(raw_quantity)
        product = await self.catalog.get_product(product_id)
        # stock is advisory: checked here, never reserved or decremented
        self.catalog.ensure_purchasable(product)

        def add(cart: Cart) -> None:
            existing = cart.find_item(product_id)
            if existing is not None:
                existing.quantity = _bounded(existing.quantity + quantity)
                existing.added_at = utcnow()
            else:
                cart.items.append(
                    CartItem(product_id=product_id, quantity=quantity, added_at=utcnow())
                )

        view = await self._apply(user_id, add)
        logger.info(
            "User %s added product %s x%s (now %s)",
            user_id, product_id, quantity, view.cart.find_item(product_id).quantity,
        )
        return view

    async def remove_item(self, user_id: int, product_id: int) -> CartView:
        def remove(cart: Cart) -> None:
            item = cart.find_item(product_id)
            if item is None:
                raise NotFound("Item not found in cart")
            cart.items.remove(item)

        view = await self._apply(user_id, remove)
        logger.info("User %s removed product %s from cart", user_id, product_id)
        return view

    async def adjust_quantity(self, user_id: int, product_id: int, action: str) -> CartView:
        if action not in (INCREASE, DECREASE):
            raise InvalidArgument("Action must be 'increase' or 'decrease'")

        def adjust(cart: Cart) -> None:
            item = cart.find_item(product_id)
            if item is None:
                raise NotFound("Product not found in cart")
            if action == INCREASE:
                item.quantity = _bounded(item.quantity + 1)
            elif item.quantity > 1:
                item.quantity -= 1
            else:
                # removal is a separate, explicit operation
                raise InvalidOperation("Cannot decrease quantity below 1")

        view = await self._apply(user_id, adjust)
        logger.info(
            "User %s %sd product %s to %s",
            user_id, action, product_id, view.cart.find_item(product_id).quantity,
        )
        return view

    # ------------------------------------------------------------------
    # internals
    # ------------------------------------------------------------------
    async def _load_cart(self, user_id: int) -> Cart:
        cart_id = await self.users.get_cart_id_for_user(user_id)
        res = await self.session.execute(
            select(Cart)
            .options(selectinload(Cart.items))
            .where(Cart.id == cart_id)
            .execution_options(populate_existing=True)
        )
        cart = res.scalar_one_or_none()
        if cart is None:
            raise NotFound("Cart not found")
        return cart

    async def recompute_total(self, cart: Cart) -> Decimal:
        """Sum of current unit price x quantity over the cart's line items."""
        # no_autoflush: pending line-item changes must not hit the store
        # before the versioned cart update does
        with self.session.no_autoflush:
            prices = await self.catalog.unit_prices(item.product_id for item in cart.items)
        total = Decimal("0")
        for item in cart.items:
            price = prices.get(item.product_id)
            if price is None:
                logger.warning("Cart %s references missing product %s", cart.id, item.product_id)
                continue
            total += price * item.quantity
        return total.quantize(CENTS)

    async def _apply(self, user_id: int, mutate: Optional[Mutation]) -> CartView:
        attempts = self.settings.cart_update_attempts
        for attempt in range(1, attempts + 1):
            cart = await self._load_cart(user_id)
            cart_id = cart.id
            if mutate is not None:
                # business errors surface here, before anything is written
                mutate(cart)

            total = await self.recompute_total(cart)
            if mutate is None and Decimal(cart.total_price) == total:
                return await self._view(cart)

            cart.total_price = total
            cart.updated_at = utcnow()
            try:
                await self.session.commit()
            except (StaleDataError, IntegrityError) as e:
                await self.session.rollback()
                logger.warning(
                    "Concurrent update of cart %s (attempt %s/%s): %s",
                    cart_id, attempt, attempts, e.__class__.__name__,
                )
                continue
            return await self._view(cart)

        logger.error("Giving up on cart update for user %s after %s attempts", user_id, attempts)
        raise InternalFailure("Cart is being updated concurrently, please try again")

    async def _view(self, cart: Cart) -> CartView:
        products = await self.catalog.get_products(item.product_id for item in cart.items)
        return CartView(cart=cart, products=products)
