from decimal import Decimal
from typing import Dict, Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .errors import Discontinued, NotFound, Unavailable
from .models import Availability, Product


class Catalog:
    """Read-only view of product price and availability used by the cart engine."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_product(self, product_id: int) -> Product:
        res = await self.session.execute(select(Product).where(Product.id == product_id))
        product = res.scalar_one_or_none()
        if product is None:
            raise NotFound("Product not found")
        return product

    @staticmethod
    def ensure_purchasable(product: Product) -> None:
        availability = product.availability
        if availability is Availability.OUT_OF_STOCK:
            raise Unavailable("Stock unavailable")
        if availability is Availability.DISCONTINUED:
            raise Discontinued("Product no longer available")

    async def get_products(self, product_ids: Iterable[int]) -> Dict[int, Product]:
        ids = set(product_ids)
        if not ids:
            return {}
        res = await self.session.execute(
            select(Product).where(Product.id.in_(ids)).execution_options(populate_existing=True)
        )
        return {p.id: p for p in res.scalars().all()}

    async def unit_prices(self, product_ids: Iterable[int]) -> Dict[int, Decimal]:
        ids = set(product_ids)
        if not ids:
            return {}
        res = await self.session.execute(
            select(Product.id, Product.price).where(Product.id.in_(ids))
        )
        return {pid: Decimal(price) for pid, price in res.all()}
