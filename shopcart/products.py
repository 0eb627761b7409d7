# shopcart/products.py
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .auth import require_admin
from .catalog import Catalog
from .database import get_session
from .logging import get_logger
from .models import Product, User
from .schemas import MessageResponse, ProductCreate, ProductOut, ProductResponse, ProductUpdate

logger = get_logger(__name__)

router = APIRouter(prefix="/products", tags=["products"])
admin_router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("", response_model=List[ProductOut])
async def list_products(session: AsyncSession = Depends(get_session)):
    # снятые с продажи (stock = -1) в витрину не попадают
    result = await session.execute(
        select(Product).where(Product.stock != -1).order_by(Product.id.desc())
    )
    return result.scalars().all()


@router.get("/{product_id}", response_model=ProductOut)
async def get_product(product_id: int, session: AsyncSession = Depends(get_session)):
    return await Catalog(session).get_product(product_id)


@admin_router.post("/add-product", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def add_product(
    payload: ProductCreate,
    session: AsyncSession = Depends(get_session),
    admin: User = Depends(require_admin),
):
    product = Product(**payload.model_dump())
    session.add(product)
    await session.commit()
    await session.refresh(product)
    logger.info("Admin %s added product %s", admin.id, product.id)
    return ProductResponse(message="Product added successfully.", product=ProductOut.model_validate(product))


@admin_router.put("/update-product/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: int,
    payload: ProductUpdate,
    session: AsyncSession = Depends(get_session),
    admin: User = Depends(require_admin),
):
    product = await Catalog(session).get_product(product_id)
    for field, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(product, field, value)

    await session.commit()
    await session.refresh(product)
    logger.info("Admin %s updated product %s", admin.id, product.id)
    return ProductResponse(message="Product updated successfully.", product=ProductOut.model_validate(product))


# мягкое удаление: товар остаётся в корзинах, но купить его больше нельзя
@admin_router.patch("/delete-product/{product_id}", response_model=MessageResponse)
async def soft_delete_product(
    product_id: int,
    session: AsyncSession = Depends(get_session),
    admin: User = Depends(require_admin),
):
    product = await Catalog(session).get_product(product_id)
    product.stock = -1
    await session.commit()
    logger.info("Admin %s discontinued product %s", admin.id, product.id)
    return MessageResponse(message="Product stock quantity updated to -1 successfully.")
