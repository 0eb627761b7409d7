import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Column, Integer, String, Text, ForeignKey, DateTime, func,
    Numeric, CheckConstraint, UniqueConstraint, Index
)
from sqlalchemy.orm import relationship

from .database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Availability(str, enum.Enum):
    AVAILABLE = "available"
    OUT_OF_STOCK = "out_of_stock"
    DISCONTINUED = "discontinued"

    @classmethod
    def from_stock(cls, stock) -> "Availability":
        # stock doubles as a tri-state flag: 0 -> out of stock, -1 -> soft-deleted
        if stock == 0:
            return cls.OUT_OF_STOCK
        if stock == -1:
            return cls.DISCONTINUED
        return cls.AVAILABLE


# 🛒 Корзина
class Cart(Base):
    __tablename__ = "carts"

    id = Column(Integer, primary_key=True, index=True)
    total_price = Column(Numeric(12, 2), nullable=False, default=0)
    version = Column(Integer, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    items = relationship(
        "CartItem",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="CartItem.id",
        lazy="selectin",
    )
    user = relationship("User", back_populates="cart", uselist=False)

    # UPDATE ... WHERE version = :old, StaleDataError when another writer won
    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint("total_price >= 0", name="ck_carts_total_nonneg"),
    )

    def find_item(self, product_id: int):
        return next((item for item in self.items if item.product_id == product_id), None)


class CartItem(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True, index=True)
    cart_id = Column(Integer, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    added_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    cart = relationship("Cart", back_populates="items")

    __table_args__ = (
        UniqueConstraint("cart_id", "product_id", name="uq_cart_items_cart_product"),
        CheckConstraint("quantity > 0", name="ck_cart_items_quantity_pos"),
        Index("ix_cart_items_cart", "cart_id"),
    )


# 👤 Пользователь
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(32), unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    role = Column(String(20), nullable=False, default="user")  # user/admin

    # адрес доставки, используется только для расчёта доставки
    street = Column(String(255), nullable=True)
    city = Column(String(100), nullable=False)
    state = Column(String(100), nullable=True)
    postal_code = Column(String(20), nullable=True)

    cart_id = Column(Integer, ForeignKey("carts.id"), unique=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    cart = relationship("Cart", back_populates="user", lazy="selectin")

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True)
    brand = Column(String(100), nullable=True)
    price = Column(Numeric(10, 2), nullable=False)          # 💰 точные деньги
    stock = Column(Integer, nullable=False, default=0)       # 📦 -1 = снят с продажи
    image_url = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_products_price_nonneg"),
        CheckConstraint("stock >= -1", name="ck_products_stock_min"),
        Index("ix_products_category_name", "category", "name"),
    )

    @property
    def availability(self) -> Availability:
        return Availability.from_stock(self.stock)
