# shopcart/schemas.py
from datetime import datetime
from typing import Literal, Optional, List, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StrictInt, StrictStr
from pydantic.alias_generators import to_camel

from .models import Availability


class CamelModel(BaseModel):
    # JSON bodies of the cart API are camelCase; python side stays snake_case
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# 🏠 Адрес
class Address(CamelModel):
    street: Optional[str] = None
    city: str = Field(min_length=1)
    state: Optional[str] = None
    postal_code: Optional[str] = None


# 👤 Пользователь
class UserCreate(CamelModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=6)
    phone: str = Field(min_length=5)
    address: Address


class UserLogin(CamelModel):
    email_or_phone: str = Field(min_length=1)
    password: str


class AdminLogin(BaseModel):
    email: EmailStr
    password: str


class UserOut(CamelModel):
    id: int
    first_name: str
    last_name: str
    email: EmailStr
    phone: str
    role: str
    address: Address


class AuthResponse(BaseModel):
    message: str
    user: UserOut


# 🛍️ Товар
class ProductBase(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    category: Optional[str] = None
    brand: Optional[str] = None
    price: float = Field(ge=0)
    image_url: Optional[str] = None


class ProductCreate(ProductBase):
    stock: int = Field(default=0, ge=-1)


class ProductUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    brand: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    stock: Optional[int] = Field(default=None, ge=-1)
    image_url: Optional[str] = None


class ProductOut(ProductBase):
    id: int
    stock: int
    availability: Availability

    class Config:
        from_attributes = True


class ProductResponse(BaseModel):
    message: str
    product: ProductOut


# 🛒 Корзина
class AddToCartRequest(CamelModel):
    product_id: int
    # parsed by the cart engine; strict so true/false are never coerced to 1/0
    quantity: Union[StrictInt, StrictStr]


class UpdateQuantityRequest(CamelModel):
    product_id: int
    action: Literal["increase", "decrease"]


class CartProductOut(CamelModel):
    id: int
    name: str
    price: float
    image_url: Optional[str] = None
    availability: Availability


class CartItemOut(CamelModel):
    product_id: int
    quantity: int
    added_at: str  # rendered in the display timezone
    unit_price: float
    line_total: float
    product: Optional[CartProductOut] = None


class CartOut(CamelModel):
    id: int
    items: List[CartItemOut]
    total_price: float
    updated_at: Optional[datetime] = None


class CartResponse(BaseModel):
    message: str
    cart: CartOut


class QuoteResponse(CamelModel):
    cart: CartOut
    total_price: float
    # plural kept for compatibility with existing clients
    shipping_charges: float
    billing_price: float


class MessageResponse(BaseModel):
    message: str
