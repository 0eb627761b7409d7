"""Checkout quote: shipping charge and billing total for a cart.

A quote commits nothing. No order is created and no payment is taken.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from .config import Settings, get_settings


@dataclass(frozen=True)
class Quote:
    total_price: Decimal
    shipping_charge: Decimal
    billing_price: Decimal


def _normalize_city(city: Optional[str]) -> str:
    return (city or "").strip().casefold()


def shipping_charge_for(city: Optional[str], settings: Optional[Settings] = None) -> Decimal:
    settings = settings or get_settings()
    normalized = _normalize_city(city)
    if normalized and normalized == _normalize_city(settings.free_shipping_city):
        return Decimal("0")
    return settings.shipping_charge


def quote(total_price, city: Optional[str], settings: Optional[Settings] = None) -> Quote:
    total = Decimal(total_price)
    shipping = shipping_charge_for(city, settings)
    return Quote(total_price=total, shipping_charge=shipping, billing_price=total + shipping)
