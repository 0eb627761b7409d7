"""
Tests for product availability and log sanitising helpers
"""
import dataclasses
import logging

import pytest

import shopcart.logging as shop_logging
from shopcart.catalog import Catalog
from shopcart.config import get_settings
from shopcart.errors import Discontinued, Unavailable
from shopcart.logging import sanitize_for_logging
from shopcart.models import Availability, Product


class TestAvailability:
    @pytest.mark.parametrize("stock, expected", [
        (0, Availability.OUT_OF_STOCK),
        (-1, Availability.DISCONTINUED),
        (1, Availability.AVAILABLE),
        (250, Availability.AVAILABLE),
        (None, Availability.AVAILABLE),
    ])
    def test_from_stock(self, stock, expected):
        assert Availability.from_stock(stock) is expected

    def test_product_exposes_availability(self):
        assert Product(name="Serum", price=10, stock=-1).availability is Availability.DISCONTINUED

    def test_ensure_purchasable(self):
        Catalog.ensure_purchasable(Product(name="Ok", price=1, stock=3))
        with pytest.raises(Unavailable):
            Catalog.ensure_purchasable(Product(name="Empty", price=1, stock=0))
        with pytest.raises(Discontinued):
            Catalog.ensure_purchasable(Product(name="Gone", price=1, stock=-1))


class TestSanitizeForLogging:
    def test_escapes_control_characters(self):
        assert sanitize_for_logging("a\nb\rc\td\x00") == "a\\nb\\rc\\td"

    def test_truncates(self):
        assert sanitize_for_logging("x" * 60, max_length=10) == "x" * 10 + "..."

    def test_empty(self):
        assert sanitize_for_logging(None) == "N/A"
        assert sanitize_for_logging("") == "N/A"


class TestLogLevel:
    @pytest.mark.parametrize("level, expected", [
        ("DEBUG", logging.DEBUG),
        ("WARNING", logging.WARNING),
        ("NOT-A-LEVEL", logging.INFO),
    ])
    def test_level_comes_from_settings(self, monkeypatch, level, expected):
        settings = dataclasses.replace(get_settings(), log_level=level)
        monkeypatch.setattr(shop_logging, "get_settings", lambda: settings)

        assert shop_logging._get_log_level() == expected
