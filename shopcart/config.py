import os
from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache


def _flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    database_url: str
    sql_echo: bool
    jwt_secret: str
    jwt_algorithm: str
    access_token_expire_minutes: int
    auth_cookie_name: str
    cookie_secure: bool
    free_shipping_city: str
    shipping_charge: Decimal
    display_timezone: str
    cart_update_attempts: int
    create_tables_on_startup: bool
    log_level: str

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            # asyncpg in containers; tests point this at sqlite+aiosqlite
            database_url=os.getenv(
                "DATABASE_URL",
                "postgresql+asyncpg://postgres:postgres@db:5432/shopcart",
            ),
            sql_echo=_flag("SQL_ECHO"),
            jwt_secret=os.getenv("JWT_SECRET", "supersecretkey"),
            jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
            access_token_expire_minutes=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(7 * 24 * 60))),
            auth_cookie_name=os.getenv("AUTH_COOKIE_NAME", "token"),
            cookie_secure=_flag("COOKIE_SECURE"),
            free_shipping_city=os.getenv("FREE_SHIPPING_CITY", "Baramati"),
            shipping_charge=Decimal(os.getenv("SHIPPING_CHARGE", "50")),
            display_timezone=os.getenv("DISPLAY_TIMEZONE", "Asia/Kolkata"),
            cart_update_attempts=max(1, int(os.getenv("CART_UPDATE_ATTEMPTS", "3"))),
            create_tables_on_startup=_flag("CREATE_TABLES_ON_STARTUP"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
