from decimal import Decimal

from passlib.context import CryptContext
from passlib.exc import UnknownHashError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .errors import AuthenticationFailed, Conflict, InvalidArgument, NotFound
from .logging import get_logger, sanitize_for_logging
from .models import Cart, User
from .schemas import Address, UserCreate, UserOut

logger = get_logger(__name__)

# Argon2 for new hashes; bcrypt stays so older hashes still verify
pwd_context = CryptContext(schemes=["argon2", "bcrypt"], deprecated="auto")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (UnknownHashError, ValueError):
        # unrecognised or malformed hash -> authentication failure, not a 500
        return False


def user_out(user: User) -> UserOut:
    return UserOut(
        id=user.id,
        first_name=user.first_name,
        last_name=user.last_name,
        email=user.email,
        phone=user.phone,
        role=user.role,
        address=Address(
            street=user.street,
            city=user.city,
            state=user.state,
            postal_code=user.postal_code,
        ),
    )


class UserDirectory:
    """Maps an authenticated principal to their stored profile and cart."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_user(self, user_id: int) -> User:
        res = await self.session.execute(select(User).where(User.id == user_id))
        user = res.scalar_one_or_none()
        if user is None:
            raise NotFound("User not found")
        return user

    async def get_cart_id_for_user(self, user_id: int) -> int:
        res = await self.session.execute(select(User.id, User.cart_id).where(User.id == user_id))
        row = res.one_or_none()
        if row is None:
            raise NotFound("User not found")
        if row.cart_id is None:
            raise NotFound("Cart not found")
        return row.cart_id

    async def register(self, payload: UserCreate, role: str = "user") -> User:
        """Create a user together with the empty cart they will own."""
        existing = await self.session.execute(select(User.id).where(User.email == payload.email))
        if existing.scalar_one_or_none() is not None:
            raise Conflict("Email is already registered.")
        existing = await self.session.execute(select(User.id).where(User.phone == payload.phone))
        if existing.scalar_one_or_none() is not None:
            raise Conflict("Phone number is already registered.")

        cart = Cart(total_price=Decimal("0"))
        user = User(
            first_name=payload.first_name,
            last_name=payload.last_name,
            email=payload.email,
            phone=payload.phone,
            password_hash=get_password_hash(payload.password),
            role=role,
            street=payload.address.street,
            city=payload.address.city,
            state=payload.address.state,
            postal_code=payload.address.postal_code,
            cart=cart,
        )
        self.session.add(user)
        try:
            await self.session.commit()
        except IntegrityError:
            # lost a race with a concurrent registration for the same email/phone
            await self.session.rollback()
            raise Conflict("Email or phone number is already registered.")
        await self.session.refresh(user)
        logger.info("Registered user %s with cart %s", user.id, user.cart_id)
        return user

    async def authenticate(self, email_or_phone: str, password: str, admin_only: bool = False) -> User:
        if "@" in email_or_phone:
            stmt = select(User).where(User.email == email_or_phone)
        else:
            stmt = select(User).where(User.phone == email_or_phone)
        res = await self.session.execute(stmt)
        user = res.scalar_one_or_none()

        if user is None or (admin_only and not user.is_admin):
            raise NotFound("Admin not found." if admin_only else "User not found.")
        if not verify_password(password, user.password_hash):
            logger.info("Failed login for %s", sanitize_for_logging(email_or_phone))
            if admin_only:
                # the admin console answers a bad password with 400
                raise InvalidArgument("Invalid password.")
            raise AuthenticationFailed("Invalid credentials.")
        return user
