from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from .config import get_settings
from .database import get_session
from .errors import AuthenticationFailed, NotFound, PermissionDenied
from .logging import get_logger
from .models import User
from .schemas import AdminLogin, AuthResponse, MessageResponse, UserCreate, UserLogin, UserOut
from .users import UserDirectory, user_out

logger = get_logger(__name__)

router = APIRouter(prefix="/user", tags=["auth"])
admin_router = APIRouter(prefix="/admin", tags=["admin"])

# auto_error=False: the token may also arrive in the cookie
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/user/login", auto_error=False)


# 🔐 Утилиты
def create_access_token(user: User) -> str:
    settings = get_settings()
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode = {"sub": str(user.id), "role": user.role, "exp": expire}
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Optional[dict]:
    settings = get_settings()
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def _set_auth_cookie(response: Response, token: str) -> None:
    settings = get_settings()
    response.set_cookie(
        settings.auth_cookie_name,
        token,
        max_age=settings.access_token_expire_minutes * 60,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
        path="/",
    )


async def get_current_user(
    request: Request,
    bearer: Optional[str] = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_session),
) -> User:
    token = bearer or request.cookies.get(get_settings().auth_cookie_name)
    if not token:
        raise AuthenticationFailed("Not authenticated")
    payload = decode_access_token(token)
    if payload is None or not str(payload.get("sub", "")).isdigit():
        raise AuthenticationFailed("Invalid token")

    try:
        return await UserDirectory(session).get_user(int(payload["sub"]))
    except NotFound:
        raise AuthenticationFailed("User not found")


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_admin:
        raise PermissionDenied()
    return current_user


# ✅ Регистрация пользователя
@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register_user(
    payload: UserCreate,
    response: Response,
    session: AsyncSession = Depends(get_session),
):
    user = await UserDirectory(session).register(payload)
    _set_auth_cookie(response, create_access_token(user))
    return AuthResponse(message="User registered successfully!", user=user_out(user))


# ✅ Логин по email или телефону
@router.post("/login", response_model=AuthResponse)
async def login_user(
    payload: UserLogin,
    response: Response,
    session: AsyncSession = Depends(get_session),
):
    user = await UserDirectory(session).authenticate(payload.email_or_phone, payload.password)
    _set_auth_cookie(response, create_access_token(user))
    logger.info("User %s logged in", user.id)
    return AuthResponse(message="Login successful.", user=user_out(user))


@router.post("/logout", response_model=MessageResponse)
async def logout_user(response: Response, current_user: User = Depends(get_current_user)):
    response.delete_cookie(get_settings().auth_cookie_name, path="/")
    return MessageResponse(message="Logged out successfully.")


@router.get("/me", response_model=UserOut)
async def get_me(current_user: User = Depends(get_current_user)):
    return user_out(current_user)


@admin_router.post("/login", response_model=AuthResponse)
async def login_admin(
    payload: AdminLogin,
    response: Response,
    session: AsyncSession = Depends(get_session),
):
    user = await UserDirectory(session).authenticate(payload.email, payload.password, admin_only=True)
    _set_auth_cookie(response, create_access_token(user))
    logger.info("Admin %s logged in", user.id)
    return AuthResponse(message="Admin login successful.", user=user_out(user))
