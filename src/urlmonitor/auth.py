import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from urlmonitor.config import get_settings
from urlmonitor.database import get_db
from urlmonitor.models.admin_user import AdminUser

logger = logging.getLogger("urlmonitor.auth")
settings = get_settings()
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

SESSION_COOKIE = "access_token"


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Optional[dict]:
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
        return payload
    except JWTError:
        return None


async def ensure_admin_user(db: AsyncSession) -> None:
    """Seed the configured admin account if it is missing. Idempotent."""
    result = await db.execute(
        select(AdminUser).where(AdminUser.username == settings.admin_username)
    )
    if result.scalar_one_or_none():
        return
    db.add(AdminUser(
        username=settings.admin_username,
        password_hash=hash_password(settings.admin_password),
    ))
    await db.commit()
    logger.warning(
        f"Created default admin '{settings.admin_username}'; "
        f"set ADMIN_PASSWORD to change its password"
    )


async def get_session_admin(request: Request, db: AsyncSession) -> Optional[AdminUser]:
    """The admin behind the request's session cookie, or None."""
    token = request.cookies.get(SESSION_COOKIE)
    if not token:
        return None
    payload = decode_access_token(token)
    if payload is None or payload.get("sub") is None:
        return None
    result = await db.execute(select(AdminUser).where(AdminUser.username == payload["sub"]))
    return result.scalar_one_or_none()


async def get_current_admin(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> AdminUser:
    """Page dependency: redirects to the login page when there is no session."""
    admin = await get_session_admin(request, db)
    if admin is None:
        raise HTTPException(
            status_code=status.HTTP_303_SEE_OTHER,
            headers={"Location": "/login"},
        )
    return admin


async def get_current_admin_api(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> AdminUser:
    token = request.cookies.get(SESSION_COOKIE)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    admin = await get_session_admin(request, db)
    if admin is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired session",
        )
    return admin


def has_cron_authorization(request: Request) -> bool:
    """True when no cron secret is configured or the bearer token matches it."""
    if not settings.cron_secret:
        return True
    return request.headers.get("authorization") == f"Bearer {settings.cron_secret}"
