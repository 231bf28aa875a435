from fastapi import APIRouter, Depends, Form, HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from urlmonitor.auth import (
    SESSION_COOKIE,
    create_access_token,
    get_session_admin,
    verify_password,
)
from urlmonitor.config import get_settings
from urlmonitor.database import get_db
from urlmonitor.models.admin_user import AdminUser
from urlmonitor.schemas import AdminResponse, LoginResponse, SessionResponse

router = APIRouter(prefix="/auth", tags=["auth"])
settings = get_settings()


@router.post("/login", response_model=LoginResponse)
async def login_admin(
    username: str = Form(...),
    password: str = Form(...),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(AdminUser).where(AdminUser.username == username))
    admin = result.scalar_one_or_none()
    if not admin or not verify_password(password, admin.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    token = create_access_token(data={"sub": admin.username})

    response = JSONResponse(
        content=LoginResponse(
            message="Logged in successfully",
            user=AdminResponse.model_validate(admin),
        ).model_dump(mode="json"),
    )
    response.set_cookie(
        key=SESSION_COOKIE,
        value=token,
        httponly=True,
        samesite="lax",
        max_age=settings.access_token_expire_minutes * 60,
        secure=False,
    )
    return response


@router.post("/logout")
async def logout():
    response = JSONResponse(content={"message": "Logged out successfully"})
    response.delete_cookie(SESSION_COOKIE)
    return response


@router.get("/session", response_model=SessionResponse)
async def get_session(request: Request, db: AsyncSession = Depends(get_db)):
    admin = await get_session_admin(request, db)
    return SessionResponse(
        authenticated=admin is not None,
        username=admin.username if admin else None,
    )
