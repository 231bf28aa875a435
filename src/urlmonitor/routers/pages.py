from pathlib import Path

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from urlmonitor.auth import decode_access_token, get_current_admin, SESSION_COOKIE
from urlmonitor.config import get_settings
from urlmonitor.models.admin_user import AdminUser

router = APIRouter(tags=["pages"])
templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "templates"))
settings = get_settings()


@router.get("/", response_class=HTMLResponse)
async def status_page(request: Request):
    return templates.TemplateResponse(request, "status.html", {
        "app_name": settings.app_name,
        "probe_timeout_ms": int(settings.probe_timeout * 1000),
    })


@router.get("/login", response_class=HTMLResponse)
async def login_page(request: Request):
    token = request.cookies.get(SESSION_COOKIE)
    if token and decode_access_token(token):
        return RedirectResponse(url="/admin", status_code=303)
    return templates.TemplateResponse(request, "login.html", {"app_name": settings.app_name})


@router.get("/admin", response_class=HTMLResponse)
async def admin_page(request: Request, admin: AdminUser = Depends(get_current_admin)):
    return templates.TemplateResponse(request, "admin.html", {
        "app_name": settings.app_name,
        "admin": admin,
        "probe_timeout_ms": int(settings.probe_timeout * 1000),
    })
