# Руководство к файлу (ROUTES/auth.py)
# Назначение:
# - Вход в админку: GET /login (страница), POST /login (JSON или форма),
#   GET /logout (сброс cookie).
# - Защита путей выполняется middleware в FAST_API/fast_api.py.

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from ..deps import get_ctx
from ..pages import login_page
from ..schemas import LoginRequest
from BACKEND.SEVICES.auth_service import COOKIE_NAME
from BACKEND.SEVICES.context import AppContext


logger = logging.getLogger("imgbed.fastapi.auth")

router = APIRouter(tags=["auth"])


def safe_redirect(target: str | None) -> str:
    """Только относительные пути внутри сайта."""

    if not target or not target.startswith("/") or target.startswith("//"):
        return "/"
    return target


@router.get("/login", response_class=HTMLResponse)
async def login_form(request: Request, redirect: str | None = None, ctx: AppContext = Depends(get_ctx)):
    target = safe_redirect(redirect)
    if not ctx.auth.enabled or ctx.auth.verify_token(request.cookies.get(COOKIE_NAME)):
        return RedirectResponse(target, status_code=302)
    return HTMLResponse(login_page(target))


@router.post("/login")
async def login(request: Request, ctx: AppContext = Depends(get_ctx)):
    ctype = request.headers.get("content-type", "")
    if ctype.startswith("application/json"):
        payload = LoginRequest.model_validate(await request.json())
    else:
        form = await request.form()
        payload = LoginRequest(username=str(form.get("username") or ""), password=str(form.get("password") or ""))

    if not ctx.auth.enabled:
        return {"status": 1, "msg": "Авторизация отключена"}
    if not ctx.auth.check_credentials(payload.username, payload.password):
        logger.warning("Failed login for %r", payload.username)
        return JSONResponse(status_code=401, content={"status": 0, "msg": "Неверный логин или пароль", "error": "Unauthorized"})

    resp = JSONResponse({"status": 1, "msg": "Вход выполнен"})
    resp.set_cookie(
        COOKIE_NAME,
        ctx.auth.issue_token(payload.username),
        max_age=ctx.auth.cfg.max_age,
        httponly=True,
        samesite="lax",
        secure=request.url.scheme == "https",
        path="/",
    )
    logger.info("User %s logged in", payload.username)
    return resp


@router.get("/logout")
async def logout():
    resp = RedirectResponse("/login", status_code=302)
    resp.delete_cookie(COOKIE_NAME, path="/")
    return resp
