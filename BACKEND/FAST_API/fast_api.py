# Руководство к файлу (FAST_API/fast_api.py)
# Назначение:
# - Точка входа приложения FastAPI для imgbed.
# - create_app(): контекст приложения, роутеры и базовая инфраструктура
#   (CORS, логирование запросов, авторизация админки, обработчики ошибок).
# Важно:
# - Переменные окружения из BACKEND/.env загружаются до чтения настроек.
# - Роутер отдачи файлов (/{path}) подключается последним.

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from dotenv import load_dotenv

from .config import Settings, get_settings
from BACKEND.BOT.dispatcher import BotDispatcher
from BACKEND.BOT.run_bot import register_webhook
from BACKEND.SEVICES.auth_service import COOKIE_NAME
from BACKEND.SEVICES.context import AppContext, build_context
from BACKEND.SEVICES.errors import ConfigurationError, GatewayError
from BACKEND.SEVICES.logging_config import setup_logging
from BACKEND.SEVICES.retry import best_effort

# Загружаем переменные окружения из BACKEND/.env до инициализации сервисов
_BASE_DIR = Path(__file__).resolve().parent.parent
_DOTENV_PATH = _BASE_DIR / ".env"
if _DOTENV_PATH.exists():  # безопасно для продакшена: в Docker можно не класть .env
    load_dotenv(dotenv_path=_DOTENV_PATH)

logger = logging.getLogger("imgbed.fastapi")

# Пути, требующие входа при включённой авторизации
PROTECTED_PATHS = frozenset(
    {
        "/",
        "/upload",
        "/admin",
        "/create-category",
        "/delete-category",
        "/update-suffix",
        "/update-remark",
        "/change-category",
        "/delete",
        "/delete-multiple",
        "/search",
    }
)


def _error_body(message: str) -> dict:
    return {"status": 0, "msg": message, "error": message}


def _wants_json(request: Request) -> bool:
    if request.method != "GET":
        return True
    accept = request.headers.get("accept", "")
    return "application/json" in accept and "text/html" not in accept


@asynccontextmanager
async def lifespan(app: FastAPI):
    ctx: AppContext = app.state.ctx
    if ctx.settings.register_webhook:
        await best_effort(register_webhook(ctx), "webhook registration")
    yield
    await app.state.dispatcher.stop()
    await ctx.aclose()


def create_app(settings: Optional[Settings] = None, ctx: Optional[AppContext] = None) -> FastAPI:
    """Собрать приложение; ctx можно передать готовым (тесты)."""

    settings = settings or (ctx.settings if ctx is not None else get_settings())
    ctx = ctx or build_context(settings)

    app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)
    app.state.ctx = ctx
    app.state.dispatcher = BotDispatcher(ctx)

    # CORS
    allow_origins = [o.strip() for o in (settings.cors_origins or "").split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins or ["*"],
        allow_credentials=bool(allow_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def auth_guard(request: Request, call_next):
        auth = request.app.state.ctx.auth
        path = request.url.path
        if not auth.enabled or path not in PROTECTED_PATHS:
            return await call_next(request)
        try:
            auth.ensure_configured()
        except ConfigurationError as exc:
            logger.error("%s", exc.message)
            return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message))
        if auth.is_authenticated(request.cookies.get(COOKIE_NAME)):
            return await call_next(request)

        target = path + (f"?{request.url.query}" if request.url.query else "")
        login_url = f"/login?redirect={quote(target, safe='')}"
        if _wants_json(request):
            return JSONResponse(status_code=401, content={"status": 0, "error": "Unauthorized", "redirect": login_url})
        return RedirectResponse(login_url, status_code=302)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.debug(f"Request: {request.method} {request.url}")
        ctype = request.headers.get("content-type", "")
        if ctype.startswith("application/json"):
            try:
                body = await request.json()
                logger.debug(f"Request body: {json.dumps(body, ensure_ascii=False)[:1000]}")
            except ValueError:
                logger.debug("Request body: <invalid json>")
        elif "multipart/form-data" in ctype or "application/octet-stream" in ctype:
            logger.debug("Request body: <multipart/binary skipped>")

        response = await call_next(request)
        return response

    # Exception handlers
    @app.exception_handler(GatewayError)
    async def gateway_exception_handler(request: Request, exc: GatewayError):
        level = logging.ERROR if exc.status_code >= 500 else logging.INFO
        logger.log(level, f"{type(exc).__name__}: {exc.message} for request: {request.url}")
        return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.error(f"Validation error: {exc.errors()} for request: {request.url}")
        return JSONResponse(status_code=422, content={"status": 0, "msg": "Некорректный запрос", "detail": jsonable_encoder(exc.errors())})

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        logger.error(f"HTTP error: {exc.detail} for request: {request.url}, status: {exc.status_code}")
        return JSONResponse(status_code=exc.status_code, content=_error_body(str(exc.detail)))

    # Routers
    from .ROUTES import admin as admin_router  # noqa: E402
    from .ROUTES import auth as auth_router  # noqa: E402
    from .ROUTES import files as files_router  # noqa: E402
    from .ROUTES import system as system_router  # noqa: E402
    from .ROUTES import upload as upload_router  # noqa: E402
    from .ROUTES import webhook as webhook_router  # noqa: E402

    app.include_router(system_router.router)
    app.include_router(auth_router.router)
    app.include_router(webhook_router.router)
    app.include_router(admin_router.router)
    app.include_router(upload_router.router)
    app.include_router(files_router.router)

    return app


def _build_default_app() -> FastAPI:
    # Централизованное логирование настраивается до создания FastAPI-приложения
    setup_logging()
    return create_app()


app = _build_default_app()
