# Руководство к файлу (ROUTES/upload.py)
# Назначение:
# - Страница загрузки и приём файла из веб-формы: GET/POST / и /upload.
# - Ответ: {status: 1, msg, url} или {status: 0, msg, error}
#   (400 - слишком большой файл, 502 - ошибка Telegram/бакета).

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import HTMLResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import ensure_schema, get_ctx, resolve_domain
from ..pages import upload_page
from BACKEND.DATABASE.CACHE_MANAGER.category import CategoryManager
from BACKEND.DATABASE.session import get_db_session
from BACKEND.SEVICES.context import AppContext
from BACKEND.SEVICES.errors import ValidationError
from BACKEND.SEVICES.upload_service import UploadRequest, UploadService


logger = logging.getLogger("imgbed.fastapi.upload")

router = APIRouter(tags=["upload"], dependencies=[Depends(ensure_schema)])


def _parse_category(value: Optional[str]) -> Optional[int]:
    value = (value or "").strip()
    return int(value) if value.isdigit() else None


@router.get("/", response_class=HTMLResponse)
@router.get("/upload", response_class=HTMLResponse)
async def upload_form(ctx: AppContext = Depends(get_ctx), session: AsyncSession = Depends(get_db_session)):
    categories = await CategoryManager(session).list_categories()
    return HTMLResponse(upload_page(categories, ctx.default_storage, ctx.settings.max_size_mb))


@router.post("/")
@router.post("/upload")
async def upload_file(
    request: Request,
    file: UploadFile = File(...),
    category: Optional[str] = Form(None),
    storage_type: Optional[str] = Form(None),
    ctx: AppContext = Depends(get_ctx),
    session: AsyncSession = Depends(get_db_session),
):
    uploader = UploadService(ctx)
    # Заявленный размер проверяется до чтения тела и до записи в хранилище
    uploader.check_size(file.size)
    data = await file.read()
    if not data:
        raise ValidationError("Файл не выбран или пуст")

    rec = await uploader.store(
        session,
        UploadRequest(
            data=data,
            filename=file.filename or "file",
            chat_id=ctx.settings.owner_chat_id,
            mime_type=file.content_type,
            storage_type=storage_type,
            category_id=_parse_category(category),
        ),
        resolve_domain(request),
    )
    return {"status": 1, "msg": "✔ Загрузка успешна", "url": rec.url}
