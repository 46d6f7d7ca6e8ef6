# Руководство к файлу (ROUTES/admin.py)
# Назначение:
# - Админка: страница со списком файлов, поиск, категории, переименование,
#   примечания, перенос в категорию, удаление (одиночное и массовое).
# Важно:
# - Массовые операции построчные: ответ содержит {success, failed, details},
#   отсутствующие URL не прерывают пакет.

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import ensure_schema, get_ctx
from ..pages import admin_page, file_cards
from ..schemas import (
    BulkResponse,
    ChangeCategoryRequest,
    CreateCategoryRequest,
    DeleteCategoryRequest,
    DeleteMultipleRequest,
    DeleteRequest,
    SearchRequest,
    UpdateRemarkRequest,
    UpdateSuffixRequest,
)
from BACKEND.DATABASE.CACHE_MANAGER.category import CategoryManager
from BACKEND.DATABASE.CACHE_MANAGER.files import FilesManager, basename_of
from BACKEND.DATABASE.session import get_db_session
from BACKEND.SEVICES.context import AppContext
from BACKEND.SEVICES.errors import NotFoundError, ValidationError


logger = logging.getLogger("imgbed.fastapi.admin")

router = APIRouter(tags=["admin"], dependencies=[Depends(ensure_schema)])


def _files(session: AsyncSession, ctx: AppContext) -> FilesManager:
    return FilesManager(session, storage=ctx.storage, file_cache=ctx.file_cache)


@router.get("/admin", response_class=HTMLResponse)
async def admin(page: int = 1, ctx: AppContext = Depends(get_ctx), session: AsyncSession = Depends(get_db_session)):
    result = await _files(session, ctx).list_page(page=page, limit=100)
    categories = await CategoryManager(session).list_categories()
    return HTMLResponse(admin_page(result.items, categories, result.total))


@router.post("/search")
async def search(body: SearchRequest, ctx: AppContext = Depends(get_ctx), session: AsyncSession = Depends(get_db_session)):
    found = await _files(session, ctx).search(body.query)
    return {"html": file_cards(found)}


@router.post("/create-category")
async def create_category(body: CreateCategoryRequest, session: AsyncSession = Depends(get_db_session)):
    cat = await CategoryManager(session).create_category(body.name)
    return {"status": 1, "msg": "✔ Категория создана", "category": {"id": int(cat.id), "name": cat.name}}


@router.post("/delete-category")
async def delete_category(body: DeleteCategoryRequest, session: AsyncSession = Depends(get_db_session)):
    name = await CategoryManager(session).delete_category(body.id)
    return {"status": 1, "msg": f"✔ Категория «{name}» удалена, файлы перенесены в категорию по умолчанию"}


@router.post("/update-suffix")
async def update_suffix(body: UpdateSuffixRequest, ctx: AppContext = Depends(get_ctx), session: AsyncSession = Depends(get_db_session)):
    files = _files(session, ctx)
    rec = await files.find_by_url(body.url) or await files.find_by_token(body.url)
    if rec is None:
        raise NotFoundError("Файл не найден")
    new_url = await files.rename(rec, body.suffix)
    return {"status": 1, "msg": "✔ Имя изменено", "newUrl": new_url}


@router.post("/update-remark", response_model=BulkResponse)
async def update_remark(body: UpdateRemarkRequest, ctx: AppContext = Depends(get_ctx), session: AsyncSession = Depends(get_db_session)):
    result = await _files(session, ctx).bulk_set_remark(body.urls, body.remark)
    return BulkResponse(message=f"Обновлено: {result.success}, ошибок: {result.failed}", results=result.as_dict())


@router.post("/change-category", response_model=BulkResponse)
async def change_category(body: ChangeCategoryRequest, ctx: AppContext = Depends(get_ctx), session: AsyncSession = Depends(get_db_session)):
    raw = str(body.category_id if body.category_id is not None else "").strip()
    if not raw.isdigit():
        raise ValidationError("Некорректный id категории")
    result = await _files(session, ctx).bulk_set_category(body.urls, int(raw))
    return BulkResponse(message=f"Перенесено: {result.success}, ошибок: {result.failed}", results=result.as_dict())


@router.post("/delete")
async def delete_file(body: DeleteRequest, ctx: AppContext = Depends(get_ctx), session: AsyncSession = Depends(get_db_session)):
    files = _files(session, ctx)
    rec = None
    ident = str(body.id).strip() if body.id is not None else ""
    if ident.startswith("http"):
        rec = await files.find_by_url(ident)
    elif ident.isdigit():
        rec = await files.get_file(int(ident))
    if rec is None and body.file_id:
        rec = await files.find_by_token(body.file_id)
    if rec is None and ident:
        rec = await files.find_by_token(ident)
    if rec is None:
        raise NotFoundError("Файл не найден или уже удалён")
    await files.delete(rec)
    return {"status": 1, "msg": f"✔ Файл {basename_of(rec.url)} удалён"}


@router.post("/delete-multiple", response_model=BulkResponse)
async def delete_multiple(body: DeleteMultipleRequest, ctx: AppContext = Depends(get_ctx), session: AsyncSession = Depends(get_db_session)):
    if not body.urls:
        raise ValidationError("Список URL пуст")
    result = await _files(session, ctx).bulk_delete(body.urls)
    return BulkResponse(message=f"Удалено: {result.success}, ошибок: {result.failed}", results=result.as_dict())
