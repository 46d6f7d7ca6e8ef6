# Руководство к файлу (ROUTES/files.py)
# Назначение:
# - Публичная отдача файлов: GET /<path>.
# - Порядок поиска: url -> ссылка бэкенда -> имя файла; объект бакета без
#   строки в реестре отдаётся напрямую по ключу.
# - Содержимое кэшируется в file_cache под ключом строки реестра
#   (FilesManager.cache_key), а не под путём запроса.
# Важно:
# - Роутер подключается последним: путь /{path:path} перехватывает всё остальное.
# - Путь каждый раз разрешается через БД: удалённый или переименованный файл
#   перестаёт отдаваться по любому из своих старых путей.
# - Объекты бакета без строки реестра не кэшируются.

from __future__ import annotations

import logging
from typing import Optional, Tuple
from urllib.parse import quote

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import ensure_schema, get_ctx, resolve_domain
from BACKEND.DATABASE.CACHE_MANAGER.files import FilesManager, basename_of
from BACKEND.DATABASE.models import File
from BACKEND.DATABASE.session import get_db_session
from BACKEND.SEVICES.context import AppContext
from BACKEND.SEVICES.errors import NotFoundError
from BACKEND.STORAGE.base import StorageType, StoredRef
from BACKEND.STORAGE.mime import guess_mime, is_inline_media


logger = logging.getLogger("imgbed.fastapi.files")

router = APIRouter(tags=["files"], dependencies=[Depends(ensure_schema)])


def _headers(name: str, content_type: str) -> dict:
    disposition = "inline" if is_inline_media(content_type) else "attachment"
    return {
        "Content-Type": content_type,
        "Cache-Control": "public, max-age=31536000",
        "Access-Control-Allow-Origin": "*",
        "Content-Disposition": f"{disposition}; filename*=UTF-8''{quote(name)}",
    }


async def _load_registered(rec: File, files: FilesManager, ctx: AppContext) -> Optional[Tuple[bytes, str]]:
    ref = files.ref_of(rec)
    backend = ctx.storage.for_ref(ref)
    if backend is None:
        logger.warning("File %s lives in an unconfigured %s backend", rec.url, rec.storage_type)
        return None
    obj = await backend.get(ref)
    if obj is None:
        return None
    return obj.data, rec.mime_type or obj.content_type or guess_mime(rec.file_name or basename_of(rec.url))


async def _load_unregistered(path: str, ctx: AppContext) -> Optional[Tuple[bytes, str]]:
    object_store = ctx.storage.object_store
    if object_store is None:
        return None
    obj = await object_store.get(StoredRef(backend_ref=path, storage_type=StorageType.OBJECT_STORE))
    if obj is None:
        return None
    return obj.data, obj.content_type or guess_mime(basename_of(path))


@router.get("/{path:path}")
async def serve_file(
    path: str,
    request: Request,
    ctx: AppContext = Depends(get_ctx),
    session: AsyncSession = Depends(get_db_session),
):
    path = path.strip("/")
    if not path:
        raise NotFoundError("Файл не найден")

    files = FilesManager(session, storage=ctx.storage, file_cache=ctx.file_cache)
    rec = await files.find_by_url(f"https://{resolve_domain(request)}/{path}")
    if rec is None:
        rec = await files.find_for_path(path)

    if rec is not None:
        key = files.cache_key(rec)
        loaded = ctx.file_cache.get(key)
        if loaded is None:
            loaded = await _load_registered(rec, files, ctx)
            if loaded is not None:
                ctx.file_cache.set(key, loaded)
    else:
        loaded = await _load_unregistered(path, ctx)

    if loaded is None:
        raise NotFoundError("Файл не найден")
    data, content_type = loaded
    return Response(content=data, headers=_headers(basename_of(path), content_type))
