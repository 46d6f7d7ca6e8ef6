# Руководство к файлу (DATABASE/CACHE_MANAGER/files.py)
# Назначение:
# - Реестр файлов imgbed: регистрация после успешной записи в хранилище,
#   поиск по URL / ссылке бэкенда / имени, переименование, удаление,
#   массовые операции и агрегаты для меню бота.
# Важно:
# - Переименование - сага: новая копия -> обновление строки -> удаление старой
#   копии. Если строку обновить не удалось, новая копия удаляется.
# - Массовые операции выполняются построчно и коммитятся по одной строке:
#   частичный успех отражается в BulkResult, а не откатывает пакет.

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from .base_class import BaseManager, Page
from .category import CategoryManager
from ..models import NO_MESSAGE_REF, File
from BACKEND.SEVICES.cache import TTLCache
from BACKEND.SEVICES.errors import GatewayError, NotFoundError, UpstreamError, ValidationError
from BACKEND.SEVICES.retry import best_effort
from BACKEND.STORAGE.base import StorageType, StoredRef
from BACKEND.STORAGE.mime import extension_of, guess_mime
from BACKEND.STORAGE.selector import StorageSelector


logger = logging.getLogger("imgbed.db")

_SAFE_BASE_CHARS = set("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789-_.")


def basename_of(url_or_name: str) -> str:
    """Последний сегмент пути без query-строки."""

    return (url_or_name or "").split("?", 1)[0].rstrip("/").rsplit("/", 1)[-1]


def _like_escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


@dataclass
class FileMeta:
    url: str
    backend_ref: str
    message_ref: int
    file_name: str
    file_size: int
    mime_type: str
    storage_type: str
    chat_id: str
    category_id: Optional[int] = None
    remark: Optional[str] = None


@dataclass
class BulkResult:
    success: int = 0
    failed: int = 0
    details: List[Dict[str, Any]] = field(default_factory=list)

    def ok(self, item: str) -> None:
        self.success += 1
        self.details.append({"url": item, "success": True})

    def fail(self, item: str, reason: str) -> None:
        self.failed += 1
        self.details.append({"url": item, "success": False, "error": reason})

    def as_dict(self) -> Dict[str, Any]:
        return {"success": self.success, "failed": self.failed, "details": self.details}


class FilesManager(BaseManager[File]):
    model = File
    default_order = (File.created_at.desc(), File.id.desc())

    def __init__(
        self,
        session: AsyncSession,
        *,
        storage: Optional[StorageSelector] = None,
        file_cache: Optional[TTLCache] = None,
    ):
        super().__init__(session)
        self.storage = storage
        self.file_cache = file_cache

    # ---- чтение -------------------------------------------------------

    async def get_file(self, file_id: int) -> Optional[File]:
        return await self.by_id(file_id)

    async def find_by_url(self, url: str, chat_id: Optional[str] = None) -> Optional[File]:
        conds = [File.url == url]
        if chat_id is not None:
            conds.append(File.chat_id == str(chat_id))
        return await self.first(*conds)

    async def find_by_ref(self, backend_ref: str, chat_id: Optional[str] = None) -> Optional[File]:
        conds = [File.backend_ref == backend_ref]
        if chat_id is not None:
            conds.append(File.chat_id == str(chat_id))
        return await self.first(*conds)

    async def find_by_name(self, name: str, chat_id: Optional[str] = None) -> Optional[File]:
        conds = [or_(File.file_name == name, File.url.like(f"%/{_like_escape(name)}", escape="\\"))]
        if chat_id is not None:
            conds.append(File.chat_id == str(chat_id))
        return await self.first(*conds)

    async def find_by_token(self, token: str, chat_id: Optional[str] = None) -> Optional[File]:
        """URL -> ссылка бэкенда -> имя файла (при совпадении берётся самый новый)."""

        token = (token or "").strip()
        if not token:
            return None
        name = basename_of(token)
        found = await self.find_by_url(token, chat_id)
        if found is None:
            found = await self.find_by_ref(token, chat_id)
        if found is None and name and name != token:
            found = await self.find_by_ref(name, chat_id)
        if found is None and name:
            found = await self.find_by_name(name, chat_id)
        return found

    async def find_for_path(self, path: str) -> Optional[File]:
        """Поиск файла для публичной отдачи по пути запроса (без владельца)."""

        found = await self.find_by_ref(path)
        if found is None:
            found = await self.find_by_name(basename_of(path))
        return found

    async def list_page(self, page: int = 1, limit: int = 50) -> Page[File]:
        return await self.page(page=page, limit=limit)

    async def search(self, query: str, limit: int = 200) -> List[File]:
        q = (query or "").strip().lower()
        if not q:
            return await self.all(limit=limit)
        pattern = f"%{_like_escape(q)}%"
        return await self.all(
            or_(
                func.lower(File.file_name).like(pattern, escape="\\"),
                func.lower(File.url).like(pattern, escape="\\"),
                func.lower(File.remark).like(pattern, escape="\\"),
            ),
            limit=limit,
        )

    async def recent(self, chat_id: str, limit: int = 10) -> List[File]:
        return await self.all(File.chat_id == str(chat_id), limit=limit)

    async def stats(self, chat_id: str, storage_type: Optional[str] = None) -> Tuple[int, int]:
        """(число файлов, суммарный размер) для чата."""

        conds = [File.chat_id == str(chat_id)]
        if storage_type is not None:
            conds.append(File.storage_type == storage_type)
        q = select(func.count(File.id), func.coalesce(func.sum(File.file_size), 0)).where(*conds)
        count, total = (await self.session.execute(q)).one()
        return int(count or 0), int(total or 0)

    # ---- запись -------------------------------------------------------

    async def register(self, meta: FileMeta) -> File:
        category_id = await CategoryManager(self.session).resolve_id(meta.category_id)
        obj = await self.add(
            url=meta.url,
            backend_ref=meta.backend_ref,
            message_ref=meta.message_ref,
            file_name=meta.file_name,
            file_size=meta.file_size,
            mime_type=meta.mime_type,
            storage_type=meta.storage_type,
            category_id=category_id,
            chat_id=str(meta.chat_id),
            remark=meta.remark,
        )
        logger.info("Registered file id=%s url=%s storage=%s", obj.id, obj.url, obj.storage_type)
        return obj

    @staticmethod
    def ref_of(rec: File) -> StoredRef:
        return StoredRef(
            backend_ref=str(rec.backend_ref or basename_of(rec.url)),
            message_ref=int(rec.message_ref) if rec.message_ref is not None else NO_MESSAGE_REF,
            storage_type=StorageType.parse(rec.storage_type),
        )

    @staticmethod
    def cache_key(rec: File) -> str:
        """Ключ содержимого в file_cache: id строки, а не путь запроса.

        Один файл доступен по нескольким путям (ключ, имя, ссылка бэкенда),
        поэтому удаление и переименование сбрасывают ровно одну запись.
        """

        return f"file:{rec.id}"

    def _invalidate(self, rec: File) -> None:
        if self.file_cache is not None:
            self.file_cache.delete(self.cache_key(rec))

    def _backend_for(self, rec: File):
        if self.storage is None:
            return None
        return self.storage.for_ref(self.ref_of(rec))

    async def delete(self, rec: File) -> None:
        """Удалить содержимое (best-effort) и строку реестра."""

        backend = self._backend_for(rec)
        if backend is not None:
            ok = await best_effort(backend.delete(self.ref_of(rec)), f"backend delete of {rec.url}")
            if not ok:
                logger.warning("Backend copy of %s was not removed, leaving it as garbage", rec.url)
        self._invalidate(rec)
        await self.remove_by_id(rec.id)
        await self.session.flush()
        logger.info("Deleted file id=%s url=%s", rec.id, rec.url)

    async def delete_by_token(self, token: str, chat_id: Optional[str] = None) -> File:
        rec = await self.find_by_token(token, chat_id)
        if rec is None:
            raise NotFoundError("Файл не найден")
        await self.delete(rec)
        return rec

    async def rename(self, rec: File, new_base: str) -> str:
        """Переименовать файл в <new_base>.<старое расширение>; вернуть новый URL."""

        new_base = (new_base or "").strip()
        if not new_base:
            raise ValidationError("Новое имя не может быть пустым")
        if any(ch not in _SAFE_BASE_CHARS for ch in new_base):
            raise ValidationError("Допустимы только латинские буквы, цифры, «-», «_» и «.»")

        old_name = basename_of(rec.url)
        ext = extension_of(rec.file_name or old_name) or extension_of(old_name)
        new_name = f"{new_base}.{ext}" if ext else new_base
        prefix = rec.url[: len(rec.url) - len(old_name)] if rec.url.endswith(old_name) else rec.url.rsplit("/", 1)[0] + "/"
        new_url = f"{prefix}{new_name}"
        if new_url == rec.url:
            return rec.url

        taken = await self.first(or_(File.url == new_url, File.backend_ref == new_name), File.id != rec.id)
        if taken is not None:
            raise ValidationError(f"Имя {new_name} уже занято")

        old_ref = self.ref_of(rec)
        backend = self._backend_for(rec)
        updates: Dict[str, Any] = {"url": new_url, "file_name": new_name}
        new_ref: Optional[StoredRef] = None

        if backend is not None:
            try:
                obj = await backend.get(old_ref)
                if obj is not None:
                    mime = rec.mime_type or obj.content_type or guess_mime(new_name)
                    new_ref = await backend.put(obj.data, new_name, mime)
            except UpstreamError as exc:
                logger.warning("Copy of %s under the new name failed: %s", rec.url, exc.message)
            if new_ref is not None:
                updates["backend_ref"] = new_ref.backend_ref
                updates["message_ref"] = new_ref.message_ref
            else:
                # содержимое остаётся под старой ссылкой бэкенда
                logger.warning("Source of %s is not copyable, renaming pointer only", rec.url)

        try:
            for key, value in updates.items():
                setattr(rec, key, value)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            if new_ref is not None and backend is not None:
                await best_effort(backend.delete(new_ref), f"compensating delete of {new_name}")
            raise

        if new_ref is not None and backend is not None:
            removed = await best_effort(backend.delete(old_ref), f"delete of old copy {old_name}")
            if not removed:
                logger.warning("Old copy %s is left as garbage after rename", old_ref.backend_ref)

        self._invalidate(rec)
        logger.info("Renamed file id=%s: %s -> %s", rec.id, old_name, new_name)
        return new_url

    # ---- массовые операции ---------------------------------------------

    async def _find_for_bulk(self, url: str) -> Optional[File]:
        rec = await self.find_by_url(url)
        if rec is None:
            rec = await self.find_by_ref(basename_of(url))
        return rec

    async def _bulk(self, urls: Iterable[str], label: str, apply) -> BulkResult:
        result = BulkResult()
        for url in urls:
            url = (url or "").strip()
            if not url:
                continue
            try:
                rec = await self._find_for_bulk(url)
                if rec is None:
                    result.fail(url, "not found")
                    continue
                await apply(rec)
                await self.session.commit()
                result.ok(url)
            except GatewayError as exc:
                await self.session.rollback()
                result.fail(url, exc.message)
            except Exception as exc:  # noqa: BLE001
                await self.session.rollback()
                logger.exception("%s failed for %s", label, url)
                result.fail(url, str(exc))
        logger.info("%s: %s ok, %s failed", label, result.success, result.failed)
        return result

    async def bulk_delete(self, urls: Iterable[str]) -> BulkResult:
        return await self._bulk(urls, "bulk_delete", self.delete)

    async def bulk_set_remark(self, urls: Iterable[str], remark: Optional[str]) -> BulkResult:
        async def apply(rec: File) -> None:
            rec.remark = remark

        return await self._bulk(urls, "bulk_set_remark", apply)

    async def bulk_set_category(self, urls: Iterable[str], category_id: int) -> BulkResult:
        category = await CategoryManager(self.session).by_id(int(category_id))
        if category is None:
            raise NotFoundError("Категория не найдена")

        target_id = int(category.id)

        async def apply(rec: File) -> None:
            rec.category_id = target_id

        return await self._bulk(urls, "bulk_set_category", apply)


__all__ = ["FilesManager", "FileMeta", "BulkResult", "basename_of"]
