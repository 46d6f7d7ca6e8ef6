# Руководство к файлу (DATABASE/CACHE_MANAGER/base_class.py)
# Назначение:
# - Базовый менеджер imgbed, привязанный к одной ORM-модели (атрибут model).
# - Общие запросы: по id, первая/все строки по условиям, счётчик, страница.
# Важно:
# - Менеджеры не коммитят сами (кроме явно оговорённых операций реестра):
#   коммит/роллбек делает get_db_session или вызывающий код бота.

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Base


TModel = TypeVar("TModel", bound=Base)

MAX_PAGE_SIZE = 100


@dataclass
class Page(Generic[TModel]):
    items: List[TModel] = field(default_factory=list)
    total: int = 0
    page: int = 1
    pages: int = 1


class BaseManager(Generic[TModel]):
    model: Type[TModel]
    # порядок для first()/all()/page(), если не задан явно
    default_order: Sequence[Any] = ()

    def __init__(self, session: AsyncSession):
        self.session = session

    async def by_id(self, obj_id: Any) -> Optional[TModel]:
        return await self.session.get(self.model, obj_id)

    async def first(self, *conds: Any, order_by: Optional[Sequence[Any]] = None) -> Optional[TModel]:
        q = select(self.model).where(*conds).order_by(*(order_by or self.default_order)).limit(1)
        return (await self.session.execute(q)).scalars().first()

    async def all(self, *conds: Any, order_by: Optional[Sequence[Any]] = None, limit: Optional[int] = None) -> List[TModel]:
        q = select(self.model).where(*conds).order_by(*(order_by or self.default_order))
        if limit:
            q = q.limit(limit)
        return list((await self.session.execute(q)).scalars().all())

    async def count(self, *conds: Any) -> int:
        q = select(func.count()).select_from(self.model).where(*conds)
        return int((await self.session.execute(q)).scalar_one() or 0)

    async def add(self, **data: Any) -> TModel:
        obj = self.model(**data)
        self.session.add(obj)
        await self.session.flush()
        # created_at заполняется сервером
        await self.session.refresh(obj)
        return obj

    async def remove_by_id(self, obj_id: Any) -> int:
        res = await self.session.execute(delete(self.model).where(self.model.id == obj_id))
        return int(res.rowcount or 0)

    async def page(self, *conds: Any, page: int = 1, limit: int = 20) -> Page[TModel]:
        page = max(1, int(page or 1))
        limit = min(MAX_PAGE_SIZE, max(1, int(limit or 20)))
        total = await self.count(*conds)
        q = (
            select(self.model)
            .where(*conds)
            .order_by(*self.default_order)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        items = list((await self.session.execute(q)).scalars().all())
        return Page(items=items, total=total, page=page, pages=max(1, -(-total // limit)))
