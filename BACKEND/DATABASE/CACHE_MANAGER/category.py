# Руководство к файлу (DATABASE/CACHE_MANAGER/category.py)
# Назначение:
# - Менеджер категорий: список, создание, удаление с переносом файлов
#   и пользовательских настроек в категорию по умолчанию.
# Важно:
# - Категорию по умолчанию удалить нельзя (ForbiddenError).

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import update

from .base_class import BaseManager
from ..models import DEFAULT_CATEGORY_NAME, Category, File, UserSetting
from BACKEND.SEVICES.errors import ForbiddenError, NotFoundError, ValidationError


logger = logging.getLogger("imgbed.db")


class CategoryManager(BaseManager[Category]):
    model = Category
    default_order = (Category.id,)

    async def list_categories(self) -> List[Category]:
        return await self.all()

    async def get_category(self, category_id: int) -> Optional[Category]:
        return await self.by_id(category_id)

    async def find_by_name(self, name: str) -> Optional[Category]:
        return await self.first(Category.name == name)

    async def default_id(self) -> int:
        """id категории по умолчанию; создаёт её, если схема ещё не успела."""

        existing = await self.find_by_name(DEFAULT_CATEGORY_NAME)
        if existing is not None:
            return int(existing.id)
        obj = await self.add(name=DEFAULT_CATEGORY_NAME)
        logger.warning("Default category recreated on demand, id=%s", obj.id)
        return int(obj.id)

    async def resolve_id(self, category_id: Optional[int]) -> int:
        """Существующая категория или категория по умолчанию."""

        if category_id is not None and await self.get_category(int(category_id)) is not None:
            return int(category_id)
        return await self.default_id()

    async def create_category(self, name: str) -> Category:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Название категории не может быть пустым")
        if await self.find_by_name(name) is not None:
            raise ValidationError(f"Категория «{name}» уже существует")
        obj = await self.add(name=name)
        logger.info("Category created: id=%s name=%s", obj.id, name)
        return obj

    async def delete_category(self, category_id) -> str:
        """Удалить категорию; вернуть её имя."""

        try:
            cid = int(category_id)
        except (TypeError, ValueError):
            raise ValidationError("Некорректный id категории")

        cat = await self.get_category(cid)
        if cat is None:
            raise NotFoundError("Категория не найдена")
        if cat.name == DEFAULT_CATEGORY_NAME:
            raise ForbiddenError("Категорию по умолчанию удалить нельзя")

        default_id = await self.default_id()
        moved = await self.session.execute(
            update(File).where(File.category_id == cid).values(category_id=default_id)
        )
        await self.session.execute(
            update(UserSetting).where(UserSetting.current_category_id == cid).values(current_category_id=default_id)
        )
        await self.remove_by_id(cid)
        await self.session.flush()
        logger.info("Category %s (%s) deleted, %s files moved to default", cid, cat.name, moved.rowcount)
        return str(cat.name)
