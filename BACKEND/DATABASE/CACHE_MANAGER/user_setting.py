# Руководство к файлу (DATABASE/CACHE_MANAGER/user_setting.py)
# Назначение:
# - Менеджер настроек чата: тип хранилища, текущая категория, состояние диалога.
# - Запись создаётся лениво при первом обращении бота.

from __future__ import annotations

from typing import Optional

from sqlalchemy import update

from .base_class import BaseManager
from .category import CategoryManager
from ..models import UserSetting


class UserSettingManager(BaseManager[UserSetting]):
    model = UserSetting

    async def get(self, chat_id: str) -> Optional[UserSetting]:
        return await self.first(UserSetting.chat_id == str(chat_id))

    async def get_or_create(self, chat_id: str, default_storage: str) -> UserSetting:
        setting = await self.get(chat_id)
        if setting is not None:
            if setting.current_category_id is None:
                setting.current_category_id = await CategoryManager(self.session).default_id()
                await self.session.flush()
            return setting
        default_id = await CategoryManager(self.session).default_id()
        return await self.add(
            chat_id=str(chat_id),
            storage_type=default_storage,
            current_category_id=default_id,
            waiting_for=None,
            editing_file_id=None,
        )

    async def save_state(self, setting: UserSetting, waiting_for: Optional[str], editing_file_id: Optional[str]) -> None:
        setting.waiting_for = waiting_for
        setting.editing_file_id = editing_file_id
        await self.session.flush()

    async def set_storage(self, setting: UserSetting, storage_type: str) -> None:
        setting.storage_type = storage_type
        await self.session.flush()

    async def set_category(self, setting: UserSetting, category_id: int) -> None:
        setting.current_category_id = int(category_id)
        await self.session.flush()

    async def clear_state(self, chat_id: str) -> None:
        """Сбросить ожидание ввода одним UPDATE (без загруженного объекта)."""

        await self.session.execute(
            update(UserSetting)
            .where(UserSetting.chat_id == str(chat_id))
            .values(waiting_for=None, editing_file_id=None)
        )
