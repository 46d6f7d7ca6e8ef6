# Руководство к файлу
# Назначение: объявляет пакет BACKEND.DATABASE.CACHE_MANAGER и экспортирует менеджеры.

from .base_class import BaseManager
from .category import CategoryManager
from .user_setting import UserSettingManager
from .files import BulkResult, FileMeta, FilesManager

__all__ = [
    "BaseManager",
    "CategoryManager",
    "UserSettingManager",
    "FilesManager",
    "FileMeta",
    "BulkResult",
]
