"""Руководство к пакету (BACKEND/BOT/KEYBOARDS)
Назначение:
- Содержит inline-клавиатуры чат-бота imgbed (common.py).
"""

from .common import back_keyboard, categories_keyboard, files_keyboard, main_menu_keyboard

__all__ = [
    "main_menu_keyboard",
    "back_keyboard",
    "categories_keyboard",
    "files_keyboard",
]
