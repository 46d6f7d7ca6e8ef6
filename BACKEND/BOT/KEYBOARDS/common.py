"""Руководство к файлу (BACKEND/BOT/KEYBOARDS/common.py)
Назначение:
- Inline-клавиатуры бота imgbed (InlineKeyboardMarkup из python-telegram-bot):
  главное меню, выбор категории, выбор файла для переименования, «назад».
- Значения callback_data разбираются в BOT/ROUTERS/callbacks.py.
"""

from __future__ import annotations

from typing import Any, Iterable

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

CB_SWITCH_STORAGE = "switch_storage"
CB_LIST_CATEGORIES = "list_categories"
CB_SET_CATEGORY = "set_category_"
CB_CREATE_CATEGORY = "create_category"
CB_BACK = "back_to_panel"
CB_OBJECT_STATS = "r2_stats"
CB_RECENT_FILES = "recent_files"
CB_RENAME_PICK = "edit_suffix"
CB_RENAME_FILE = "edit_suffix_file_"
CB_RENAME_INPUT = "edit_suffix_input"
CB_DELETE_INPUT = "delete_file_input"


def _button(text: str, data: str) -> InlineKeyboardButton:
    return InlineKeyboardButton(text, callback_data=data)


def _back_row() -> list:
    return [_button("« Назад", CB_BACK)]


def main_menu_keyboard() -> InlineKeyboardMarkup:
    """Клавиатура главного меню бота."""

    return InlineKeyboardMarkup(
        [
            [_button("📤 Сменить хранилище", CB_SWITCH_STORAGE), _button("📋 Категории", CB_LIST_CATEGORIES)],
            [_button("📝 Новая категория", CB_CREATE_CATEGORY), _button("📊 Статистика R2", CB_OBJECT_STATS)],
            [
                _button("📂 Последние файлы", CB_RECENT_FILES),
                _button("✏️ Переименовать", CB_RENAME_INPUT),
                _button("🗑️ Удалить файл", CB_DELETE_INPUT),
            ],
        ]
    )


def back_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([_back_row()])


def categories_keyboard(categories: Iterable[Any], current_id: int | None) -> InlineKeyboardMarkup:
    """Список категорий; текущая отмечена галочкой.

    categories - объекты с атрибутами id и name (DATABASE.models.Category).
    """

    rows = []
    for cat in categories:
        mark = "✅ " if current_id is not None and int(cat.id) == int(current_id) else ""
        rows.append([_button(f"{mark}{cat.name}", f"{CB_SET_CATEGORY}{cat.id}")])
    rows.append(_back_row())
    return InlineKeyboardMarkup(rows)


def files_keyboard(files: Iterable[Any]) -> InlineKeyboardMarkup:
    """Последние файлы для выбора при переименовании."""

    rows = [[_button(f.file_name or f.url.rsplit("/", 1)[-1], f"{CB_RENAME_FILE}{f.id}")] for f in files]
    rows.append(_back_row())
    return InlineKeyboardMarkup(rows)
