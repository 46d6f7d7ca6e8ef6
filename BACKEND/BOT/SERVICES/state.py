"""Руководство к файлу (BACKEND/BOT/SERVICES/state.py)
Назначение:
- Состояния диалога бота как размеченное объединение (frozen dataclasses).
- Кодирование в пару колонок user_settings.waiting_for / editing_file_id и обратно.
Важно:
- Старое значение waiting_for = "new_suffix" читается как AwaitingNewSuffix.
- Неизвестное значение или AwaitingNewSuffix без editing_file_id -> Idle.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple, Union


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class AwaitingCategoryName:
    pass


@dataclass(frozen=True)
class AwaitingRenameTarget:
    pass


@dataclass(frozen=True)
class AwaitingNewSuffix:
    editing_file_id: str


@dataclass(frozen=True)
class AwaitingDeleteTarget:
    pass


DialogueState = Union[Idle, AwaitingCategoryName, AwaitingRenameTarget, AwaitingNewSuffix, AwaitingDeleteTarget]

# Значения waiting_for в БД
WAIT_NEW_CATEGORY = "new_category"
WAIT_RENAME_TARGET = "edit_suffix_input_file"
WAIT_NEW_SUFFIX = "edit_suffix_input_new"
WAIT_NEW_SUFFIX_LEGACY = "new_suffix"
WAIT_DELETE_TARGET = "delete_file_input"


def encode_state(state: DialogueState) -> Tuple[Optional[str], Optional[str]]:
    """Состояние -> (waiting_for, editing_file_id)."""

    if isinstance(state, Idle):
        return None, None
    if isinstance(state, AwaitingCategoryName):
        return WAIT_NEW_CATEGORY, None
    if isinstance(state, AwaitingRenameTarget):
        return WAIT_RENAME_TARGET, None
    if isinstance(state, AwaitingNewSuffix):
        return WAIT_NEW_SUFFIX, state.editing_file_id
    if isinstance(state, AwaitingDeleteTarget):
        return WAIT_DELETE_TARGET, None
    raise TypeError(f"unknown dialogue state: {state!r}")


def decode_state(waiting_for: Optional[str], editing_file_id: Optional[str]) -> DialogueState:
    if waiting_for == WAIT_NEW_CATEGORY:
        return AwaitingCategoryName()
    if waiting_for == WAIT_RENAME_TARGET:
        return AwaitingRenameTarget()
    if waiting_for in (WAIT_NEW_SUFFIX, WAIT_NEW_SUFFIX_LEGACY):
        if editing_file_id:
            return AwaitingNewSuffix(editing_file_id=str(editing_file_id))
        return Idle()
    if waiting_for == WAIT_DELETE_TARGET:
        return AwaitingDeleteTarget()
    return Idle()


def is_idle(state: DialogueState) -> bool:
    return isinstance(state, Idle)
