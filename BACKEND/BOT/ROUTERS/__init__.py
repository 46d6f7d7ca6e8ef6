"""Руководство к пакету (BACKEND/BOT/ROUTERS)
Назначение:
- Содержит обработчики бота по областям: команды, текст по состоянию
  диалога, inline-кнопки, вложения.
- handlers() собирает их в один список для telegram.ext.Application.
Важно:
- Внутри одной группы PTB срабатывает первый подходящий обработчик:
  вложение важнее команды, команда важнее свободного текста.
"""

from typing import List

from telegram.ext import BaseHandler

from . import callbacks, commands, media, messages


def handlers() -> List[BaseHandler]:
    out: List[BaseHandler] = []
    for module in (media, commands, callbacks, messages):
        out.extend(module.handlers())
    return out


__all__ = [
    "handlers",
    "callbacks",
    "commands",
    "media",
    "messages",
]
