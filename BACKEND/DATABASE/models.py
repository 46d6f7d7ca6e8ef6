# Руководство к файлу (DATABASE/models.py)
# Назначение:
# - SQLAlchemy-модели БД imgbed: CATEGORIES, USER_SETTINGS, FILES.
# - Совместимы с SQLite (dev, D1-подобный режим) и Postgres (prod) без изменений моделей.
# Важно:
# - Имена колонок files.fileId / files.message_id сохранены из исходной схемы,
#   чтобы самовосстановление (DATABASE/schema.py) работало поверх старых БД.
# - EXPECTED_COLUMNS описывает набор колонок, который схема обязана иметь.

from __future__ import annotations

from typing import Dict, List, Tuple

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()

DEFAULT_CATEGORY_NAME = "default"

# Значение message_id для файлов в объектном хранилище
NO_MESSAGE_REF = -1


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=True)


class UserSetting(Base):
    __tablename__ = "user_settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    chat_id = Column(String(64), nullable=False, unique=True)
    storage_type = Column(String(32), nullable=True, server_default="telegram")
    current_category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    waiting_for = Column(String(64), nullable=True)
    editing_file_id = Column(String(64), nullable=True)


class File(Base):
    __tablename__ = "files"

    id = Column(Integer, primary_key=True, autoincrement=True)
    url = Column(Text, nullable=False)
    backend_ref = Column("fileId", Text, nullable=True)
    message_ref = Column("message_id", BigInteger, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=True)
    file_name = Column(Text, nullable=True)
    file_size = Column(BigInteger, nullable=True)
    mime_type = Column(String(255), nullable=True)
    storage_type = Column(String(32), nullable=True, server_default="telegram")
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    chat_id = Column(String(64), nullable=True)
    remark = Column(Text, nullable=True)


# Индексы для типичных выборок (по владельцу, по url)
Index("ix_files_chat_created", File.chat_id, File.created_at)
Index("ix_files_url", File.url)


# Ожидаемый набор колонок: имя -> SQL-тип для ALTER TABLE ADD COLUMN
EXPECTED_COLUMNS: Dict[str, List[Tuple[str, str]]] = {
    "categories": [
        ("id", "INTEGER"),
        ("name", "TEXT"),
        ("created_at", "DATETIME"),
    ],
    "user_settings": [
        ("id", "INTEGER"),
        ("chat_id", "TEXT"),
        ("storage_type", "TEXT"),
        ("current_category_id", "INTEGER"),
        ("waiting_for", "TEXT"),
        ("editing_file_id", "TEXT"),
    ],
    "files": [
        ("id", "INTEGER"),
        ("url", "TEXT"),
        ("fileId", "TEXT"),
        ("message_id", "INTEGER"),
        ("created_at", "DATETIME"),
        ("file_name", "TEXT"),
        ("file_size", "INTEGER"),
        ("mime_type", "TEXT"),
        ("storage_type", "TEXT"),
        ("category_id", "INTEGER"),
        ("chat_id", "TEXT"),
        ("remark", "TEXT"),
    ],
}
