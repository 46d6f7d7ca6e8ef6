# Руководство к файлу (DATABASE/schema.py)
# Назначение:
# - Самовосстанавливающаяся схема БД imgbed вместо полноценного Alembic:
#   создание недостающих таблиц, добавление недостающих колонок,
#   гарантия ровно одной категории по умолчанию, привязка «сирот» к ней.
# - Вызывается перед защищёнными путями и webhook; успешный прогон
#   запоминается на время жизни процесса.
# Использование:
# - python -m BACKEND.DATABASE.schema  (прогонит ensure_schema для URL из настроек)
# Важно:
# - Вся последовательность повторяется до 3 раз с задержкой 1с/2с (потолок 5с),
#   затем поднимается SchemaError.

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from sqlalchemy import inspect, select, text, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from .models import EXPECTED_COLUMNS, DEFAULT_CATEGORY_NAME, Base, Category, File, UserSetting
from BACKEND.SEVICES.errors import SchemaError
from BACKEND.SEVICES.retry import retry_async


logger = logging.getLogger("imgbed.db")

# Типы, которые Postgres не понимает в исходной (SQLite) нотации
_PG_TYPES = {"DATETIME": "TIMESTAMP WITH TIME ZONE", "INTEGER": "BIGINT"}


def _missing_tables(sync_conn) -> List[str]:
    existing = set(inspect(sync_conn).get_table_names())
    return [name for name in EXPECTED_COLUMNS if name not in existing]


def _missing_columns(sync_conn) -> List[tuple[str, str, str]]:
    insp = inspect(sync_conn)
    out: List[tuple[str, str, str]] = []
    for table, columns in EXPECTED_COLUMNS.items():
        actual = {c["name"].lower() for c in insp.get_columns(table)}
        for name, sql_type in columns:
            if name.lower() not in actual:
                out.append((table, name, sql_type))
    return out


def _is_duplicate_column(exc: Exception) -> bool:
    msg = str(exc).lower()
    return "duplicate column" in msg or "already exists" in msg


class SchemaManager:
    """Идемпотентная проверка и ремонт схемы."""

    def __init__(
        self,
        engine: AsyncEngine,
        *,
        attempts: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 5.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.engine = engine
        self._attempts = attempts
        self._base_delay = base_delay
        self._max_delay = max_delay
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._ready = False
        self.default_category_id: Optional[int] = None

    @property
    def ready(self) -> bool:
        return self._ready

    def invalidate(self) -> None:
        """Заставить следующий ensure_schema() пройти проверку заново."""

        self._ready = False

    async def ensure_schema(self, force: bool = False) -> int:
        """Привести схему в рабочее состояние; вернуть id категории по умолчанию."""

        if self._ready and not force and self.default_category_id is not None:
            return self.default_category_id
        async with self._lock:
            if self._ready and not force and self.default_category_id is not None:
                return self.default_category_id
            try:
                default_id = await retry_async(
                    self._run_once,
                    attempts=self._attempts,
                    base_delay=self._base_delay,
                    max_delay=self._max_delay,
                    retry_on=(SQLAlchemyError, OSError),
                    sleep=self._sleep,
                    label="ensure_schema",
                )
            except SchemaError:
                raise
            except (SQLAlchemyError, OSError) as exc:
                logger.error("Schema initialisation failed after %s attempts: %s", self._attempts, exc)
                raise SchemaError(f"Инициализация БД не удалась ({self._attempts} попыток): {exc}") from exc
            self.default_category_id = default_id
            self._ready = True
            return default_id

    async def _run_once(self) -> int:
        async with self.engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
            missing = await conn.run_sync(_missing_tables)
            if missing:
                logger.warning("Missing tables %s, creating", missing)
                tables = [Base.metadata.tables[name] for name in missing]
                await conn.run_sync(Base.metadata.create_all, tables=tables)

        await self._add_missing_columns()
        default_id = await self._ensure_default_category()
        await self._reattach_orphans(default_id)
        return default_id

    async def _add_missing_columns(self) -> None:
        async with self.engine.connect() as conn:
            missing = await conn.run_sync(_missing_columns)
        if not missing:
            return
        pg = self.engine.dialect.name == "postgresql"
        for table, name, sql_type in missing:
            col_type = _PG_TYPES.get(sql_type, sql_type) if pg else sql_type
            logger.info("Table %s lacks column %s, adding (%s)", table, name, col_type)
            try:
                # Каждый ALTER в своей транзакции: ошибка одного не рвёт остальные
                async with self.engine.begin() as conn:
                    await conn.execute(text(f'ALTER TABLE {table} ADD COLUMN "{name}" {col_type}'))
            except SQLAlchemyError as exc:
                if _is_duplicate_column(exc):
                    logger.info("Column %s.%s already exists", table, name)
                    continue
                raise

    async def _select_default_id(self) -> Optional[int]:
        async with self.engine.connect() as conn:
            res = await conn.execute(select(Category.id).where(Category.name == DEFAULT_CATEGORY_NAME).limit(1))
            return res.scalar_one_or_none()

    async def _ensure_default_category(self) -> int:
        default_id = await self._select_default_id()
        if default_id is not None:
            return int(default_id)

        logger.info("Default category is missing, creating")
        try:
            async with self.engine.begin() as conn:
                await conn.execute(Category.__table__.insert().values(name=DEFAULT_CATEGORY_NAME))
        except IntegrityError:
            # Параллельный запрос успел создать её первым
            logger.info("Default category created concurrently")

        default_id = await self._select_default_id()
        if default_id is None:
            raise SchemaError("Категория по умолчанию отсутствует даже после создания")
        logger.info("Default category created, id=%s", default_id)
        return int(default_id)

    async def _reattach_orphans(self, default_id: int) -> None:
        existing = select(Category.id)
        async with self.engine.begin() as conn:
            files_res = await conn.execute(
                update(File)
                .where((File.category_id.is_(None)) | (File.category_id.not_in(existing)))
                .values(category_id=default_id)
            )
            users_res = await conn.execute(
                update(UserSetting)
                .where((UserSetting.current_category_id.is_(None)) | (UserSetting.current_category_id.not_in(existing)))
                .values(current_category_id=default_id)
            )
        if files_res.rowcount or users_res.rowcount:
            logger.info(
                "Reattached %s files and %s user settings to default category %s",
                files_res.rowcount,
                users_res.rowcount,
                default_id,
            )


async def main() -> None:
    from BACKEND.FAST_API.config import settings
    from BACKEND.SEVICES.logging_config import setup_logging
    from .session import create_engine

    setup_logging()
    engine = create_engine(settings.database_url)
    try:
        default_id = await SchemaManager(engine).ensure_schema()
        logger.info("Schema is ready, default category id=%s", default_id)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
