# Руководство к файлу (DATABASE/session.py)
# Назначение:
# - Асинхронная настройка SQLAlchemy: движок, фабрика сессий, зависимость get_db_session.
# - По умолчанию SQLite (aiosqlite), для Postgres используется URL из настроек.
# Важно:
# - Движок и фабрика создаются вместе с приложением (SEVICES/context.py);
#   зависимость get_db_session берёт фабрику из request.app.state.ctx.

from __future__ import annotations

from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine


def create_engine(db_url: str) -> AsyncEngine:
    return create_async_engine(db_url, echo=False, future=True)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Сессия на один HTTP-запрос: commit при успехе, rollback при любой ошибке."""

    factory = request.app.state.ctx.session_factory
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
