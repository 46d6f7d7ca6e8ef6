# Руководство к файлу (TESTS/conftest.py)
# Назначение:
# - Общие фикстуры для pytest-тестов backend imgbed.
# - Временная SQLite на каждый тест, фейковый S3-клиент, фейковый
#   Telegram Bot API, HTTP-клиент для FastAPI-приложения без реального сервера.

from __future__ import annotations

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from BACKEND.FAST_API.config import Settings
from BACKEND.FAST_API.fast_api import create_app
from BACKEND.SEVICES.context import build_context
from BACKEND.TESTS.fakes import TEST_DOMAIN, FakeS3Client, FakeTelegram, make_settings


@pytest.fixture
def fake_tg() -> FakeTelegram:
    return FakeTelegram()


@pytest.fixture
def fake_s3() -> FakeS3Client:
    return FakeS3Client()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return make_settings(tmp_path)


@pytest_asyncio.fixture
async def ctx(settings, fake_tg, fake_s3):
    """Контекст приложения с фейковыми Telegram и бакетом."""

    context = build_context(
        settings,
        http=httpx.AsyncClient(transport=httpx.MockTransport(fake_tg)),
        telegram_transport=httpx.MockTransport(fake_tg),
        s3_client=fake_s3,
    )
    await context.schema.ensure_schema()
    try:
        yield context
    finally:
        await context.aclose()


@pytest_asyncio.fixture
async def session(ctx):
    async with ctx.session_factory() as s:
        yield s


@pytest.fixture
def app(ctx):
    return create_app(ctx=ctx)


@pytest_asyncio.fixture
async def http_client(app):
    """HTTP-клиент для тестирования FastAPI-приложения без реального сервера."""

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url=f"https://{TEST_DOMAIN}") as client:
        yield client


