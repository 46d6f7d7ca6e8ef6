# Руководство к файлу (TESTS/unit/test_storage_unit.py)
# Назначение:
# - Юнит-тесты адаптеров хранилищ: бакет (фейковый S3-клиент) и канал
#   Telegram (фейковый Bot API на httpx.MockTransport) через python-telegram-bot, выбор хранилища.

from __future__ import annotations

import httpx
import pytest

from telegram import Message

from BACKEND.BOT.SERVICES.telegram_api import (
    TelegramApiConfig,
    TelegramApiError,
    TelegramGateway,
    file_id_of,
)
from BACKEND.SEVICES.errors import ConfigurationError, UpstreamError
from BACKEND.STORAGE.base import StorageType, StoredRef
from BACKEND.STORAGE.object_store import ObjectStoreBackend
from BACKEND.STORAGE.selector import StorageSelector
from BACKEND.STORAGE.telegram_store import TelegramStoreBackend
from BACKEND.TESTS.fakes import FakeS3Client, FakeTelegram


pytestmark = pytest.mark.asyncio


async def _no_sleep(_: float) -> None:
    return None


def _client(fake, token: str = "TEST") -> TelegramGateway:
    return TelegramGateway(TelegramApiConfig(token=token), transport=httpx.MockTransport(fake), sleep=_no_sleep)


async def test_object_store_put_get_delete(fake_s3: FakeS3Client):
    store = ObjectStoreBackend(fake_s3, "bucket")
    ref = await store.put(b"png-bytes", "1700000000000_a.png", "image/png")
    assert ref.backend_ref == "1700000000000_a.png"
    assert ref.storage_type is StorageType.OBJECT_STORE

    obj = await store.get(ref)
    assert obj is not None and obj.data == b"png-bytes" and obj.content_type == "image/png"

    assert await store.delete(ref) is True
    assert await store.get(ref) is None


async def test_telegram_store_put_photo_and_read_back():
    fake = FakeTelegram()
    tg = _client(fake)
    store = TelegramStoreBackend(tg, "-100500")

    ref = await store.put(b"\x89PNG data", "a.png", "image/png")
    assert fake.methods() == ["sendPhoto"]
    assert ref.storage_type is StorageType.CHAT_STORE
    assert ref.message_ref > 0
    # берётся самое большое фото из массива
    assert not ref.backend_ref.endswith("_small")

    caption = fake.calls[0]["payload"]["caption"]
    assert caption.startswith("File: a.png\nType: image/png\nSize: ")

    obj = await store.get(ref)
    assert obj is not None and obj.data == b"\x89PNG data"
    await tg.aclose()


async def test_telegram_store_falls_back_to_document():
    fake = FakeTelegram()
    fake.reject.add("sendPhoto")
    tg = _client(fake)
    store = TelegramStoreBackend(tg, "-100500")

    ref = await store.put(b"img", "a.png", "image/png")
    assert fake.methods() == ["sendPhoto", "sendDocument"]
    assert fake.calls[1]["upload"][0] == "document"
    assert ref.backend_ref in fake.files
    await tg.aclose()


async def test_telegram_store_document_rejection_is_not_retried_as_document():
    fake = FakeTelegram()
    fake.reject.add("sendDocument")
    tg = _client(fake)
    store = TelegramStoreBackend(tg, "-100500")

    with pytest.raises(TelegramApiError):
        await store.put(b"zip", "a.zip", "application/zip")
    assert fake.methods() == ["sendDocument"]
    await tg.aclose()


async def test_telegram_store_delete_is_idempotent():
    fake = FakeTelegram()
    tg = _client(fake)
    store = TelegramStoreBackend(tg, "-100500")
    ref = await store.put(b"doc", "a.txt", "text/plain")

    assert await store.delete(ref) is True
    # повторное удаление: «message to delete not found» считается успехом
    assert await store.delete(ref) is True
    # файл без сообщения в канале
    assert await store.delete(StoredRef(backend_ref="x", storage_type=StorageType.CHAT_STORE)) is True
    await tg.aclose()


async def test_telegram_store_get_unknown_file_returns_none():
    fake = FakeTelegram()
    tg = _client(fake)
    store = TelegramStoreBackend(tg, "-100500")
    assert await store.get(StoredRef(backend_ref="missing", message_ref=1, storage_type=StorageType.CHAT_STORE)) is None
    await tg.aclose()


async def test_telegram_store_requires_channel():
    fake = FakeTelegram()
    tg = _client(fake)
    store = TelegramStoreBackend(tg, "")
    with pytest.raises(ConfigurationError):
        await store.put(b"x", "a.txt", "text/plain")
    assert fake.calls == []
    await tg.aclose()


async def test_telegram_gateway_retries_after_rate_limit():
    fake = FakeTelegram()
    fake.rate_limit_once.add("sendMessage")
    tg = _client(fake)

    msg = await tg.call("send_message", chat_id=1001, text="hi")
    assert isinstance(msg, Message)
    assert msg.text == "hi"
    assert fake.methods() == ["sendMessage", "sendMessage"]
    await tg.aclose()


async def test_telegram_gateway_gives_up_on_server_errors():
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        return httpx.Response(502, json={"ok": False, "error_code": 502, "description": "Bad Gateway"})

    tg = _client(handler, token="T")
    with pytest.raises(UpstreamError):
        await tg.call("send_message", chat_id=1, text="x")
    assert calls["n"] == 3
    await tg.aclose()


async def test_telegram_gateway_does_not_retry_refusals():
    fake = FakeTelegram()
    fake.reject.add("sendMessage")
    tg = _client(fake)
    with pytest.raises(TelegramApiError) as err:
        await tg.call("send_message", chat_id=1, text="x")
    assert "rejected" in err.value.description.lower()
    assert fake.methods() == ["sendMessage"]
    await tg.aclose()


async def test_telegram_gateway_without_token_is_a_configuration_error():
    tg = _client(FakeTelegram(), token="")
    assert tg.configured is False
    with pytest.raises(ConfigurationError):
        await tg.call("send_message", chat_id=1, text="x")
    await tg.aclose()


async def test_file_id_of_variants():
    chat = {"id": 1, "type": "private"}
    photo = Message.de_json(
        {
            "message_id": 1,
            "date": 1700000000,
            "chat": chat,
            "photo": [
                {"file_id": "s", "file_unique_id": "us", "file_size": 1, "width": 10, "height": 10},
                {"file_id": "b", "file_unique_id": "ub", "file_size": 9, "width": 90, "height": 90},
            ],
        },
        None,
    )
    document = Message.de_json(
        {"message_id": 2, "date": 1700000000, "chat": chat, "document": {"file_id": "d", "file_unique_id": "ud"}},
        None,
    )
    text = Message.de_json({"message_id": 3, "date": 1700000000, "chat": chat, "text": "hi"}, None)
    assert file_id_of(photo) == "b"
    assert file_id_of(document) == "d"
    assert file_id_of(text) is None


async def test_selector_falls_back_to_chat_store(fake_s3):
    tg = _client(FakeTelegram())
    chat = TelegramStoreBackend(tg, "-1")
    only_chat = StorageSelector(chat)
    assert only_chat.effective_type("r2") is StorageType.CHAT_STORE
    assert only_chat.for_type("r2") is chat
    assert only_chat.for_type(StorageType.OBJECT_STORE) is chat
    assert only_chat.for_ref(StoredRef(backend_ref="k", storage_type=StorageType.OBJECT_STORE)) is None

    obj = ObjectStoreBackend(fake_s3, "bucket")
    both = StorageSelector(chat, obj)
    assert both.for_type("r2") is obj
    assert both.for_type("telegram") is chat
    await tg.aclose()


async def test_selector_without_object_store_survives_optimised_runs(fake_s3):
    # выбор бэкенда не опирается на assert: под python -O поведение то же
    tg = _client(FakeTelegram())
    chat = TelegramStoreBackend(tg, "-1")
    selector = StorageSelector(chat, None)
    for requested in ("r2", "s3", StorageType.OBJECT_STORE, None, "garbage"):
        assert selector.for_type(requested) is chat
    await tg.aclose()
