# Руководство к файлу (TESTS/integration/test_webhook_bot_integration.py)
# Назначение:
# - Интеграционные тесты бота через POST /webhook: доступ по allow-list,
#   меню, переходы состояний диалога, загрузка вложений, ошибки.

from __future__ import annotations

import pytest
from sqlalchemy import select

from BACKEND.BOT.SERVICES.state import (
    AwaitingCategoryName,
    AwaitingDeleteTarget,
    AwaitingNewSuffix,
    AwaitingRenameTarget,
    Idle,
    decode_state,
)
from BACKEND.DATABASE.CACHE_MANAGER.user_setting import UserSettingManager
from BACKEND.DATABASE.models import Category, File, UserSetting
from BACKEND.TESTS.fakes import OWNER_CHAT, STORAGE_CHAT, make_settings, tg_callback, tg_document, tg_message


pytestmark = pytest.mark.asyncio


async def _send(http_client, update):
    r = await http_client.post("/webhook", json=update)
    assert r.status_code == 200, r.text
    assert r.json() == {"ok": True}


async def _state(ctx):
    async with ctx.session_factory() as s:
        setting = await UserSettingManager(s).get(OWNER_CHAT)
        return decode_state(setting.waiting_for, setting.editing_file_id)


async def _setting(ctx) -> UserSetting:
    async with ctx.session_factory() as s:
        return await UserSettingManager(s).get(OWNER_CHAT)


async def _files(ctx):
    async with ctx.session_factory() as s:
        return list((await s.execute(select(File).order_by(File.id))).scalars().all())


async def _upload_via_bot(http_client, fake_tg, file_id="in1", name="photo.png", data=b"\x89PNG-bot", mime="image/png"):
    fake_tg.add_incoming_file(file_id, data)
    await _send(http_client, tg_message(**tg_document(file_id, name, len(data), mime)))


async def test_start_shows_menu_and_creates_settings(http_client, ctx, fake_tg):
    await _send(http_client, tg_message("/start"))

    sent = [c for c in fake_tg.calls if c["method"] == "sendMessage"]
    assert len(sent) == 1
    assert sent[0]["payload"]["parse_mode"] == "HTML"
    assert "inline_keyboard" in sent[0]["payload"]["reply_markup"]
    assert "Объектное хранилище R2" in sent[0]["payload"]["text"]

    setting = await _setting(ctx)
    assert setting.storage_type == "r2"
    assert setting.current_category_id == ctx.schema.default_category_id


async def test_foreign_chat_gets_no_access(http_client, ctx, fake_tg):
    await _send(http_client, tg_message("/start", chat_id="777"))
    assert fake_tg.calls[0]["payload"]["chat_id"] == "777"
    assert "нет доступа" in fake_tg.texts()[0]
    async with ctx.session_factory() as s:
        assert (await s.execute(select(UserSetting))).scalars().all() == []


async def test_group_messages_are_ignored(http_client, fake_tg):
    await _send(http_client, tg_message("/start", chat_type="group"))
    assert fake_tg.calls == []


async def test_edited_message_is_ignored(http_client, ctx, fake_tg):
    await _send(http_client, tg_callback("delete_file_input"))
    fake_tg.calls.clear()

    await _send(http_client, tg_message("/start", kind="edited_message"))
    await _send(http_client, tg_message("photo.png", kind="edited_message"))
    assert fake_tg.calls == []
    assert await _state(ctx) == AwaitingDeleteTarget()


async def test_edited_message_with_file_is_not_uploaded(http_client, ctx, fake_tg):
    fake_tg.add_incoming_file("in1", b"data")
    await _send(http_client, tg_message(kind="edited_message", **tg_document("in1", "a.png", 4)))
    assert fake_tg.calls == []
    assert await _files(ctx) == []


async def test_help_command_with_bot_suffix(http_client, fake_tg):
    await _send(http_client, tg_message("/help@imgbed_bot"))
    assert "/start" in fake_tg.texts()[-1]


async def test_idle_text_gets_hint(http_client, fake_tg):
    await _send(http_client, tg_message("hello"))
    assert "/start" in fake_tg.texts()[-1]


async def test_create_category_dialogue(http_client, ctx):
    await _send(http_client, tg_callback("create_category"))
    assert await _state(ctx) == AwaitingCategoryName()

    await _send(http_client, tg_message("Travel"))
    assert await _state(ctx) == Idle()
    async with ctx.session_factory() as s:
        cat = (await s.execute(select(Category).where(Category.name == "Travel"))).scalar_one()
    assert (await _setting(ctx)).current_category_id == cat.id


async def test_unrelated_button_resets_waiting_state(http_client, ctx, fake_tg):
    await _send(http_client, tg_callback("create_category"))
    await _send(http_client, tg_callback("recent_files"))
    assert await _state(ctx) == Idle()
    assert "answerCallbackQuery" in fake_tg.methods()


async def test_start_resets_waiting_state(http_client, ctx):
    await _send(http_client, tg_callback("delete_file_input"))
    assert await _state(ctx) == AwaitingDeleteTarget()
    await _send(http_client, tg_message("/start"))
    assert await _state(ctx) == Idle()


async def test_media_upload_stores_file_and_replies_with_link(http_client, ctx, fake_tg, fake_s3):
    await _upload_via_bot(http_client, fake_tg)

    files = await _files(ctx)
    assert len(files) == 1
    rec = files[0]
    assert rec.storage_type == "r2"
    assert rec.chat_id == OWNER_CHAT
    assert rec.file_name == "photo.png"
    assert fake_s3.objects[rec.backend_ref]["Body"] == b"\x89PNG-bot"

    methods = fake_tg.methods()
    assert methods.index("getFile") < methods.index("deleteMessage")
    assert any(rec.url in t for t in fake_tg.texts())
    qr = [c for c in fake_tg.calls if c["method"] == "sendPhoto"]
    assert qr and "api.qrserver.com" in qr[0]["payload"]["photo"]


async def test_oversized_media_is_rejected_before_download(http_client, ctx, fake_tg):
    await _send(http_client, tg_message(**tg_document("big", "big.zip", 50 * 1024 * 1024, "application/zip")))
    assert "getFile" not in fake_tg.methods()
    assert fake_tg.texts()[-1].startswith("❌")
    assert await _files(ctx) == []


async def test_switch_storage_then_upload_goes_to_channel(http_client, ctx, fake_tg, fake_s3):
    await _send(http_client, tg_callback("switch_storage"))
    assert (await _setting(ctx)).storage_type == "telegram"

    await _upload_via_bot(http_client, fake_tg, name="notes.txt", data=b"plain text", mime="text/plain")
    rec = (await _files(ctx))[0]
    assert rec.storage_type == "telegram"
    assert fake_s3.objects == {}
    stored = [c for c in fake_tg.calls if c["method"] == "sendDocument"]
    assert stored[0]["payload"]["chat_id"] == STORAGE_CHAT


async def test_rename_dialogue(http_client, ctx, fake_tg, fake_s3):
    await _upload_via_bot(http_client, fake_tg)
    rec = (await _files(ctx))[0]

    await _send(http_client, tg_callback("edit_suffix_input"))
    assert await _state(ctx) == AwaitingRenameTarget()

    await _send(http_client, tg_message("no-dot-here"))
    assert await _state(ctx) == AwaitingRenameTarget()

    await _send(http_client, tg_message(rec.url))
    assert await _state(ctx) == AwaitingNewSuffix(editing_file_id=str(rec.id))

    await _send(http_client, tg_message("holiday"))
    assert await _state(ctx) == Idle()
    renamed = (await _files(ctx))[0]
    assert renamed.url == "https://img.example.com/holiday.png"
    assert "holiday.png" in fake_s3.objects


async def test_rename_pick_button_for_recent_file(http_client, ctx, fake_tg):
    await _upload_via_bot(http_client, fake_tg)
    rec = (await _files(ctx))[0]
    await _send(http_client, tg_callback(f"edit_suffix_file_{rec.id}"))
    assert await _state(ctx) == AwaitingNewSuffix(editing_file_id=str(rec.id))


async def test_rename_to_taken_name_clears_state_and_reports(http_client, ctx, fake_tg):
    await _upload_via_bot(http_client, fake_tg, file_id="in1", name="one.png")
    await _upload_via_bot(http_client, fake_tg, file_id="in2", name="two.png")
    first, second = await _files(ctx)

    await _send(http_client, tg_callback(f"edit_suffix_file_{first.id}"))
    await _send(http_client, tg_message("taken"))
    await _send(http_client, tg_callback(f"edit_suffix_file_{second.id}"))
    await _send(http_client, tg_message("taken"))

    assert await _state(ctx) == Idle()
    assert fake_tg.texts()[-1].startswith("❌")


async def test_delete_dialogue(http_client, ctx, fake_tg, fake_s3):
    await _upload_via_bot(http_client, fake_tg)
    await _send(http_client, tg_callback("delete_file_input"))
    await _send(http_client, tg_message("photo.png"))

    assert await _state(ctx) == Idle()
    assert await _files(ctx) == []
    assert fake_s3.objects == {}


async def test_delete_unknown_file_reports_and_resets(http_client, ctx, fake_tg):
    await _send(http_client, tg_callback("delete_file_input"))
    await _send(http_client, tg_message("ghost.png"))
    assert await _state(ctx) == Idle()
    assert fake_tg.texts()[-1].startswith("❌")


async def test_object_store_stats_button(http_client, fake_tg):
    await _upload_via_bot(http_client, fake_tg)
    await _send(http_client, tg_callback("r2_stats"))
    assert "Файлов: 1" in fake_tg.texts()[-1]


async def test_webhook_rejects_non_json(http_client):
    r = await http_client.post("/webhook", content=b"not json", headers={"Content-Type": "application/json"})
    assert r.status_code == 400


class TestWebhookSecret:
    @pytest.fixture
    def settings(self, tmp_path):
        return make_settings(tmp_path, webhook_secret="s3cr3t")

    async def test_wrong_secret_is_forbidden(self, http_client, fake_tg):
        r = await http_client.post("/webhook", json=tg_message("/start"))
        assert r.status_code == 403
        assert fake_tg.calls == []

    async def test_right_secret_is_accepted(self, http_client):
        r = await http_client.post(
            "/webhook",
            json=tg_message("/start"),
            headers={"X-Telegram-Bot-Api-Secret-Token": "s3cr3t"},
        )
        assert r.status_code == 200
