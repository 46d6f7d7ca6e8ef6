# Руководство к файлу (TESTS/unit/test_state_mime_unit.py)
# Назначение:
# - Юнит-тесты кодирования состояния диалога и помощников MIME/имён файлов.

from __future__ import annotations

import pytest

from BACKEND.BOT.SERVICES.state import (
    AwaitingCategoryName,
    AwaitingDeleteTarget,
    AwaitingNewSuffix,
    AwaitingRenameTarget,
    Idle,
    decode_state,
    encode_state,
)
from BACKEND.STORAGE.base import StorageType
from BACKEND.STORAGE.mime import (
    UploadKind,
    classify_upload_kind,
    format_size,
    guess_mime,
    is_inline_media,
    sanitize_filename,
)


@pytest.mark.parametrize(
    "state",
    [Idle(), AwaitingCategoryName(), AwaitingRenameTarget(), AwaitingNewSuffix(editing_file_id="42"), AwaitingDeleteTarget()],
)
def test_state_survives_storage_columns(state):
    assert decode_state(*encode_state(state)) == state


def test_decode_state_legacy_and_broken_values():
    """Старое значение new_suffix читается, битые пары сводятся к Idle."""

    assert decode_state("new_suffix", "7") == AwaitingNewSuffix(editing_file_id="7")
    assert decode_state("edit_suffix_input_new", None) == Idle()
    assert decode_state("something_else", "1") == Idle()
    assert decode_state(None, None) == Idle()


def test_idle_clears_both_columns():
    assert encode_state(Idle()) == (None, None)


def test_guess_mime_prefers_declared_type():
    assert guess_mime("a.png", "image/webp") == "image/webp"
    assert guess_mime("a.png", "application/octet-stream") == "image/png"
    assert guess_mime("A.JPG") == "image/jpeg"
    assert guess_mime("noext") == "application/octet-stream"


@pytest.mark.parametrize(
    "mime,kind",
    [
        ("image/png", UploadKind.PHOTO),
        ("image/jpeg", UploadKind.PHOTO),
        ("image/gif", UploadKind.DOCUMENT),
        ("image/svg+xml", UploadKind.DOCUMENT),
        ("image/x-icon", UploadKind.DOCUMENT),
        ("video/mp4", UploadKind.VIDEO),
        ("audio/mpeg", UploadKind.AUDIO),
        ("application/zip", UploadKind.DOCUMENT),
        (None, UploadKind.DOCUMENT),
    ],
)
def test_classify_upload_kind(mime, kind):
    assert classify_upload_kind(mime) is kind


def test_sanitize_filename_replaces_unsafe_chars():
    assert sanitize_filename("фото (1).png") == "______1_.png"
    assert sanitize_filename("a b.png") == "a_b.png"
    assert sanitize_filename("../../etc/passwd") == "passwd"
    assert sanitize_filename("") == "file"


def test_format_size_units():
    assert format_size(0) == "0 B"
    assert format_size(512) == "512.00 B"
    assert format_size(2048) == "2.00 KB"
    assert format_size(5 * 1024 * 1024) == "5.00 MB"
    assert format_size(3 * 1024 ** 3) == "3.00 GB"


def test_inline_media_detection():
    assert is_inline_media("image/png")
    assert is_inline_media("application/pdf")
    assert not is_inline_media("application/zip")


def test_storage_type_parse_aliases():
    assert StorageType.parse("R2") is StorageType.OBJECT_STORE
    assert StorageType.parse("telegram") is StorageType.CHAT_STORE
    assert StorageType.parse("weird") is StorageType.CHAT_STORE
    assert StorageType.parse(None, StorageType.OBJECT_STORE) is StorageType.OBJECT_STORE
