# Руководство к файлу (STORAGE/mime.py)
# Назначение:
# - Таблицы расширение <-> MIME-тип, безопасное имя файла, формат размера.
# - Классификация загрузки для канала Telegram: photo / video / audio / document.

from __future__ import annotations

import re
from enum import Enum
from typing import Optional


DEFAULT_MIME = "application/octet-stream"

EXT_TO_MIME = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "svg": "image/svg+xml",
    "avif": "image/avif",
    "ico": "image/x-icon",
    "icon": "image/x-icon",
    "bmp": "image/bmp",
    "tiff": "image/tiff",
    "tif": "image/tiff",
    "mp4": "video/mp4",
    "webm": "video/webm",
    "ogv": "video/ogg",
    "avi": "video/x-msvideo",
    "mov": "video/quicktime",
    "wmv": "video/x-ms-wmv",
    "flv": "video/x-flv",
    "mkv": "video/x-matroska",
    "m4v": "video/x-m4v",
    "ts": "video/mp2t",
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "ogg": "audio/ogg",
    "oga": "audio/ogg",
    "m4a": "audio/mp4",
    "aac": "audio/aac",
    "flac": "audio/flac",
    "wma": "audio/x-ms-wma",
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "xls": "application/vnd.ms-excel",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "ppt": "application/vnd.ms-powerpoint",
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "rtf": "application/rtf",
    "txt": "text/plain",
    "md": "text/markdown",
    "csv": "text/csv",
    "html": "text/html",
    "htm": "text/html",
    "css": "text/css",
    "js": "application/javascript",
    "xml": "application/xml",
    "json": "application/json",
    "zip": "application/zip",
    "rar": "application/x-rar-compressed",
    "7z": "application/x-7z-compressed",
    "tar": "application/x-tar",
    "gz": "application/gzip",
    "ttf": "font/ttf",
    "otf": "font/otf",
    "woff": "font/woff",
    "woff2": "font/woff2",
    "yml": "application/yaml",
    "yaml": "application/yaml",
    "py": "text/x-python",
    "apk": "application/vnd.android.package-archive",
}

# Обратная таблица: первое расширение для MIME побеждает
MIME_TO_EXT = {}
for _ext, _mime in EXT_TO_MIME.items():
    MIME_TO_EXT.setdefault(_mime, _ext)
MIME_TO_EXT.update({"image/jpeg": "jpg", "video/quicktime": "mov", "audio/ogg": "ogg"})

# Подтипы image/*, которые Telegram не принимает как фото
_NOT_PHOTO_SUBTYPES = {"svg+xml", "x-icon", "gif"}

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9\-_.]")


class UploadKind(Enum):
    PHOTO = ("send_photo", "photo")
    VIDEO = ("send_video", "video")
    AUDIO = ("send_audio", "audio")
    DOCUMENT = ("send_document", "document")

    @property
    def method(self) -> str:
        return self.value[0]

    @property
    def field(self) -> str:
        return self.value[1]


def extension_of(name: str) -> str:
    """Расширение без точки в нижнем регистре ('' если нет)."""

    base = name.rsplit("/", 1)[-1]
    if "." not in base:
        return ""
    return base.rsplit(".", 1)[-1].lower()


def guess_mime(name: str, declared: Optional[str] = None) -> str:
    """MIME по заявленному типу, иначе по расширению."""

    if declared and declared != DEFAULT_MIME:
        return declared
    return EXT_TO_MIME.get(extension_of(name), declared or DEFAULT_MIME)


def extension_for_mime(mime_type: Optional[str]) -> str:
    if not mime_type:
        return "bin"
    return MIME_TO_EXT.get(mime_type.lower(), "bin")


def classify_upload_kind(mime_type: Optional[str]) -> UploadKind:
    main, _, sub = (mime_type or "").lower().partition("/")
    if main == "image" and sub not in _NOT_PHOTO_SUBTYPES:
        return UploadKind.PHOTO
    if main == "video":
        return UploadKind.VIDEO
    if main == "audio":
        return UploadKind.AUDIO
    return UploadKind.DOCUMENT


def is_inline_media(mime_type: Optional[str]) -> bool:
    main = (mime_type or "").split("/", 1)[0].lower()
    return main in ("image", "video", "audio") or (mime_type or "").lower() == "application/pdf"


def sanitize_filename(name: str) -> str:
    cleaned = _UNSAFE_CHARS.sub("_", name.rsplit("/", 1)[-1].strip())
    return cleaned or "file"


def format_size(num_bytes: Optional[int]) -> str:
    """Человекочитаемый размер: B / KB / MB / GB, две цифры после точки."""

    if not num_bytes:
        return "0 B"
    size = float(num_bytes)
    for unit in ("B", "KB", "MB"):
        if size < 1024:
            return f"{size:.2f} {unit}"
        size /= 1024
    return f"{size:.2f} GB"
