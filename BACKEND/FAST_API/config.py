# Руководство к файлу (FAST_API/config.py)
# Назначение:
# - Централизованные настройки imgbed: домен, БД, авторизация админки,
#   Telegram-бот и канал-хранилище, объектное хранилище (S3/R2), TTL кэшей.
# Важно:
# - Все значения переопределяются переменными окружения с префиксом IMGBED_.
# - Лимит загрузки файлов по умолчанию 20 МБ.
# - Списки (tg_chat_id, cors_origins) задаются строкой через запятую.

from __future__ import annotations

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Базовые настройки imgbed."""

    model_config = SettingsConfigDict(env_prefix="IMGBED_", extra="ignore")

    app_name: str = Field("imgbed", description="Название приложения")
    version: str = Field("1.0.0", description="Версия API")

    # Публичный домен: ссылки на файлы строятся как https://<domain>/<name>
    domain: str = Field(default="", description="Публичный домен (без схемы)")

    database_url: str = Field(default="sqlite+aiosqlite:///./imgbed.sqlite3", description="URL БД (async)")

    # Авторизация админки
    enable_auth: bool = Field(default=False)
    username: str = Field(default="")
    password: str = Field(default="")
    session_secret: str = Field(default="", description="Ключ подписи cookie; по умолчанию производный от пароля")
    cookie_days: int = Field(default=7, description="Срок жизни cookie в днях")

    # Ограничения
    max_size_mb: int = Field(default=20, description="Максимальный размер файла в МБ")

    # Telegram
    tg_bot_token: str = Field(default="")
    tg_chat_id: str = Field(default="", description="Разрешённые chat_id через запятую")
    tg_storage_chat_id: str = Field(default="", description="Канал-хранилище; по умолчанию первый tg_chat_id")
    telegram_api_base: str = Field(default="https://api.telegram.org")
    webhook_secret: str = Field(default="", description="X-Telegram-Bot-Api-Secret-Token")
    register_webhook: bool = Field(default=False, description="Вызывать setWebhook при старте")

    # Объектное хранилище (S3-совместимое, например Cloudflare R2)
    s3_bucket: str = Field(default="")
    s3_endpoint_url: str = Field(default="")
    s3_access_key_id: str = Field(default="")
    s3_secret_access_key: str = Field(default="")
    s3_region: str = Field(default="auto")

    # Кэши (секунды)
    file_cache_ttl: int = Field(default=3600)
    file_cache_max_entries: int = Field(default=256, ge=1, description="Сколько файлов держать в памяти")
    menu_cache_max_entries: int = Field(default=1024, ge=1)
    menu_cache_ttl: int = Field(default=300)
    notice_cache_ttl: int = Field(default=3600)
    bing_cache_ttl: int = Field(default=21600)
    notice_url: str = Field(default="")

    cors_origins: str = Field(default="", description="Разрешённые Origin")

    @property
    def allowed_chat_ids(self) -> List[str]:
        return [c.strip() for c in (self.tg_chat_id or "").split(",") if c.strip()]

    @property
    def storage_chat_id(self) -> str:
        if self.tg_storage_chat_id:
            return self.tg_storage_chat_id
        ids = self.allowed_chat_ids
        return ids[0] if ids else ""

    @property
    def owner_chat_id(self) -> str:
        """chat_id, от имени которого идут загрузки из веб-формы."""

        ids = self.allowed_chat_ids
        return ids[0] if ids else "web"

    @property
    def max_size_bytes(self) -> int:
        return int(self.max_size_mb) * 1024 * 1024

    @property
    def object_store_configured(self) -> bool:
        return bool(self.s3_bucket)

    def file_url(self, name: str) -> str:
        return f"https://{self.domain}/{name}"


def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]


settings = get_settings()
