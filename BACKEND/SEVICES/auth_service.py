"""Руководство к файлу (BACKEND/SEVICES/auth_service.py)
Назначение:
- Вход в админку по логину/паролю из настроек и подписанная cookie сессии.
- Токен: itsdangerous.URLSafeTimedSerializer над {"username": ...},
  срок жизни ограничен cookie_days.
- Не зависит от FastAPI, работает только с Settings.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from dataclasses import dataclass
from typing import Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from BACKEND.SEVICES.errors import ConfigurationError


logger = logging.getLogger("imgbed.fastapi.auth")

COOKIE_NAME = "auth_token"
_SALT = "imgbed-session"


@dataclass
class AuthConfig:
    enabled: bool
    username: str
    password: str
    secret: str
    max_age: int

    @classmethod
    def from_settings(cls, settings) -> "AuthConfig":
        secret = settings.session_secret
        if not secret and settings.password:
            # Ключ по умолчанию выводится из учётных данных: смена пароля отзывает сессии
            secret = hashlib.sha256(f"{settings.username}:{settings.password}".encode("utf-8")).hexdigest()
        return cls(
            enabled=bool(settings.enable_auth),
            username=settings.username,
            password=settings.password,
            secret=secret,
            max_age=int(settings.cookie_days) * 24 * 60 * 60,
        )


class AuthService:
    def __init__(self, cfg: AuthConfig) -> None:
        self.cfg = cfg
        self._serializer = URLSafeTimedSerializer(cfg.secret or "imgbed", salt=_SALT)

    @property
    def enabled(self) -> bool:
        return self.cfg.enabled

    def ensure_configured(self) -> None:
        """Авторизация включена, но логин/пароль не заданы - это ошибка конфигурации."""

        if self.cfg.enabled and (not self.cfg.username or not self.cfg.password):
            raise ConfigurationError("Авторизация включена, но не заданы IMGBED_USERNAME / IMGBED_PASSWORD")

    def check_credentials(self, username: str, password: str) -> bool:
        self.ensure_configured()
        user_ok = hmac.compare_digest((username or "").encode("utf-8"), self.cfg.username.encode("utf-8"))
        pass_ok = hmac.compare_digest((password or "").encode("utf-8"), self.cfg.password.encode("utf-8"))
        return user_ok and pass_ok

    def issue_token(self, username: str) -> str:
        return self._serializer.dumps({"username": username})

    def verify_token(self, token: Optional[str]) -> Optional[str]:
        """Вернуть имя пользователя из валидного токена, иначе None."""

        if not token:
            return None
        try:
            data = self._serializer.loads(token, max_age=self.cfg.max_age)
        except SignatureExpired:
            logger.info("Session token expired")
            return None
        except BadSignature:
            logger.warning("Session token with bad signature")
            return None
        username = data.get("username") if isinstance(data, dict) else None
        if username != self.cfg.username:
            return None
        return username

    def is_authenticated(self, token: Optional[str]) -> bool:
        if not self.cfg.enabled:
            return True
        return self.verify_token(token) is not None
