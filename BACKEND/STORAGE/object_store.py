# Руководство к файлу (STORAGE/object_store.py)
# Назначение:
# - Адаптер объектного хранилища (S3-совместимый бакет, например Cloudflare R2)
#   поверх boto3.
# Важно:
# - boto3 синхронный: каждый вызов уходит в executor текущего цикла.
# - Ключ объекта = имя файла, Content-Type хранится в метаданных объекта.
# - get(): отсутствующий ключ -> None; delete(): ошибки логируются, не пробрасываются.

from __future__ import annotations

import asyncio
import functools
import logging
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .base import StorageType, StoredObject, StoredRef
from BACKEND.DATABASE.models import NO_MESSAGE_REF
from BACKEND.SEVICES.errors import ConfigurationError, UpstreamError


logger = logging.getLogger("imgbed.storage")

_MISSING_CODES = {"NoSuchKey", "404", "NotFound"}


def build_s3_client(settings) -> Any:
    """Создать boto3-клиент S3 из настроек приложения."""

    if not settings.s3_bucket:
        raise ConfigurationError("Объектное хранилище не настроено (IMGBED_S3_BUCKET)")
    return boto3.client(
        "s3",
        endpoint_url=settings.s3_endpoint_url or None,
        aws_access_key_id=settings.s3_access_key_id or None,
        aws_secret_access_key=settings.s3_secret_access_key or None,
        region_name=settings.s3_region or None,
    )


class ObjectStoreBackend:
    storage_type = StorageType.OBJECT_STORE

    def __init__(self, client: Any, bucket: str) -> None:
        self.client = client
        self.bucket = bucket

    @classmethod
    def from_settings(cls, settings) -> "ObjectStoreBackend":
        return cls(build_s3_client(settings), settings.s3_bucket)

    async def _run(self, fn, *args, **kwargs):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(fn, *args, **kwargs))

    async def put(self, data: bytes, name: str, mime_type: str) -> StoredRef:
        try:
            await self._run(
                self.client.put_object,
                Bucket=self.bucket,
                Key=name,
                Body=data,
                ContentType=mime_type,
            )
        except (ClientError, BotoCoreError) as exc:
            logger.error("put_object %s failed: %s", name, exc)
            raise UpstreamError(f"Ошибка записи в объектное хранилище: {exc}") from exc
        logger.info("Stored %s in bucket %s (%s bytes)", name, self.bucket, len(data))
        return StoredRef(backend_ref=name, message_ref=NO_MESSAGE_REF, storage_type=self.storage_type)

    async def get(self, ref: StoredRef) -> Optional[StoredObject]:
        try:
            obj = await self._run(self.client.get_object, Bucket=self.bucket, Key=ref.backend_ref)
            body = await self._run(obj["Body"].read)
        except ClientError as exc:
            code = str(exc.response.get("Error", {}).get("Code", ""))
            if code in _MISSING_CODES:
                return None
            logger.error("get_object %s failed: %s", ref.backend_ref, exc)
            raise UpstreamError(f"Ошибка чтения из объектного хранилища: {exc}") from exc
        except BotoCoreError as exc:
            logger.error("get_object %s failed: %s", ref.backend_ref, exc)
            raise UpstreamError(f"Ошибка чтения из объектного хранилища: {exc}") from exc
        return StoredObject(data=body, content_type=obj.get("ContentType"))

    async def delete(self, ref: StoredRef) -> bool:
        try:
            await self._run(self.client.delete_object, Bucket=self.bucket, Key=ref.backend_ref)
        except (ClientError, BotoCoreError) as exc:
            logger.warning("delete_object %s failed: %s", ref.backend_ref, exc)
            return False
        logger.info("Deleted %s from bucket %s", ref.backend_ref, self.bucket)
        return True
