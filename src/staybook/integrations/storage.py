"""
staybook.integrations.storage

S3-compatible object storage (AWS S3, Cloudflare R2, MinIO) for hotel media, profile
images, message attachments and service proof videos.
"""

from __future__ import annotations

import re
import uuid

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError
from starlette.concurrency import run_in_threadpool

from staybook.settings import Settings

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]")


class StorageError(Exception):
    pass


def build_key(prefix: str, filename: str) -> str:
    safe = _UNSAFE.sub("_", filename)[:100] or "file"
    return f"{prefix.strip('/')}/{uuid.uuid4().hex}_{safe}"


class S3Storage:
    def __init__(self, settings: Settings) -> None:
        self._bucket = settings.storage_bucket
        self._public_base = (settings.storage_public_base_url or "").rstrip("/")
        self._client = boto3.client(
            "s3",
            endpoint_url=settings.storage_endpoint_url,
            aws_access_key_id=settings.storage_access_key_id or None,
            aws_secret_access_key=settings.storage_secret_access_key or None,
            config=Config(signature_version="s3v4"),
            region_name=settings.storage_region,
        )

    def public_url(self, key: str) -> str:
        if self._public_base:
            return f"{self._public_base}/{key}"
        return f"https://{self._bucket}.s3.amazonaws.com/{key}"

    async def put(self, *, prefix: str, filename: str, body: bytes, content_type: str) -> str:
        """
        Upload bytes under a collision-free key; returns the public URL.
        """

        key = build_key(prefix, filename)
        try:
            await run_in_threadpool(
                self._client.put_object,
                Bucket=self._bucket,
                Key=key,
                Body=body,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(str(e)) from e
        return self.public_url(key)
