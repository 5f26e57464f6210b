"""File storage for invoice PDFs and document templates (local disk or S3)."""

import logging
import os

import boto3
from botocore.client import BaseClient
from botocore.exceptions import BotoCoreError, ClientError

from backoffice.core.config import settings
from backoffice.core.exceptions import StorageError

logger = logging.getLogger(__name__)

LOCAL_DOWNLOAD_PREFIX = "/files"


# =============================================================================
# Storage Backend
# =============================================================================

def get_s3_client() -> BaseClient:
    """Return a configured S3 client."""
    return boto3.client(
        "s3",
        region_name=settings.S3_REGION or None,
        aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
        aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
    )


def _use_s3() -> bool:
    return settings.STORAGE_BACKEND == "s3"


def _local_path(storage_key: str) -> str:
    """Absolute path for a key; keys may not escape the storage root."""
    root = os.path.abspath(settings.LOCAL_STORAGE_PATH)
    path = os.path.abspath(os.path.join(root, storage_key))
    if os.path.commonpath([root, path]) != root:
        raise StorageError("不正なファイルパスです")
    return path


# =============================================================================
# File Operations
# =============================================================================

def store_file(storage_key: str, content: bytes, content_type: str) -> None:
    """Store bytes under storage_key on the configured backend."""
    try:
        if _use_s3():
            get_s3_client().put_object(
                Bucket=settings.S3_BUCKET,
                Key=storage_key,
                Body=content,
                ContentType=content_type,
            )
        else:
            path = _local_path(storage_key)
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, "wb") as f:
                f.write(content)
    except (BotoCoreError, ClientError, OSError):
        logger.exception("Failed to store file", extra={"storage_key": storage_key})
        raise StorageError()


def read_file(storage_key: str) -> bytes:
    try:
        if _use_s3():
            response = get_s3_client().get_object(Bucket=settings.S3_BUCKET, Key=storage_key)
            return response["Body"].read()
        with open(_local_path(storage_key), "rb") as f:
            return f.read()
    except (BotoCoreError, ClientError, OSError):
        logger.exception("Failed to read file", extra={"storage_key": storage_key})
        raise StorageError("ファイルの読み込みに失敗しました")


def delete_file(storage_key: str) -> None:
    """Delete a stored file. A missing local file is not an error."""
    try:
        if _use_s3():
            get_s3_client().delete_object(Bucket=settings.S3_BUCKET, Key=storage_key)
        else:
            path = _local_path(storage_key)
            if os.path.exists(path):
                os.remove(path)
    except (BotoCoreError, ClientError, OSError):
        logger.exception("Failed to delete file", extra={"storage_key": storage_key})
        raise StorageError("ファイルの削除に失敗しました")


def generate_signed_url(storage_key: str, download_name: str | None = None) -> str:
    """Time-limited download URL. Local storage is served by the files router."""
    if not _use_s3():
        return f"{LOCAL_DOWNLOAD_PREFIX}/{storage_key}"

    params = {"Bucket": settings.S3_BUCKET, "Key": storage_key}
    if download_name:
        params["ResponseContentDisposition"] = f'attachment; filename="{download_name}"'
    try:
        return get_s3_client().generate_presigned_url(
            "get_object",
            Params=params,
            ExpiresIn=settings.SIGNED_URL_EXPIRES_SECONDS,
        )
    except (BotoCoreError, ClientError):
        logger.exception("Failed to sign URL", extra={"storage_key": storage_key})
        raise StorageError("ダウンロードURLの生成に失敗しました")
