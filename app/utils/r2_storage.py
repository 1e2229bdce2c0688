"""
Cloudflare R2 Storage Utility
Stores KYC documents in Cloudflare R2 using the AWS S3-compatible API
"""
import logging
import uuid
from typing import Dict, Optional
import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import settings
from app.core.exceptions import StorageError

logger = logging.getLogger(__name__)

_s3_client = None


def get_s3_client():
    """S3 client configured for Cloudflare R2, created on first use"""
    global _s3_client
    if _s3_client is None:
        _s3_client = boto3.client(
            's3',
            endpoint_url=f'https://{settings.R2_ACCOUNT_ID}.r2.cloudflarestorage.com',
            aws_access_key_id=settings.R2_ACCESS_KEY_ID,
            aws_secret_access_key=settings.R2_SECRET_ACCESS_KEY,
            config=Config(signature_version='s3v4'),
            region_name='auto'
        )
    return _s3_client


def upload_file_directly(
    file_content: bytes,
    file_extension: str,
    content_type: str,
    folder: Optional[str] = None
) -> Dict[str, str]:
    """
    Upload file directly to R2 (server-side upload)

    Args:
        file_content: Binary file content
        file_extension: File extension
        content_type: MIME type
        folder: Folder path in the bucket, KYC_FOLDER by default

    Returns:
        Dictionary with public_url and key
    """
    folder = folder or settings.KYC_FOLDER
    key = f"{folder}/{uuid.uuid4()}.{file_extension}"

    try:
        get_s3_client().put_object(
            Bucket=settings.R2_BUCKET_NAME,
            Key=key,
            Body=file_content,
            ContentType=content_type
        )
    except (ClientError, BotoCoreError) as e:
        logger.error(f"Failed to upload {key}: {e}", exc_info=True)
        raise StorageError("Failed to upload document")

    return {
        "public_url": f"{settings.R2_PUBLIC_HOST}/{key}",
        "key": key
    }


def delete_file(key: str) -> bool:
    """
    Delete file from R2

    Args:
        key: File key/path in the bucket

    Returns:
        True if successful, False otherwise
    """
    try:
        get_s3_client().delete_object(
            Bucket=settings.R2_BUCKET_NAME,
            Key=key
        )
        return True
    except (ClientError, BotoCoreError) as e:
        logger.warning(f"Failed to delete file {key}: {e}")
        return False
