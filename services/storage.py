"""
Supabase Storage access for uploaded PDFs.
"""
import logging
from typing import List, Optional

import httpx

from core.config import settings
from core.errors import StorageError
from db.supabase import get_supabase
from rag_services.pdf_processor import PDF_CONTENT_TYPE

logger = logging.getLogger(__name__)


def _bucket():
    return get_supabase().storage.from_(settings.STORAGE_BUCKET)


async def upload_pdf(file_name: str, content: bytes) -> str:
    """Upload a new object (never overwrites) and return its storage path."""
    try:
        res = await _bucket().upload(
            file_name,
            content,
            {
                "content-type": PDF_CONTENT_TYPE,
                "cache-control": settings.UPLOAD_CACHE_CONTROL,
                "upsert": "false",
            },
        )
    except Exception as e:
        raise StorageError(str(e))
    return getattr(res, "path", None) or file_name


async def get_public_url(path: str) -> str:
    return await _bucket().get_public_url(path)


async def create_signed_url(path: str, expires_in: Optional[int] = None) -> str:
    expires_in = expires_in or settings.SIGNED_URL_EXPIRES_IN
    try:
        data = await _bucket().create_signed_url(path, expires_in)
    except Exception as e:
        raise StorageError(str(e))
    signed_url = (data or {}).get("signedURL") or (data or {}).get("signedUrl")
    if not signed_url:
        raise StorageError("Storage returned no signed URL")
    return signed_url


async def download_pdf(path: str) -> bytes:
    """
    Download an object, falling back to a short-lived signed URL.
    """
    try:
        content = await _bucket().download(path)
        if content:
            return content
        logger.warning("Empty download for %s, trying signed URL", path)
    except Exception as e:
        logger.warning("Direct download of %s failed: %s", path, e)

    signed_url = await create_signed_url(path, settings.DOWNLOAD_SIGNED_URL_EXPIRES_IN)
    async with httpx.AsyncClient(timeout=30) as client:
        resp = await client.get(signed_url)
    if resp.status_code != 200:
        raise StorageError(f"Failed to fetch from signed URL: {resp.status_code}")
    return resp.content


async def remove_files(paths: List[str]) -> None:
    try:
        await _bucket().remove(paths)
    except Exception as e:
        raise StorageError(str(e))
