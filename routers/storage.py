import logging

from fastapi import APIRouter, Depends, HTTPException

from core.config import settings
from core.errors import DocumentStoreError, StorageError
from dependencies.auth import get_current_user
from schemas.documents import SignedUrlRequest, SignedUrlResponse
from services import documents as document_service
from services import storage as storage_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/get-signed-url", response_model=SignedUrlResponse)
async def get_signed_url(payload: SignedUrlRequest, current_user: dict = Depends(get_current_user)):
    """
    Issue a time-limited download link for one of the caller's PDFs.
    """
    if not payload.path:
        raise HTTPException(status_code=400, detail="Path is required")

    if payload.bucket and payload.bucket != settings.STORAGE_BUCKET:
        raise HTTPException(status_code=400, detail="Invalid bucket")

    try:
        owned = await document_service.storage_path_owned_by(payload.path, current_user["id"])
    except DocumentStoreError as e:
        logger.error("Error checking ownership of %s: %s", payload.path, e)
        raise HTTPException(status_code=500, detail="Internal server error")
    if not owned:
        raise HTTPException(status_code=404, detail="Document not found")

    try:
        signed_url = await storage_service.create_signed_url(
            payload.path,
            _expires_in(payload.expiresIn),
        )
    except StorageError as e:
        logger.error("Error creating signed URL: %s", e)
        raise HTTPException(status_code=500, detail="Failed to create signed URL")

    return {"signedUrl": signed_url}


def _expires_in(requested) -> int:
    if not requested or requested <= 0:
        return settings.SIGNED_URL_EXPIRES_IN
    return min(requested, settings.SIGNED_URL_EXPIRES_IN)
