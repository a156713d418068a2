import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.concurrency import run_in_threadpool

from core.config import settings
from core.errors import DocumentStoreError, PDFProcessingError, StorageError
from dependencies.auth import get_current_user
from models.document import PDFDocument
from rag_services.pdf_processor import PDFProcessor
from rag_services.state import session_store
from schemas.documents import DeleteResponse, DocumentListResponse, UploadResponse
from services import documents as document_service
from services import storage as storage_service

logger = logging.getLogger(__name__)

router = APIRouter()

pdf_processor = PDFProcessor()


@router.post("/upload", response_model=UploadResponse)
async def upload_pdf(
    file: Optional[UploadFile] = File(None),
    current_user: dict = Depends(get_current_user),
):
    """
    Store a PDF in Supabase Storage and record its metadata.

    Each user may keep at most MAX_DOCUMENTS_PER_USER documents.
    """
    user_id = current_user["id"]

    try:
        existing = await document_service.count_user_documents(user_id)
    except DocumentStoreError as e:
        logger.error("Error checking PDF count: %s", e)
        raise HTTPException(status_code=500, detail="Failed to check document limit")

    if existing >= settings.MAX_DOCUMENTS_PER_USER:
        raise HTTPException(
            status_code=400,
            detail=f"Maximum of {settings.MAX_DOCUMENTS_PER_USER} PDFs allowed. "
                   "Please delete one to upload a new one.",
        )

    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail="Missing required file")

    content = await file.read()
    if not pdf_processor.validate_pdf_file(file.filename, file.content_type, len(content)):
        raise HTTPException(
            status_code=400,
            detail=f"Invalid file. Only PDF files up to {settings.MAX_FILE_SIZE_MB}MB are allowed",
        )

    file_id = f"{uuid.uuid4()}-{file.filename}"

    try:
        storage_path = await storage_service.upload_pdf(file_id, content)
    except StorageError as e:
        logger.error("Error uploading to Supabase: %s", e)
        raise HTTPException(status_code=500, detail="Failed to upload PDF to storage")

    try:
        parsed = await run_in_threadpool(pdf_processor.parse, content)
    except PDFProcessingError as e:
        await _discard_upload(file_id)
        raise HTTPException(status_code=400, detail=str(e))

    record = PDFDocument(
        user_id=user_id,
        file_id=file_id,
        file_name=file.filename,
        storage_path=storage_path,
        title=parsed.metadata.title or "Untitled Document",
        page_count=parsed.metadata.pageCount,
    )

    try:
        await document_service.insert_document(record.model_dump(exclude_none=True))
    except DocumentStoreError as e:
        logger.error("Error inserting PDF record: %s", e)
        await _discard_upload(file_id)
        raise HTTPException(status_code=500, detail="Failed to save PDF metadata")

    public_url = await storage_service.get_public_url(file_id)
    logger.info("User %s uploaded %s (%d pages)", user_id, file_id, record.page_count)

    return UploadResponse(
        success=True,
        fileId=file_id,
        publicUrl=public_url,
        metadata={"pageCount": record.page_count, "title": record.title},
    )


async def _discard_upload(file_id: str) -> None:
    try:
        await storage_service.remove_files([file_id])
    except StorageError as e:
        logger.error("Error removing orphaned upload %s: %s", file_id, e)


@router.get("/pdfs", response_model=DocumentListResponse)
async def list_pdfs(current_user: dict = Depends(get_current_user)):
    try:
        documents = await document_service.list_user_documents(current_user["id"])
    except DocumentStoreError as e:
        logger.error("Error fetching PDF documents: %s", e)
        raise HTTPException(status_code=500, detail="Failed to retrieve documents")
    return {"documents": documents}


@router.delete("/pdfs", response_model=DeleteResponse)
@router.delete("/pdfs/delete", response_model=DeleteResponse)
async def delete_pdf(
    document_id: Optional[str] = Query(None, alias="id"),
    current_user: dict = Depends(get_current_user),
):
    """
    Delete a document: its chat messages, its row, then its stored file.
    """
    if not document_id:
        raise HTTPException(status_code=400, detail="Document ID is required")

    user_id = current_user["id"]

    try:
        document = await document_service.get_user_document(document_id, user_id)
    except DocumentStoreError as e:
        logger.error("Error fetching document %s: %s", document_id, e)
        document = None

    if not document:
        raise HTTPException(
            status_code=404,
            detail="Document not found or you do not have permission to delete it",
        )

    try:
        await document_service.delete_document_messages(document_id)
    except DocumentStoreError as e:
        logger.error("Error deleting chat history: %s", e)

    try:
        await document_service.delete_document(document_id, user_id)
    except DocumentStoreError as e:
        logger.error("Error deleting document record: %s", e)
        raise HTTPException(status_code=500, detail="Failed to delete document")

    try:
        await storage_service.remove_files([document["file_id"]])
    except StorageError as e:
        # The row is already gone
        logger.error("Error deleting file from storage: %s", e)

    dropped = session_store.remove_for_file(document["file_id"])
    if dropped:
        logger.info("Closed %d chat session(s) for deleted file %s", dropped, document["file_id"])

    return DeleteResponse(
        success=True,
        message="Document and associated data deleted successfully",
    )
