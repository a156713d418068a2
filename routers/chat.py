import logging
import traceback
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.concurrency import run_in_threadpool

from core.errors import (
    DocumentStoreError,
    PDFProcessingError,
    SessionConflictError,
    SessionNotFoundError,
    StorageError,
)
from dependencies.auth import get_current_user
from dependencies.chat import SessionFactory, get_session_factory
from rag_services.pdf_processor import PDFProcessor
from rag_services.state import session_store
from schemas.chat import (
    AskRequest,
    AskResponse,
    ChatRequest,
    ChatResponse,
    HistoryResponse,
    InitRequest,
    InitResponse,
    SessionDeleteResponse,
    UploadSessionResponse,
)
from services import documents as document_service
from services import storage as storage_service

logger = logging.getLogger(__name__)

router = APIRouter()

pdf_processor = PDFProcessor()


@router.post("/init", response_model=InitResponse)
async def init_chat(
    payload: InitRequest,
    current_user: dict = Depends(get_current_user),
    session_factory: SessionFactory = Depends(get_session_factory),
):
    """
    Start a chat session for a stored PDF.

    Request body:
    ```json
    {
        "fileId": "3f0c...-paper.pdf",
        "sessionId": "optional, generated when omitted"
    }
    ```
    """
    if not payload.fileId:
        raise HTTPException(status_code=400, detail="Missing required fields: fileId and sessionId")

    user_id = current_user["id"]
    session_id = payload.sessionId or str(uuid.uuid4())
    logger.info("Initializing session %s for file %s", session_id, payload.fileId)
    _ensure_available(session_id, user_id)

    try:
        document = await document_service.get_document_by_file_id(payload.fileId, user_id)
    except DocumentStoreError as e:
        logger.error("Error looking up document %s: %s", payload.fileId, e)
        raise HTTPException(status_code=500, detail="Failed to look up document")
    if not document:
        raise HTTPException(status_code=404, detail="Document not found")

    try:
        pdf_bytes = await storage_service.download_pdf(document.get("storage_path") or payload.fileId)
    except StorageError as e:
        logger.error("Error downloading PDF from Supabase: %s", e)
        raise HTTPException(
            status_code=404,
            detail="Could not download PDF from storage or create signed URL",
        )

    try:
        parsed = await run_in_threadpool(pdf_processor.parse, pdf_bytes)
        session = await session_factory(parsed)
    except Exception as e:
        logger.error("Error initializing chat session: %s\n%s", e, traceback.format_exc())
        raise HTTPException(status_code=500, detail=f"Failed to initialize chat session: {e}")

    _store_session(
        session_id,
        session,
        owner_id=user_id,
        file_id=payload.fileId,
        document_id=str(document["id"]) if document.get("id") is not None else None,
    )

    return InitResponse(
        success=True,
        message="Chat session initialized successfully",
        sessionId=session_id,
        pageCount=parsed.metadata.pageCount,
        title=parsed.metadata.title or document.get("title") or "Untitled Document",
        chunksCount=getattr(session, "chunks_count", len(parsed.chunks)),
    )


def _ensure_available(session_id: str, user_id: str) -> None:
    try:
        session_store.ensure_available(session_id, user_id)
    except SessionConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))


def _store_session(session_id: str, session, **entry) -> None:
    try:
        session_store.add(session_id, session, **entry)
    except SessionConflictError as e:
        # Another user claimed the id while the pipeline was building
        close = getattr(session, "close", None)
        if close is not None:
            close()
        raise HTTPException(status_code=409, detail=str(e))


@router.post("/ask", response_model=AskResponse)
async def ask_question(payload: AskRequest, current_user: dict = Depends(get_current_user)):
    """
    Ask a question in an initialized session.

    `level` tunes how the answer is explained (e.g. "High Schooler").
    Returns the answer plus the retrieved source chunks with page highlights.
    """
    if not payload.message or not payload.sessionId:
        raise HTTPException(status_code=400, detail="Missing required fields: message and sessionId")

    user_id = current_user["id"]
    try:
        entry = session_store.entry(payload.sessionId, user_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    try:
        result = await entry.session.ask(payload.message, payload.level)
    except Exception as e:
        logger.error("Error processing message: %s\n%s", e, traceback.format_exc())
        raise HTTPException(status_code=500, detail="Failed to process your question")

    if entry.document_id:
        await _save_turn(entry.document_id, user_id, payload.sessionId, payload.message, result.answer)

    return result


async def _save_turn(document_id: str, user_id: str, session_id: str, question: str, answer: str) -> None:
    rows = [
        {"document_id": document_id, "user_id": user_id, "session_id": session_id, "role": "user", "content": question},
        {"document_id": document_id, "user_id": user_id, "session_id": session_id, "role": "assistant", "content": answer},
    ]
    try:
        await document_service.save_chat_messages(rows)
    except DocumentStoreError as e:
        logger.warning("Could not persist chat messages for document %s: %s", document_id, e)


@router.get("/history", response_model=HistoryResponse)
async def get_history(
    session_id: Optional[str] = Query(None, alias="sessionId"),
    current_user: dict = Depends(get_current_user),
):
    if not session_id:
        raise HTTPException(status_code=400, detail="Missing sessionId parameter")
    return {"history": session_store.history(session_id, current_user["id"])}


@router.post("", response_model=ChatResponse)
async def chat(payload: ChatRequest, current_user: dict = Depends(get_current_user)):
    if not payload.message or not payload.sessionId:
        raise HTTPException(status_code=400, detail="Missing required fields: message and sessionId")

    try:
        session = session_store.get(payload.sessionId, current_user["id"])
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    try:
        result = await session.ask(payload.message)
    except Exception as e:
        logger.error("Error in chat API: %s", e)
        raise HTTPException(status_code=500, detail="Failed to process chat message")
    return {"answer": result.answer}


@router.put("", response_model=UploadSessionResponse)
async def upload_and_start(
    file: Optional[UploadFile] = File(None),
    session_id: Optional[str] = Form(None, alias="sessionId"),
    current_user: dict = Depends(get_current_user),
    session_factory: SessionFactory = Depends(get_session_factory),
):
    """
    Parse an uploaded PDF directly and start a session that is not backed
    by storage.
    """
    if file is None or not session_id:
        raise HTTPException(status_code=400, detail="Missing required fields: file and sessionId")
    _ensure_available(session_id, current_user["id"])

    content = await file.read()
    if not pdf_processor.validate_pdf_file(file.filename, file.content_type, len(content)):
        raise HTTPException(status_code=400, detail="Invalid file. Only PDF files are allowed")

    try:
        parsed = await run_in_threadpool(pdf_processor.parse, content)
    except PDFProcessingError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        session = await session_factory(parsed)
    except Exception as e:
        logger.error("Error in PDF upload API: %s\n%s", e, traceback.format_exc())
        raise HTTPException(status_code=500, detail="Failed to process PDF file")

    _store_session(session_id, session, owner_id=current_user["id"])

    return UploadSessionResponse(
        success=True,
        sessionId=session_id,
        pageCount=parsed.metadata.pageCount,
        title=parsed.metadata.title or "Untitled Document",
    )


@router.delete("", response_model=SessionDeleteResponse)
async def delete_session(
    session_id: Optional[str] = Query(None, alias="sessionId"),
    current_user: dict = Depends(get_current_user),
):
    if not session_id:
        raise HTTPException(status_code=400, detail="Missing sessionId parameter")
    session_store.remove(session_id, current_user["id"])
    return {"success": True}
