from typing import List, Optional
from pydantic import BaseModel

from models.chat import Message, SourceDocument


# Request Schemas
class InitRequest(BaseModel):
    fileId: Optional[str] = None
    sessionId: Optional[str] = None


class AskRequest(BaseModel):
    message: Optional[str] = None
    sessionId: Optional[str] = None
    fileId: Optional[str] = None  # Optional for context
    level: Optional[str] = None   # Explanation level


class ChatRequest(BaseModel):
    message: Optional[str] = None
    sessionId: Optional[str] = None


# Response Schemas
class InitResponse(BaseModel):
    success: bool
    message: str
    sessionId: str
    pageCount: int
    title: str
    chunksCount: int


class UploadSessionResponse(BaseModel):
    success: bool
    sessionId: str
    pageCount: int
    title: str


class AskResponse(BaseModel):
    answer: str
    sourceDocuments: List[SourceDocument] = []


class ChatResponse(BaseModel):
    answer: str


class HistoryResponse(BaseModel):
    history: List[Message]


class SessionDeleteResponse(BaseModel):
    success: bool
