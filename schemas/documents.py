from datetime import datetime
from typing import List, Optional, Union
from pydantic import BaseModel


class DocumentOut(BaseModel):
    id: Union[str, int]
    user_id: str
    file_id: str
    file_name: str
    storage_path: str
    title: Optional[str] = None
    page_count: Optional[int] = None
    created_at: Optional[datetime] = None


class DocumentListResponse(BaseModel):
    documents: List[DocumentOut]


class UploadMetadata(BaseModel):
    pageCount: int
    title: str


class UploadResponse(BaseModel):
    success: bool
    fileId: str
    publicUrl: Optional[str] = None
    metadata: UploadMetadata


class DeleteResponse(BaseModel):
    success: bool
    message: str


class SignedUrlRequest(BaseModel):
    path: Optional[str] = None
    bucket: Optional[str] = None
    expiresIn: Optional[int] = None


class SignedUrlResponse(BaseModel):
    signedUrl: str
