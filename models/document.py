"""
Pydantic models for parsed PDFs and stored document rows
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class PDFMetadata(BaseModel):
    info: Dict[str, Any] = Field(default_factory=dict)
    pageCount: int = 0
    title: Optional[str] = None
    author: Optional[str] = None
    creationDate: Optional[datetime] = None


class PageText(BaseModel):
    pageNumber: int  # 1-based
    text: str


class ParsedPDF(BaseModel):
    text: str
    metadata: PDFMetadata
    chunks: List[str] = []
    pageTexts: Optional[List[PageText]] = None


class PDFDocument(BaseModel):
    id: Optional[str] = None
    user_id: str
    file_id: str
    file_name: str
    storage_path: str
    title: str = "Untitled Document"
    page_count: int = 0
    created_at: Optional[datetime] = None
