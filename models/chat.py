from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from rag_services.highlight import Highlight


class Message(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str


class SourceDocument(BaseModel):
    pageContent: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    highlight: Optional[Highlight] = None


class ChatAnswer(BaseModel):
    answer: str
    sourceDocuments: List[SourceDocument] = []
