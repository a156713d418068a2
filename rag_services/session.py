"""
Conversational retrieval over one parsed PDF.

A PDFChatSession owns the retriever, chain and chat history for a single
document. Sessions are created by create_chat_session and kept in the
in-memory SessionStore (rag_services.state).
"""
import logging
from typing import List, Optional

from langchain.chains import create_history_aware_retriever, create_retrieval_chain
from langchain.chains.combine_documents import create_stuff_documents_chain
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage

from core.config import settings
from models.chat import ChatAnswer, Message, SourceDocument
from models.document import ParsedPDF
from rag_services.embeddings import EmbeddingService, embedding_service
from rag_services.highlight import locate_source
from rag_services.llm import LLMService, contextualize_prompt, llm_service, normalize_level, qa_prompt
from rag_services.retrieval import HybridRetriever, split_parsed_pdf

logger = logging.getLogger(__name__)

NO_ANSWER = "I couldn't find an answer to that question in the document."


class PDFChatSession:
    """Retrieval chain plus chat history for a single PDF."""

    def __init__(
        self,
        embeddings: EmbeddingService = embedding_service,
        llm: LLMService = llm_service,
        chunk_size: int = settings.CHUNK_SIZE,
        chunk_overlap: int = settings.CHUNK_OVERLAP,
        top_k: int = settings.TOP_K_RESULTS,
        hybrid: bool = settings.HYBRID_SEARCH,
        dense_weight: float = settings.DENSE_WEIGHT,
    ):
        self.embeddings = embeddings
        self.llm = llm
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.retriever = HybridRetriever(None, top_k=top_k, hybrid=hybrid, dense_weight=dense_weight)
        self.chain = None
        self.parsed: Optional[ParsedPDF] = None
        self.chunks_count = 0
        self.chat_history: List[BaseMessage] = []

    async def initialize(self, parsed: ParsedPDF) -> bool:
        """Split, embed and wire the conversational retrieval chain."""
        documents = split_parsed_pdf(parsed, self.chunk_size, self.chunk_overlap)

        self.retriever.embeddings = self.embeddings.get()
        retriever = await self.retriever.build(documents)

        model = self.llm.get()
        history_aware = create_history_aware_retriever(model, retriever, contextualize_prompt())
        qa_chain = create_stuff_documents_chain(model, qa_prompt())
        self.chain = create_retrieval_chain(history_aware, qa_chain)

        self.parsed = parsed
        self.chunks_count = len(documents)
        self.chat_history = []
        return True

    @property
    def is_initialized(self) -> bool:
        return self.chain is not None and self.retriever.retriever is not None

    async def ask(self, question: str, level: Optional[str] = None) -> ChatAnswer:
        """Answer a question about the PDF and record the exchange."""
        if not self.is_initialized:
            raise RuntimeError("PDF Chat Service not initialized. Call initialize() first.")

        result = await self.chain.ainvoke({
            "input": question,
            "chat_history": list(self.chat_history),
            "level": normalize_level(level),
        })
        answer = (result.get("answer") or "").strip() or NO_ANSWER

        self.chat_history.append(HumanMessage(content=question))
        self.chat_history.append(AIMessage(content=answer))

        return ChatAnswer(
            answer=answer,
            sourceDocuments=[self._source(doc) for doc in result.get("context", [])],
        )

    def _source(self, doc) -> SourceDocument:
        page_texts = self.parsed.pageTexts if self.parsed else None
        highlight = locate_source(
            doc.page_content,
            page_texts,
            preferred_page=doc.metadata.get("pageNumber"),
        )
        return SourceDocument(pageContent=doc.page_content, metadata=dict(doc.metadata), highlight=highlight)

    def get_chat_history(self) -> List[Message]:
        return [
            Message(role="user" if msg.type == "human" else "assistant", content=msg.content)
            for msg in self.chat_history
        ]

    def clear_chat_history(self) -> None:
        self.chat_history = []

    def close(self) -> None:
        self.retriever.reset()
        self.chain = None
        self.chat_history = []


async def create_chat_session(parsed: ParsedPDF) -> PDFChatSession:
    session = PDFChatSession()
    await session.initialize(parsed)
    logger.info("Chat session ready: %d chunks", session.chunks_count)
    return session
