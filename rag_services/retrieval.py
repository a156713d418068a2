"""
Chunking and hybrid retrieval using FAISS and BM25 through LangChain
"""
import logging
from typing import List, Optional

from langchain.retrievers import EnsembleRetriever
from langchain_community.retrievers import BM25Retriever
from langchain_community.vectorstores import FAISS
from langchain_core.documents import Document
from langchain_core.retrievers import BaseRetriever
from langchain_text_splitters import RecursiveCharacterTextSplitter

from core.errors import PDFProcessingError
from models.document import ParsedPDF

logger = logging.getLogger(__name__)


def split_parsed_pdf(parsed: ParsedPDF, chunk_size: int, chunk_overlap: int) -> List[Document]:
    """
    Split a parsed PDF into LangChain documents.

    Pages are split one by one so each chunk keeps its page number. When
    the parser produced no page texts its fixed-size chunks are used.
    """
    if parsed.pageTexts:
        splitter = RecursiveCharacterTextSplitter(
            chunk_size=chunk_size,
            chunk_overlap=chunk_overlap,
        )
        pages = [
            Document(page_content=page.text, metadata={"pageNumber": page.pageNumber})
            for page in parsed.pageTexts
            if page.text and page.text.strip()
        ]
        documents = splitter.split_documents(pages)
    else:
        documents = [Document(page_content=chunk, metadata={}) for chunk in parsed.chunks if chunk.strip()]

    if not documents:
        raise PDFProcessingError("No extractable text in PDF")

    for index, document in enumerate(documents):
        document.metadata["chunk"] = index
    return documents


class HybridRetriever:
    """Builds dense (FAISS) and sparse (BM25) retrieval over document chunks."""

    def __init__(self, embeddings, top_k: int = 4, hybrid: bool = True, dense_weight: float = 0.5):
        self.embeddings = embeddings
        self.top_k = top_k
        self.hybrid = hybrid
        self.dense_weight = dense_weight
        self.vector_store: Optional[FAISS] = None
        self.retriever: Optional[BaseRetriever] = None

    async def build(self, documents: List[Document]) -> BaseRetriever:
        """Embed the chunks and assemble the retriever."""
        self.vector_store = await FAISS.afrom_documents(documents, self.embeddings)
        dense = self.vector_store.as_retriever(search_kwargs={"k": self.top_k})

        if not self.hybrid:
            self.retriever = dense
        else:
            sparse = BM25Retriever.from_documents(documents, k=self.top_k)
            self.retriever = EnsembleRetriever(
                retrievers=[dense, sparse],
                weights=[self.dense_weight, 1.0 - self.dense_weight],
            )
        logger.info("Built %s retriever over %d chunks", "hybrid" if self.hybrid else "dense", len(documents))
        return self.retriever

    def reset(self) -> None:
        """Drop the index so its memory can be reclaimed."""
        if self.vector_store is not None:
            self.vector_store.index.reset()
        self.vector_store = None
        self.retriever = None
