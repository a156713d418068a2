"""
Embedding model wiring (OpenAI through LangChain)
"""
from typing import Optional

from langchain_openai import OpenAIEmbeddings

from core.config import settings


class EmbeddingService:
    """Builds the LangChain embedding client on first use."""

    def __init__(self, model: str = "text-embedding-3-small", api_key: Optional[str] = None):
        # Delay client construction so importing modules does not fail
        # when OPENAI_API_KEY is not set.
        self._embeddings: Optional[OpenAIEmbeddings] = None
        self.model = model
        self.api_key = api_key

    def get(self) -> OpenAIEmbeddings:
        if self._embeddings is None:
            try:
                kwargs = {"model": self.model}
                if self.api_key:
                    kwargs["api_key"] = self.api_key
                self._embeddings = OpenAIEmbeddings(**kwargs)
            except Exception as e:
                raise RuntimeError(
                    "OpenAI embeddings could not be initialized. "
                    "Set the OPENAI_API_KEY environment variable. "
                    f"Original error: {e}"
                )
        return self._embeddings


embedding_service = EmbeddingService(settings.EMBEDDING_MODEL, settings.OPENAI_API_KEY)
