"""
Chat model and prompts for answer generation
"""
from typing import Optional

from langchain_core.prompts import ChatPromptTemplate, MessagesPlaceholder
from langchain_openai import ChatOpenAI

from core.config import settings


EXPLANATION_LEVELS = (
    "Elementary School",
    "Middle Schooler",
    "High Schooler",
    "College Student",
    "Expert",
)

CONTEXTUALIZE_SYSTEM_PROMPT = (
    "Given a chat history and the latest user question which might reference "
    "context in the chat history, formulate a standalone question which can be "
    "understood without the chat history. Do NOT answer the question, just "
    "reformulate it if needed and otherwise return it as is."
)

QA_SYSTEM_PROMPT = """You are a helpful assistant answering questions about a PDF document. Use the context provided to give accurate, concise answers. If the answer isn't in the context, say so politely.

Explain your answer so that a reader at the "{level}" level understands it.

Context from document:
{context}"""


def normalize_level(level: Optional[str]) -> str:
    """Map free-form input onto a known explanation level."""
    if level:
        for known in EXPLANATION_LEVELS:
            if known.lower() == level.strip().lower():
                return known
    return settings.DEFAULT_EXPLANATION_LEVEL


def contextualize_prompt() -> ChatPromptTemplate:
    return ChatPromptTemplate.from_messages([
        ("system", CONTEXTUALIZE_SYSTEM_PROMPT),
        MessagesPlaceholder("chat_history"),
        ("human", "{input}"),
    ])


def qa_prompt() -> ChatPromptTemplate:
    return ChatPromptTemplate.from_messages([
        ("system", QA_SYSTEM_PROMPT),
        MessagesPlaceholder("chat_history"),
        ("human", "{input}"),
    ])


class LLMService:
    """Builds the chat model used by the retrieval chain."""

    def __init__(
        self,
        model: str = "gpt-4o",
        temperature: float = 0.2,
        max_tokens: Optional[int] = None,
        api_key: Optional[str] = None,
    ):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.api_key = api_key

    def get(self) -> ChatOpenAI:
        kwargs = {"model": self.model, "temperature": self.temperature}
        if self.max_tokens:
            kwargs["max_tokens"] = self.max_tokens
        if self.api_key:
            kwargs["api_key"] = self.api_key
        return ChatOpenAI(**kwargs)


llm_service = LLMService(
    settings.CHAT_MODEL,
    settings.TEMPERATURE,
    settings.MAX_TOKENS,
    settings.OPENAI_API_KEY,
)
