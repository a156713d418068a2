from typing import Awaitable, Callable

from models.document import ParsedPDF
from rag_services.session import create_chat_session


SessionFactory = Callable[[ParsedPDF], Awaitable[object]]


def get_session_factory() -> SessionFactory:
    """Builds chat sessions; overridden in tests to avoid OpenAI calls."""
    return create_chat_session
