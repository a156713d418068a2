from pydantic_settings import BaseSettings
from pydantic import Field
from typing import List, Optional


class Settings(BaseSettings):
    app_name: str = "PDFmate API"
    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")

    # Supabase
    supabase_url: str = Field(default="")
    supabase_service_role_key: str = Field(default="")
    supabase_anon_key: Optional[str] = None
    supabase_jwt_secret: Optional[str] = None
    supabase_jwt_audience: str = Field(default="authenticated")

    OPENAI_API_KEY: Optional[str] = None

    # CORS
    cors_allow_origins: List[str] = Field(default_factory=lambda: ["*"])

    # Auth cookies / redirects
    site_url: str = "http://localhost:8000"
    access_cookie_name: str = "sb-access-token"
    refresh_cookie_name: str = "sb-refresh-token"

    # Storage and tables
    STORAGE_BUCKET: str = "pdfs"
    DOCUMENTS_TABLE: str = "pdf_documents"
    MESSAGES_TABLE: str = "chat_messages"
    UPLOAD_CACHE_CONTROL: str = "3600"
    SIGNED_URL_EXPIRES_IN: int = 3600
    DOWNLOAD_SIGNED_URL_EXPIRES_IN: int = 60

    # File Upload Settings
    MAX_DOCUMENTS_PER_USER: int = 5
    MAX_FILE_SIZE_MB: int = 10
    ALLOWED_EXTENSIONS: List[str] = [".pdf"]

    # RAG Settings
    PARSE_CHUNK_SIZE: int = 1000
    CHUNK_SIZE: int = 1000
    CHUNK_OVERLAP: int = 200
    TOP_K_RESULTS: int = 4
    HYBRID_SEARCH: bool = True
    DENSE_WEIGHT: float = 0.5
    HIGHLIGHT_MIN_SCORE: int = 70

    # OpenAI Settings
    EMBEDDING_MODEL: str = "text-embedding-3-small"
    CHAT_MODEL: str = "gpt-4o"
    TEMPERATURE: float = 0.2
    MAX_TOKENS: Optional[int] = None
    DEFAULT_EXPLANATION_LEVEL: str = "High Schooler"

    model_config = {
        "env_file": ".env",
        "case_sensitive": False,
        "extra": "ignore",
    }


settings = Settings()
