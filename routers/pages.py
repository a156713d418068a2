from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from core.config import settings
from dependencies.auth import get_optional_user
from rag_services.llm import EXPLANATION_LEVELS

router = APIRouter()

template_dir = Path(__file__).parent.parent / "templates" / "pages"
templates = Jinja2Templates(directory=str(template_dir))


def _context(user: Optional[dict], **extra) -> dict:
    context = {
        "app_name": settings.app_name,
        "user": user,
        "max_documents": settings.MAX_DOCUMENTS_PER_USER,
        "max_file_size_mb": settings.MAX_FILE_SIZE_MB,
    }
    context.update(extra)
    return context


@router.get("/", response_class=HTMLResponse)
async def home(request: Request, error: Optional[str] = None, user: Optional[dict] = Depends(get_optional_user)):
    return templates.TemplateResponse(request, "index.html", _context(user, error=error))


@router.get("/login", response_class=HTMLResponse)
async def login_page(request: Request):
    return templates.TemplateResponse(request, "login.html", _context(None))


@router.get("/upload", response_class=HTMLResponse)
async def upload_page(request: Request, user: Optional[dict] = Depends(get_optional_user)):
    return templates.TemplateResponse(request, "upload.html", _context(user))


@router.get("/chat/{file_id:path}", response_class=HTMLResponse)
async def chat_page(request: Request, file_id: str, user: Optional[dict] = Depends(get_optional_user)):
    return templates.TemplateResponse(
        request,
        "chat.html",
        _context(
            user,
            file_id=file_id,
            file_name=file_id.split("/")[-1],
            levels=EXPLANATION_LEVELS,
            default_level=settings.DEFAULT_EXPLANATION_LEVEL,
        ),
    )
