from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from core.config import settings
from core.logging import setup_logging
from core.middleware import RouteGuardMiddleware


def create_app() -> FastAPI:
    setup_logging()

    application = FastAPI(
        title=settings.app_name,
        description="Upload PDFs and chat with them through retrieval-augmented generation",
        version="1.0.0",
    )

    application.add_middleware(RouteGuardMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Supabase lifecycle
    from db.supabase import connect_to_supabase, close_supabase
    from rag_services.state import session_store

    @application.on_event("startup")
    async def startup_event():
        await connect_to_supabase()

    @application.on_event("shutdown")
    async def shutdown_event():
        session_store.clear()
        await close_supabase()

    # Routers are imported lazily to avoid circular deps during app creation
    from routers.auth import router as auth_router
    from routers.chat import router as chat_router
    from routers.pages import router as pages_router
    from routers.pdfs import router as pdfs_router
    from routers.storage import router as storage_router

    application.include_router(auth_router, prefix="/auth", tags=["auth"])
    application.include_router(pdfs_router, prefix="/api", tags=["pdfs"])
    application.include_router(storage_router, prefix="/api/storage", tags=["storage"])
    application.include_router(chat_router, prefix="/api/chat", tags=["chat"])
    application.include_router(pages_router, tags=["pages"], include_in_schema=False)

    application.mount(
        "/static",
        StaticFiles(directory=str(Path(__file__).parent / "static")),
        name="static",
    )

    @application.get("/health", tags=["health"])
    async def health():
        return {"status": "ok", "sessions": len(session_store)}

    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="127.0.0.1", port=8000, reload=True)
