from typing import Any, Dict, List, Optional

from core.config import settings
from core.errors import DocumentStoreError
from db.supabase import get_supabase


def _documents():
    return get_supabase().table(settings.DOCUMENTS_TABLE)


def _messages():
    return get_supabase().table(settings.MESSAGES_TABLE)


async def count_user_documents(user_id: str) -> int:
    try:
        res = await _documents().select("id", count="exact").eq("user_id", user_id).execute()
    except Exception as e:
        raise DocumentStoreError(str(e))
    if res.count is not None:
        return res.count
    return len(res.data or [])


async def list_user_documents(user_id: str) -> List[Dict[str, Any]]:
    try:
        res = await (
            _documents()
            .select("*")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .execute()
        )
    except Exception as e:
        raise DocumentStoreError(str(e))
    return res.data or []


async def get_user_document(document_id: str, user_id: str) -> Optional[Dict[str, Any]]:
    try:
        res = await (
            _documents()
            .select("*")
            .eq("id", document_id)
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
    except Exception as e:
        raise DocumentStoreError(str(e))
    return res.data[0] if res.data else None


async def get_document_by_file_id(file_id: str, user_id: str) -> Optional[Dict[str, Any]]:
    try:
        res = await (
            _documents()
            .select("*")
            .eq("file_id", file_id)
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
    except Exception as e:
        raise DocumentStoreError(str(e))
    return res.data[0] if res.data else None


async def storage_path_owned_by(path: str, user_id: str) -> bool:
    try:
        res = await (
            _documents()
            .select("id")
            .eq("storage_path", path)
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
    except Exception as e:
        raise DocumentStoreError(str(e))
    return bool(res.data)


async def insert_document(record: Dict[str, Any]) -> Dict[str, Any]:
    try:
        res = await _documents().insert(record).execute()
    except Exception as e:
        raise DocumentStoreError(str(e))
    return res.data[0] if res.data else record


async def delete_document(document_id: str, user_id: str) -> None:
    try:
        await _documents().delete().eq("id", document_id).eq("user_id", user_id).execute()
    except Exception as e:
        raise DocumentStoreError(str(e))


async def delete_document_messages(document_id: str) -> None:
    try:
        await _messages().delete().eq("document_id", document_id).execute()
    except Exception as e:
        raise DocumentStoreError(str(e))


async def save_chat_messages(rows: List[Dict[str, Any]]) -> None:
    if not rows:
        return
    try:
        await _messages().insert(rows).execute()
    except Exception as e:
        raise DocumentStoreError(str(e))
