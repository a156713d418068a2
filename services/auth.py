import logging
from typing import Any, Dict, Optional

from core.errors import AuthError
from db.supabase import create_auth_client, get_supabase

logger = logging.getLogger(__name__)


def _session_to_tokens(session) -> Dict[str, Any]:
    return {
        "access_token": session.access_token,
        "refresh_token": session.refresh_token,
        "token_type": "bearer",
        "expires_in": session.expires_in,
        "user": _user_to_dict(session.user) if session.user else None,
    }


def _user_to_dict(user) -> Dict[str, Any]:
    return {"id": str(user.id), "email": user.email}


async def sign_up(email: str, password: str) -> Dict[str, Any]:
    auth_client = await create_auth_client()
    try:
        res = await auth_client.auth.sign_up({"email": email, "password": password})
    except Exception as e:
        raise AuthError(str(e))
    if not res.user:
        raise AuthError("Sign up failed")
    return _user_to_dict(res.user)


async def sign_in(email: str, password: str) -> Dict[str, Any]:
    auth_client = await create_auth_client()
    try:
        res = await auth_client.auth.sign_in_with_password({"email": email, "password": password})
    except Exception as e:
        raise AuthError(str(e))
    if not res.session:
        raise AuthError("Invalid credentials")
    return _session_to_tokens(res.session)


async def refresh(refresh_token: str) -> Dict[str, Any]:
    auth_client = await create_auth_client()
    try:
        res = await auth_client.auth.refresh_session(refresh_token)
    except Exception as e:
        raise AuthError(str(e))
    if not res.session:
        raise AuthError("Invalid refresh token")
    return _session_to_tokens(res.session)


async def exchange_code(code: str, code_verifier: Optional[str] = None) -> Dict[str, Any]:
    auth_client = await create_auth_client()
    params: Dict[str, Any] = {"auth_code": code}
    if code_verifier:
        params["code_verifier"] = code_verifier
    try:
        res = await auth_client.auth.exchange_code_for_session(params)
    except Exception as e:
        raise AuthError(str(e))
    if not res.session:
        raise AuthError("Code exchange returned no session")
    return _session_to_tokens(res.session)


async def get_user(access_token: str) -> Dict[str, Any]:
    """Ask Supabase Auth who owns the token (used when no JWT secret is set)."""
    try:
        res = await get_supabase().auth.get_user(access_token)
    except Exception as e:
        raise AuthError(str(e))
    if not res or not res.user:
        raise AuthError("User not found")
    user = _user_to_dict(res.user)
    user["role"] = getattr(res.user, "role", None) or "authenticated"
    return user


async def sign_out(access_token: str) -> None:
    try:
        await get_supabase().auth.admin.sign_out(access_token)
    except Exception as e:
        logger.warning("Supabase sign out failed: %s", e)
