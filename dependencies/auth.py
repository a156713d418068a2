from typing import Annotated, Optional
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from core.config import settings
from core.errors import AuthError
from core.security import decode_access_token, user_from_claims
from services import auth as auth_service


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


def extract_token(request: Request, bearer: Optional[str] = None) -> Optional[str]:
    """Bearer header first, then the access cookie set at login."""
    if bearer:
        return bearer
    header = request.headers.get("Authorization", "")
    scheme, _, value = header.partition(" ")
    if scheme.lower() == "bearer" and value:
        return value
    return request.cookies.get(settings.access_cookie_name)


async def resolve_user(token: str) -> dict:
    if settings.supabase_jwt_secret:
        return user_from_claims(decode_access_token(token))
    return await auth_service.get_user(token)


async def get_current_user(request: Request, token: Annotated[Optional[str], Depends(oauth2_scheme)]):
    token = extract_token(request, token)
    if token is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    try:
        user = await resolve_user(token)
    except AuthError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    user["access_token"] = token
    return user


async def get_optional_user(request: Request, token: Annotated[Optional[str], Depends(oauth2_scheme)]):
    token = extract_token(request, token)
    if token is None:
        return None
    try:
        user = await resolve_user(token)
    except AuthError:
        return None
    user["access_token"] = token
    return user
