import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.responses import RedirectResponse
from fastapi.security import OAuth2PasswordRequestForm

from core.config import settings
from core.errors import AuthError
from dependencies.auth import extract_token, get_current_user
from schemas.auth import SignupRequest, TokenPair, TokenRefreshRequest, UserOut
from services import auth as auth_service

logger = logging.getLogger(__name__)

router = APIRouter()

CODE_VERIFIER_COOKIE = "sb-code-verifier"


def set_session_cookies(response: Response, tokens: dict) -> None:
    secure = settings.environment != "development"
    response.set_cookie(
        settings.access_cookie_name,
        tokens["access_token"],
        max_age=tokens.get("expires_in") or 3600,
        httponly=True,
        samesite="lax",
        secure=secure,
    )
    response.set_cookie(
        settings.refresh_cookie_name,
        tokens["refresh_token"],
        httponly=True,
        samesite="lax",
        secure=secure,
    )


def clear_session_cookies(response: Response) -> None:
    response.delete_cookie(settings.access_cookie_name)
    response.delete_cookie(settings.refresh_cookie_name)


@router.post("/signup", response_model=UserOut, status_code=201)
async def signup(payload: SignupRequest):
    try:
        user = await auth_service.sign_up(payload.email, payload.password)
    except AuthError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return user


@router.post("/login", response_model=TokenPair)
async def login(response: Response, form_data: OAuth2PasswordRequestForm = Depends()):
    try:
        tokens = await auth_service.sign_in(form_data.username, form_data.password)
    except AuthError as e:
        logger.info("Login failed for %s: %s", form_data.username, e)
        raise HTTPException(status_code=400, detail="Invalid credentials")
    set_session_cookies(response, tokens)
    return tokens


@router.post("/refresh", response_model=TokenPair)
async def refresh_token(request: Request, response: Response, payload: Optional[TokenRefreshRequest] = None):
    token = payload.refresh_token if payload else request.cookies.get(settings.refresh_cookie_name)
    if not token:
        raise HTTPException(status_code=401, detail="Invalid refresh token")
    try:
        tokens = await auth_service.refresh(token)
    except AuthError:
        raise HTTPException(status_code=401, detail="Invalid refresh token")
    set_session_cookies(response, tokens)
    return tokens


@router.post("/logout")
async def logout(request: Request, response: Response):
    token = extract_token(request)
    if token:
        await auth_service.sign_out(token)
    clear_session_cookies(response)
    return {"success": True}


@router.get("/callback")
async def auth_callback(request: Request, code: Optional[str] = None):
    """
    Exchange an OAuth / magic-link code for a session, then send the user
    to the upload page.
    """
    if not code:
        return RedirectResponse(url="/", status_code=303)

    try:
        tokens = await auth_service.exchange_code(code, request.cookies.get(CODE_VERIFIER_COOKIE))
    except AuthError as e:
        logger.error("Error in auth callback: %s", e)
        return RedirectResponse(url="/?error=Authentication%20failed", status_code=303)

    redirect = RedirectResponse(url="/upload", status_code=303)
    set_session_cookies(redirect, tokens)
    redirect.delete_cookie(CODE_VERIFIER_COOKIE)
    return redirect


@router.get("/me", response_model=UserOut)
async def me(current_user: dict = Depends(get_current_user)):
    return current_user
