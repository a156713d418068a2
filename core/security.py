from typing import Any, Dict, Optional

from jose import jwt, JWTError

from core.config import settings
from core.errors import AuthError


SUPABASE_JWT_ALGORITHMS = ["HS256"]


def decode_access_token(token: str, secret: Optional[str] = None) -> Dict[str, Any]:
    """Verify a Supabase access token and return its claims."""
    secret = secret or settings.supabase_jwt_secret
    if not secret:
        raise AuthError("Supabase JWT secret is not configured")
    try:
        claims = jwt.decode(
            token,
            secret,
            algorithms=SUPABASE_JWT_ALGORITHMS,
            audience=settings.supabase_jwt_audience,
        )
    except JWTError as e:
        raise AuthError(f"Invalid token: {e}")
    if not claims.get("sub"):
        raise AuthError("Invalid token payload")
    return claims


def user_from_claims(claims: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": claims["sub"],
        "email": claims.get("email"),
        "role": claims.get("role", "authenticated"),
    }
