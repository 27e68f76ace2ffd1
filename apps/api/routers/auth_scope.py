"""Admin gate for the privileged wallpaper endpoints."""

from dataclasses import dataclass

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from services.session_token import decode_session_token


auth_scheme = HTTPBearer(auto_error=False)


@dataclass
class AdminContext:
    user_id: str
    role: str


async def require_admin(
    credentials: HTTPAuthorizationCredentials = Depends(auth_scheme),
) -> AdminContext:
    """Resolve the caller from the Bearer session token and require the admin role."""
    if not credentials or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=401, detail="Missing Bearer session token.")

    try:
        payload = decode_session_token(credentials.credentials)
    except ValueError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc

    role = str(payload.get("role", "")).strip().lower()
    if role != "admin":
        raise HTTPException(status_code=403, detail="Admin role required.")
    return AdminContext(user_id=str(payload.get("sub", "")), role=role)
