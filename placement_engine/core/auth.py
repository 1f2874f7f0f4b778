"""
Authentication Utility - JWT verification.

Provides:
- JWT token creation/verification
- FastAPI dependencies for protected routes

Accounts live with the identity provider. Tokens carry the user id in
`sub` and the role in `role`; nothing is looked up locally.
"""

from datetime import datetime, timedelta
from typing import Optional
from jose import JWTError, jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from placement_engine.core.config import get_settings
from placement_engine.schemas.schemas import UserRole

# Bearer token extractor
bearer_scheme = HTTPBearer()


def create_access_token(
    user_id: str,
    role: str,
    name: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create JWT access token."""
    settings = get_settings()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=60))
    to_encode = {"sub": user_id, "role": role, "exp": expire}
    if name:
        to_encode["name"] = name
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[dict]:
    """Decode and verify JWT token."""
    settings = get_settings()
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme)) -> dict:
    """
    FastAPI dependency - Get current authenticated user.

    Usage:
        @app.get("/protected")
        async def route(user: dict = Depends(get_current_user)):
            return user
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = decode_token(credentials.credentials)
    if not payload:
        raise credentials_exception

    user_id = payload.get("sub")
    role = payload.get("role")
    if not user_id or not role:
        raise credentials_exception

    return {"user_id": user_id, "role": role, "name": payload.get("name")}


def _require_role(user: dict, role: UserRole, detail: str) -> dict:
    if user["role"] != role.value:
        raise HTTPException(status_code=403, detail=detail)
    return user


async def get_current_student(user: dict = Depends(get_current_user)) -> dict:
    """Dependency - Require student role."""
    return _require_role(user, UserRole.student, "Students only")


async def get_current_institute(user: dict = Depends(get_current_user)) -> dict:
    """Dependency - Require institute role."""
    return _require_role(user, UserRole.institute, "Institutes only")


async def get_current_company(user: dict = Depends(get_current_user)) -> dict:
    """Dependency - Require company role."""
    return _require_role(user, UserRole.company, "Companies only")
