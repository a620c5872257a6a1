"""
Caller identity resolved from the bearer token
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

from storehouse.config import settings
from storehouse.models.company import Role

# Defines the expected header format (Bearer <token>)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)


@dataclass(frozen=True)
class CallerContext:
    """Identity of the user performing an operation"""
    user_id: str
    role: Role
    company_id: Optional[int] = None
    user_name: Optional[str] = None


def create_access_token(
    user_id: str,
    role: Role,
    company_id: Optional[int] = None,
    user_name: Optional[str] = None,
    expires_delta: Optional[timedelta] = None
) -> str:
    """Creates a JWT access token with a UTC expiration."""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {
        "sub": user_id,
        "role": Role(role).value,
        "company_id": company_id,
        "name": user_name,
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def verify_access_token(token: str) -> Optional[dict]:
    """Decodes and verifies the JWT. Returns payload if valid, None if invalid/expired."""
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None


async def get_caller_context(token: Optional[str] = Depends(oauth2_scheme)) -> CallerContext:
    """Dependency to validate the JWT and build the caller context."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    
    if not token:
        raise credentials_exception
    
    payload = verify_access_token(token)
    if payload is None:
        raise credentials_exception
    
    user_id = payload.get("sub")
    if not user_id:
        raise credentials_exception
    
    try:
        role = Role(payload.get("role"))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Unknown role in token"
        )
    
    company_id = payload.get("company_id")
    return CallerContext(
        user_id=str(user_id),
        role=role,
        company_id=int(company_id) if company_id not in (None, "") else None,
        user_name=payload.get("name"),
    )


def require_roles(*roles: Role):
    """Build a dependency that only lets the given roles through"""
    allowed = frozenset(roles)
    
    async def _check(caller: CallerContext = Depends(get_caller_context)) -> CallerContext:
        if caller.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role {caller.role.value} is not allowed to perform this action"
            )
        return caller
    
    return _check
