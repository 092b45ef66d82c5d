from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from medilink.core.config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES
from medilink.core.principal import (
    CustomerPrincipal,
    PharmacyPrincipal,
    Principal,
    principal_for,
)
from medilink.repositories.base import Store
from medilink.repositories.sql import get_store

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
bearer_scheme = HTTPBearer(auto_error=False)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def create_principal_token(principal: Principal, email: str) -> str:
    return create_access_token(data={"sub": str(principal.id), "role": principal.role, "email": email})


def decode_principal(token: str) -> Optional[Principal]:
    """Return the principal carried by a token, or None when it is invalid or expired."""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        return principal_for(payload.get("role"), int(payload.get("sub")))
    except (JWTError, TypeError, ValueError):
        return None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    store: Store = Depends(get_store),
) -> Principal:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise _unauthorized("No token provided")

    principal = decode_principal(credentials.credentials)
    if principal is None:
        raise _unauthorized("Invalid or expired token")

    # The account must still exist and be active
    if isinstance(principal, CustomerPrincipal):
        account = store.users.get(principal.id)
    else:
        account = store.pharmacies.get(principal.id)
    if account is None:
        raise _unauthorized("Invalid or expired token")
    if not account.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is inactive")
    return principal


async def require_customer(principal: Principal = Depends(get_current_principal)) -> CustomerPrincipal:
    if not isinstance(principal, CustomerPrincipal):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied. Users only.")
    return principal


async def require_pharmacy(principal: Principal = Depends(get_current_principal)) -> PharmacyPrincipal:
    if not isinstance(principal, PharmacyPrincipal):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied. Pharmacies only.")
    return principal
