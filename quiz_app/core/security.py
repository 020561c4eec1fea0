from __future__ import annotations
from datetime import datetime, timedelta, timezone

from fastapi import Header, HTTPException, status
from jose import jwt
from passlib.context import CryptContext

from quiz_app.core.config import settings

pwd = CryptContext(schemes=["argon2"], deprecated="auto")
ALGO = "HS256"

def hash_password(p: str) -> str:
    return pwd.hash(p)

def verify_password(p: str, h: str) -> bool:
    return pwd.verify(p, h)

def create_access_token(sub: str, **claims) -> str:
    exp = datetime.now(tz=timezone.utc) + timedelta(minutes=settings.access_token_minutes)
    payload = {"sub": sub, "exp": exp, **claims}
    return jwt.encode(payload, settings.secret_key, algorithm=ALGO)

async def require_admin(x_admin_key: str | None = Header(None)) -> None:
    if not x_admin_key or x_admin_key != settings.admin_api_key:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid admin key")
