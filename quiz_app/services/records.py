# quiz_app/services/records.py
from __future__ import annotations
from datetime import datetime, timezone
from typing import Optional, Protocol

import httpx
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from quiz_app.db.base import async_session
from quiz_app.db.models import User
from quiz_app.guard.errors import ErrorKind, RecordStoreError, ServiceError

PASSWORD_PLACEHOLDER = "[HASHED]"


def _now_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat()


class UserRow(BaseModel):
    id: str
    name: str = Field(max_length=50)
    email: str = Field(max_length=255)
    password: str = PASSWORD_PLACEHOLDER
    role: str = "student"
    created_at: str = Field(default_factory=_now_iso)
    last_active: str = Field(default_factory=_now_iso)


class RecordStore(Protocol):
    async def email_exists(self, email: str) -> bool: ...
    async def insert_user(self, row: UserRow) -> str: ...


class SupabaseRecords:
    """PostgREST binding for the ``users`` table."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        table: str = "users",
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = f"{base_url.rstrip('/')}/rest/v1/{table}"
        self.api_key = api_key
        self.client = client or httpx.AsyncClient(timeout=timeout)

    def _headers(self, **extra) -> dict:
        return {"apikey": self.api_key, "Authorization": f"Bearer {self.api_key}", **extra}

    async def _send(self, method: str, **kw) -> httpx.Response:
        try:
            resp = await self.client.request(method, self.url, **kw)
        except httpx.TransportError as exc:
            raise ServiceError(ErrorKind.NETWORK, str(exc)) from exc
        if resp.status_code >= 400:
            try:
                body = resp.json()
                detail = body.get("message") if isinstance(body, dict) else resp.text
            except ValueError:
                detail = resp.text
            raise RecordStoreError(str(detail)[:200], status_code=resp.status_code)
        return resp

    async def email_exists(self, email: str) -> bool:
        resp = await self._send(
            "GET",
            headers=self._headers(),
            params={"select": "email", "email": f"eq.{email}", "limit": "1"},
        )
        rows = resp.json()
        return bool(rows)

    async def insert_user(self, row: UserRow) -> str:
        resp = await self._send(
            "POST",
            headers=self._headers(Prefer="return=representation"),
            params={"select": "id"},
            json=[row.model_dump()],
        )
        rows = resp.json()
        if isinstance(rows, list) and rows:
            return str(rows[0].get("id") or row.id)
        return row.id

    async def aclose(self) -> None:
        await self.client.aclose()


class LocalRecords:
    def __init__(self, session_factory=None):
        self.session_factory = session_factory or async_session

    async def email_exists(self, email: str) -> bool:
        async with self.session_factory() as s:
            found = (
                await s.execute(select(User.email).where(User.email == email).limit(1))
            ).scalar_one_or_none()
            return found is not None

    async def insert_user(self, row: UserRow) -> str:
        async with self.session_factory() as s:
            s.add(User(**row.model_dump()))
            try:
                await s.commit()
            except SQLAlchemyError as exc:
                await s.rollback()
                raise RecordStoreError(str(exc.__class__.__name__)) from exc
            return row.id

    async def aclose(self) -> None:
        return None
