# quiz_app/services/identity.py
"""
Identity provider bindings.

``SupabaseIdentity`` talks to a hosted GoTrue API; ``LocalIdentity`` keeps
identities in the local database so the service runs without the hosted
stack. Both raise ``IdentityServiceError`` with a classified ``kind``. The
hosted binding reads the provider's error code first and falls back to its
message text, so callers never inspect text themselves.
"""
from __future__ import annotations
import uuid
from typing import Any, Dict, Optional, Protocol

import httpx
from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError

from quiz_app.core.logging import get_logger
from quiz_app.core.security import hash_password, verify_password, create_access_token
from quiz_app.db.base import async_session
from quiz_app.db.models import Identity
from quiz_app.guard.errors import ErrorKind, IdentityServiceError

log = get_logger("services.identity")

ALREADY_REGISTERED_CODES = {"user_already_exists", "email_exists"}
RATE_LIMIT_CODES = {"over_request_rate_limit", "over_email_send_rate_limit", "over_sms_send_rate_limit"}
WEAK_PASSWORD_CODES = {"weak_password"}
INVALID_EMAIL_CODES = {"email_address_invalid", "invalid_email", "email_address_not_authorized"}
INVALID_CREDENTIALS_CODES = {"invalid_credentials", "invalid_grant"}

LOCAL_MIN_PASSWORD = 6


class IdentityProvider(Protocol):
    async def create_account(self, email: str, password: str, metadata: Dict[str, Any]) -> str: ...
    async def sign_in(self, email: str, password: str) -> str: ...
    async def delete_identity(self, identity_id: str) -> None: ...


def _kind_from_text(message: str) -> Optional[ErrorKind]:
    text = message.lower()
    if "already registered" in text:
        return ErrorKind.ALREADY_REGISTERED
    if "rate limit" in text:
        return ErrorKind.RATE_LIMITED
    if "password" in text:
        return ErrorKind.WEAK_PASSWORD
    if "email" in text:
        return ErrorKind.INVALID_EMAIL
    if "network" in text or "fetch" in text:
        return ErrorKind.NETWORK
    return None


def classify_auth_error(status_code: int, error_code: Optional[str], message: str = "") -> ErrorKind:
    """Error codes win; message text is only consulted for 4xx replies without a known code."""
    code = (error_code or "").lower()
    if code in ALREADY_REGISTERED_CODES:
        return ErrorKind.ALREADY_REGISTERED
    if code in RATE_LIMIT_CODES or status_code == 429:
        return ErrorKind.RATE_LIMITED
    if code in WEAK_PASSWORD_CODES:
        return ErrorKind.WEAK_PASSWORD
    if code in INVALID_EMAIL_CODES:
        return ErrorKind.INVALID_EMAIL
    if code in INVALID_CREDENTIALS_CODES:
        return ErrorKind.INVALID_CREDENTIALS
    if status_code >= 500:
        return ErrorKind.SERVER
    return _kind_from_text(message or "") or ErrorKind.GENERIC


def _error_from_response(resp: httpx.Response) -> IdentityServiceError:
    try:
        body = resp.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    code = body.get("error_code") or body.get("error")
    detail = body.get("msg") or body.get("message") or body.get("error_description") or resp.text
    kind = classify_auth_error(resp.status_code, code, str(detail))
    return IdentityServiceError(kind, str(detail)[:200], status_code=resp.status_code)


class SupabaseIdentity:
    def __init__(
        self,
        base_url: str,
        anon_key: str,
        service_role_key: str = "",
        *,
        redirect_to: str = "",
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.anon_key = anon_key
        self.service_role_key = service_role_key or anon_key
        self.redirect_to = redirect_to
        self.client = client or httpx.AsyncClient(timeout=timeout)

    def _headers(self, key: str) -> Dict[str, str]:
        return {"apikey": key, "Authorization": f"Bearer {key}"}

    async def _send(self, method: str, path: str, *, key: str, **kw) -> httpx.Response:
        try:
            resp = await self.client.request(
                method, f"{self.base_url}{path}", headers=self._headers(key), **kw
            )
        except httpx.TransportError as exc:
            raise IdentityServiceError(ErrorKind.NETWORK, str(exc)) from exc
        if resp.status_code >= 400:
            err = _error_from_response(resp)
            log.warning("identity %s %s -> %s (%s)", method, path, resp.status_code, err.kind.value)
            raise err
        return resp

    async def create_account(self, email: str, password: str, metadata: Dict[str, Any]) -> str:
        params = {"redirect_to": self.redirect_to} if self.redirect_to else None
        resp = await self._send(
            "POST", "/auth/v1/signup",
            key=self.anon_key,
            params=params,
            json={"email": email, "password": password, "data": metadata},
        )
        body = resp.json()
        # with autoconfirm on the user comes wrapped in a session
        user = body.get("user") if isinstance(body.get("user"), dict) else body
        identity_id = user.get("id")
        if not identity_id:
            raise IdentityServiceError(ErrorKind.GENERIC, "signup returned no user id")
        return str(identity_id)

    async def sign_in(self, email: str, password: str) -> str:
        resp = await self._send(
            "POST", "/auth/v1/token",
            key=self.anon_key,
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        token = resp.json().get("access_token")
        if not token:
            raise IdentityServiceError(ErrorKind.GENERIC, "token response had no access_token")
        return token

    async def delete_identity(self, identity_id: str) -> None:
        await self._send("DELETE", f"/auth/v1/admin/users/{identity_id}", key=self.service_role_key)

    async def aclose(self) -> None:
        await self.client.aclose()


class LocalIdentity:
    def __init__(self, session_factory=None):
        self.session_factory = session_factory or async_session

    async def create_account(self, email: str, password: str, metadata: Dict[str, Any]) -> str:
        if len(password) < LOCAL_MIN_PASSWORD:
            raise IdentityServiceError(ErrorKind.WEAK_PASSWORD, "password shorter than 6 characters")
        async with self.session_factory() as s:
            existing = (
                await s.execute(select(Identity.id).where(Identity.email == email))
            ).scalar_one_or_none()
            if existing:
                raise IdentityServiceError(ErrorKind.ALREADY_REGISTERED, "User already registered")
            ident = Identity(
                id=uuid.uuid4().hex,
                email=email,
                password_hash=hash_password(password),
                user_metadata=dict(metadata),
            )
            s.add(ident)
            try:
                await s.commit()
            except IntegrityError as exc:
                raise IdentityServiceError(ErrorKind.ALREADY_REGISTERED, "User already registered") from exc
            return ident.id

    async def sign_in(self, email: str, password: str) -> str:
        async with self.session_factory() as s:
            ident = (
                await s.execute(select(Identity).where(Identity.email == email))
            ).scalar_one_or_none()
        if not ident or not verify_password(password, ident.password_hash):
            raise IdentityServiceError(ErrorKind.INVALID_CREDENTIALS, "Invalid login credentials", status_code=400)
        return create_access_token(ident.id, email=ident.email)

    async def delete_identity(self, identity_id: str) -> None:
        async with self.session_factory() as s:
            await s.execute(delete(Identity).where(Identity.id == identity_id))
            await s.commit()

    async def aclose(self) -> None:
        return None
