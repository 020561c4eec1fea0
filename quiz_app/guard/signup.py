# quiz_app/guard/signup.py
"""
Signup guard: everything that happens before, during and after forwarding a
create-account request.

    validate -> rate limit -> email exists? -> create identity -> insert row
                                                        `-- on insert failure: delete identity

The chain is sequential with no retries. Only a fully successful signup is
recorded against the rate limiter.
"""
from __future__ import annotations
import time
from dataclasses import dataclass, field
from typing import List, Optional

from quiz_app.core.logging import get_logger
from quiz_app.guard.errors import (
    ErrorKind,
    IdentityServiceError,
    ServiceError,
    RATE_LIMIT_MESSAGES,
    SUCCESS_MESSAGE,
    message_for,
)
from quiz_app.guard.ratelimit import SignupRateLimiter
from quiz_app.guard.validation import PASSWORD_MAX, SignupFields, validate
from quiz_app.services.identity import IdentityProvider
from quiz_app.services.records import RecordStore, UserRow

log = get_logger("guard.signup")


@dataclass
class SignupOutcome:
    ok: bool
    message: str
    kind: Optional[ErrorKind] = None
    user_id: Optional[str] = None
    violations: List[str] = field(default_factory=list)


@dataclass
class SignupMetrics:
    signup_requests: int = 0
    successful_signups: int = 0
    failed_signups: int = 0
    start_time: float = field(default_factory=time.time)

    def snapshot(self) -> dict:
        return {
            "signup_requests": self.signup_requests,
            "successful_signups": self.successful_signups,
            "failed_signups": self.failed_signups,
            "uptime_sec": round(time.time() - self.start_time, 3),
        }


class SignupGuard:
    def __init__(
        self,
        identity: IdentityProvider,
        records: RecordStore,
        limiter: Optional[SignupRateLimiter] = None,
        *,
        max_password: int = PASSWORD_MAX,
    ):
        self.identity = identity
        self.records = records
        self.limiter = limiter or SignupRateLimiter()
        self.max_password = max_password
        self.metrics = SignupMetrics()

    def validate(self, fields: SignupFields) -> List[str]:
        return validate(fields, self.max_password)

    def _fail(self, kind: ErrorKind, message: str, violations: Optional[List[str]] = None) -> SignupOutcome:
        self.metrics.failed_signups += 1
        return SignupOutcome(False, message, kind, violations=violations or [])

    async def submit(self, fields: SignupFields, ip: Optional[str] = None) -> SignupOutcome:
        self.metrics.signup_requests += 1

        errors = self.validate(fields)
        if errors:
            return self._fail(ErrorKind.VALIDATION, errors[0], errors)

        email = fields.clean_email
        decision = self.limiter.check(email, ip)
        if not decision.allowed:
            log.info("signup rate limited (%s)", decision.reason)
            return self._fail(ErrorKind.RATE_LIMITED_LOCAL, RATE_LIMIT_MESSAGES[decision.reason])

        started = time.perf_counter()
        try:
            outcome = await self._forward(fields, email)
        except Exception:
            log.exception("signup failed unexpectedly")
            return self._fail(ErrorKind.UNEXPECTED, message_for(ErrorKind.UNEXPECTED))

        if not outcome.ok:
            self.metrics.failed_signups += 1
            return outcome

        self.limiter.record(email, ip)
        self.metrics.successful_signups += 1
        log.info("signup completed in %.1fms", (time.perf_counter() - started) * 1000)
        return outcome

    async def _forward(self, fields: SignupFields, email: str) -> SignupOutcome:
        # an existence-check failure is not classified; it surfaces as unexpected
        if await self.records.email_exists(email):
            return SignupOutcome(False, message_for(ErrorKind.ALREADY_REGISTERED), ErrorKind.ALREADY_REGISTERED)

        name = fields.clean_name
        try:
            identity_id = await self.identity.create_account(
                email, fields.password, {"full_name": name, "role": fields.role}
            )
        except IdentityServiceError as exc:
            log.error("create account failed: kind=%s detail=%s", exc.kind.value, exc.detail)
            return SignupOutcome(False, message_for(exc.kind), exc.kind)

        row = UserRow(
            id=identity_id,
            name=name[:50],
            email=email[:255],
            role=fields.role,
        )
        try:
            await self.records.insert_user(row)
        except ServiceError as exc:
            log.error("user row insert failed for %s: %s", identity_id, exc.detail)
            await self._compensate(identity_id)
            return SignupOutcome(False, message_for(ErrorKind.RECORD_INSERT), ErrorKind.RECORD_INSERT)

        return SignupOutcome(True, SUCCESS_MESSAGE, user_id=identity_id)

    async def _compensate(self, identity_id: str) -> None:
        try:
            await self.identity.delete_identity(identity_id)
        except Exception:
            # orphaned identity; nothing else to do from here
            log.exception("compensating delete failed for identity %s", identity_id)
