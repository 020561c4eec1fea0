# quiz_app/guard/form.py
from __future__ import annotations
import asyncio
from typing import Optional

from quiz_app.guard.signup import SignupGuard, SignupOutcome
from quiz_app.guard.validation import (
    EMAIL_MAX,
    MIN_STRENGTH,
    NAME_MAX,
    PASSWORD_MAX,
    ROLES,
    SignupFields,
    compute_strength,
    strength_label,
)

FIELD_NAMES = ("name", "email", "password", "confirm_password")


class SignupForm:
    """State of one sign-up screen: fields, messages and the strength meter.

    Password-match feedback is debounced: each password/confirmation edit
    cancels the pending check and schedules a new one ``debounce_ms`` later
    on the running event loop.
    """

    def __init__(self, *, debounce_ms: int = 300, max_password: int = PASSWORD_MAX):
        self.debounce_ms = debounce_ms
        self.caps = {
            "name": NAME_MAX,
            "email": EMAIL_MAX,
            "password": max_password,
            "confirm_password": max_password,
        }
        self.fields = SignupFields()
        self.password_match = True
        self.password_strength = 0
        self.error = ""
        self.success = ""
        self.is_loading = False
        self._match_handle: Optional[asyncio.TimerHandle] = None

    @property
    def strength_label(self) -> str:
        return strength_label(self.password_strength)

    @property
    def can_submit(self) -> bool:
        return (
            not self.is_loading
            and self.password_match
            and self.password_strength >= MIN_STRENGTH
        )

    @property
    def match_pending(self) -> bool:
        return self._match_handle is not None

    def update(self, name: str, value: str) -> bool:
        """Apply one edit. Returns False when the edit was rejected as too long."""
        if name not in FIELD_NAMES:
            raise KeyError(name)
        if len(value) > self.caps[name]:
            return False

        setattr(self.fields, name, value.strip())
        self.error = ""

        if name == "password":
            self.password_strength = compute_strength(self.fields.password)
        if name in ("password", "confirm_password"):
            self._schedule_match_check()
        return True

    def load(self, *, role: str = "student", **values: str) -> None:
        """Fill the whole form at once, as a posted submission does.

        No length caps and no debounce: the guard reports over-long fields and
        the match state is settled immediately.
        """
        self.cancel_pending()
        for name, value in values.items():
            if name not in FIELD_NAMES:
                raise KeyError(name)
            setattr(self.fields, name, (value or "").strip())
        self.select_role(role)
        self.error = ""
        self.password_strength = compute_strength(self.fields.password)
        self.password_match = self.fields.password == self.fields.confirm_password

    def select_role(self, role: str) -> None:
        if role not in ROLES:
            raise ValueError(f"role must be one of {ROLES}")
        self.fields.role = role

    def _schedule_match_check(self) -> None:
        self.cancel_pending()
        loop = asyncio.get_running_loop()
        self._match_handle = loop.call_later(self.debounce_ms / 1000, self._check_match)

    def _check_match(self) -> None:
        self._match_handle = None
        self.password_match = self.fields.password == self.fields.confirm_password

    def cancel_pending(self) -> None:
        if self._match_handle is not None:
            self._match_handle.cancel()
            self._match_handle = None

    def reset(self) -> None:
        self.cancel_pending()
        self.fields = SignupFields()
        self.password_match = True
        self.password_strength = 0

    async def submit(self, guard: SignupGuard, ip: Optional[str] = None) -> SignupOutcome:
        self.error = ""
        self.success = ""
        self.is_loading = True
        try:
            outcome = await guard.submit(self.fields, ip)
        finally:
            self.is_loading = False

        if outcome.ok:
            self.success = outcome.message
            self.reset()
        else:
            self.error = outcome.message
        return outcome
