# quiz_app/guard/validation.py
from __future__ import annotations
import re
from dataclasses import dataclass
from typing import List

NAME_MIN = 2
NAME_MAX = 50
EMAIL_MAX = 255
PASSWORD_MIN = 8
PASSWORD_MAX = 128
MIN_STRENGTH = 50

ROLES = ("student", "teacher")

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_UPPER = re.compile(r"[A-Z]")
_DIGIT = re.compile(r"[0-9]")
_SYMBOL = re.compile(r"[^A-Za-z0-9]")


@dataclass
class SignupFields:
    name: str = ""
    email: str = ""
    password: str = ""
    confirm_password: str = ""
    role: str = "student"

    @property
    def clean_name(self) -> str:
        return self.name.strip()

    @property
    def clean_email(self) -> str:
        return normalize_email(self.email)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def compute_strength(password: str) -> int:
    """Score 0..100, +25 for each of: length >= 8, uppercase, digit, symbol."""
    strength = 0
    if len(password) >= PASSWORD_MIN:
        strength += 25
    if _UPPER.search(password):
        strength += 25
    if _DIGIT.search(password):
        strength += 25
    if _SYMBOL.search(password):
        strength += 25
    return strength


def strength_label(strength: int) -> str:
    if strength < 25:
        return "Very Weak"
    if strength < 50:
        return "Weak"
    if strength < 75:
        return "Good"
    return "Strong"


def validate(fields: SignupFields, max_password: int = PASSWORD_MAX) -> List[str]:
    """Return every violation, in check order. Callers show the first one."""
    errors: List[str] = []

    name = fields.clean_name
    email = fields.clean_email
    password = fields.password

    if len(name) < NAME_MIN:
        errors.append("Name must be at least 2 characters")
    if len(name) > NAME_MAX:
        errors.append("Name must be less than 50 characters")
    if not email:
        errors.append("Email is required")
    if len(email) > EMAIL_MAX:
        errors.append("Email must be less than 255 characters")
    if not EMAIL_RE.match(email):
        errors.append("Invalid email format")
    if len(password) < PASSWORD_MIN:
        errors.append("Password must be at least 8 characters")
    if len(password) > max_password:
        errors.append(f"Password must be less than {max_password} characters")
    if password != fields.confirm_password:
        errors.append("Passwords do not match")
    if compute_strength(password) < MIN_STRENGTH:
        errors.append("Password is too weak")

    return errors
