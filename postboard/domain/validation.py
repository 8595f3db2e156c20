"""Field rules shared by create and update paths."""
from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Iterable

from postboard.core.errors import ValidationError

EMAIL_PATTERN = re.compile(r"[^@\s]+@[^@\s]+\.[^@\s]+")
CONTENT_MAX_LENGTH = 280
NAME_MAX_LENGTH = 100


def clean_name(value: str | None) -> str:
    name = (value or "").strip()
    if not name:
        raise ValidationError("Name is required", field="name")
    if len(name) > NAME_MAX_LENGTH:
        raise ValidationError(f"Name must be {NAME_MAX_LENGTH} characters or less", field="name")
    return name


def clean_email(value: str | None) -> str:
    email = (value or "").strip()
    if not EMAIL_PATTERN.fullmatch(email):
        raise ValidationError("Invalid email format", field="email")
    return email


def email_key(value: str) -> str:
    """Comparison key for case-insensitive email uniqueness."""
    return value.strip().lower()


def clean_roles(values: Iterable[str] | None) -> list[str]:
    if values is None:
        return []
    if isinstance(values, str):
        raise ValidationError("Roles must be a list of names", field="roles")
    roles: list[str] = []
    for raw in values:
        if not isinstance(raw, str) or not raw.strip():
            raise ValidationError("Role names must be non-empty text", field="roles")
        role = raw.strip()
        if role not in roles:
            roles.append(role)
    return roles


def clean_content(value: str | None) -> str:
    content = (value or "").strip()
    if not content:
        raise ValidationError("Content is required", field="content")
    if len(content) > CONTENT_MAX_LENGTH:
        raise ValidationError(
            f"Content must be {CONTENT_MAX_LENGTH} characters or less", field="content"
        )
    return content


def clean_id(value: object, field: str = "id") -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationError(f"{field} must be a positive integer", field=field)
    return value


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so they compare with stored timestamps."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: str) -> datetime:
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return as_utc(datetime.fromisoformat(text))
