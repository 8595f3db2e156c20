"""Entities mirroring the records of the JSON document, plus update patches."""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, Optional

from postboard.domain.validation import parse_timestamp


def _timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class Account:
    id: int
    name: str
    email: str
    created_at: datetime
    roles: list[str] = field(default_factory=list)
    updated_at: Optional[datetime] = None
    # Read-time projection over the posts collection; never written to disk.
    post_count: int = 0

    @classmethod
    def from_document(cls, record: dict, post_count: int = 0) -> "Account":
        updated = record.get("updatedAt")
        return cls(
            id=int(record["id"]),
            name=str(record["name"]),
            email=str(record["email"]),
            created_at=parse_timestamp(record["createdAt"]),
            roles=list(record.get("roles") or []),
            updated_at=parse_timestamp(updated) if updated else None,
            post_count=post_count,
        )

    def to_dict(self) -> dict[str, Any]:
        data = {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "createdAt": _timestamp(self.created_at),
            "roles": list(self.roles),
            "postCount": self.post_count,
        }
        if self.updated_at:
            data["updatedAt"] = _timestamp(self.updated_at)
        return data


@dataclass
class Post:
    id: int
    owner_id: int
    content: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, record: dict) -> "Post":
        updated = record.get("updatedAt")
        return cls(
            id=int(record["id"]),
            owner_id=int(record["ownerId"]),
            content=str(record["content"]),
            created_at=parse_timestamp(record["createdAt"]),
            updated_at=parse_timestamp(updated) if updated else None,
        )

    def to_dict(self) -> dict[str, Any]:
        data = {
            "id": self.id,
            "ownerId": self.owner_id,
            "content": self.content,
            "createdAt": _timestamp(self.created_at),
        }
        if self.updated_at:
            data["updatedAt"] = _timestamp(self.updated_at)
        return data


@dataclass(frozen=True)
class AccountPatch:
    """Fields a caller may change on an account. None means "leave as is"."""

    name: Optional[str] = None
    email: Optional[str] = None
    roles: Optional[list[str]] = None

    def present(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}


@dataclass(frozen=True)
class PostPatch:
    content: Optional[str] = None

    def present(self) -> dict[str, Any]:
        return {"content": self.content} if self.content is not None else {}


@dataclass(frozen=True)
class PostConditions:
    """Optional filters for post listings, combined with AND."""

    owner_id: Optional[int] = None
    search: Optional[str] = None
    since: Optional[datetime] = None
    until: Optional[datetime] = None
