"""Account persistence: unique emails, derived post counts, cascade delete."""
from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Optional

from postboard.core.errors import ConflictError, ValidationError
from postboard.domain.models import Account
from postboard.domain.query import Page, PageQuery, run_query
from postboard.domain.validation import clean_email, clean_name, clean_roles, email_key, utc_now
from postboard.repositories.base import EntityRepository

logger = logging.getLogger(__name__)

ACCOUNT_FIELDS = ("name", "email", "roles")


class AccountRepository(EntityRepository[Account]):
    """CRUD helpers for the ``accounts`` collection."""

    collection = "accounts"
    resource = "Account"

    # ------------------------------------------------------------ hooks
    def _to_entity(self, data: dict, record: dict, post_count: Optional[int] = None) -> Account:
        if post_count is None:
            post_count = sum(1 for post in data["posts"] if post.get("ownerId") == record.get("id"))
        return Account.from_document(record, post_count=post_count)

    def _entities(self, data: dict) -> list[Account]:
        counts = Counter(post.get("ownerId") for post in data["posts"])
        return [self._build(data, r, post_count=counts[r.get("id")]) for r in self._records(data)]

    def _clean_fields(self, fields: dict[str, Any], *, partial: bool) -> dict[str, Any]:
        unknown = sorted(set(fields) - set(ACCOUNT_FIELDS))
        if unknown:
            raise ValidationError(f"Unknown account fields: {', '.join(unknown)}")
        values: dict[str, Any] = {}
        if not partial or "name" in fields:
            values["name"] = clean_name(fields.get("name"))
        if not partial or "email" in fields:
            values["email"] = clean_email(fields.get("email"))
        if not partial or "roles" in fields:
            values["roles"] = clean_roles(fields.get("roles"))
        return values

    def _check_fields(self, data: dict, values: dict[str, Any], *, entity_id: Optional[int]) -> None:
        email = values.get("email")
        if email is not None and self._email_owner(data, email, exclude_id=entity_id) is not None:
            raise ConflictError(f"Email {email} is already registered")

    def _on_delete(self, data: dict, entity_id: int) -> None:
        posts = data["posts"]
        kept = [post for post in posts if post.get("ownerId") != entity_id]
        removed = len(posts) - len(kept)
        data["posts"] = kept
        if removed:
            logger.info(
                "Cascade removed %s posts of account %s", removed, entity_id,
                extra={"collection": "posts", "owner_id": entity_id},
            )

    # ------------------------------------------------------------ lookups
    def _email_owner(self, data: dict, email: str, *, exclude_id: Optional[int] = None) -> Optional[dict]:
        key = email_key(email)
        for record in self._records(data):
            if record.get("id") == exclude_id:
                continue
            if email_key(str(record.get("email", ""))) == key:
                return record
        return None

    def find_by_email(self, email: str) -> Optional[Account]:
        with self.storage.snapshot() as data:
            record = self._email_owner(data, email or "")
            return self._build(data, record) if record else None

    def is_email_taken(self, email: str, exclude_id: Optional[int] = None) -> bool:
        with self.storage.snapshot() as data:
            return self._email_owner(data, email or "", exclude_id=exclude_id) is not None

    def find_by_role(self, role: str) -> list[Account]:
        return [account for account in self.find_all() if role in account.roles]

    def find_recent(self, limit: int = 10) -> list[Account]:
        """Newest accounts first."""
        query = PageQuery(page=1, limit=limit, sort_by="createdAt", order="desc")
        return run_query(self.find_all(), [], query).data

    def find_with_pagination(self, search: Optional[str] = None, query: PageQuery | None = None) -> Page[Account]:
        """Paged listing; ``search`` matches name or email, case-insensitively."""
        term = (search or "").lower()
        predicate = None
        if term:
            def predicate(account: Account) -> bool:
                return term in account.name.lower() or term in account.email.lower()
        return run_query(self.find_all(), [predicate], query or PageQuery())

    def get_stats(self) -> dict:
        with self.storage.snapshot() as data:
            by_role: Counter[str] = Counter()
            for record in self._records(data):
                by_role.update(record.get("roles") or [])
            return {
                "totalAccounts": len(self._records(data)),
                "totalPosts": len(data["posts"]),
                "accountsByRole": dict(by_role),
                "generatedAt": utc_now().isoformat(),
            }
