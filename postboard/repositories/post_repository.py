"""Post persistence: content rules, owner references, filtered listings."""
from __future__ import annotations

from typing import Any, Optional

from postboard.core.errors import NotFoundError, ValidationError
from postboard.domain.models import Post, PostConditions
from postboard.domain.query import Page, PageQuery, Predicate, apply_filters, run_query
from postboard.domain.validation import as_utc, clean_content, clean_id
from postboard.repositories.base import EntityRepository
from postboard.repositories.json_storage import JsonStorage


def condition_predicates(conditions: PostConditions) -> list[Optional[Predicate]]:
    """Translate the supplied conditions into predicates; absent ones become None."""
    owner_id = conditions.owner_id
    term = (conditions.search or "").lower()
    since = as_utc(conditions.since) if conditions.since else None
    until = as_utc(conditions.until) if conditions.until else None
    return [
        (lambda post: post.owner_id == owner_id) if owner_id is not None else None,
        (lambda post: term in post.content.lower()) if term else None,
        (lambda post: post.created_at >= since) if since else None,
        (lambda post: post.created_at <= until) if until else None,
    ]


class PostRepository(EntityRepository[Post]):
    """
    CRUD helpers for the ``posts`` collection.

    With ``check_owner`` (the default) ``create`` refuses an ``ownerId`` that
    does not reference a stored account, checked inside the same transaction
    that appends the post.
    """

    collection = "posts"
    resource = "Post"

    def __init__(self, storage: JsonStorage, *, check_owner: bool = True):
        super().__init__(storage)
        self.check_owner = check_owner

    def _to_entity(self, data: dict, record: dict) -> Post:
        return Post.from_document(record)

    def _clean_fields(self, fields: dict[str, Any], *, partial: bool) -> dict[str, Any]:
        allowed = {"content"} if partial else {"ownerId", "content"}
        unknown = sorted(set(fields) - allowed)
        if unknown:
            raise ValidationError(f"Fields not accepted for posts: {', '.join(unknown)}")
        values: dict[str, Any] = {}
        if not partial:
            values["ownerId"] = clean_id(fields.get("ownerId"), field="ownerId")
        if not partial or "content" in fields:
            values["content"] = clean_content(fields.get("content"))
        return values

    def _check_fields(self, data: dict, values: dict[str, Any], *, entity_id: Optional[int]) -> None:
        owner_id = values.get("ownerId")
        if entity_id is None and self.check_owner and owner_id is not None:
            if not any(account.get("id") == owner_id for account in data["accounts"]):
                raise NotFoundError("Account", owner_id)

    def create_for_owner(self, owner_id: int, content: str) -> Post:
        return self.create({"ownerId": owner_id, "content": content})

    def find_by_owner(self, owner_id: int) -> list[Post]:
        return self.find_by_conditions(PostConditions(owner_id=owner_id))

    def count_by_owner(self, owner_id: int) -> int:
        with self.storage.snapshot() as data:
            return sum(1 for post in self._records(data) if post.get("ownerId") == owner_id)

    def find_by_conditions(self, conditions: PostConditions | None = None) -> list[Post]:
        """Posts matching every supplied condition, in storage order."""
        predicates = condition_predicates(conditions or PostConditions())
        return apply_filters(self.find_all(), predicates)

    def find_with_pagination(
        self, conditions: PostConditions | None = None, query: PageQuery | None = None
    ) -> Page[Post]:
        query = query or PageQuery()
        if query.sort_by == "name":
            raise ValidationError("Posts can only be sorted by createdAt", field="sort")
        return run_query(self.find_all(), condition_predicates(conditions or PostConditions()), query)
