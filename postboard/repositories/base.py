"""CRUD primitives shared by the account and post repositories."""
from __future__ import annotations

import logging
from typing import Any, Generic, Mapping, Optional, TypeVar

from postboard.core.errors import NotFoundError, StorageError, ValidationError
from postboard.domain.validation import utc_now
from postboard.repositories.json_storage import JsonStorage

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EntityRepository(Generic[T]):
    """
    Generic repository over one collection of the JSON document.

    Subclasses set ``collection``/``resource`` and implement ``_to_entity``,
    ``_clean_fields`` (shape rules, run before any state is read) and may
    override ``_check_fields`` (rules that need the current document, run
    inside the transaction) and ``_on_delete`` (dependent records).
    """

    collection: str = ""
    resource: str = "Entity"

    def __init__(self, storage: JsonStorage):
        self.storage = storage

    # ------------------------------------------------------------ hooks
    def _to_entity(self, data: dict, record: dict, **extra: Any) -> T:
        raise NotImplementedError

    def _clean_fields(self, fields: dict[str, Any], *, partial: bool) -> dict[str, Any]:
        raise NotImplementedError

    def _check_fields(self, data: dict, values: dict[str, Any], *, entity_id: Optional[int]) -> None:
        return None

    def _on_delete(self, data: dict, entity_id: int) -> None:
        return None

    # ------------------------------------------------------------ helpers
    def _records(self, data: dict) -> list[dict]:
        return data[self.collection]

    def _index_of(self, data: dict, entity_id: int) -> Optional[int]:
        for index, record in enumerate(self._records(data)):
            if record.get("id") == entity_id:
                return index
        return None

    def _build(self, data: dict, record: dict, **extra: Any) -> T:
        try:
            return self._to_entity(data, record, **extra)
        except (KeyError, TypeError, ValueError) as exc:
            raise StorageError(
                f"Malformed {self.resource.lower()} record {record.get('id')!r}: {exc}"
            ) from exc

    def _entities(self, data: dict) -> list[T]:
        return [self._build(data, record) for record in self._records(data)]

    # ------------------------------------------------------------ reads
    def find_by_id(self, entity_id: int) -> Optional[T]:
        with self.storage.snapshot() as data:
            index = self._index_of(data, entity_id)
            if index is None:
                return None
            return self._build(data, self._records(data)[index])

    def get(self, entity_id: int) -> T:
        entity = self.find_by_id(entity_id)
        if entity is None:
            raise NotFoundError(self.resource, entity_id)
        return entity

    def find_all(self) -> list[T]:
        """All records in storage order."""
        with self.storage.snapshot() as data:
            return self._entities(data)

    def count(self) -> int:
        with self.storage.snapshot() as data:
            return len(self._records(data))

    def exists(self, entity_id: int) -> bool:
        with self.storage.snapshot() as data:
            return self._index_of(data, entity_id) is not None

    # ------------------------------------------------------------ writes
    def create(self, fields: Mapping[str, Any]) -> T:
        """Validate, assign the next id and createdAt, append and persist."""
        values = self._clean_fields(dict(fields), partial=False)
        with self.storage.transaction() as data:
            self._check_fields(data, values, entity_id=None)
            record = {"id": self.storage.next_id(self.collection), **values}
            record["createdAt"] = utc_now().isoformat()
            self._records(data).append(record)
            entity = self._build(data, record)
        logger.info(
            "Created %s %s", self.resource.lower(), entity.id,
            extra={"collection": self.collection, "entity_id": entity.id},
        )
        return entity

    def update(self, entity_id: int, patch: Any) -> T:
        """Apply a patch (AccountPatch, PostPatch) validated like a create."""
        changes = patch.present()
        if not changes:
            raise ValidationError("Nothing to update")
        values = self._clean_fields(changes, partial=True)
        with self.storage.transaction() as data:
            index = self._index_of(data, entity_id)
            if index is None:
                raise NotFoundError(self.resource, entity_id)
            self._check_fields(data, values, entity_id=entity_id)
            record = self._records(data)[index]
            record.update(values)
            record["updatedAt"] = utc_now().isoformat()
            entity = self._build(data, record)
        logger.info(
            "Updated %s %s (%s)", self.resource.lower(), entity_id, ", ".join(sorted(values)),
            extra={"collection": self.collection, "entity_id": entity_id},
        )
        return entity

    def delete(self, entity_id: int) -> bool:
        """Remove the record; False when it does not exist."""
        try:
            with self.storage.transaction() as data:
                index = self._index_of(data, entity_id)
                if index is None:
                    raise NotFoundError(self.resource, entity_id)
                del self._records(data)[index]
                self._on_delete(data, entity_id)
        except NotFoundError:
            logger.debug("Delete skipped, %s %s not found", self.resource.lower(), entity_id)
            return False
        logger.info(
            "Deleted %s %s", self.resource.lower(), entity_id,
            extra={"collection": self.collection, "entity_id": entity_id},
        )
        return True
