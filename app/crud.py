from __future__ import annotations

import copy
from datetime import datetime, timezone
from typing import Any

from tortoise.exceptions import IntegrityError

from app import paths
from app.models import Document


class _Sentinel:
    def __init__(self, name: str) -> None:
        self._name = name

    def __repr__(self) -> str:
        return self._name


# Field-value sentinels understood by every write method.
DELETE_FIELD = _Sentinel("DELETE_FIELD")
SERVER_TIMESTAMP = _Sentinel("SERVER_TIMESTAMP")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_utc(dt: datetime) -> datetime:
    """Ensure a datetime is UTC-aware, handling both aware and naive inputs."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _resolve(value: Any, now: datetime) -> Any:
    """Turn a write value into its stored JSON form."""
    if value is SERVER_TIMESTAMP:
        return now.isoformat()
    if isinstance(value, datetime):
        return _to_utc(value).isoformat()
    if isinstance(value, dict):
        return {
            k: _resolve(v, now) for k, v in value.items() if v is not DELETE_FIELD
        }
    if isinstance(value, (list, tuple)):
        return [_resolve(v, now) for v in value]
    return value


def _deep_merge(target: dict, patch: dict, now: datetime) -> dict:
    result = dict(target)
    for key, value in patch.items():
        if value is DELETE_FIELD:
            result.pop(key, None)
        elif isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _deep_merge(result[key], value, now)
        else:
            result[key] = _resolve(value, now)
    return result


def _apply_field_path(data: dict, field_path: str, value: Any, now: datetime) -> None:
    """Set or delete a dotted field path (``ratings.u1``) in place."""
    keys = field_path.split(".")
    node = data
    for key in keys[:-1]:
        child = node.get(key)
        if not isinstance(child, dict):
            if value is DELETE_FIELD:
                return
            child = {}
            node[key] = child
        node = child
    if value is DELETE_FIELD:
        node.pop(keys[-1], None)
    else:
        node[keys[-1]] = _resolve(value, now)


class DocumentCRUD:
    """
    Path-addressed document store on top of the ``documents`` table.

    Every write is an upsert or delete keyed by the full document path, so
    repeating a write with the same input leaves the same final state.
    Run several calls inside ``tortoise.transactions.in_transaction()`` for
    an atomic read-modify-write.
    """

    async def get(self, path: str) -> dict | None:
        inst = await Document.get_or_none(path=path)
        if inst is None:
            return None
        return copy.deepcopy(inst.data)

    async def exists(self, path: str) -> bool:
        return await Document.filter(path=path).exists()

    async def set(self, path: str, data: dict, merge: bool = False) -> None:
        """Replace the document, or deep-merge into it when ``merge`` is set."""
        now = utcnow()
        inst = await Document.get_or_none(path=path)
        if inst is None:
            parent, doc_id = paths.split(path)
            try:
                await Document.create(
                    path=path,
                    parent=parent,
                    doc_id=doc_id,
                    data=_deep_merge({}, data, now),
                )
                return
            except IntegrityError:
                # Created concurrently; write over it like any existing document
                inst = await Document.get(path=path)
        base = copy.deepcopy(inst.data) if merge else {}
        inst.data = _deep_merge(base, data, now)
        await inst.save()

    async def create(self, path: str, data: dict) -> bool:
        """Create the document only if absent. Returns False if it already exists."""
        if await self.exists(path):
            return False
        parent, doc_id = paths.split(path)
        try:
            await Document.create(
                path=path,
                parent=parent,
                doc_id=doc_id,
                data=_resolve(data, utcnow()),
            )
        except IntegrityError:
            # Lost a race with a concurrent create of the same path
            return False
        return True

    async def update(self, path: str, fields: dict[str, Any]) -> bool:
        """
        Apply dotted field-path updates to an existing document.
        Returns False (and writes nothing) when the document does not exist.
        """
        inst = await Document.get_or_none(path=path)
        if inst is None:
            return False
        now = utcnow()
        data = copy.deepcopy(inst.data)
        for field_path, value in fields.items():
            _apply_field_path(data, field_path, value, now)
        inst.data = data
        await inst.save()
        return True

    async def delete(self, path: str) -> bool:
        """Delete the document. A missing document is not an error."""
        deleted = await Document.filter(path=path).delete()
        return deleted > 0

    async def list_collection(self, collection: str) -> list[tuple[str, dict]]:
        """Return ``(doc_id, data)`` pairs of a collection, ordered by id."""
        docs = await Document.filter(parent=collection).order_by("doc_id")
        return [(d.doc_id, copy.deepcopy(d.data)) for d in docs]


document_crud = DocumentCRUD()
