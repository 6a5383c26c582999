"""Per-owner metadata walkers (post, term and user metadata)."""

from typing import Any, Iterable

from libs.models.change import ChangeRecord

from .base import CollectionWalker, FieldValue

__all__ = ["MetaWalker", "PostMetaWalker", "TermMetaWalker", "UserMetaWalker"]


class MetaWalker(CollectionWalker):
    """
    Walk `{_id, owner_id, meta_key, meta_value}` rows.

    Change records are keyed by owner and metadata key. Writes target the
    exact row when its primary key is known, since an owner may carry several
    rows with the same key.
    """

    def candidate_filter(self) -> dict:
        return {"meta_value": self._candidate}

    def fields(self, doc: dict) -> Iterable[FieldValue]:
        yield FieldValue(
            record_id=str(doc.get("owner_id")),
            field=str(doc.get("meta_key")),
            value=doc.get("meta_value"),
            row_id=int(doc["_id"]),
        )

    def write_field(self, change: ChangeRecord, value: Any) -> None:
        if change.row_id is not None:
            selector = {"_id": change.row_id}
        else:
            selector = {"owner_id": _owner(change.record_id), "meta_key": change.field}
        self.collection.update_one(selector, {"$set": {"meta_value": value}})


def _owner(record_id: str) -> Any:
    return int(record_id) if record_id.isdigit() else record_id


class PostMetaWalker(MetaWalker):
    name = "postmeta"
    collection_name = "postmeta"


class TermMetaWalker(MetaWalker):
    name = "termmeta"
    collection_name = "termmeta"


class UserMetaWalker(MetaWalker):
    name = "usermeta"
    collection_name = "usermeta"
